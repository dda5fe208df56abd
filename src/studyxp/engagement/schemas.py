"""Pydantic request/response models for engagement endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

# Timezone offsets in minutes, getTimezoneOffset() convention (UTC-14..UTC+14)
TZ_MIN = -14 * 60
TZ_MAX = 14 * 60


# --- Requests ---


class CompletionRequest(BaseModel):
    item_type: str = Field("task", min_length=1, max_length=32)
    item_id: str = Field(..., min_length=1, max_length=128)
    timezone_offset: int | None = Field(None, ge=TZ_MIN, le=TZ_MAX)


class FlashcardReviewRequest(BaseModel):
    card_id: str = Field(..., min_length=1, max_length=128)
    timezone_offset: int | None = Field(None, ge=TZ_MIN, le=TZ_MAX)


class VacationModeRequest(BaseModel):
    vacation_mode: bool = Field(..., strict=True)


class ClaimRequest(BaseModel):
    timezone_offset: int | None = Field(None, ge=TZ_MIN, le=TZ_MAX)


# --- Achievements ---


class AchievementResponse(BaseModel):
    id: int
    key: str
    name: str
    description: str
    icon: str
    category: str
    tier: str
    xp_reward: int
    requirement: dict
    is_secret: bool = False
    earned_at: datetime | None = None


# --- Completions ---


class CompletionResponse(BaseModel):
    xp_earned: int
    new_achievements: list[AchievementResponse] = []
    level_up: bool
    previous_level: int
    new_level: int
    streak_updated: bool
    new_streak: int
    already_credited: bool = False


class VacationModeResponse(BaseModel):
    vacation_mode: bool
    vacation_started_at: datetime | None = None


# --- Status ---


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None
    streak_start_date: date | None = None
    total_tasks_completed: int
    total_xp: int
    level: int
    vacation_mode: bool
    vacation_started_at: datetime | None = None
    early_bird_count: int = 0
    night_owl_count: int = 0


class XPStatsResponse(BaseModel):
    total: int
    level: int
    current_level_xp: int
    next_level_xp: int
    progress_percent: int


class DailyActivityEntry(BaseModel):
    activity_date: date
    tasks_completed: int
    xp_earned: int


# --- Daily challenges ---


class ChallengeProgressResponse(BaseModel):
    id: str
    title: str
    description: str
    icon: str
    type: str
    category: str
    current_count: int
    target_count: int
    completed: bool
    claimed: bool
    xp_reward: int


class DailyChallengesResponse(BaseModel):
    challenges: list[ChallengeProgressResponse]
    date_key: str


class ClaimedChallenge(BaseModel):
    id: str
    title: str
    xp_reward: int


class ClaimResponse(BaseModel):
    xp_awarded: int
    level_up: bool
    new_level: int
    sweep_bonus: bool
    claimed_challenges: list[ClaimedChallenge]


class ChallengeRewardEntry(BaseModel):
    challenge_id: str
    date_key: str
    xp_awarded: int
    claimed_at: datetime


class ChallengeRewardsResponse(BaseModel):
    rewards: list[ChallengeRewardEntry]


class UserStatusResponse(BaseModel):
    streak: StreakResponse
    xp: XPStatsResponse
    achievements: list[AchievementResponse]
    unlocked_achievements: list[AchievementResponse]
    recent_activity: list[DailyActivityEntry]
    daily_challenges: list[ChallengeProgressResponse] = []
    date_key: str


# --- Levels ---


class LevelEntry(BaseModel):
    level: int
    xp_required: int
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]
