"""Engagement API endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.config import get_settings
from studyxp.database import get_session
from studyxp.dependencies import get_current_user_id, get_redis_dep
from studyxp.engagement.challenge_service import claim_completed, get_challenges, list_challenge_rewards
from studyxp.engagement.clock import today_key, utc_now
from studyxp.engagement.ledger import record_completion, record_flashcard_review, set_vacation_mode
from studyxp.engagement.level_thresholds import level_table
from studyxp.engagement.schemas import (
    TZ_MAX,
    TZ_MIN,
    AllLevelsResponse,
    ChallengeRewardEntry,
    ChallengeRewardsResponse,
    ClaimRequest,
    ClaimResponse,
    CompletionRequest,
    CompletionResponse,
    DailyChallengesResponse,
    FlashcardReviewRequest,
    LevelEntry,
    UserStatusResponse,
    VacationModeRequest,
    VacationModeResponse,
)
from studyxp.engagement.status_service import get_user_status

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/engagement", tags=["Engagement"])


def _tz(offset: int | None) -> int:
    return get_settings().default_timezone_offset if offset is None else offset


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get level floors for display."""
    return AllLevelsResponse(levels=[LevelEntry(**row) for row in level_table()])


@router.post("/completions", response_model=CompletionResponse)
async def post_completion(
    body: CompletionRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Record a completed item. Repeats for the same item award nothing."""
    result = await record_completion(
        db, user_id, body.item_type, body.item_id, _tz(body.timezone_offset), redis=redis,
    )
    logger.info("completion_recorded", user_id=user_id, item_type=body.item_type, xp=result["xp_earned"])
    return CompletionResponse(**result)


@router.post("/flashcard-reviews", response_model=CompletionResponse)
async def post_flashcard_review(
    body: FlashcardReviewRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Record a first-time flashcard review."""
    result = await record_flashcard_review(db, user_id, body.card_id, _tz(body.timezone_offset), redis=redis)
    return CompletionResponse(**result)


@router.get("/status", response_model=UserStatusResponse)
async def get_status(
    tz: int | None = Query(None, ge=TZ_MIN, le=TZ_MAX),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Streak, XP, achievements, recent activity and today's challenges."""
    offset = _tz(tz)
    now = utc_now()
    key = today_key(now, offset)
    status = await get_user_status(db, user_id, offset, now=now)
    challenges = await get_challenges(db, user_id, key, offset)
    return UserStatusResponse(**status, daily_challenges=challenges, date_key=key)


@router.patch("/vacation", response_model=VacationModeResponse)
async def patch_vacation(
    body: VacationModeRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Enable or disable vacation mode."""
    result = await set_vacation_mode(db, user_id, body.vacation_mode)
    return VacationModeResponse(**result)


@router.get("/daily-challenges", response_model=DailyChallengesResponse)
async def get_daily_challenges(
    tz: int | None = Query(None, ge=TZ_MIN, le=TZ_MAX),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Today's challenges with progress."""
    offset = _tz(tz)
    key = today_key(utc_now(), offset)
    challenges = await get_challenges(db, user_id, key, offset)
    return DailyChallengesResponse(challenges=challenges, date_key=key)


@router.post("/daily-challenges/claim", response_model=ClaimResponse)
async def post_claim(
    body: ClaimRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Claim every completed-but-unclaimed challenge for today."""
    offset = _tz(body.timezone_offset)
    now = utc_now()
    result = await claim_completed(db, user_id, today_key(now, offset), offset, redis=redis, now=now)
    return ClaimResponse(**result)


@router.get("/daily-challenge-rewards", response_model=ChallengeRewardsResponse)
async def get_challenge_rewards(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """All claimed challenge rewards, newest first."""
    rewards = await list_challenge_rewards(db, user_id)
    return ChallengeRewardsResponse(
        rewards=[
            ChallengeRewardEntry(
                challenge_id=r.challenge_id,
                date_key=r.date_key,
                xp_awarded=r.xp_awarded,
                claimed_at=r.claimed_at,
            )
            for r in rewards
        ]
    )
