"""User engagement status read model."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.db.models import Achievement, DailyActivity, UserAchievement, UserStreak
from studyxp.engagement.achievement_service import serialize_achievement
from studyxp.engagement.clock import local_day, utc_now
from studyxp.engagement.level_thresholds import compute_xp_stats
from studyxp.engagement.streak_rules import should_break_streak
from studyxp.engagement.xp_service import get_or_create_streak

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_DAYS = 7


def serialize_streak(streak: UserStreak) -> dict:
    return {
        "current_streak": streak.current_streak,
        "longest_streak": streak.longest_streak,
        "last_activity_date": streak.last_activity_date,
        "streak_start_date": streak.streak_start_date,
        "total_tasks_completed": streak.total_tasks_completed,
        "total_xp": streak.total_xp,
        "level": streak.level,
        "vacation_mode": streak.vacation_mode,
        "vacation_started_at": streak.vacation_started_at,
        "early_bird_count": streak.early_bird_count,
        "night_owl_count": streak.night_owl_count,
    }


async def get_user_status(
    db: AsyncSession,
    user_id: int,
    timezone_offset: int = 0,
    *,
    now: datetime | None = None,
) -> dict:
    """Streak, XP stats, achievement catalog with grant times, and the last 7 active days.

    A streak whose required weekday has already passed is reset here so the
    dashboard never shows a stale count; longest_streak is kept.
    """
    now = now or utc_now()
    streak = await get_or_create_streak(db, user_id)

    today = local_day(now, timezone_offset)
    if (
        not streak.vacation_mode
        and streak.current_streak > 0
        and should_break_streak(streak.last_activity_date, today)
    ):
        logger.info("Streak of %d expired for user %s", streak.current_streak, user_id)
        streak.current_streak = 0
        streak.streak_start_date = None
        streak.updated_at = now
        await db.commit()

    catalog = (
        await db.execute(select(Achievement).order_by(Achievement.category, Achievement.xp_reward, Achievement.id))
    ).scalars().all()
    earned = await db.execute(
        select(UserAchievement.achievement_id, UserAchievement.earned_at).where(UserAchievement.user_id == user_id)
    )
    earned_at = {achievement_id: at for achievement_id, at in earned.all()}

    achievements = [serialize_achievement(a, earned_at.get(a.id)) for a in catalog]

    recent = await db.execute(
        select(DailyActivity.activity_date, DailyActivity.tasks_completed, DailyActivity.xp_earned)
        .where(DailyActivity.user_id == user_id)
        .order_by(DailyActivity.activity_date.desc())
        .limit(RECENT_ACTIVITY_DAYS)
    )

    return {
        "streak": serialize_streak(streak),
        "xp": compute_xp_stats(streak.total_xp),
        "achievements": achievements,
        "unlocked_achievements": [a for a in achievements if a["earned_at"] is not None],
        "recent_activity": [
            {"activity_date": row.activity_date, "tasks_completed": row.tasks_completed, "xp_earned": row.xp_earned}
            for row in recent
        ],
    }
