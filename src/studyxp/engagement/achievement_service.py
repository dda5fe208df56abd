"""Achievement evaluation: grant newly satisfied catalog entries exactly once."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.db.models import Achievement, UserAchievement
from studyxp.engagement.clock import utc_now
from studyxp.engagement.xp_service import book_xp

logger = logging.getLogger(__name__)

STREAK_REQUIREMENT = "streak"


@dataclass(frozen=True)
class AchievementCounters:
    total_tasks: int
    current_streak: int
    early_bird_count: int
    night_owl_count: int

    def value_for(self, requirement_type: str) -> int | None:
        return {
            "streak": self.current_streak,
            "tasks": self.total_tasks,
            "early_bird": self.early_bird_count,
            "night_owl": self.night_owl_count,
        }.get(requirement_type)


def is_satisfied(requirement: dict, counters: AchievementCounters) -> bool:
    """Simple `counter >= value` test. Unknown requirement types never unlock."""
    value = counters.value_for(str(requirement.get("type", "")))
    if value is None:
        return False
    return value >= int(requirement.get("value", 0))


def serialize_achievement(achievement: Achievement, earned_at: datetime | None) -> dict:
    return {
        "id": achievement.id,
        "key": achievement.key,
        "name": achievement.name,
        "description": achievement.description,
        "icon": achievement.icon,
        "category": achievement.category,
        "tier": achievement.tier,
        "xp_reward": achievement.xp_reward,
        "requirement": achievement.requirement,
        "is_secret": achievement.is_secret,
        "earned_at": earned_at,
    }


async def get_earned_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(
        select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
    )
    return set(result.scalars())


async def check_achievements(
    db: AsyncSession,
    user_id: int,
    counters: AchievementCounters,
    activity_date: date,
    *,
    include_streak: bool = True,
    now: datetime | None = None,
) -> list[dict]:
    """Grant every unearned achievement the counters now satisfy.

    Each grant runs in its own SAVEPOINT together with its XP booking, so a
    concurrent grant of the same achievement (UNIQUE user_id, achievement_id)
    is skipped without disturbing the caller's transaction. Never revokes.
    """
    now = now or utc_now()
    catalog = (await db.execute(select(Achievement).order_by(Achievement.sort_order, Achievement.id))).scalars().all()
    earned_ids = await get_earned_ids(db, user_id)

    granted: list[dict] = []
    for achievement in catalog:
        if achievement.id in earned_ids:
            continue
        requirement = achievement.requirement or {}
        if not include_streak and requirement.get("type") == STREAK_REQUIREMENT:
            continue
        if not is_satisfied(requirement, counters):
            continue

        try:
            async with db.begin_nested():
                db.add(UserAchievement(user_id=user_id, achievement_id=achievement.id, earned_at=now))
                await db.flush()
                if achievement.xp_reward:
                    await book_xp(db, user_id, achievement.xp_reward, activity_date, now=now)
        except IntegrityError:
            logger.debug("Achievement %s already granted to user %s", achievement.key, user_id)
            continue

        logger.info("User %s unlocked achievement %s (+%d XP)", user_id, achievement.key, achievement.xp_reward)
        granted.append(serialize_achievement(achievement, now))

    return granted
