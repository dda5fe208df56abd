"""Streak & XP ledger: idempotent crediting of completed items."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.db.models import CompletionCredit
from studyxp.engagement.achievement_service import AchievementCounters, check_achievements
from studyxp.engagement.clock import local_day, time_of_day_flags, utc_now
from studyxp.engagement.events import emit_achievements, emit_level_up
from studyxp.engagement.streak_rules import advance_streak, streak_bonus
from studyxp.engagement.xp_service import book_xp, get_or_create_streak, get_streak

logger = logging.getLogger(__name__)

BASE_XP = 10
FLASHCARD_XP = 1
FLASHCARD_ITEM_TYPE = "flashcard"


async def has_credit(db: AsyncSession, user_id: int, item_type: str, item_id: str) -> bool:
    """Check whether an item already paid out XP."""
    result = await db.execute(
        select(CompletionCredit.id).where(
            CompletionCredit.user_id == user_id,
            CompletionCredit.item_type == item_type,
            CompletionCredit.item_id == item_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def _zero_effect(db: AsyncSession, user_id: int) -> dict:
    streak = await get_streak(db, user_id)
    level = streak.level if streak else 1
    return {
        "xp_earned": 0,
        "new_achievements": [],
        "level_up": False,
        "previous_level": level,
        "new_level": level,
        "streak_updated": False,
        "new_streak": streak.current_streak if streak else 0,
        "already_credited": True,
    }


async def _credit_activity(
    db: AsyncSession,
    redis: object,
    user_id: int,
    item_type: str,
    item_id: str | None,
    timezone_offset: int,
    now: datetime | None,
    *,
    base_xp: int,
    counts_as_task: bool,
) -> dict:
    """Shared ledger path for completions and flashcard reviews.

    One transaction: credit guard, streak transition, XP + counters, daily
    activity, monthly total, achievements. A duplicate credit rolls the whole
    unit back and resolves to the zero-effect result.
    """
    if item_id is not None and await has_credit(db, user_id, item_type, item_id):
        logger.debug("Item %s:%s already credited for user %s", item_type, item_id, user_id)
        return await _zero_effect(db, user_id)

    now = now or utc_now()
    today = local_day(now, timezone_offset)
    early_bird, night_owl = time_of_day_flags(now, timezone_offset) if counts_as_task else (False, False)

    streak = await get_or_create_streak(db, user_id)
    previous_streak = streak.current_streak

    if streak.vacation_mode:
        xp_earned = base_xp
        new_streak = previous_streak
    else:
        transition = advance_streak(
            streak.current_streak,
            streak.longest_streak,
            streak.streak_start_date,
            streak.last_activity_date,
            today,
        )
        new_streak = transition.current_streak
        xp_earned = base_xp + (streak_bonus(new_streak) if counts_as_task else 0)

        streak.current_streak = transition.current_streak
        streak.longest_streak = transition.longest_streak
        streak.streak_start_date = transition.streak_start_date
        if streak.last_activity_date is None or streak.last_activity_date < today:
            streak.last_activity_date = today

    if item_id is not None:
        db.add(CompletionCredit(
            user_id=user_id,
            item_type=item_type,
            item_id=item_id,
            xp_awarded=xp_earned,
            created_at=now,
        ))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.debug("Concurrent credit for %s:%s, user %s", item_type, item_id, user_id)
            return await _zero_effect(db, user_id)

    previous_level, streak = await book_xp(
        db,
        user_id,
        xp_earned,
        today,
        tasks_completed=1 if counts_as_task else 0,
        early_bird=int(early_bird),
        night_owl=int(night_owl),
        now=now,
    )

    new_achievements: list[dict] = []
    if counts_as_task:
        new_achievements = await check_achievements(
            db,
            user_id,
            AchievementCounters(
                total_tasks=streak.total_tasks_completed,
                current_streak=streak.current_streak,
                early_bird_count=streak.early_bird_count,
                night_owl_count=streak.night_owl_count,
            ),
            today,
            include_streak=not streak.vacation_mode,
            now=now,
        )
        streak = await get_streak(db, user_id) or streak

    new_level = streak.level
    await db.commit()

    if new_level > previous_level:
        logger.info("User %s leveled up: %d -> %d", user_id, previous_level, new_level)
        await emit_level_up(redis, user_id, previous_level, new_level)
    await emit_achievements(redis, user_id, new_achievements)

    return {
        "xp_earned": xp_earned,
        "new_achievements": new_achievements,
        "level_up": new_level > previous_level,
        "previous_level": previous_level,
        "new_level": new_level,
        "streak_updated": new_streak != previous_streak,
        "new_streak": new_streak,
        "already_credited": False,
    }


async def record_completion(
    db: AsyncSession,
    user_id: int,
    item_type: str = "task",
    item_id: str | None = None,
    timezone_offset: int = 0,
    *,
    redis: object = None,
    now: datetime | None = None,
) -> dict:
    """Credit a completed item: streak transition, BASE_XP + streak bonus, achievements.

    Idempotent per (user_id, item_type, item_id) when item_id is given. In
    vacation mode the streak is frozen and a flat BASE_XP is awarded.
    """
    return await _credit_activity(
        db, redis, user_id, item_type, item_id, timezone_offset, now,
        base_xp=BASE_XP,
        counts_as_task=True,
    )


async def record_flashcard_review(
    db: AsyncSession,
    user_id: int,
    card_id: str,
    timezone_offset: int = 0,
    *,
    redis: object = None,
    now: datetime | None = None,
) -> dict:
    """Credit a first-time flashcard review: FLASHCARD_XP, streak upkeep, no task count."""
    return await _credit_activity(
        db, redis, user_id, FLASHCARD_ITEM_TYPE, card_id, timezone_offset, now,
        base_xp=FLASHCARD_XP,
        counts_as_task=False,
    )


async def set_vacation_mode(
    db: AsyncSession,
    user_id: int,
    enabled: bool,
    *,
    now: datetime | None = None,
) -> dict:
    """Toggle the frozen-streak mode."""
    streak = await get_or_create_streak(db, user_id)
    streak.vacation_mode = enabled
    streak.vacation_started_at = (now or utc_now()) if enabled else None
    streak.updated_at = now or utc_now()
    await db.commit()

    logger.info("Vacation mode %s for user %s", "enabled" if enabled else "disabled", user_id)
    return {
        "vacation_mode": streak.vacation_mode,
        "vacation_started_at": streak.vacation_started_at,
    }
