"""XP bookkeeping shared by completions, achievements and challenge claims."""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.db.models import DailyActivity, UserStreak
from studyxp.db.upsert import insert_for
from studyxp.engagement.clock import utc_now, year_month
from studyxp.engagement.level_thresholds import compute_level
from studyxp.leaderboard.service import add_monthly_xp

logger = logging.getLogger(__name__)


async def get_streak(db: AsyncSession, user_id: int) -> UserStreak | None:
    """Load the user's streak row, bypassing any stale copy in the identity map."""
    result = await db.execute(
        select(UserStreak)
        .where(UserStreak.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_streak(db: AsyncSession, user_id: int) -> UserStreak:
    """Get or lazily create the streak row for a user."""
    streak = await get_streak(db, user_id)
    if streak is not None:
        return streak

    try:
        async with db.begin_nested():
            streak = UserStreak(user_id=user_id, updated_at=utc_now())
            db.add(streak)
    except IntegrityError:
        # Race: a concurrent request created it first
        logger.debug("Streak row for user %s created concurrently", user_id)
        streak = await get_streak(db, user_id)
        if streak is None:
            raise
    return streak


async def upsert_daily_activity(
    db: AsyncSession,
    user_id: int,
    activity_date: date,
    xp_earned: int = 0,
    tasks_completed: int = 0,
) -> None:
    """Additively upsert the (user, local day) activity counters."""
    stmt = insert_for(db, DailyActivity).values(
        user_id=user_id,
        activity_date=activity_date,
        tasks_completed=tasks_completed,
        xp_earned=xp_earned,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "activity_date"],
        set_={
            "tasks_completed": DailyActivity.tasks_completed + stmt.excluded.tasks_completed,
            "xp_earned": DailyActivity.xp_earned + stmt.excluded.xp_earned,
        },
    )
    await db.execute(stmt)


async def book_xp(
    db: AsyncSession,
    user_id: int,
    amount: int,
    activity_date: date,
    *,
    tasks_completed: int = 0,
    early_bird: int = 0,
    night_owl: int = 0,
    now: datetime | None = None,
) -> tuple[int, UserStreak]:
    """Add XP (and counters) to a user inside the caller's transaction.

    1. Increment user_streaks totals SQL-side
    2. Recompute the cached level from the fresh total
    3. Mirror the XP into daily_activity and monthly_xp_totals

    Returns (level before, refreshed streak row).
    """
    streak = await get_or_create_streak(db, user_id)
    old_level = streak.level

    await db.execute(
        update(UserStreak)
        .where(UserStreak.user_id == user_id)
        .values(
            total_xp=UserStreak.total_xp + amount,
            total_tasks_completed=UserStreak.total_tasks_completed + tasks_completed,
            early_bird_count=UserStreak.early_bird_count + early_bird,
            night_owl_count=UserStreak.night_owl_count + night_owl,
            updated_at=now or utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    streak = await get_streak(db, user_id)
    if streak is None:
        msg = f"Streak row for user {user_id} vanished mid-transaction"
        raise RuntimeError(msg)
    streak.level = compute_level(streak.total_xp)

    await upsert_daily_activity(db, user_id, activity_date, xp_earned=amount, tasks_completed=tasks_completed)
    await add_monthly_xp(db, user_id, year_month(activity_date), amount)
    await db.flush()

    return old_level, streak
