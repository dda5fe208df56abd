"""Institution leaderboard built on monthly XP totals."""

from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.db.models import DailyActivity, Institution, MonthlyXpTotal, User
from studyxp.db.upsert import insert_for
from studyxp.engagement.clock import year_month

logger = logging.getLogger(__name__)


async def get_institution_id(db: AsyncSession, user_id: int) -> int | None:
    return await db.scalar(select(User.institution_id).where(User.id == user_id))


async def add_monthly_xp(db: AsyncSession, user_id: int, month: str, amount: int) -> bool:
    """Add XP to the user's monthly total. Returns False when the user has no institution."""
    if amount == 0:
        return False
    institution_id = await get_institution_id(db, user_id)
    if institution_id is None:
        return False

    stmt = insert_for(db, MonthlyXpTotal).values(
        user_id=user_id,
        institution_id=institution_id,
        year_month=month,
        total_xp=amount,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "year_month"],
        set_={"total_xp": MonthlyXpTotal.total_xp + stmt.excluded.total_xp},
    )
    await db.execute(stmt)
    return True


async def get_institution_leaderboard(
    db: AsyncSession,
    month: str,
    user_id: int | None = None,
) -> dict:
    """Rank active institutions by summed XP for `month` ('YYYY-MM')."""
    user_institution_id = await get_institution_id(db, user_id) if user_id is not None else None

    result = await db.execute(
        select(
            MonthlyXpTotal.institution_id,
            func.sum(MonthlyXpTotal.total_xp).label("total_xp"),
            func.count(MonthlyXpTotal.user_id).label("user_count"),
            Institution.full_name,
            Institution.acronym,
        )
        .join(Institution, Institution.id == MonthlyXpTotal.institution_id)
        .where(
            MonthlyXpTotal.year_month == month,
            Institution.is_active.is_(True),
        )
        .group_by(MonthlyXpTotal.institution_id, Institution.full_name, Institution.acronym)
        .order_by(func.sum(MonthlyXpTotal.total_xp).desc(), MonthlyXpTotal.institution_id)
    )

    entries = [
        {
            "rank": rank,
            "institution_id": row.institution_id,
            "institution_name": row.full_name,
            "acronym": row.acronym,
            "total_xp": int(row.total_xp or 0),
            "user_count": row.user_count,
            "is_user_institution": row.institution_id == user_institution_id,
        }
        for rank, row in enumerate(result, start=1)
    ]

    return {
        "leaderboard": entries,
        "month": month,
        "user_institution_id": user_institution_id,
    }


async def backfill_monthly_xp(db: AsyncSession) -> tuple[int, int]:
    """Rebuild monthly totals from daily activity for every user with an institution.

    Returns (created, updated).
    """
    users = (
        await db.execute(select(User.id, User.institution_id).where(User.institution_id.is_not(None)))
    ).all()

    created = 0
    updated = 0
    for user in users:
        activity = await db.execute(
            select(DailyActivity.activity_date, DailyActivity.xp_earned).where(DailyActivity.user_id == user.id)
        )
        monthly: dict[str, int] = defaultdict(int)
        for row in activity:
            monthly[year_month(row.activity_date)] += row.xp_earned

        for month, total in monthly.items():
            existing = await db.scalar(
                select(MonthlyXpTotal)
                .where(MonthlyXpTotal.user_id == user.id, MonthlyXpTotal.year_month == month)
                .execution_options(populate_existing=True)
            )
            if existing is None:
                db.add(MonthlyXpTotal(
                    user_id=user.id,
                    institution_id=user.institution_id,
                    year_month=month,
                    total_xp=total,
                ))
                created += 1
            elif existing.total_xp != total or existing.institution_id != user.institution_id:
                existing.total_xp = total
                existing.institution_id = user.institution_id
                updated += 1

    await db.commit()
    logger.info("Monthly XP backfill complete: %d created, %d updated", created, updated)
    return created, updated
