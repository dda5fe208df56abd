"""Default achievement catalog, upserted on startup."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.db.models import Achievement
from studyxp.db.upsert import insert_for

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict] = [
    # Completions
    {
        "key": "first_task",
        "name": "First Step",
        "description": "Complete your first task",
        "icon": "check",
        "category": "tasks",
        "tier": "bronze",
        "xp_reward": 10,
        "requirement": {"type": "tasks", "value": 1},
        "sort_order": 1,
    },
    {
        "key": "tasks_10",
        "name": "Getting Things Done",
        "description": "Complete 10 tasks",
        "icon": "check-circle",
        "category": "tasks",
        "tier": "bronze",
        "xp_reward": 25,
        "requirement": {"type": "tasks", "value": 10},
        "sort_order": 2,
    },
    {
        "key": "tasks_50",
        "name": "Workhorse",
        "description": "Complete 50 tasks",
        "icon": "check-circle",
        "category": "tasks",
        "tier": "silver",
        "xp_reward": 50,
        "requirement": {"type": "tasks", "value": 50},
        "sort_order": 3,
    },
    {
        "key": "tasks_100",
        "name": "Centurion",
        "description": "Complete 100 tasks",
        "icon": "award",
        "category": "tasks",
        "tier": "gold",
        "xp_reward": 100,
        "requirement": {"type": "tasks", "value": 100},
        "sort_order": 4,
    },
    # Streaks
    {
        "key": "streak_3",
        "name": "On Fire",
        "description": "Reach a 3-day streak",
        "icon": "flame",
        "category": "streak",
        "tier": "bronze",
        "xp_reward": 15,
        "requirement": {"type": "streak", "value": 3},
        "sort_order": 10,
    },
    {
        "key": "streak_7",
        "name": "Week Warrior",
        "description": "Reach a 7-day streak",
        "icon": "flame",
        "category": "streak",
        "tier": "silver",
        "xp_reward": 30,
        "requirement": {"type": "streak", "value": 7},
        "sort_order": 11,
    },
    {
        "key": "streak_30",
        "name": "Unbreakable",
        "description": "Reach a 30-day streak",
        "icon": "flame",
        "category": "streak",
        "tier": "gold",
        "xp_reward": 100,
        "requirement": {"type": "streak", "value": 30},
        "sort_order": 12,
    },
    # Time of day
    {
        "key": "early_bird",
        "name": "Early Bird",
        "description": "Complete 5 tasks before 8 AM",
        "icon": "sunrise",
        "category": "special",
        "tier": "silver",
        "xp_reward": 25,
        "requirement": {"type": "early_bird", "value": 5},
        "is_secret": True,
        "sort_order": 20,
    },
    {
        "key": "night_owl",
        "name": "Night Owl",
        "description": "Complete 5 tasks after 11 PM",
        "icon": "moon",
        "category": "special",
        "tier": "silver",
        "xp_reward": 25,
        "requirement": {"type": "night_owl", "value": 5},
        "is_secret": True,
        "sort_order": 21,
    },
]


async def seed_achievements(db: AsyncSession) -> int:
    """Upsert the default achievement catalog. Returns number of entries seeded."""
    seeded = 0
    for data in ACHIEVEMENT_SEED_DATA:
        values = {"is_secret": False, **data}
        stmt = insert_for(db, Achievement).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={
                "name": stmt.excluded.name,
                "description": stmt.excluded.description,
                "icon": stmt.excluded.icon,
                "category": stmt.excluded.category,
                "tier": stmt.excluded.tier,
                "xp_reward": stmt.excluded.xp_reward,
                "requirement": stmt.excluded.requirement,
                "is_secret": stmt.excluded.is_secret,
                "sort_order": stmt.excluded.sort_order,
            },
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d achievement definitions", seeded)
    return seeded
