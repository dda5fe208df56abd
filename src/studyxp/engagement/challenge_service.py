"""Daily challenge progress and claiming."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studyxp.db.models import CompletionCredit, DailyActivity, DailyChallengeReward
from studyxp.engagement.challenges import SWEEP_BONUS_ID, SWEEP_BONUS_XP, select_challenges
from studyxp.engagement.clock import day_window, parse_date_key, utc_now
from studyxp.engagement.events import emit_challenges_claimed, emit_level_up
from studyxp.engagement.xp_service import book_xp, get_streak

logger = logging.getLogger(__name__)

# Credit item types counted by each challenge type ("any" counts every credit)
ITEM_TYPE_BUCKETS: dict[str, frozenset[str]] = {
    "task": frozenset({"task"}),
    "flashcard": frozenset({"flashcard"}),
    "assignment": frozenset({"assignment", "deadline", "workItem"}),
}

# Re-evaluations after the first claim. Claiming only moves the day's XP, so
# one pass resolves every cascade the pool can produce.
CASCADE_PASSES = 1


async def _credit_counts(db: AsyncSession, user_id: int, date_key: str, timezone_offset: int) -> dict[str, int]:
    start, end = day_window(date_key, timezone_offset)
    result = await db.execute(
        select(CompletionCredit.item_type, func.count(CompletionCredit.id))
        .where(
            CompletionCredit.user_id == user_id,
            CompletionCredit.created_at >= start,
            CompletionCredit.created_at < end,
        )
        .group_by(CompletionCredit.item_type)
    )
    return {item_type: count for item_type, count in result.all()}


async def _xp_earned_on(db: AsyncSession, user_id: int, date_key: str) -> int:
    xp = await db.scalar(
        select(DailyActivity.xp_earned).where(
            DailyActivity.user_id == user_id,
            DailyActivity.activity_date == parse_date_key(date_key),
        )
    )
    return xp or 0


async def get_claimed_ids(db: AsyncSession, user_id: int, date_key: str) -> set[str]:
    result = await db.execute(
        select(DailyChallengeReward.challenge_id).where(
            DailyChallengeReward.user_id == user_id,
            DailyChallengeReward.date_key == date_key,
        )
    )
    return set(result.scalars())


async def compute_progress(
    db: AsyncSession,
    user_id: int,
    date_key: str,
    timezone_offset: int = 0,
) -> list[dict]:
    """Progress against the day's challenges. Read-only.

    Counts come from credits created inside the local day's UTC window; the
    xp type reads the day's daily_activity.xp_earned.
    """
    challenges = select_challenges(date_key)
    counts = await _credit_counts(db, user_id, date_key, timezone_offset)
    xp_earned = await _xp_earned_on(db, user_id, date_key)
    claimed_ids = await get_claimed_ids(db, user_id, date_key)

    progress = []
    for challenge in challenges:
        if challenge.type == "xp":
            current = xp_earned
        elif challenge.type == "any":
            current = sum(counts.values())
        else:
            bucket = ITEM_TYPE_BUCKETS.get(challenge.type, frozenset())
            current = sum(n for item_type, n in counts.items() if item_type in bucket)

        progress.append({
            "id": challenge.id,
            "title": challenge.title,
            "description": challenge.description,
            "icon": challenge.icon,
            "type": challenge.type,
            "category": challenge.category,
            "current_count": min(current, challenge.target_count),
            "target_count": challenge.target_count,
            "completed": current >= challenge.target_count,
            "claimed": challenge.id in claimed_ids,
            "xp_reward": challenge.xp_reward,
        })
    return progress


async def get_challenges(
    db: AsyncSession,
    user_id: int,
    date_key: str,
    timezone_offset: int = 0,
) -> list[dict]:
    """Read model for the challenges widget."""
    return await compute_progress(db, user_id, date_key, timezone_offset)


async def _claim_pass(
    db: AsyncSession,
    user_id: int,
    date_key: str,
    progress: list[dict],
    now: datetime,
) -> tuple[list[dict], bool, int] | None:
    """Claim completed-but-unclaimed challenges in one committed transaction.

    Returns (claimed, sweep awarded, xp) or None when there is nothing to
    claim or a concurrent claim won the UNIQUE race.
    """
    to_claim = [p for p in progress if p["completed"] and not p["claimed"]]
    if not to_claim:
        return None

    xp = sum(p["xp_reward"] for p in to_claim)
    claimed_ids = await get_claimed_ids(db, user_id, date_key)
    sweep = bool(progress) and all(p["completed"] for p in progress) and SWEEP_BONUS_ID not in claimed_ids
    if sweep:
        xp += SWEEP_BONUS_XP

    for p in to_claim:
        db.add(DailyChallengeReward(
            user_id=user_id,
            challenge_id=p["id"],
            date_key=date_key,
            xp_awarded=p["xp_reward"],
            claimed_at=now,
        ))
    if sweep:
        db.add(DailyChallengeReward(
            user_id=user_id,
            challenge_id=SWEEP_BONUS_ID,
            date_key=date_key,
            xp_awarded=SWEEP_BONUS_XP,
            claimed_at=now,
        ))

    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.debug("Concurrent claim for user %s on %s", user_id, date_key)
        return None

    await book_xp(db, user_id, xp, parse_date_key(date_key), now=now)
    await db.commit()
    return to_claim, sweep, xp


async def claim_completed(
    db: AsyncSession,
    user_id: int,
    date_key: str,
    timezone_offset: int = 0,
    *,
    redis: object = None,
    now: datetime | None = None,
) -> dict:
    """Grant XP for completed-but-unclaimed challenges, with sweep bonus and cascade.

    Each pass commits on its own; a failed pass leaves earlier passes intact.
    Claiming raises the day's XP, which can complete an xp challenge, so the
    progress is re-evaluated CASCADE_PASSES more times.
    """
    now = now or utc_now()
    streak = await get_streak(db, user_id)
    previous_level = streak.level if streak else 1

    xp_awarded = 0
    sweep_bonus = False
    claimed: list[dict] = []

    progress = await compute_progress(db, user_id, date_key, timezone_offset)
    for _ in range(1 + CASCADE_PASSES):
        outcome = await _claim_pass(db, user_id, date_key, progress, now)
        if outcome is None:
            break
        pass_claimed, pass_sweep, pass_xp = outcome
        claimed.extend(pass_claimed)
        sweep_bonus = sweep_bonus or pass_sweep
        xp_awarded += pass_xp
        progress = await compute_progress(db, user_id, date_key, timezone_offset)

    streak = await get_streak(db, user_id)
    new_level = streak.level if streak else previous_level

    if claimed:
        logger.info(
            "User %s claimed %d challenge(s) for %s: +%d XP%s",
            user_id, len(claimed), date_key, xp_awarded, " (sweep)" if sweep_bonus else "",
        )
        await emit_challenges_claimed(redis, user_id, date_key, [c["id"] for c in claimed], xp_awarded, sweep_bonus)
    if new_level > previous_level:
        await emit_level_up(redis, user_id, previous_level, new_level)

    return {
        "xp_awarded": xp_awarded,
        "level_up": new_level > previous_level,
        "new_level": new_level,
        "sweep_bonus": sweep_bonus,
        "claimed_challenges": [
            {"id": c["id"], "title": c["title"], "xp_reward": c["xp_reward"]} for c in claimed
        ],
    }


async def list_challenge_rewards(db: AsyncSession, user_id: int) -> list[DailyChallengeReward]:
    """All claimed rewards for a user, newest first (export)."""
    result = await db.execute(
        select(DailyChallengeReward)
        .where(DailyChallengeReward.user_id == user_id)
        .order_by(DailyChallengeReward.claimed_at.desc(), DailyChallengeReward.id.desc())
    )
    return list(result.scalars())
