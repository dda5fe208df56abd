"""Best-effort engagement event fan-out over Redis pub/sub."""

from __future__ import annotations

import json
import logging

logger = logging.getLogger(__name__)

CHANNEL_LEVEL_UP = "pubsub:level_up"
CHANNEL_ACHIEVEMENT_UNLOCKED = "pubsub:achievement_unlocked"
CHANNEL_CHALLENGE_CLAIMED = "pubsub:challenge_claimed"


async def publish_event(redis: object, channel: str, payload: dict) -> None:
    """Publish a JSON event. Never raises: delivery is not part of the XP transaction."""
    if redis is None:
        return
    try:
        await redis.publish(channel, json.dumps(payload, default=str))  # type: ignore[union-attr]
    except Exception:
        logger.warning("Failed to publish %s event", channel, exc_info=True)


async def emit_level_up(redis: object, user_id: int, old_level: int, new_level: int) -> None:
    await publish_event(redis, CHANNEL_LEVEL_UP, {
        "user_id": user_id,
        "old_level": old_level,
        "new_level": new_level,
    })


async def emit_achievements(redis: object, user_id: int, achievements: list[dict]) -> None:
    for achievement in achievements:
        await publish_event(redis, CHANNEL_ACHIEVEMENT_UNLOCKED, {
            "user_id": user_id,
            "key": achievement["key"],
            "name": achievement["name"],
            "xp_reward": achievement["xp_reward"],
        })


async def emit_challenges_claimed(
    redis: object,
    user_id: int,
    date_key: str,
    challenge_ids: list[str],
    xp_awarded: int,
    sweep_bonus: bool,
) -> None:
    await publish_event(redis, CHANNEL_CHALLENGE_CLAIMED, {
        "user_id": user_id,
        "date_key": date_key,
        "challenge_ids": challenge_ids,
        "xp_awarded": xp_awarded,
        "sweep_bonus": sweep_bonus,
    })
