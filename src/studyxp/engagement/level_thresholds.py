"""Level thresholds and computation.

Levels 1-10 use explicit cumulative thresholds; every level past 10 costs a
flat XP_PER_LEVEL_AFTER_10.
"""

from __future__ import annotations

import math

LEVEL_THRESHOLDS: list[int] = [
    0,  # Level 1
    75,  # Level 2
    175,  # Level 3
    300,  # Level 4
    450,  # Level 5
    625,  # Level 6
    825,  # Level 7
    1050,  # Level 8
    1300,  # Level 9
    1600,  # Level 10
]
XP_PER_LEVEL_AFTER_10 = 350


def compute_level(total_xp: int) -> int:
    """Return the level for a cumulative XP total."""
    total_xp = max(total_xp, 0)
    top = LEVEL_THRESHOLDS[-1]
    if total_xp >= top:
        return len(LEVEL_THRESHOLDS) + (total_xp - top) // XP_PER_LEVEL_AFTER_10

    level = 1
    for i, threshold in enumerate(LEVEL_THRESHOLDS):
        if total_xp >= threshold:
            level = i + 1
    return level


def level_floor(level: int) -> int:
    """Cumulative XP at which `level` begins."""
    if level <= len(LEVEL_THRESHOLDS):
        return LEVEL_THRESHOLDS[max(level, 1) - 1]
    return LEVEL_THRESHOLDS[-1] + (level - len(LEVEL_THRESHOLDS)) * XP_PER_LEVEL_AFTER_10


def compute_xp_stats(total_xp: int) -> dict:
    """Compute display stats for a cumulative XP total.

    `current_level_xp` is the XP earned inside the current level and
    `next_level_xp` the size of the current level, so the progress bar reads
    current_level_xp / next_level_xp.
    """
    level = compute_level(total_xp)
    floor = level_floor(level)
    span = level_floor(level + 1) - floor
    into_level = max(total_xp, 0) - floor
    # Half-up rounding, same as the dashboard's Math.round
    progress = min(100, math.floor(100 * into_level / span + 0.5))

    return {
        "total": total_xp,
        "level": level,
        "current_level_xp": into_level,
        "next_level_xp": span,
        "progress_percent": progress,
    }


def level_table(up_to: int = 15) -> list[dict]:
    """List level floors for display, extrapolating past level 10."""
    rows = []
    for level in range(1, up_to + 1):
        cumulative = level_floor(level)
        rows.append({
            "level": level,
            "cumulative": cumulative,
            "xp_required": cumulative - level_floor(level - 1) if level > 1 else 0,
        })
    return rows
