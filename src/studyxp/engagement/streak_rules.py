"""Weekday-aware streak rules and the streak XP bonus.

Mon-Fri are required days: missing one breaks the streak. Sat/Sun are bonus
days: activity on them extends the streak, inactivity never breaks it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from studyxp.engagement.clock import is_weekend, previous_weekday

# (minimum streak, bonus XP), highest tier first. Only the best tier applies.
STREAK_BONUS_TIERS: list[tuple[int, int]] = [
    (30, 25),
    (14, 15),
    (7, 10),
    (3, 5),
]

WEEKEND_GRACE_DAYS = 3


def should_break_streak(last_activity_date: date | None, today: date) -> bool:
    """Return True when a required weekday was missed since the last activity."""
    if last_activity_date is None:
        return False

    if last_activity_date >= today - timedelta(days=1):
        return False

    if is_weekend(today):
        # Friday activity carries through the weekend
        return (today - last_activity_date).days > WEEKEND_GRACE_DAYS

    return last_activity_date < previous_weekday(today)


def streak_bonus(streak: int) -> int:
    """Bonus XP for the highest streak tier reached (step function, not cumulative)."""
    for minimum, bonus in STREAK_BONUS_TIERS:
        if streak >= minimum:
            return bonus
    return 0


@dataclass(frozen=True)
class StreakTransition:
    current_streak: int
    longest_streak: int
    streak_start_date: date | None
    broken: bool


def advance_streak(
    current_streak: int,
    longest_streak: int,
    streak_start_date: date | None,
    last_activity_date: date | None,
    today: date,
) -> StreakTransition:
    """Apply one qualifying activity on `today` to the streak state machine.

    States: no streak (0), active(n), broken. A broken streak restarts at 1,
    the first activity of a new day extends it, further activity on the same
    day leaves it unchanged.
    """
    broken = should_break_streak(last_activity_date, today)

    if broken:
        new_streak = 1
        start = today
    elif last_activity_date is None or last_activity_date < today:
        new_streak = current_streak + 1
        start = streak_start_date or today
    else:
        new_streak = current_streak
        start = streak_start_date

    return StreakTransition(
        current_streak=new_streak,
        longest_streak=max(longest_streak, new_streak),
        streak_start_date=start,
        broken=broken,
    )
