"""Local-calendar helpers.

Timezone offsets follow the browser's getTimezoneOffset() convention: minutes
to ADD to local time to reach UTC, so UTC-5 is +300.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

EARLY_BIRD_BEFORE_HOUR = 8
NIGHT_OWL_FROM_HOUR = 23


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_time(now: datetime, timezone_offset: int) -> datetime:
    """Shift a UTC instant so its date/hour fields read as the user's wall clock."""
    return now - timedelta(minutes=timezone_offset)


def local_day(now: datetime, timezone_offset: int) -> date:
    return local_time(now, timezone_offset).date()


def date_key(day: date) -> str:
    """Calendar-day key, e.g. '2025-03-01'."""
    return day.isoformat()


def today_key(now: datetime, timezone_offset: int) -> str:
    return date_key(local_day(now, timezone_offset))


def parse_date_key(key: str) -> date:
    """Parse a 'YYYY-MM-DD' key. Raises ValueError on malformed input."""
    return date.fromisoformat(key)


def year_month(day: date) -> str:
    """Leaderboard month key, e.g. '2025-03'."""
    return f"{day.year:04d}-{day.month:02d}"


def day_window(key: str, timezone_offset: int) -> tuple[datetime, datetime]:
    """UTC bounds [start, end) of the local calendar day named by `key`."""
    day = parse_date_key(key)
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc) + timedelta(minutes=timezone_offset)
    return start, start + timedelta(days=1)


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def previous_weekday(day: date) -> date:
    """Most recent Mon-Fri strictly before `day`."""
    prev = day - timedelta(days=1)
    while is_weekend(prev):
        prev -= timedelta(days=1)
    return prev


def time_of_day_flags(now: datetime, timezone_offset: int) -> tuple[bool, bool]:
    """Return (is_early_bird, is_night_owl) for the user's local hour."""
    hour = local_time(now, timezone_offset).hour
    return hour < EARLY_BIRD_BEFORE_HOUR, hour >= NIGHT_OWL_FROM_HOUR
