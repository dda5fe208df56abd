"""Streak rule tests: weekday requirement, weekend grace and bonus tiers."""

from datetime import date

import pytest

from studyxp.engagement.streak_rules import advance_streak, should_break_streak, streak_bonus

# March 2025: Mon 3, Tue 4, Wed 5, Thu 6, Fri 7, Sat 8, Sun 9, Mon 10
MON = date(2025, 3, 3)
TUE = date(2025, 3, 4)
WED = date(2025, 3, 5)
THU = date(2025, 3, 6)
FRI = date(2025, 3, 7)
SAT = date(2025, 3, 8)
SUN = date(2025, 3, 9)
NEXT_MON = date(2025, 3, 10)


class TestShouldBreakStreak:
    """Mon-Fri are required, Sat/Sun are bonus days."""

    def test_no_history_never_breaks(self):
        assert should_break_streak(None, WED) is False

    def test_same_day(self):
        assert should_break_streak(WED, WED) is False

    def test_consecutive_weekdays(self):
        assert should_break_streak(TUE, WED) is False

    def test_missed_weekday_breaks(self):
        """Mon -> Fri skips Tue-Thu."""
        assert should_break_streak(MON, FRI) is True

    def test_friday_to_monday_holds(self):
        assert should_break_streak(FRI, NEXT_MON) is False

    def test_thursday_to_monday_breaks(self):
        """Friday was required."""
        assert should_break_streak(THU, NEXT_MON) is True

    def test_weekend_activity_after_friday(self):
        assert should_break_streak(FRI, SAT) is False
        assert should_break_streak(FRI, SUN) is False

    def test_weekend_grace_window(self):
        assert should_break_streak(THU, SUN) is False
        assert should_break_streak(WED, SUN) is True

    def test_sunday_to_monday(self):
        assert should_break_streak(SUN, NEXT_MON) is False


class TestStreakBonus:
    @pytest.mark.parametrize(
        "streak,bonus",
        [(0, 0), (2, 0), (3, 5), (6, 5), (7, 10), (13, 10), (14, 15), (29, 15), (30, 25), (365, 25)],
    )
    def test_tiers(self, streak, bonus):
        """Only the highest tier reached applies."""
        assert streak_bonus(streak) == bonus


class TestAdvanceStreak:
    """State machine for one qualifying activity."""

    def test_first_activity_starts_streak(self):
        t = advance_streak(0, 0, None, None, WED)
        assert t.current_streak == 1
        assert t.longest_streak == 1
        assert t.streak_start_date == WED
        assert t.broken is False

    def test_next_day_extends(self):
        t = advance_streak(2, 2, MON, TUE, WED)
        assert t.current_streak == 3
        assert t.longest_streak == 3
        assert t.streak_start_date == MON

    def test_same_day_unchanged(self):
        t = advance_streak(3, 5, MON, WED, WED)
        assert t.current_streak == 3
        assert t.longest_streak == 5

    def test_broken_restarts_at_one(self):
        t = advance_streak(4, 4, date(2025, 2, 26), MON, FRI)
        assert t.broken is True
        assert t.current_streak == 1
        assert t.longest_streak == 4
        assert t.streak_start_date == FRI

    def test_weekend_day_counts(self):
        t = advance_streak(5, 5, MON, FRI, SAT)
        assert t.current_streak == 6

    def test_clock_moved_backwards_is_same_day(self):
        """An activity dated before the last one (timezone change) leaves the streak alone."""
        t = advance_streak(2, 2, TUE, WED, TUE)
        assert t.current_streak == 2
        assert t.streak_start_date == TUE
