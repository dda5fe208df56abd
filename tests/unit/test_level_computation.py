"""Level computation tests, including extrapolation past level 10."""

import pytest

from studyxp.engagement.level_thresholds import (
    LEVEL_THRESHOLDS,
    XP_PER_LEVEL_AFTER_10,
    compute_level,
    compute_xp_stats,
    level_floor,
    level_table,
)


class TestComputeLevel:
    """Level from cumulative XP."""

    def test_level_1_at_zero_xp(self):
        assert compute_level(0) == 1

    def test_level_boundary_74_xp(self):
        """74 XP is still level 1."""
        assert compute_level(74) == 1

    def test_level_2_at_75_xp(self):
        assert compute_level(75) == 2

    def test_level_7_mid_band(self):
        assert compute_level(874) == 7

    def test_level_10_at_top_threshold(self):
        assert compute_level(1600) == 10
        assert compute_level(1949) == 10

    def test_flat_cost_past_level_10(self):
        assert compute_level(1950) == 11
        assert compute_level(2300) == 12
        assert compute_level(1600 + 10 * XP_PER_LEVEL_AFTER_10) == 20

    def test_negative_xp_clamps_to_level_1(self):
        assert compute_level(-5) == 1

    @pytest.mark.parametrize("level,xp", list(enumerate(LEVEL_THRESHOLDS, start=1)))
    def test_all_thresholds(self, level, xp):
        """Each threshold is the exact start of its level."""
        assert compute_level(xp) == level
        if xp > 0:
            assert compute_level(xp - 1) == level - 1

    def test_monotonic(self):
        levels = [compute_level(xp) for xp in range(0, 5000, 7)]
        assert levels == sorted(levels)


class TestLevelFloor:
    def test_explicit_levels(self):
        assert level_floor(1) == 0
        assert level_floor(10) == 1600

    def test_extrapolated_levels(self):
        assert level_floor(11) == 1950
        assert level_floor(12) == 2300


class TestXPStats:
    """Progress bar numbers."""

    def test_zero_xp(self):
        stats = compute_xp_stats(0)
        assert stats == {
            "total": 0,
            "level": 1,
            "current_level_xp": 0,
            "next_level_xp": 75,
            "progress_percent": 0,
        }

    def test_progress_rounds_half_up(self):
        stats = compute_xp_stats(10)
        assert stats["current_level_xp"] == 10
        assert stats["progress_percent"] == 13  # 13.33

    def test_mid_level(self):
        stats = compute_xp_stats(125)  # 50 into level 2 (span 100)
        assert stats["level"] == 2
        assert stats["current_level_xp"] == 50
        assert stats["next_level_xp"] == 100
        assert stats["progress_percent"] == 50

    def test_past_level_10(self):
        stats = compute_xp_stats(1775)
        assert stats["level"] == 10
        assert stats["current_level_xp"] == 175
        assert stats["next_level_xp"] == XP_PER_LEVEL_AFTER_10
        assert stats["progress_percent"] == 50


class TestLevelTable:
    def test_default_length(self):
        assert len(level_table()) == 15

    def test_rows(self):
        table = level_table()
        assert table[0] == {"level": 1, "cumulative": 0, "xp_required": 0}
        assert table[1] == {"level": 2, "cumulative": 75, "xp_required": 75}
        assert table[10] == {"level": 11, "cumulative": 1950, "xp_required": 350}
