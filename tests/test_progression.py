"""Tests for XP and level progression."""

import pytest

from vault_casino.utils.progression import Progress, calculate_level, xp_for_level


class TestXpForLevel:
    """Tests for level thresholds."""

    @pytest.mark.parametrize(
        ("level", "xp"),
        [(0, 0), (1, 0), (2, 100), (3, 300), (4, 600), (5, 1000)],
    )
    def test_thresholds(self, level, xp):
        assert xp_for_level(level) == xp


class TestCalculateLevel:
    """Tests for calculate_level."""

    @pytest.mark.parametrize(
        ("xp", "level"),
        [(0, 1), (99, 1), (100, 2), (299, 2), (300, 3), (1000, 5)],
    )
    def test_levels(self, xp, level):
        assert calculate_level(xp) == level

    def test_duel_rewards(self):
        """Two wins reach level 2, a win and a loss do not."""
        assert calculate_level(60 + 60) == 2
        assert calculate_level(60 + 25) == 1


class TestProgress:
    """Tests for the Progress value."""

    def test_xp_to_next_level(self):
        assert Progress(xp=120, level=2).xp_to_next_level == 180
        assert Progress(xp=0, level=1).xp_to_next_level == 100
