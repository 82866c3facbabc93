"""Tests for season phases and week transitions."""

import pytest

from gridblitz.core.season import (
    ALLOWED_TRANSITIONS,
    SeasonPhase,
    next_phase,
    normalize_phase,
    phase_for_week,
    round_name,
)


class TestSeasonPhase:
    def test_compares_with_raw_strings(self):
        assert SeasonPhase.WILD_CARD == "wild_card"

    def test_normalize_known(self):
        assert normalize_phase("super_bowl") is SeasonPhase.SUPER_BOWL

    def test_normalize_unknown(self):
        with pytest.raises(ValueError):
            normalize_phase("preseason")

    def test_offseason_is_terminal(self):
        assert ALLOWED_TRANSITIONS[SeasonPhase.OFFSEASON] == set()


class TestPhaseForWeek:
    @pytest.mark.parametrize(
        ("week", "phase"),
        [
            (1, SeasonPhase.REGULAR_SEASON),
            (18, SeasonPhase.REGULAR_SEASON),
            (19, SeasonPhase.WILD_CARD),
            (20, SeasonPhase.DIVISIONAL),
            (21, SeasonPhase.CONFERENCE_CHAMPIONSHIP),
            (22, SeasonPhase.SUPER_BOWL),
        ],
    )
    def test_week_to_phase(self, week, phase):
        assert phase_for_week(week) is phase

    def test_out_of_range(self):
        with pytest.raises(ValueError, match="outside"):
            phase_for_week(23)


class TestNextPhase:
    def test_regular_week(self):
        assert next_phase("regular_season", 7) == (SeasonPhase.REGULAR_SEASON, 8)

    def test_into_playoffs(self):
        assert next_phase("regular_season", 18) == (SeasonPhase.WILD_CARD, 19)

    def test_through_playoffs(self):
        assert next_phase("wild_card", 19) == (SeasonPhase.DIVISIONAL, 20)
        assert next_phase("divisional", 20) == (SeasonPhase.CONFERENCE_CHAMPIONSHIP, 21)
        assert next_phase("conference_championship", 21) == (SeasonPhase.SUPER_BOWL, 22)

    def test_super_bowl_does_not_advance(self):
        with pytest.raises(ValueError, match="cannot advance"):
            next_phase("super_bowl", 22)

    def test_status_week_mismatch(self):
        with pytest.raises(ValueError, match="Invalid season transition"):
            next_phase("wild_card", 5)


class TestRoundName:
    def test_regular(self):
        assert round_name(3) == "Week 3"

    def test_playoffs(self):
        assert round_name(19) == "Wild Card Round"
        assert round_name(22) == "Super Bowl"
