"""Tests for standings ranking, the tiebreak chain, and record keeping."""

from gridblitz.core.standings import (
    compare_standings,
    next_streak,
    rank_standings,
    record_result,
    win_pct,
)
from gridblitz.models.league import TeamStanding


def _standing(team_id: str, **kwargs) -> TeamStanding:
    kwargs.setdefault("conference", "A")
    kwargs.setdefault("division", 1)
    return TeamStanding(team_id=team_id, **kwargs)


class TestWinPct:
    def test_no_games(self):
        assert win_pct(0, 0) == 0.0

    def test_ties_count_half(self):
        assert win_pct(1, 0, 1) == 0.75

    def test_plain_record(self):
        assert win_pct(3, 1) == 0.75


class TestTiebreakChain:
    def test_overall_record_first(self):
        better = _standing("b", wins=10, losses=7)
        worse = _standing("a", wins=9, losses=8, division_wins=6)
        assert compare_standings(better, worse) < 0
        assert rank_standings([worse, better])[0].team_id == "b"

    def test_division_record_breaks_overall_tie(self):
        a = _standing("a", wins=10, losses=7, division_wins=4, division_losses=2)
        b = _standing("b", wins=10, losses=7, division_wins=5, division_losses=1)
        assert rank_standings([a, b])[0].team_id == "b"

    def test_conference_record_next(self):
        a = _standing("a", wins=10, losses=7, conference_wins=7, conference_losses=5)
        b = _standing("b", wins=10, losses=7, conference_wins=8, conference_losses=4)
        assert rank_standings([a, b])[0].team_id == "b"

    def test_point_differential_next(self):
        a = _standing("a", wins=10, losses=7, points_for=400, points_against=380)
        b = _standing("b", wins=10, losses=7, points_for=390, points_against=300)
        assert rank_standings([a, b])[0].team_id == "b"

    def test_points_for_last(self):
        a = _standing("a", wins=10, losses=7, points_for=400, points_against=350)
        b = _standing("b", wins=10, losses=7, points_for=450, points_against=400)
        assert rank_standings([a, b])[0].team_id == "b"

    def test_full_tie_falls_back_to_team_id(self):
        a = _standing("a", wins=10, losses=7)
        b = _standing("b", wins=10, losses=7)
        assert [s.team_id for s in rank_standings([b, a])] == ["a", "b"]

    def test_float_noise_does_not_decide(self):
        # 2/3 and 4/6 are equal records computed from different games played
        a = _standing("a", wins=2, losses=1, points_for=10)
        b = _standing("b", wins=4, losses=2, points_for=20)
        assert rank_standings([a, b])[0].team_id == "b"

    def test_compare_is_zero_for_same_record(self):
        a = _standing("a", wins=3)
        assert compare_standings(a, a) == 0


class TestStreak:
    def test_opening_streak(self):
        assert next_streak("W0", "win") == "W1"
        assert next_streak("W0", "loss") == "L1"

    def test_extends_and_flips(self):
        assert next_streak("W3", "win") == "W4"
        assert next_streak("W3", "loss") == "L1"
        assert next_streak("L2", "loss") == "L3"

    def test_tie_keeps_streak(self):
        assert next_streak("L2", "tie") == "L2"


class TestRecordResult:
    def test_division_win(self):
        before = _standing("a")
        after = record_result(
            before, points_for=24, points_against=17, same_division=True, same_conference=True
        )
        assert after.wins == 1
        assert after.division_wins == 1
        assert after.conference_wins == 1
        assert after.points_for == 24
        assert after.points_against == 17
        assert after.streak == "W1"
        assert before.wins == 0

    def test_inter_conference_loss(self):
        after = record_result(
            _standing("a"),
            points_for=10,
            points_against=31,
            same_division=False,
            same_conference=False,
        )
        assert after.losses == 1
        assert after.division_losses == 0
        assert after.conference_losses == 0
        assert after.streak == "L1"

    def test_tie_only_touches_overall(self):
        after = record_result(
            _standing("a", streak="W2"),
            points_for=20,
            points_against=20,
            same_division=True,
            same_conference=True,
        )
        assert after.ties == 1
        assert after.division_wins == 0
        assert after.division_losses == 0
        assert after.streak == "W2"
