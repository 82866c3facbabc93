"""Tests for featured-game appeal scoring and selection."""

from dataclasses import dataclass

from gridblitz.core.featured import pick_featured_game, score_game_appeal
from gridblitz.models.league import Team, TeamStanding


@dataclass
class Game:
    id: str
    home_team_id: str
    away_team_id: str


def _team(team_id: str, conference="A", division=1, offense=75, defense=75) -> Team:
    return Team(
        id=team_id,
        name=f"Team {team_id}",
        abbreviation=team_id.upper()[:3],
        conference=conference,
        division=division,
        offense_rating=offense,
        defense_rating=defense,
    )


def _record(team: Team, **kwargs) -> TeamStanding:
    return TeamStanding(
        team_id=team.id, conference=team.conference, division=team.division, **kwargs
    )


class TestScoreGameAppeal:
    def test_opening_week_baseline(self):
        home, away = _team("h", division=1), _team("a", division=2)
        score = score_game_appeal(home, away, _record(home), _record(away), week=1)
        # not eliminated (30) + win gap <= 2 (15)
        assert score == 45

    def test_every_bonus(self):
        home = _team("h", offense=90, defense=90)
        away = _team("a", offense=90, defense=90)
        home_record = _record(home, wins=10, losses=0, playoff_seed=1)
        away_record = _record(away, wins=9, losses=1, playoff_seed=2)
        score = score_game_appeal(home, away, home_record, away_record, week=16)
        # 30 + 20 division + 15 close + 15 winning + 10 ratings + 10 undefeated
        # + 10 late season + 5 top two
        assert score == 115

    def test_eliminated_team_loses_bonus(self):
        home, away = _team("h", division=1), _team("a", division=2)
        score = score_game_appeal(
            home, away, _record(home, clinched="eliminated"), _record(away), week=1
        )
        assert score == 15

    def test_winless_team_involved(self):
        home, away = _team("h", division=1), _team("a", division=2)
        score = score_game_appeal(home, away, _record(home, losses=3), _record(away), week=4)
        assert score == 30 + 15 + 10

    def test_rating_threshold_is_strict(self):
        home = _team("h", division=1, offense=85, defense=85)
        away = _team("a", division=2, offense=85, defense=85)
        score = score_game_appeal(home, away, _record(home), _record(away), week=1)
        assert score == 45


class TestPickFeaturedGame:
    def test_highest_score_wins(self):
        teams = {
            "h1": _team("h1", division=1),
            "a1": _team("a1", division=2),
            "h2": _team("h2", division=3),
            "a2": _team("a2", division=3),
        }
        games = [Game("g1", "h1", "a1"), Game("g2", "h2", "a2")]
        pick = pick_featured_game(games, teams, {}, week=1)
        assert pick.id == "g2"

    def test_ties_go_to_earliest(self):
        teams = {t: _team(t, division=i + 1) for i, t in enumerate(["a", "b", "c", "d"])}
        games = [Game("g1", "a", "b"), Game("g2", "c", "d")]
        assert pick_featured_game(games, teams, {}, week=1).id == "g1"

    def test_missing_standings_count_as_blank(self):
        teams = {"h": _team("h", division=1), "a": _team("a", division=2)}
        standings = {"h": _record(teams["h"], wins=2)}
        pick = pick_featured_game([Game("g1", "h", "a")], teams, standings, week=3)
        assert pick.id == "g1"

    def test_no_candidates(self):
        assert pick_featured_game([], {}, {}, week=1) is None
