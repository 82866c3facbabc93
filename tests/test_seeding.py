"""Tests for league generation, YAML config and seeding the store."""

import tempfile
from collections import Counter
from pathlib import Path

from gridblitz.core.seeding import generate_league, load_league_yaml, save_league_yaml, seed_league
from gridblitz.db.engine import get_session
from gridblitz.db.repository import Repository


class TestLeagueGeneration:
    def test_generates_32_teams(self, league):
        assert len(league.teams) == 32

    def test_two_conferences_of_four_divisions(self, league):
        shape = Counter((t.conference, t.division) for t in league.teams)
        assert len(shape) == 8
        assert set(shape.values()) == {4}

    def test_each_team_has_a_roster(self, league):
        for team in league.teams:
            assert len(team.players) == 8
            assert all(p.team_id == team.id for p in team.players)
            assert {p.position for p in team.players} >= {"QB", "K"}

    def test_ratings_in_bounds(self, league):
        for team in league.teams:
            for rating in (team.offense_rating, team.defense_rating, team.special_teams_rating):
                assert 40 <= rating <= 99

    def test_deterministic(self):
        l1 = generate_league(seed=42)
        l2 = generate_league(seed=42)
        assert [t.id for t in l1.teams] == [t.id for t in l2.teams]
        assert l1.teams[0].offense_rating == l2.teams[0].offense_rating

    def test_different_seed_different_ids(self):
        assert generate_league(seed=1).teams[0].id != generate_league(seed=2).teams[0].id


class TestYAMLRoundTrip:
    def test_save_and_load(self, league):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "league.yaml"
            save_league_yaml(league, path)
            loaded = load_league_yaml(path)
        assert loaded.name == league.name
        assert [t.id for t in loaded.teams] == [t.id for t in league.teams]
        assert loaded.teams[3].players[0].rating == league.teams[3].players[0].rating


class TestSeedLeague:
    async def test_inserts_teams_and_players(self, engine, league):
        async with get_session(engine) as session:
            inserted = await seed_league(Repository(session), league)
        assert inserted == 32

        async with get_session(engine) as session:
            teams = await Repository(session).get_league_teams()
        assert len(teams) == 32
        assert all(len(t.players) == 8 for t in teams.values())

    async def test_second_seed_is_a_no_op(self, engine, league):
        async with get_session(engine) as session:
            await seed_league(Repository(session), league)
        async with get_session(engine) as session:
            inserted = await seed_league(Repository(session), league)
            assert inserted == 0
            assert await Repository(session).count_teams() == 32
