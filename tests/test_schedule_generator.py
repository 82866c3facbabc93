"""Tests for the regular-season schedule generator."""

from collections import Counter

import pytest

from gridblitz.core.schedule_generator import (
    BYE_WEEK_END,
    BYE_WEEK_START,
    GAMES_PER_TEAM,
    ScheduleError,
    generate_schedule,
    validate_schedule,
)
from gridblitz.core.season import REGULAR_SEASON_WEEKS


def _division(team):
    return (team.conference, team.division)


class TestScheduleShape:
    @pytest.mark.parametrize("seed", ["abc", "0" * 32, "season-7", "f3a9"])
    def test_every_team_plays_17_games_with_one_mid_season_bye(self, teams, seed):
        schedule = generate_schedule(teams, seed)

        assert len(schedule.weeks) == REGULAR_SEASON_WEEKS
        assert len(schedule.matchups) == 272
        for team in teams:
            games = schedule.games_for_team(team.id)
            assert len(games) == GAMES_PER_TEAM
            weeks = [week for week, _ in games]
            assert len(set(weeks)) == len(weeks), "team plays twice in a week"
            bye = schedule.bye_weeks[team.id]
            assert BYE_WEEK_START <= bye <= BYE_WEEK_END
            assert bye not in weeks

    @pytest.mark.parametrize("seed", ["abc", "season-7"])
    def test_home_games_between_8_and_9(self, teams, seed):
        schedule = generate_schedule(teams, seed)
        home_counts = Counter(m.home_team_id for m in schedule.matchups)
        for team in teams:
            assert 8 <= home_counts[team.id] <= 9

    def test_divisional_rivals_meet_home_and_away(self, teams):
        schedule = generate_schedule(teams, "abc")
        for team in teams:
            rivals = [t for t in teams if t.id != team.id and _division(t) == _division(team)]
            assert len(rivals) == 3
            for rival in rivals:
                meetings = [m for _, m in schedule.games_for_team(team.id) if m.involves(rival.id)]
                assert len(meetings) == 2
                assert {m.home_team_id for m in meetings} == {team.id, rival.id}

    def test_no_pair_meets_more_than_twice(self, teams):
        schedule = generate_schedule(teams, "abc")
        pairs = Counter(frozenset((m.home_team_id, m.away_team_id)) for m in schedule.matchups)
        assert max(pairs.values()) == 2

    def test_non_divisional_pairs_meet_once(self, teams):
        by_id = {t.id: t for t in teams}
        schedule = generate_schedule(teams, "abc")
        pairs = Counter(frozenset((m.home_team_id, m.away_team_id)) for m in schedule.matchups)
        for pair, count in pairs.items():
            a, b = (by_id[t] for t in pair)
            if _division(a) != _division(b):
                assert count == 1

    def test_bye_free_weeks_have_16_games(self, teams):
        schedule = generate_schedule(teams, "abc")
        for week in list(range(1, BYE_WEEK_START)) + list(range(BYE_WEEK_END + 1, 19)):
            assert len(schedule.weeks[week - 1]) == 16

    @pytest.mark.parametrize("seed", [f"seed-{i}" for i in range(12)] + ["abc"])
    def test_bye_load_is_spread_across_the_window(self, teams, seed):
        schedule = generate_schedule(teams, seed)
        per_week = Counter(schedule.bye_weeks.values())
        loads = [per_week.get(week, 0) for week in range(BYE_WEEK_START, BYE_WEEK_END + 1)]
        assert sum(loads) == 32
        assert max(loads) <= 4
        assert max(loads) - min(loads) <= 4
        assert all(load % 2 == 0 for load in loads)

    def test_result_passes_validation(self, teams):
        schedule = generate_schedule(teams, "abc")
        validate_schedule(schedule, teams)


class TestDeterminism:
    def test_same_seed_same_schedule(self, teams):
        first = generate_schedule(teams, "abc")
        second = generate_schedule(list(reversed(teams)), "abc")

        def flat(schedule):
            return [[(m.home_team_id, m.away_team_id) for m in week] for week in schedule.weeks]

        assert flat(first) == flat(second)
        assert first.bye_weeks == second.bye_weeks

    def test_different_seed_different_schedule(self, teams):
        first = generate_schedule(teams, "abc")
        second = generate_schedule(teams, "xyz")
        assert [
            (m.home_team_id, m.away_team_id) for m in first.matchups
        ] != [(m.home_team_id, m.away_team_id) for m in second.matchups]


class TestLeagueShape:
    def test_too_few_teams(self, teams):
        with pytest.raises(ScheduleError, match="exactly 32 teams"):
            generate_schedule(teams[:31], "abc")

    def test_unbalanced_division(self, teams):
        moved = [t.model_copy() for t in teams]
        source = next(t for t in moved if t.conference == "A" and t.division == 1)
        index = moved.index(source)
        moved[index] = source.model_copy(update={"division": 2})
        with pytest.raises(ScheduleError, match="Division A1 has 3 teams"):
            generate_schedule(moved, "abc")

    def test_duplicate_ids(self, teams):
        duplicated = list(teams)
        duplicated[1] = duplicated[1].model_copy(update={"id": duplicated[0].id})
        with pytest.raises(ScheduleError, match="unique"):
            generate_schedule(duplicated, "abc")

    def test_schedule_error_is_value_error(self):
        assert issubclass(ScheduleError, ValueError)


class TestValidateSchedule:
    def test_detects_dropped_game(self, teams):
        schedule = generate_schedule(teams, "abc")
        schedule.weeks[0].pop()
        with pytest.raises(ScheduleError):
            validate_schedule(schedule, teams)

    def test_detects_wrong_bye_record(self, teams):
        schedule = generate_schedule(teams, "abc")
        team_id = teams[0].id
        schedule.bye_weeks[team_id] = 1
        with pytest.raises(ScheduleError, match="bye"):
            validate_schedule(schedule, teams)
