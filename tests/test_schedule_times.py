"""Tests for schedule_times: duration estimate, anchor, and start time projection."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from gridblitz.config import TimingConfig
from gridblitz.core.schedule_times import (
    as_utc,
    compute_anchor,
    estimate_game_duration,
    project_game_times,
)

NOW = datetime(2026, 3, 1, 18, 0, 0, tzinfo=UTC)
TIMING = TimingConfig()


@dataclass
class FakeGame:
    id: str
    week: int
    status: str = "scheduled"
    is_featured: bool = False
    broadcast_started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None


def _finished(game_id: str, week: int, ended: datetime, minutes: int) -> FakeGame:
    return FakeGame(
        id=game_id,
        week=week,
        status="completed",
        broadcast_started_at=ended - timedelta(minutes=minutes),
        completed_at=ended,
    )


class TestAsUtc:
    def test_naive_gets_utc(self):
        naive = datetime(2026, 3, 1, 12, 0)
        assert as_utc(naive) == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def test_none(self):
        assert as_utc(None) is None


class TestEstimate:
    def test_default_until_three_samples(self):
        games = [
            _finished("g1", 1, NOW - timedelta(hours=2), 20),
            _finished("g2", 1, NOW - timedelta(hours=1), 22),
        ]
        assert estimate_game_duration(games, TIMING) == timedelta(minutes=30)

    def test_mean_of_recent_samples(self):
        games = [
            _finished("g1", 1, NOW - timedelta(hours=3), 20),
            _finished("g2", 1, NOW - timedelta(hours=2), 22),
            _finished("g3", 1, NOW - timedelta(hours=1), 24),
        ]
        assert estimate_game_duration(games, TIMING) == timedelta(minutes=22)

    def test_outliers_dropped(self):
        games = [
            _finished("g1", 1, NOW - timedelta(hours=9), 20),
            _finished("g2", 1, NOW - timedelta(hours=8), 22),
            _finished("g3", 1, NOW - timedelta(hours=7), 24),
            _finished("g4", 1, NOW - timedelta(hours=1), 300),
        ]
        assert estimate_game_duration(games, TIMING) == timedelta(minutes=22)


class TestAnchor:
    def test_broadcasting_game_uses_known_length(self):
        live = FakeGame(
            id="live",
            week=3,
            status="broadcasting",
            broadcast_started_at=NOW,
            duration_ms=20 * 60 * 1000,
        )
        anchor = compute_anchor([live], timedelta(minutes=30), TIMING)
        assert anchor.ends_at == NOW + timedelta(minutes=20, seconds=60)
        assert anchor.week == 3

    def test_last_completed_game(self):
        games = [
            _finished("g1", 2, NOW - timedelta(hours=2), 20),
            _finished("g2", 2, NOW - timedelta(minutes=5), 20),
        ]
        anchor = compute_anchor(games, timedelta(minutes=30), TIMING)
        assert anchor.ends_at == NOW - timedelta(minutes=5)

    def test_nothing_played(self):
        anchor = compute_anchor([FakeGame(id="g", week=1)], timedelta(minutes=30), TIMING)
        assert anchor.ends_at is None


class TestProjectGameTimes:
    def test_fresh_season_starts_now(self):
        games = [
            FakeGame(id="b", week=1),
            FakeGame(id="a", week=1),
            FakeGame(id="c", week=1, is_featured=True),
            FakeGame(id="d", week=2),
        ]
        times = project_game_times(games, NOW, TIMING)

        slot = timedelta(minutes=45)
        assert times["c"] == NOW
        assert times["a"] == NOW + slot
        assert times["b"] == NOW + 2 * slot
        # Week 2 opens a week break after week 1's last game ends
        assert times["d"] == NOW + 2 * slot + timedelta(minutes=30) + timedelta(minutes=30)

    def test_same_week_follows_live_game_after_intermission(self):
        live = FakeGame(
            id="live",
            week=4,
            status="broadcasting",
            broadcast_started_at=NOW,
            duration_ms=20 * 60 * 1000,
        )
        times = project_game_times([live, FakeGame(id="next", week=4)], NOW, TIMING)
        assert times["next"] == NOW + timedelta(minutes=21) + timedelta(minutes=15)

    def test_new_week_after_completed_week(self):
        done = _finished("done", 5, NOW, 20)
        times = project_game_times([done, FakeGame(id="next", week=6)], NOW, TIMING)
        assert times["next"] == NOW + timedelta(minutes=30)

    def test_never_projects_into_the_past(self):
        done = _finished("done", 5, NOW - timedelta(days=2), 20)
        times = project_game_times([done, FakeGame(id="next", week=6)], NOW, TIMING)
        assert times["next"] == NOW

    def test_only_scheduled_games_projected(self):
        done = _finished("done", 1, NOW, 20)
        times = project_game_times([done, FakeGame(id="next", week=1)], NOW, TIMING)
        assert set(times) == {"next"}

    def test_naive_now_is_treated_as_utc(self):
        times = project_game_times([FakeGame(id="a", week=1)], NOW.replace(tzinfo=None), TIMING)
        assert times["a"] == NOW
