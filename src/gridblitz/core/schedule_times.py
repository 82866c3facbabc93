"""Broadcast start-time projection for not-yet-played games.

Games run one at a time, so a game's start time depends on how long the
games before it actually take. The projector keeps re-deriving every
``scheduled`` game's ``scheduled_at`` from real elapsed durations:

  - **estimate**: mean of ``completed_at - broadcast_started_at`` over the
    most recent completed games (outliers above the sanity ceiling dropped),
    once at least 3 samples exist; otherwise the configured default.
  - **anchor**: when the in-flight game ends (broadcast start + its known
    length, or the estimate), else when the last game ended, else now.
  - **layout**: scheduled games grouped by week; an intermission separates
    games in a week, a week break separates weeks.

Called after every completion and after every schedule insert.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Protocol

from gridblitz.config import TimingConfig

if TYPE_CHECKING:
    from gridblitz.db.repository import Repository

logger = logging.getLogger(__name__)

MIN_CALIBRATION_SAMPLES = 3
CALIBRATION_WINDOW = 10


class TimedGame(Protocol):
    id: str
    week: int
    status: str
    is_featured: bool
    broadcast_started_at: datetime | None
    completed_at: datetime | None
    duration_ms: int | None


def as_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite hands them back without tzinfo)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def estimate_game_duration(games: Sequence[TimedGame], timing: TimingConfig) -> timedelta:
    """Rolling estimate of a game's real broadcast length."""
    finished = [
        g for g in games if g.status == "completed" and g.completed_at and g.broadcast_started_at
    ]
    finished.sort(key=lambda g: as_utc(g.completed_at), reverse=True)

    samples: list[timedelta] = []
    for game in finished[:CALIBRATION_WINDOW]:
        elapsed = as_utc(game.completed_at) - as_utc(game.broadcast_started_at)
        if timedelta(0) < elapsed <= timing.duration_sanity_ceiling:
            samples.append(elapsed)

    if len(samples) < MIN_CALIBRATION_SAMPLES:
        return timing.default_game_duration
    return sum(samples, timedelta(0)) / len(samples)


@dataclass(frozen=True)
class Anchor:
    """When the most recent (or in-flight) game ends, and in which week."""

    ends_at: datetime | None
    week: int | None


def compute_anchor(
    games: Sequence[TimedGame], estimate: timedelta, timing: TimingConfig
) -> Anchor:
    broadcasting = [g for g in games if g.status == "broadcasting" and g.broadcast_started_at]
    if broadcasting:
        game = broadcasting[0]
        if game.duration_ms is not None:
            length = timedelta(milliseconds=game.duration_ms) + timing.broadcast_buffer
        else:
            length = estimate
        return Anchor(ends_at=as_utc(game.broadcast_started_at) + length, week=game.week)

    completed = [g for g in games if g.status == "completed" and g.completed_at]
    if completed:
        last = max(completed, key=lambda g: as_utc(g.completed_at))
        return Anchor(ends_at=as_utc(last.completed_at), week=last.week)

    return Anchor(ends_at=None, week=None)


def project_game_times(
    games: Sequence[TimedGame],
    now: datetime,
    timing: TimingConfig,
) -> dict[str, datetime]:
    """Projected start time for every ``scheduled`` game in *games*.

    Args:
        games: Every game of the season (history feeds the estimate).
        now: Reference time; no projection lands before it.
        timing: Season clock durations.

    Returns:
        Mapping of game id to tz-aware start time.
    """
    now = as_utc(now)
    estimate = estimate_game_duration(games, timing)
    anchor = compute_anchor(games, estimate, timing)
    slot = estimate + timing.intermission

    by_week: dict[int, list[TimedGame]] = defaultdict(list)
    for game in games:
        if game.status == "scheduled":
            by_week[game.week].append(game)

    projected: dict[str, datetime] = {}
    cursor: datetime | None = None
    for week in sorted(by_week):
        if cursor is None:
            if anchor.ends_at is None:
                cursor = now
            elif anchor.week == week:
                cursor = anchor.ends_at + timing.intermission
            else:
                cursor = anchor.ends_at + timing.week_break
            cursor = max(cursor, now)
        else:
            cursor = cursor + timing.week_break

        week_games = sorted(by_week[week], key=lambda g: (not g.is_featured, g.id))
        for index, game in enumerate(week_games):
            projected[game.id] = cursor + index * slot
        # Cursor moves to the end of the week's last game.
        cursor = cursor + (len(week_games) - 1) * slot + estimate

    return projected


async def project_season(
    repo: Repository,
    season_id: str,
    now: datetime,
    timing: TimingConfig,
) -> int:
    """Recompute and store ``scheduled_at`` for the season's scheduled games.

    Returns the number of rows updated. Games that left ``scheduled`` since
    they were read are skipped by the repository's status guard.
    """
    games = await repo.get_games_for_season(season_id)
    projected = project_game_times(games, now, timing)
    updated = await repo.set_scheduled_times(projected)
    logger.info(
        "schedule_times_projected season=%s games=%d updated=%d",
        season_id,
        len(projected),
        updated,
    )
    return updated
