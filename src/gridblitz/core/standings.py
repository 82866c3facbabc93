"""Standings ranking and record keeping.

Two jobs:

* ``compare_standings`` / ``rank_standings`` order team records by the
  league tiebreak chain. The playoff seeder and the standings API both sort
  with it.
* ``record_result`` folds one completed game into a team's record.

Everything here is pure: records go in, new records come out.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import cmp_to_key
from typing import Literal

from gridblitz.models.league import TeamStanding

# Win percentages are compared with this tolerance so float noise
# (e.g. 0.1 + 0.2) never decides a tiebreak.
EPSILON = 0.001

GameOutcome = Literal["win", "loss", "tie"]


def win_pct(wins: int, losses: int, ties: int = 0) -> float:
    """Winning percentage with ties counted as half a win."""
    played = wins + losses + ties
    if played == 0:
        return 0.0
    return (wins + 0.5 * ties) / played


def overall_win_pct(standing: TeamStanding) -> float:
    return win_pct(standing.wins, standing.losses, standing.ties)


def division_win_pct(standing: TeamStanding) -> float:
    return win_pct(standing.division_wins, standing.division_losses)


def conference_win_pct(standing: TeamStanding) -> float:
    return win_pct(standing.conference_wins, standing.conference_losses)


def _compare_desc(a: float, b: float) -> int:
    """Negative when *a* ranks ahead (is larger), zero within EPSILON."""
    if abs(a - b) < EPSILON:
        return 0
    return -1 if a > b else 1


def compare_standings(a: TeamStanding, b: TeamStanding) -> int:
    """Order two records; negative means *a* ranks ahead of *b*.

    Tiebreak chain, first non-equal criterion decides:
    overall win%, division win%, conference win%, point differential,
    points for. Fully equal records fall back to team id so sorting is
    total and repeatable.
    """
    criteria = (
        (overall_win_pct(a), overall_win_pct(b)),
        (division_win_pct(a), division_win_pct(b)),
        (conference_win_pct(a), conference_win_pct(b)),
        (float(a.point_differential), float(b.point_differential)),
        (float(a.points_for), float(b.points_for)),
    )
    for left, right in criteria:
        result = _compare_desc(left, right)
        if result != 0:
            return result
    if a.team_id == b.team_id:
        return 0
    return -1 if a.team_id < b.team_id else 1


def rank_standings(standings: Iterable[TeamStanding]) -> list[TeamStanding]:
    """Return *standings* sorted best-first."""
    return sorted(standings, key=cmp_to_key(compare_standings))


def next_streak(streak: str, outcome: GameOutcome) -> str:
    """Advance a streak string such as ``"W3"`` or ``"L1"``.

    A tie leaves the streak untouched. The season-opening ``"W0"`` turns
    into ``"W1"`` or ``"L1"`` on the first decision.
    """
    if outcome == "tie":
        return streak
    letter = "W" if outcome == "win" else "L"
    current = streak[:1]
    try:
        length = int(streak[1:])
    except ValueError:
        length = 0
    if current == letter and length > 0:
        return f"{letter}{length + 1}"
    return f"{letter}1"


def record_result(
    standing: TeamStanding,
    *,
    points_for: int,
    points_against: int,
    same_division: bool,
    same_conference: bool,
) -> TeamStanding:
    """Return *standing* updated with one completed game.

    Division and conference counters only move on a decision; ties only
    touch the overall record.
    """
    if points_for > points_against:
        outcome: GameOutcome = "win"
    elif points_for < points_against:
        outcome = "loss"
    else:
        outcome = "tie"

    update: dict[str, int | str] = {
        "points_for": standing.points_for + points_for,
        "points_against": standing.points_against + points_against,
        "streak": next_streak(standing.streak, outcome),
    }
    if outcome == "win":
        update["wins"] = standing.wins + 1
        if same_division:
            update["division_wins"] = standing.division_wins + 1
        if same_conference:
            update["conference_wins"] = standing.conference_wins + 1
    elif outcome == "loss":
        update["losses"] = standing.losses + 1
        if same_division:
            update["division_losses"] = standing.division_losses + 1
        if same_conference:
            update["conference_losses"] = standing.conference_losses + 1
    else:
        update["ties"] = standing.ties + 1

    return standing.model_copy(update=update)
