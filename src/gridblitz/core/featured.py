"""Featured-game selection.

Each week one game is flagged for live broadcast emphasis. Candidates are
scored additively from standings and team ratings alone, so the pick can
always be re-derived from stored data.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol, TypeVar

from gridblitz.models.league import Team, TeamStanding

LATE_SEASON_WEEK = 15
RATING_THRESHOLD = 340


class Candidate(Protocol):
    """Anything with home/away team ids (ORM rows and matchups both qualify)."""

    home_team_id: str
    away_team_id: str


def _winning(standing: TeamStanding) -> bool:
    return standing.wins > standing.losses


def _undefeated(standing: TeamStanding) -> bool:
    return standing.wins >= 1 and standing.losses == 0


def _winless(standing: TeamStanding) -> bool:
    return standing.losses >= 1 and standing.wins == 0


def _top_two(standing: TeamStanding) -> bool:
    return standing.playoff_seed is not None and standing.playoff_seed <= 2


def score_game_appeal(
    home: Team,
    away: Team,
    home_standing: TeamStanding,
    away_standing: TeamStanding,
    week: int,
) -> int:
    """Additive appeal score for one game (higher is more watchable)."""
    score = 0
    if not home_standing.is_eliminated and not away_standing.is_eliminated:
        score += 30
    if home.conference == away.conference and home.division == away.division:
        score += 20
    if abs(home_standing.wins - away_standing.wins) <= 2:
        score += 15
    if _winning(home_standing) and _winning(away_standing):
        score += 15
    if home.combined_rating + away.combined_rating > RATING_THRESHOLD:
        score += 10
    if _undefeated(home_standing) or _undefeated(away_standing):
        score += 10
    if _winless(home_standing) or _winless(away_standing):
        score += 10
    if week >= LATE_SEASON_WEEK:
        score += 10
    if _top_two(home_standing) and _top_two(away_standing):
        score += 5
    return score


C = TypeVar("C", bound=Candidate)


def pick_featured_game(
    candidates: Sequence[C],
    teams: Mapping[str, Team],
    standings: Mapping[str, TeamStanding],
    week: int,
) -> C | None:
    """Return the highest-appeal candidate; ties go to the earliest in the list."""
    best: C | None = None
    best_score = -1
    for game in candidates:
        home = teams[game.home_team_id]
        away = teams[game.away_team_id]
        home_standing = standings.get(game.home_team_id) or _blank(home)
        away_standing = standings.get(game.away_team_id) or _blank(away)
        score = score_game_appeal(home, away, home_standing, away_standing, week)
        if score > best_score:
            best, best_score = game, score
    return best


def _blank(team: Team) -> TeamStanding:
    return TeamStanding(team_id=team.id, conference=team.conference, division=team.division)
