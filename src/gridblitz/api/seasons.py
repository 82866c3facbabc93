"""Read-only season API endpoints: current season, schedule, standings, bracket."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException

from gridblitz.api.deps import RepoDep
from gridblitz.core.schedule_times import as_utc
from gridblitz.core.season import round_name
from gridblitz.core.standings import rank_standings
from gridblitz.db.models import GameRow, SeasonRow
from gridblitz.db.repository import Repository

router = APIRouter(prefix="/api/seasons", tags=["seasons"])


def _iso(value: datetime | None) -> str | None:
    dt = as_utc(value)
    return dt.isoformat() if dt is not None else None


def _season_payload(season: SeasonRow) -> dict:
    return {
        "id": season.id,
        "season_number": season.season_number,
        "status": season.status,
        "current_week": season.current_week,
        "current_round": round_name(season.current_week),
        "total_weeks": season.total_weeks,
        "champion_team_id": season.champion_team_id,
        "created_at": _iso(season.created_at),
        "completed_at": _iso(season.completed_at),
    }


def _game_payload(game: GameRow) -> dict:
    return {
        "id": game.id,
        "week": game.week,
        "game_type": game.game_type,
        "home_team_id": game.home_team_id,
        "away_team_id": game.away_team_id,
        "home_score": game.home_score,
        "away_score": game.away_score,
        "status": game.status,
        "is_featured": game.is_featured,
        "scheduled_at": _iso(game.scheduled_at),
        "broadcast_started_at": _iso(game.broadcast_started_at),
        "completed_at": _iso(game.completed_at),
        "winner_team_id": game.winner_team_id,
    }


async def _require_season(repo: Repository, season_id: str) -> SeasonRow:
    season = await repo.get_season(season_id)
    if season is None:
        raise HTTPException(status_code=404, detail=f"Season {season_id} not found")
    return season


@router.get("/current")
async def get_current_season(repo: RepoDep) -> dict:
    """The latest season, whatever its phase."""
    season = await repo.get_current_season()
    if season is None:
        raise HTTPException(status_code=404, detail="No season has been created yet")
    return {"data": _season_payload(season)}


@router.get("/{season_id}/schedule")
async def get_schedule(season_id: str, repo: RepoDep, week: int | None = None) -> dict:
    """Games of a season, optionally limited to one week.

    Unplayed games carry their projected ``scheduled_at``.
    """
    await _require_season(repo, season_id)
    if week is not None:
        games = await repo.get_games_for_week(season_id, week)
    else:
        games = await repo.get_games_for_season(season_id)
    return {"data": [_game_payload(g) for g in games]}


@router.get("/{season_id}/standings")
async def get_standings(season_id: str, repo: RepoDep) -> dict:
    """Standings ranked by the tie-break chain, with team names attached."""
    await _require_season(repo, season_id)
    standings = await repo.get_team_standings(season_id)
    teams = {t.id: t for t in await repo.get_all_teams()}

    rows = []
    for standing in rank_standings(standings.values()):
        row = standing.model_dump()
        team = teams.get(standing.team_id)
        if team is not None:
            row["team_name"] = team.name
            row["abbreviation"] = team.abbreviation
        rows.append(row)
    return {"data": rows}


@router.get("/{season_id}/bracket")
async def get_bracket(season_id: str, repo: RepoDep) -> dict:
    """The playoff bracket snapshot; 404 until the Wild Card round is seeded."""
    season = await _require_season(repo, season_id)
    if season.bracket is None:
        raise HTTPException(status_code=404, detail="Playoffs have not started")
    return {"data": season.bracket}
