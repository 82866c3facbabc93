"""Tick action descriptors: what one orchestrator invocation decided to do.

Serialised as-is by ``POST /api/tick``: ``{"action": ..., <fields>, "message": ...}``.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

IdleReason = Literal[
    "offseason",
    "simulating",
    "broadcasting",
    "lost_race",
    "intermission",
    "week_break",
    "waiting",
    "not_found",
    "simulation_failed",
    "simulation_released",
    "invalid_league",
]


class CreateSeasonAction(BaseModel):
    action: Literal["create_season"] = "create_season"
    season_id: str
    season_number: int
    games_created: int = 0
    message: str = ""


class StartGameAction(BaseModel):
    action: Literal["start_game"] = "start_game"
    season_id: str
    game_id: str
    week: int
    home_team_id: str
    away_team_id: str
    is_featured: bool = False
    message: str = ""


class AdvanceWeekAction(BaseModel):
    action: Literal["advance_week"] = "advance_week"
    season_id: str
    from_week: int
    to_week: int
    status: str
    games_created: int = 0
    message: str = ""


class SeasonCompleteAction(BaseModel):
    action: Literal["season_complete"] = "season_complete"
    season_id: str
    champion_team_id: str | None = None
    message: str = ""


class IdleAction(BaseModel):
    action: Literal["idle"] = "idle"
    reason: IdleReason
    season_id: str | None = None
    game_id: str | None = None
    message: str = ""


Action = Annotated[
    CreateSeasonAction | StartGameAction | AdvanceWeekAction | SeasonCompleteAction | IdleAction,
    Field(discriminator="action"),
]
