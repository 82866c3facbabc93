"""Game result models: output types from a simulation engine."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GameEvent(BaseModel):
    """One play-by-play event as the broadcast shows it."""

    event_number: int
    event_type: str  # kickoff, touchdown, field_goal, punt, turnover, overtime, game_end
    description: str = ""
    display_timestamp_ms: int = 0  # offset from broadcast start
    home_score: int = 0
    away_score: int = 0


class SimulationResult(BaseModel):
    """Everything a simulation engine hands back for one game."""

    events: list[GameEvent] = Field(default_factory=list)
    home_score: int = 0
    away_score: int = 0
    box_score: dict = Field(default_factory=dict)
    mvp_player_id: str | None = None
    server_seed_hash: str = ""
    server_seed: str = ""
    client_seed: str = ""
    nonce: int = 0

    @property
    def duration_ms(self) -> int:
        """Display timestamp of the last event (the broadcast length)."""
        if not self.events:
            return 0
        return max(e.display_timestamp_ms for e in self.events)
