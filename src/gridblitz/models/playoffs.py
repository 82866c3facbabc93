"""Playoff bracket models.

A bracket round is either ``PendingRound`` (participants not yet known) or
``PopulatedRound`` (matchups fixed). Rounds only ever move from pending to
populated; ``core.playoffs.advance_playoff_bracket`` is the only thing that
does it. The whole bracket is stored as JSON on the season row.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from gridblitz.models.league import Conference

PlayoffRoundName = Literal["wild_card", "divisional", "conference_championship", "super_bowl"]


class PlayoffMatchup(BaseModel):
    """One playoff game. ``game_id`` is filled once the game row exists."""

    home_team_id: str
    away_team_id: str
    home_seed: int
    away_seed: int
    game_id: str | None = None
    home_score: int | None = None
    away_score: int | None = None
    winner_team_id: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.winner_team_id is not None

    @property
    def winner_seed(self) -> int | None:
        if self.winner_team_id is None:
            return None
        return self.home_seed if self.winner_team_id == self.home_team_id else self.away_seed


class PendingRound(BaseModel):
    kind: Literal["pending"] = "pending"
    name: PlayoffRoundName


class PopulatedRound(BaseModel):
    kind: Literal["populated"] = "populated"
    name: PlayoffRoundName
    matchups: list[PlayoffMatchup]

    @property
    def is_complete(self) -> bool:
        return all(m.is_complete for m in self.matchups)


BracketRound = Annotated[PendingRound | PopulatedRound, Field(discriminator="kind")]


class SeededTeam(BaseModel):
    team_id: str
    seed: int


class ConferenceBracket(BaseModel):
    """Wild Card, Divisional and Championship rounds for one conference."""

    conference: Conference
    top_seed: SeededTeam
    wild_card: BracketRound
    divisional: BracketRound = Field(default_factory=lambda: PendingRound(name="divisional"))
    championship: BracketRound = Field(
        default_factory=lambda: PendingRound(name="conference_championship")
    )

    @property
    def champion(self) -> SeededTeam | None:
        if not isinstance(self.championship, PopulatedRound) or not self.championship.is_complete:
            return None
        matchup = self.championship.matchups[0]
        return SeededTeam(team_id=matchup.winner_team_id, seed=matchup.winner_seed)


class PlayoffBracket(BaseModel):
    """Both conference brackets plus the shared Super Bowl slot."""

    conferences: dict[Conference, ConferenceBracket]
    super_bowl: BracketRound = Field(default_factory=lambda: PendingRound(name="super_bowl"))

    @property
    def champion_team_id(self) -> str | None:
        if not isinstance(self.super_bowl, PopulatedRound) or not self.super_bowl.is_complete:
            return None
        return self.super_bowl.matchups[0].winner_team_id
