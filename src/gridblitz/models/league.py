"""League models: teams, rosters, and standings.

These are the plain-data shapes the core modules work with. ORM rows are
converted into them at the repository boundary (``from_attributes``).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Conference = Literal["A", "B"]
Clinched = Literal["division", "wild_card", "bye", "eliminated"]

CONFERENCES: tuple[Conference, Conference] = ("A", "B")
DIVISIONS: tuple[int, ...] = (1, 2, 3, 4)


class Player(BaseModel):
    """A roster entry. Only the simulation engine reads these."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    team_id: str
    name: str
    position: str  # QB, RB, WR, TE, K, DEF
    number: int = 0
    rating: int = Field(default=70, ge=0, le=100)


class Team(BaseModel):
    """Static team identity. Immutable within a season."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    city: str = ""
    abbreviation: str
    conference: Conference
    division: int = Field(ge=1, le=4)
    offense_rating: int = Field(default=75, ge=0, le=100)
    defense_rating: int = Field(default=75, ge=0, le=100)
    special_teams_rating: int = Field(default=75, ge=0, le=100)
    color: str = "#000000"
    players: list[Player] = Field(default_factory=list)

    @property
    def combined_rating(self) -> int:
        return self.offense_rating + self.defense_rating


class TeamStanding(BaseModel):
    """One team's record within a season."""

    model_config = ConfigDict(from_attributes=True)

    team_id: str
    conference: Conference
    division: int
    wins: int = 0
    losses: int = 0
    ties: int = 0
    division_wins: int = 0
    division_losses: int = 0
    conference_wins: int = 0
    conference_losses: int = 0
    points_for: int = 0
    points_against: int = 0
    streak: str = "W0"
    playoff_seed: int | None = None
    clinched: Clinched | None = None

    @property
    def games_played(self) -> int:
        return self.wins + self.losses + self.ties

    @property
    def point_differential(self) -> int:
        return self.points_for - self.points_against

    @property
    def is_eliminated(self) -> bool:
        return self.clinched == "eliminated"
