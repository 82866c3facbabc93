"""SQLAlchemy ORM models for the GridBlitz database.

Tables: teams, players, seasons, games, game_events, standings.
Teams and players are league-wide; everything else hangs off a season.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TeamRow(Base):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    city: Mapped[str] = mapped_column(String(100), default="")
    abbreviation: Mapped[str] = mapped_column(String(4), nullable=False)
    conference: Mapped[str] = mapped_column(String(1), nullable=False)  # "A" or "B"
    division: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..4
    offense_rating: Mapped[int] = mapped_column(Integer, default=75)
    defense_rating: Mapped[int] = mapped_column(Integer, default=75)
    special_teams_rating: Mapped[int] = mapped_column(Integer, default=75)
    color: Mapped[str] = mapped_column(String(7), default="#000000")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))

    players: Mapped[list[PlayerRow]] = relationship(back_populates="team")

    __table_args__ = (Index("ix_teams_conference_division", "conference", "division"),)


class PlayerRow(Base):
    __tablename__ = "players"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[str] = mapped_column(String(4), nullable=False)
    number: Mapped[int] = mapped_column(Integer, default=0)
    rating: Mapped[int] = mapped_column(Integer, default=70)

    team: Mapped[TeamRow] = relationship(back_populates="players")


class SeasonRow(Base):
    __tablename__ = "seasons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    # Unique: two ticks racing to create the same season number collide here.
    season_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    current_week: Mapped[int] = mapped_column(Integer, default=1)
    total_weeks: Mapped[int] = mapped_column(Integer, default=22)
    status: Mapped[str] = mapped_column(String(32), default="regular_season")
    seed: Mapped[str] = mapped_column(String(64), nullable=False)
    bracket: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    champion_team_id: Mapped[str | None] = mapped_column(ForeignKey("teams.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class GameRow(Base):
    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    season_id: Mapped[str] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    game_type: Mapped[str] = mapped_column(String(32), default="regular")
    home_team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    away_team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    home_score: Mapped[int] = mapped_column(Integer, default=0)
    away_score: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="scheduled")
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    simulation_started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    broadcast_started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # Display timestamp (ms) of the last play-by-play event.
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_events: Mapped[int] = mapped_column(Integer, default=0)
    box_score: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    mvp_player_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    server_seed_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    server_seed: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_seed: Mapped[str | None] = mapped_column(String(64), nullable=True)
    nonce: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))

    __table_args__ = (
        Index("ix_games_season_week", "season_id", "week"),
        Index("ix_games_season_status", "season_id", "status"),
    )

    @property
    def winner_team_id(self) -> str | None:
        """Winner of a completed game; a tie goes to the home side."""
        if self.status != "completed":
            return None
        if self.away_score > self.home_score:
            return self.away_team_id
        return self.home_team_id


class GameEventRow(Base):
    __tablename__ = "game_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    game_id: Mapped[str] = mapped_column(ForeignKey("games.id"), nullable=False)
    event_number: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    display_timestamp_ms: Mapped[int] = mapped_column(Integer, default=0)
    home_score: Mapped[int] = mapped_column(Integer, default=0)
    away_score: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (Index("ix_game_events_game_number", "game_id", "event_number"),)


class StandingRow(Base):
    __tablename__ = "standings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    season_id: Mapped[str] = mapped_column(ForeignKey("seasons.id"), nullable=False)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    wins: Mapped[int] = mapped_column(Integer, default=0)
    losses: Mapped[int] = mapped_column(Integer, default=0)
    ties: Mapped[int] = mapped_column(Integer, default=0)
    division_wins: Mapped[int] = mapped_column(Integer, default=0)
    division_losses: Mapped[int] = mapped_column(Integer, default=0)
    conference_wins: Mapped[int] = mapped_column(Integer, default=0)
    conference_losses: Mapped[int] = mapped_column(Integer, default=0)
    points_for: Mapped[int] = mapped_column(Integer, default=0)
    points_against: Mapped[int] = mapped_column(Integer, default=0)
    streak: Mapped[str] = mapped_column(String(8), default="W0")
    playoff_seed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    clinched: Mapped[str | None] = mapped_column(String(16), nullable=True)

    __table_args__ = (UniqueConstraint("season_id", "team_id", name="uq_standing_season_team"),)
