"""Repository pattern for database access.

Wraps SQLAlchemy async sessions. Game rows are only ever appended; every
status change goes through a conditional ``UPDATE ... WHERE status = X`` that
reports whether this caller won. ``False`` means another tick got there first.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from sqlalchemy import exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from gridblitz.db.models import (
    GameEventRow,
    GameRow,
    PlayerRow,
    SeasonRow,
    StandingRow,
    TeamRow,
)
from gridblitz.models.game import GameEvent, SimulationResult
from gridblitz.models.league import Team, TeamStanding

ACTIVE_GAME_STATUSES = ("simulating", "broadcasting")

# Conditional updates report rowcount; the identity map is not synchronised,
# callers re-read in a fresh session.
_NO_SYNC = {"synchronize_session": False}


class Repository:
    """Async repository for all database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Teams / players ---

    async def create_team(
        self,
        name: str,
        abbreviation: str,
        conference: str,
        division: int,
        city: str = "",
        offense_rating: int = 75,
        defense_rating: int = 75,
        special_teams_rating: int = 75,
        color: str = "#000000",
        team_id: str | None = None,
    ) -> TeamRow:
        row = TeamRow(
            name=name,
            city=city,
            abbreviation=abbreviation,
            conference=conference,
            division=division,
            offense_rating=offense_rating,
            defense_rating=defense_rating,
            special_teams_rating=special_teams_rating,
            color=color,
        )
        if team_id is not None:
            row.id = team_id
        self.session.add(row)
        await self.session.flush()
        return row

    async def create_player(
        self,
        team_id: str,
        name: str,
        position: str,
        number: int = 0,
        rating: int = 70,
        player_id: str | None = None,
    ) -> PlayerRow:
        row = PlayerRow(team_id=team_id, name=name, position=position, number=number, rating=rating)
        if player_id is not None:
            row.id = player_id
        self.session.add(row)
        await self.session.flush()
        return row

    async def count_teams(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(TeamRow))
        return result.scalar_one()

    async def get_team(self, team_id: str) -> TeamRow | None:
        return await self.session.get(TeamRow, team_id)

    async def get_all_teams(self) -> list[TeamRow]:
        """All teams with rosters loaded, ordered by conference/division/name."""
        stmt = (
            select(TeamRow)
            .options(selectinload(TeamRow.players))
            .order_by(TeamRow.conference, TeamRow.division, TeamRow.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_league_teams(self) -> dict[str, Team]:
        """All teams as domain models (with rosters), keyed by id."""
        return {row.id: Team.model_validate(row) for row in await self.get_all_teams()}

    async def get_teams(self, team_ids: Iterable[str]) -> dict[str, Team]:
        """The given teams as domain models (with rosters); missing ids are absent."""
        stmt = (
            select(TeamRow)
            .options(selectinload(TeamRow.players))
            .where(TeamRow.id.in_(list(team_ids)))
        )
        result = await self.session.execute(stmt)
        return {row.id: Team.model_validate(row) for row in result.scalars().all()}

    # --- Seasons ---

    async def create_season(
        self,
        season_number: int,
        seed: str,
        status: str = "regular_season",
        current_week: int = 1,
        total_weeks: int = 22,
    ) -> SeasonRow:
        """Insert a season. Raises IntegrityError if the number is taken."""
        row = SeasonRow(
            season_number=season_number,
            seed=seed,
            status=status,
            current_week=current_week,
            total_weeks=total_weeks,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_season(self, season_id: str) -> SeasonRow | None:
        return await self.session.get(SeasonRow, season_id)

    async def get_current_season(self) -> SeasonRow | None:
        """The season with the highest season number."""
        stmt = select(SeasonRow).order_by(SeasonRow.season_number.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_season_number(self) -> int:
        result = await self.session.execute(select(func.max(SeasonRow.season_number)))
        return result.scalar_one_or_none() or 0

    async def advance_season(
        self,
        season_id: str,
        from_status: str,
        from_week: int,
        to_status: str,
        to_week: int,
    ) -> bool:
        """Move the season to the next week, guarded on its current (status, week)."""
        stmt = (
            update(SeasonRow)
            .where(
                SeasonRow.id == season_id,
                SeasonRow.status == from_status,
                SeasonRow.current_week == from_week,
            )
            .values(status=to_status, current_week=to_week)
            .execution_options(**_NO_SYNC)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def complete_season(
        self,
        season_id: str,
        champion_team_id: str | None,
        completed_at: datetime,
    ) -> bool:
        """Super Bowl -> offseason, guarded on the season still being in super_bowl."""
        stmt = (
            update(SeasonRow)
            .where(SeasonRow.id == season_id, SeasonRow.status == "super_bowl")
            .values(
                status="offseason",
                champion_team_id=champion_team_id,
                completed_at=completed_at,
            )
            .execution_options(**_NO_SYNC)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def save_bracket(self, season_id: str, bracket: dict) -> None:
        stmt = (
            update(SeasonRow)
            .where(SeasonRow.id == season_id)
            .values(bracket=bracket)
            .execution_options(**_NO_SYNC)
        )
        await self.session.execute(stmt)

    # --- Games ---

    async def create_game(
        self,
        season_id: str,
        week: int,
        home_team_id: str,
        away_team_id: str,
        game_type: str = "regular",
        is_featured: bool = False,
    ) -> GameRow:
        row = GameRow(
            season_id=season_id,
            week=week,
            home_team_id=home_team_id,
            away_team_id=away_team_id,
            game_type=game_type,
            is_featured=is_featured,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def create_games(
        self,
        season_id: str,
        games: Iterable[tuple[int, str, str]],
        game_type: str = "regular",
    ) -> list[GameRow]:
        """Bulk insert ``(week, home_team_id, away_team_id)`` games."""
        rows = [
            GameRow(
                season_id=season_id,
                week=week,
                home_team_id=home,
                away_team_id=away,
                game_type=game_type,
            )
            for week, home, away in games
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def get_game(self, game_id: str) -> GameRow | None:
        return await self.session.get(GameRow, game_id)

    async def get_games_for_week(self, season_id: str, week: int) -> list[GameRow]:
        stmt = (
            select(GameRow)
            .where(GameRow.season_id == season_id, GameRow.week == week)
            .order_by(GameRow.created_at, GameRow.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_games_for_season(self, season_id: str) -> list[GameRow]:
        stmt = (
            select(GameRow)
            .where(GameRow.season_id == season_id)
            .order_by(GameRow.week, GameRow.created_at, GameRow.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def claim_featured_game(self, game_id: str, season_id: str, week: int) -> bool:
        """Flag a scheduled game as featured unless its week already has one."""
        other = aliased(GameRow)
        already_featured = exists(
            select(other.id).where(
                other.season_id == season_id,
                other.week == week,
                other.is_featured.is_(True),
            )
        )
        stmt = (
            update(GameRow)
            .where(
                GameRow.id == game_id,
                GameRow.status == "scheduled",
                GameRow.is_featured.is_(False),
                ~already_featured,
            )
            .values(is_featured=True)
            .execution_options(**_NO_SYNC)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def start_simulation(self, game_id: str, season_id: str, now: datetime) -> bool:
        """scheduled -> simulating, only while no other game of the season is live."""
        other = aliased(GameRow)
        live = exists(
            select(other.id).where(
                other.season_id == season_id,
                other.status.in_(ACTIVE_GAME_STATUSES),
            )
        )
        stmt = (
            update(GameRow)
            .where(GameRow.id == game_id, GameRow.status == "scheduled", ~live)
            .values(status="simulating", simulation_started_at=now)
            .execution_options(**_NO_SYNC)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def release_simulation(self, game_id: str) -> bool:
        """simulating -> scheduled, after a failed or abandoned simulation."""
        stmt = (
            update(GameRow)
            .where(GameRow.id == game_id, GameRow.status == "simulating")
            .values(status="scheduled", simulation_started_at=None)
            .execution_options(**_NO_SYNC)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def begin_broadcast(
        self, game_id: str, result: SimulationResult, now: datetime
    ) -> bool:
        """simulating -> broadcasting, storing the final score and provenance."""
        stmt = (
            update(GameRow)
            .where(GameRow.id == game_id, GameRow.status == "simulating")
            .values(
                status="broadcasting",
                home_score=result.home_score,
                away_score=result.away_score,
                box_score=result.box_score,
                mvp_player_id=result.mvp_player_id,
                duration_ms=result.duration_ms,
                total_events=len(result.events),
                server_seed_hash=result.server_seed_hash,
                server_seed=result.server_seed,
                client_seed=result.client_seed,
                nonce=result.nonce,
                broadcast_started_at=now,
            )
            .execution_options(**_NO_SYNC)
        )
        outcome = await self.session.execute(stmt)
        return outcome.rowcount == 1

    async def complete_broadcast(self, game_id: str, now: datetime) -> bool:
        """broadcasting -> completed. Exactly one caller wins."""
        stmt = (
            update(GameRow)
            .where(GameRow.id == game_id, GameRow.status == "broadcasting")
            .values(status="completed", completed_at=now)
            .execution_options(**_NO_SYNC)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def set_scheduled_times(self, times: Mapping[str, datetime]) -> int:
        """Write projected start times; games no longer ``scheduled`` are skipped."""
        updated = 0
        for game_id, scheduled_at in times.items():
            stmt = (
                update(GameRow)
                .where(GameRow.id == game_id, GameRow.status == "scheduled")
                .values(scheduled_at=scheduled_at)
                .execution_options(**_NO_SYNC)
            )
            result = await self.session.execute(stmt)
            updated += result.rowcount
        return updated

    # --- Game events ---

    async def store_game_events(self, game_id: str, events: Iterable[GameEvent]) -> int:
        rows = [
            GameEventRow(
                game_id=game_id,
                event_number=e.event_number,
                event_type=e.event_type,
                description=e.description,
                display_timestamp_ms=e.display_timestamp_ms,
                home_score=e.home_score,
                away_score=e.away_score,
            )
            for e in events
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return len(rows)

    async def get_last_event_timestamp(self, game_id: str) -> int | None:
        stmt = select(func.max(GameEventRow.display_timestamp_ms)).where(
            GameEventRow.game_id == game_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # --- Standings ---

    async def create_standings(self, season_id: str, team_ids: Iterable[str]) -> None:
        self.session.add_all(StandingRow(season_id=season_id, team_id=t) for t in team_ids)
        await self.session.flush()

    async def get_standings(self, season_id: str) -> list[StandingRow]:
        stmt = select(StandingRow).where(StandingRow.season_id == season_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_team_standings(self, season_id: str) -> dict[str, TeamStanding]:
        """Standings joined with team conference/division, keyed by team id."""
        stmt = (
            select(StandingRow, TeamRow.conference, TeamRow.division)
            .join(TeamRow, TeamRow.id == StandingRow.team_id)
            .where(StandingRow.season_id == season_id)
        )
        result = await self.session.execute(stmt)
        standings: dict[str, TeamStanding] = {}
        for row, conference, division in result.all():
            standings[row.team_id] = TeamStanding(
                team_id=row.team_id,
                conference=conference,
                division=division,
                wins=row.wins,
                losses=row.losses,
                ties=row.ties,
                division_wins=row.division_wins,
                division_losses=row.division_losses,
                conference_wins=row.conference_wins,
                conference_losses=row.conference_losses,
                points_for=row.points_for,
                points_against=row.points_against,
                streak=row.streak,
                playoff_seed=row.playoff_seed,
                clinched=row.clinched,
            )
        return standings

    async def save_standing(self, season_id: str, standing: TeamStanding) -> None:
        """Write every counter of one team's record back to its row."""
        stmt = (
            update(StandingRow)
            .where(StandingRow.season_id == season_id, StandingRow.team_id == standing.team_id)
            .values(
                wins=standing.wins,
                losses=standing.losses,
                ties=standing.ties,
                division_wins=standing.division_wins,
                division_losses=standing.division_losses,
                conference_wins=standing.conference_wins,
                conference_losses=standing.conference_losses,
                points_for=standing.points_for,
                points_against=standing.points_against,
                streak=standing.streak,
                playoff_seed=standing.playoff_seed,
                clinched=standing.clinched,
            )
            .execution_options(**_NO_SYNC)
        )
        await self.session.execute(stmt)
