"""Tick orchestrator: advances the league by at most one step per call.

Every tick reads the current season, picks exactly one action and performs
it. Ticks may run concurrently (external cron, the in-process scheduler
job, a manual ``POST /api/tick``): every state change is a conditional
write in the repository, and a tick that loses a race reports ``idle``
instead of failing.

Decision order (first match wins):

  1. no season                     -> create_season
  2. offseason                     -> create_season once the offseason
                                      has elapsed, else idle
  3. a game is simulating          -> idle (or release it if stale)
     a game is broadcasting        -> idle until its events have played
                                      out, then complete it and continue
  4. intermission after a game     -> idle
  5. featured game still scheduled -> start_game
  6. scheduled games remain        -> feature the best one, start_game
  7. week complete                 -> season_complete (Super Bowl),
                                      idle (week break) or advance_week
  8. otherwise                     -> idle

Every phase opens its own session; a session commits or rolls back as a
unit, so an error never leaves a half-created season or playoff round.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from gridblitz.config import Settings, TimingConfig
from gridblitz.core.featured import pick_featured_game
from gridblitz.core.playoffs import (
    advance_playoff_bracket,
    attach_game_ids,
    calculate_playoff_seeds,
    generate_playoff_bracket,
    round_matchups,
)
from gridblitz.core.predictions import NullPredictionScorer, PredictionScorer
from gridblitz.core.schedule_generator import ScheduleError, generate_schedule
from gridblitz.core.schedule_times import as_utc, project_season
from gridblitz.core.season import (
    PLAYOFF_PHASES,
    SeasonPhase,
    next_phase,
    round_name,
)
from gridblitz.core.simulation import DefaultSimulator, GameSimulator
from gridblitz.core.standings import record_result
from gridblitz.db.engine import get_session
from gridblitz.db.models import GameRow, SeasonRow
from gridblitz.db.repository import Repository
from gridblitz.models.playoffs import PlayoffBracket
from gridblitz.models.tick import (
    Action,
    AdvanceWeekAction,
    CreateSeasonAction,
    IdleAction,
    SeasonCompleteAction,
    StartGameAction,
)

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("simulating", "broadcasting")


@dataclass(frozen=True)
class TickContext:
    """Everything one tick needs, resolved once up front."""

    engine: AsyncEngine
    timing: TimingConfig
    simulator: GameSimulator
    prediction_scorer: PredictionScorer
    now: datetime


def _seconds(delta: timedelta) -> int:
    return max(0, int(delta.total_seconds()))


def _last_completion(games: list[GameRow]) -> datetime | None:
    stamps = [as_utc(g.completed_at) for g in games if g.status == "completed" and g.completed_at]
    return max(stamps) if stamps else None


async def _best_effort(step: str, work: Awaitable[object]) -> None:
    """Await a post-completion side effect; failures are logged, never raised."""
    try:
        await work
    except Exception:  # Side effects must never undo a committed completion
        logger.exception("tick_side_effect_failed step=%s", step)


# --- Entry point ---


async def tick(
    engine: AsyncEngine,
    settings: Settings | None = None,
    *,
    simulator: GameSimulator | None = None,
    prediction_scorer: PredictionScorer | None = None,
    now: datetime | None = None,
) -> Action:
    """Advance the league by at most one step and describe what happened.

    Args:
        engine: Database engine; every phase opens its own session on it.
        settings: Source of the season clock durations. Defaults apply when
            omitted.
        simulator: Game engine. Defaults to ``DefaultSimulator``.
        prediction_scorer: Receives every completed game's result.
        now: Reference time (tests pin it). Defaults to the current UTC time.

    Returns:
        The action taken. Lost races and waits are ``IdleAction``; only
        unexpected errors propagate.
    """
    ctx = TickContext(
        engine=engine,
        timing=settings.timing() if settings is not None else TimingConfig(),
        simulator=simulator or DefaultSimulator(),
        prediction_scorer=prediction_scorer or NullPredictionScorer(),
        now=as_utc(now) if now is not None else datetime.now(UTC),
    )
    action = await _decide(ctx)
    logger.info(
        "tick_action action=%s season=%s message=%s",
        action.action,
        action.season_id,
        action.message,
    )
    return action


async def _decide(ctx: TickContext) -> Action:
    async with get_session(ctx.engine) as session:
        repo = Repository(session)
        season = await repo.get_current_season()
        week_games = (
            await repo.get_games_for_week(season.id, season.current_week)
            if season is not None
            else []
        )

    # 1-2. Season lifecycle
    if season is None:
        return await start_new_season(ctx, season_number=1)
    if season.status == SeasonPhase.OFFSEASON:
        completed_at = as_utc(season.completed_at)
        if completed_at is not None and ctx.now - completed_at < ctx.timing.offseason:
            remaining = ctx.timing.offseason - (ctx.now - completed_at)
            return IdleAction(
                reason="offseason",
                season_id=season.id,
                message=f"Season {season.season_number} complete; next season in "
                f"{_seconds(remaining)}s",
            )
        return await start_new_season(ctx, season_number=season.season_number + 1)

    # 3. A game in flight
    live = [g for g in week_games if g.status in ACTIVE_STATUSES]
    if live:
        game = live[0]
        if game.status == "simulating":
            return await _check_stalled_simulation(ctx, game)
        waiting = await _try_finish_broadcast(ctx, game)
        if waiting is not None:
            return waiting

    return await _schedule_next(ctx, season)


# --- Season creation ---


async def start_new_season(
    ctx: TickContext,
    season_number: int,
    seed: str | None = None,
) -> CreateSeasonAction | IdleAction:
    """Create season *season_number* with its full regular-season schedule.

    The schedule is generated before anything is written, so a league of the
    wrong shape leaves the store untouched. The unique season number makes
    concurrent creators collide; the loser reports ``lost_race``.
    """
    seed = seed or secrets.token_hex(16)
    async with get_session(ctx.engine) as session:
        teams = await Repository(session).get_league_teams()

    try:
        schedule = generate_schedule(list(teams.values()), seed)
    except ScheduleError as exc:
        logger.error("season_create_failed season=%d error=%s", season_number, exc)
        return IdleAction(reason="invalid_league", message=str(exc))

    games = [
        (week, m.home_team_id, m.away_team_id)
        for week, matchups in enumerate(schedule.weeks, start=1)
        for m in matchups
    ]
    try:
        async with get_session(ctx.engine) as session:
            repo = Repository(session)
            season = await repo.create_season(season_number, seed)
            await repo.create_games(season.id, games)
            await repo.create_standings(season.id, teams)
    except IntegrityError:
        logger.info("tick_lost_race: season %d already created", season_number)
        return IdleAction(
            reason="lost_race", message=f"Season {season_number} was created by another tick"
        )

    logger.info(
        "season_created season=%s number=%d games=%d seed=%s",
        season.id,
        season_number,
        len(games),
        seed,
    )
    await _best_effort("featured", _feature_week(ctx, season.id, 1))
    await _best_effort("projection", _project(ctx, season.id))
    return CreateSeasonAction(
        season_id=season.id,
        season_number=season_number,
        games_created=len(games),
        message=f"Created season {season_number} with {len(games)} games",
    )


# --- Games in flight ---


async def _check_stalled_simulation(ctx: TickContext, game: GameRow) -> IdleAction:
    started = as_utc(game.simulation_started_at)
    if started is None or ctx.now - started <= ctx.timing.simulation_timeout:
        return IdleAction(
            reason="simulating",
            season_id=game.season_id,
            game_id=game.id,
            message=f"Game {game.id} is simulating",
        )

    async with get_session(ctx.engine) as session:
        released = await Repository(session).release_simulation(game.id)
    if released:
        logger.warning(
            "simulation_stalled game=%s started=%s: released back to scheduled",
            game.id,
            started.isoformat(),
        )
    return IdleAction(
        reason="simulation_released",
        season_id=game.season_id,
        game_id=game.id,
        message=f"Game {game.id} stalled in simulation and was released",
    )


async def _try_finish_broadcast(ctx: TickContext, game: GameRow) -> IdleAction | None:
    """Complete *game* once its broadcast has played out.

    Returns ``None`` when the game was completed by this tick (the caller
    moves on to scheduling), otherwise the idle action to report.
    """
    last_event_ms = game.duration_ms
    if last_event_ms is None:
        async with get_session(ctx.engine) as session:
            last_event_ms = await Repository(session).get_last_event_timestamp(game.id)
    required = timedelta(milliseconds=last_event_ms or 0) + ctx.timing.broadcast_buffer

    started = as_utc(game.broadcast_started_at)
    if started is None:
        logger.warning("broadcast_missing_start game=%s: completing now", game.id)
    elif ctx.now - started < required:
        remaining = required - (ctx.now - started)
        return IdleAction(
            reason="broadcasting",
            season_id=game.season_id,
            game_id=game.id,
            message=f"Game {game.id} broadcasting, {_seconds(remaining)}s remaining",
        )

    if not await finish_game(ctx, game):
        return IdleAction(
            reason="lost_race",
            season_id=game.season_id,
            game_id=game.id,
            message=f"Game {game.id} was completed by another tick",
        )
    return None


async def finish_game(ctx: TickContext, game: GameRow) -> bool:
    """broadcasting -> completed, then the completion side effects.

    *game* is the row as read before the transition (scores are final once
    a game broadcasts). Only the tick that wins the conditional write runs
    the side effects, so standings are updated exactly once per game.
    """
    async with get_session(ctx.engine) as session:
        won = await Repository(session).complete_broadcast(game.id, ctx.now)
    if not won:
        logger.info("tick_lost_race: game %s already completed", game.id)
        return False

    logger.info(
        "game_completed game=%s week=%d score=%s-%s",
        game.id,
        game.week,
        game.home_score,
        game.away_score,
    )
    if game.game_type == "regular":
        await _best_effort("standings", _update_standings(ctx, game))
    await _best_effort(
        "predictions",
        ctx.prediction_scorer.score_game(
            game.id, _winner(game), game.home_score, game.away_score
        ),
    )
    if game.game_type in PLAYOFF_PHASES:
        await _best_effort("bracket", _advance_bracket(ctx, game))
    await _best_effort("projection", _project(ctx, game.season_id))
    return True


def _winner(game: GameRow) -> str:
    """Winner of a game whose scores are final; a tie goes to the home team."""
    if game.away_score > game.home_score:
        return game.away_team_id
    return game.home_team_id


async def _update_standings(ctx: TickContext, game: GameRow) -> None:
    async with get_session(ctx.engine) as session:
        repo = Repository(session)
        standings = await repo.get_team_standings(game.season_id)
        home = standings.get(game.home_team_id)
        away = standings.get(game.away_team_id)
        if home is None or away is None:
            logger.warning("standings_missing game=%s season=%s", game.id, game.season_id)
            return
        same_conference = home.conference == away.conference
        same_division = same_conference and home.division == away.division
        await repo.save_standing(
            game.season_id,
            record_result(
                home,
                points_for=game.home_score,
                points_against=game.away_score,
                same_division=same_division,
                same_conference=same_conference,
            ),
        )
        await repo.save_standing(
            game.season_id,
            record_result(
                away,
                points_for=game.away_score,
                points_against=game.home_score,
                same_division=same_division,
                same_conference=same_conference,
            ),
        )


async def _advance_bracket(ctx: TickContext, game: GameRow) -> None:
    async with get_session(ctx.engine) as session:
        repo = Repository(session)
        season = await repo.get_season(game.season_id)
        if season is None or season.bracket is None:
            logger.warning("bracket_missing season=%s game=%s", game.season_id, game.id)
            return
        bracket = PlayoffBracket.model_validate(season.bracket)
        updated = advance_playoff_bracket(
            bracket, game.id, _winner(game), game.home_score, game.away_score
        )
        if updated is not bracket:
            await repo.save_bracket(season.id, updated.model_dump(mode="json"))


async def _project(ctx: TickContext, season_id: str) -> None:
    async with get_session(ctx.engine) as session:
        await project_season(Repository(session), season_id, ctx.now, ctx.timing)


# --- Scheduling within a week ---


async def _schedule_next(ctx: TickContext, season: SeasonRow) -> Action:
    async with get_session(ctx.engine) as session:
        games = await Repository(session).get_games_for_week(season.id, season.current_week)

    scheduled = [g for g in games if g.status == "scheduled"]
    last_completion = _last_completion(games)

    # 4. Intermission
    if scheduled and last_completion is not None:
        since = ctx.now - last_completion
        if since < ctx.timing.intermission:
            return IdleAction(
                reason="intermission",
                season_id=season.id,
                message=f"Intermission, next game in "
                f"{_seconds(ctx.timing.intermission - since)}s",
            )

    # 5. Featured game first
    featured = next((g for g in scheduled if g.is_featured), None)
    if featured is not None:
        return await _start_game(ctx, season, featured)

    # 6. Best remaining game
    if scheduled:
        async with get_session(ctx.engine) as session:
            repo = Repository(session)
            teams = await repo.get_league_teams()
            standings = await repo.get_team_standings(season.id)
            pick = pick_featured_game(scheduled, teams, standings, season.current_week)
            if pick is not None and not any(g.is_featured for g in games):
                await repo.claim_featured_game(pick.id, season.id, season.current_week)
        if pick is not None:
            return await _start_game(ctx, season, pick)

    # 7. Week complete
    if games and all(g.status == "completed" for g in games):
        if season.status == SeasonPhase.SUPER_BOWL:
            return await _complete_season(ctx, season, games)
        if last_completion is not None and ctx.now - last_completion < ctx.timing.week_break:
            remaining = ctx.timing.week_break - (ctx.now - last_completion)
            return IdleAction(
                reason="week_break",
                season_id=season.id,
                message=f"{round_name(season.current_week)} complete; "
                f"next week in {_seconds(remaining)}s",
            )
        return await _advance_week(ctx, season)

    # 8. Nothing to do
    return IdleAction(
        reason="waiting",
        season_id=season.id,
        message=f"Nothing to do in {round_name(season.current_week)}",
    )


async def _start_game(ctx: TickContext, season: SeasonRow, game: GameRow) -> Action:
    async with get_session(ctx.engine) as session:
        claimed = await Repository(session).start_simulation(game.id, season.id, ctx.now)
    if not claimed:
        logger.info("tick_lost_race: game %s not claimable", game.id)
        return IdleAction(
            reason="lost_race",
            season_id=season.id,
            game_id=game.id,
            message=f"Game {game.id} already started or another game is live",
        )

    async with get_session(ctx.engine) as session:
        teams = await Repository(session).get_teams([game.home_team_id, game.away_team_id])
    home = teams.get(game.home_team_id)
    away = teams.get(game.away_team_id)
    if home is None or away is None:
        logger.error("start_game_missing_team game=%s", game.id)
        await _release(ctx, game)
        return IdleAction(
            reason="not_found",
            season_id=season.id,
            game_id=game.id,
            message=f"Teams for game {game.id} not found",
        )

    try:
        result = ctx.simulator.simulate(home, away, home.players, away.players, game.game_type)
    except Exception:  # Engine failures release the claim; the next tick retries
        logger.exception("simulation_failed game=%s", game.id)
        await _release(ctx, game)
        return IdleAction(
            reason="simulation_failed",
            season_id=season.id,
            game_id=game.id,
            message=f"Simulation of game {game.id} failed; will retry",
        )

    async with get_session(ctx.engine) as session:
        repo = Repository(session)
        began = await repo.begin_broadcast(game.id, result, ctx.now)
        if began:
            await repo.store_game_events(game.id, result.events)
    if not began:
        logger.warning("broadcast_begin_lost game=%s: claim no longer held", game.id)
        return IdleAction(
            reason="lost_race",
            season_id=season.id,
            game_id=game.id,
            message=f"Game {game.id} changed state during simulation",
        )

    logger.info(
        "game_started game=%s week=%d home=%s away=%s featured=%s",
        game.id,
        game.week,
        home.abbreviation,
        away.abbreviation,
        game.is_featured,
    )
    return StartGameAction(
        season_id=season.id,
        game_id=game.id,
        week=game.week,
        home_team_id=home.id,
        away_team_id=away.id,
        is_featured=game.is_featured,
        message=f"{away.name} at {home.name} is on the air",
    )


async def _release(ctx: TickContext, game: GameRow) -> None:
    async with get_session(ctx.engine) as session:
        await Repository(session).release_simulation(game.id)


async def _feature_week(ctx: TickContext, season_id: str, week: int) -> None:
    """Flag the week's most appealing scheduled game, unless one is flagged."""
    async with get_session(ctx.engine) as session:
        repo = Repository(session)
        games = await repo.get_games_for_week(season_id, week)
        if any(g.is_featured for g in games):
            return
        scheduled = [g for g in games if g.status == "scheduled"]
        teams = await repo.get_league_teams()
        standings = await repo.get_team_standings(season_id)
        pick = pick_featured_game(scheduled, teams, standings, week)
        if pick is not None and await repo.claim_featured_game(pick.id, season_id, week):
            logger.info("featured_game season=%s week=%d game=%s", season_id, week, pick.id)


# --- Week and season transitions ---


async def _complete_season(
    ctx: TickContext, season: SeasonRow, games: list[GameRow]
) -> SeasonCompleteAction | IdleAction:
    champion = _winner(games[-1])
    async with get_session(ctx.engine) as session:
        won = await Repository(session).complete_season(season.id, champion, ctx.now)
    if not won:
        logger.info("tick_lost_race: season %s already completed", season.id)
        return IdleAction(
            reason="lost_race",
            season_id=season.id,
            message=f"Season {season.season_number} was completed by another tick",
        )

    logger.info("season_completed season=%s champion=%s", season.id, champion)
    return SeasonCompleteAction(
        season_id=season.id,
        champion_team_id=champion,
        message=f"Season {season.season_number} complete",
    )


async def _advance_week(ctx: TickContext, season: SeasonRow) -> AdvanceWeekAction | IdleAction:
    to_phase, to_week = next_phase(season.status, season.current_week)

    async with get_session(ctx.engine) as session:
        repo = Repository(session)
        advanced = await repo.advance_season(
            season.id, season.status, season.current_week, to_phase, to_week
        )
        games_created = 0
        if advanced and to_phase == SeasonPhase.WILD_CARD:
            games_created = await _start_playoffs(repo, season.id, to_week)
        elif advanced and to_phase in PLAYOFF_PHASES:
            games_created = await _create_next_round(
                repo, season.id, to_phase, season.current_week, to_week
            )

    if not advanced:
        logger.info(
            "tick_lost_race: season %s already left week %d", season.id, season.current_week
        )
        return IdleAction(
            reason="lost_race",
            season_id=season.id,
            message=f"Week {season.current_week} was advanced by another tick",
        )

    logger.info(
        "week_advanced season=%s from=%d to=%d status=%s games_created=%d",
        season.id,
        season.current_week,
        to_week,
        to_phase,
        games_created,
    )
    await _best_effort("featured", _feature_week(ctx, season.id, to_week))
    await _best_effort("projection", _project(ctx, season.id))
    return AdvanceWeekAction(
        season_id=season.id,
        from_week=season.current_week,
        to_week=to_week,
        status=to_phase.value,
        games_created=games_created,
        message=f"Advanced to {round_name(to_week)}",
    )


async def _start_playoffs(repo: Repository, season_id: str, week: int) -> int:
    """Seed both conferences, store the bracket and create Wild Card games."""
    standings = await repo.get_team_standings(season_id)
    seeds = calculate_playoff_seeds(standings.values())
    for standing in seeds.all_standings():
        await repo.save_standing(season_id, standing)

    bracket, created = await _create_round_games(
        repo, season_id, generate_playoff_bracket(seeds), SeasonPhase.WILD_CARD, week
    )
    await repo.save_bracket(season_id, bracket.model_dump(mode="json"))
    return created


async def _create_next_round(
    repo: Repository,
    season_id: str,
    phase: SeasonPhase,
    from_week: int,
    to_week: int,
) -> int:
    """Replay the finished round into the bracket and create the next round's games.

    Replaying is idempotent, so results already recorded at completion time
    are left as they are.
    """
    season = await repo.get_season(season_id)
    if season is None or season.bracket is None:
        raise ValueError(f"Season {season_id} has no playoff bracket")
    bracket = PlayoffBracket.model_validate(season.bracket)
    for game in await repo.get_games_for_week(season_id, from_week):
        if game.status == "completed":
            bracket = advance_playoff_bracket(
                bracket, game.id, _winner(game), game.home_score, game.away_score
            )

    bracket, created = await _create_round_games(repo, season_id, bracket, phase, to_week)
    if created == 0 and not round_matchups(bracket, phase.value):
        raise ValueError(f"{round_name(to_week)} could not be populated for season {season_id}")
    await repo.save_bracket(season_id, bracket.model_dump(mode="json"))
    return created


async def _create_round_games(
    repo: Repository,
    season_id: str,
    bracket: PlayoffBracket,
    phase: SeasonPhase,
    week: int,
) -> tuple[PlayoffBracket, int]:
    game_ids: dict[tuple[str, str], str] = {}
    for matchup in round_matchups(bracket, phase.value):
        if matchup.game_id is not None:
            continue
        row = await repo.create_game(
            season_id,
            week,
            matchup.home_team_id,
            matchup.away_team_id,
            game_type=phase.value,
        )
        game_ids[(matchup.home_team_id, matchup.away_team_id)] = row.id
    return attach_game_ids(bracket, phase.value, game_ids), len(game_ids)


# --- Scheduler job ---


async def run_tick_job(
    engine: AsyncEngine,
    settings: Settings,
    simulator: GameSimulator | None = None,
    prediction_scorer: PredictionScorer | None = None,
) -> None:
    """APScheduler entry point: one tick, errors logged and swallowed.

    A failing tick must not kill the scheduler; the next fire retries.
    """
    try:
        await tick(engine, settings, simulator=simulator, prediction_scorer=prediction_scorer)
    except Exception:  # Scheduler jobs log and carry on
        logger.exception("tick_job_failed")
