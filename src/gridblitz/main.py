"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gridblitz.api.seasons import router as seasons_router
from gridblitz.api.tick import router as tick_router
from gridblitz.config import Settings
from gridblitz.core.predictions import NullPredictionScorer
from gridblitz.core.seeding import generate_league, seed_league
from gridblitz.core.simulation import DefaultSimulator
from gridblitz.db.engine import create_engine, create_tables, get_session
from gridblitz.db.repository import Repository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create engine/tables, seed the league, optionally start the tick job."""
    settings: Settings = app.state.settings
    engine = create_engine(settings.database_url)
    await create_tables(engine)
    app.state.engine = engine

    if settings.auto_seed_league:
        async with get_session(engine) as session:
            inserted = await seed_league(Repository(session), generate_league(settings.league_seed))
        if inserted:
            logger.info("startup_seed: inserted %d teams", inserted)

    # In-process tick driver; an external cron hitting /api/tick works the same
    scheduler = None
    effective_cron = settings.effective_tick_cron()
    if settings.gridblitz_auto_tick and effective_cron is not None:
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.cron import CronTrigger

        from gridblitz.core.orchestrator import run_tick_job

        scheduler = AsyncIOScheduler()
        trigger = CronTrigger.from_crontab(effective_cron)
        scheduler.add_job(
            run_tick_job,
            trigger=trigger,
            kwargs={
                "engine": engine,
                "settings": settings,
                "simulator": app.state.simulator,
                "prediction_scorer": app.state.prediction_scorer,
            },
            id="tick",
            name="Advance the league one step",
            replace_existing=True,
            max_instances=1,
        )
        scheduler.start()
        app.state.scheduler = scheduler
        logger.info("scheduler_started cron=%s pace=%s", effective_cron, settings.gridblitz_pace)
    else:
        app.state.scheduler = None
        logger.info("scheduler_disabled pace=%s", settings.gridblitz_pace)

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")

    await engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the GridBlitz FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.gridblitz_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="GridBlitz",
        version="0.1.0",
        description="Auto-simulated 32-team football league driven by an external tick",
        docs_url="/docs" if settings.gridblitz_env != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.simulator = DefaultSimulator()
    app.state.prediction_scorer = NullPredictionScorer()

    app.include_router(tick_router)
    app.include_router(seasons_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "env": settings.gridblitz_env}

    return app


app = create_app()
