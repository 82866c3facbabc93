"""Tick endpoint: the external heartbeat that drives the league.

An outside cron service calls this every minute or two. Each call advances
the league by at most one step and returns what it did.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from gridblitz.api.deps import EngineDep, PredictionScorerDep, SettingsDep, SimulatorDep
from gridblitz.auth.deps import TickAuth
from gridblitz.core.orchestrator import tick

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tick"])


async def _run_tick(
    engine: EngineDep,
    settings: SettingsDep,
    simulator: SimulatorDep,
    prediction_scorer: PredictionScorerDep,
) -> JSONResponse:
    try:
        action = await tick(
            engine,
            settings,
            simulator=simulator,
            prediction_scorer=prediction_scorer,
        )
    except Exception as exc:  # Any tick failure becomes a 500 body the cron service can log
        logger.exception("tick_failed")
        return JSONResponse(
            status_code=500,
            content={"error": "tick_failed", "detail": str(exc)},
        )
    return JSONResponse(content=action.model_dump(mode="json"))


@router.post("/tick")
async def post_tick(
    _: TickAuth,
    engine: EngineDep,
    settings: SettingsDep,
    simulator: SimulatorDep,
    prediction_scorer: PredictionScorerDep,
) -> JSONResponse:
    """Advance the league by one step."""
    return await _run_tick(engine, settings, simulator, prediction_scorer)


@router.get("/tick")
async def get_tick(
    _: TickAuth,
    engine: EngineDep,
    settings: SettingsDep,
    simulator: SimulatorDep,
    prediction_scorer: PredictionScorerDep,
) -> JSONResponse:
    """Same as ``POST /api/tick``, for cron services that can only send GET."""
    return await _run_tick(engine, settings, simulator, prediction_scorer)
