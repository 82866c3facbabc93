"""Prediction scoring hook.

Fans' predictions live outside the core. When a game completes the
orchestrator hands the result to a ``PredictionScorer``; failures there are
logged and never touch the game itself.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class PredictionScorer(Protocol):
    async def score_game(
        self,
        game_id: str,
        winner_team_id: str | None,
        home_score: int,
        away_score: int,
    ) -> int:
        """Score every prediction tied to *game_id*; return how many were scored."""
        ...


class NullPredictionScorer:
    """Scores nothing. Used when no prediction service is wired in."""

    async def score_game(
        self,
        game_id: str,
        winner_team_id: str | None,
        home_score: int,
        away_score: int,
    ) -> int:
        logger.debug("predictions_skip game=%s: no scorer configured", game_id)
        return 0
