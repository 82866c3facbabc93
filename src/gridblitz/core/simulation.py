"""Game simulation engine interface and a lightweight default engine.

The orchestrator only ever talks to ``GameSimulator``. The real
play-by-play engine lives elsewhere and is injected in production;
``DefaultSimulator`` is a ratings-driven drive model good enough to run a
league end to end.

Every result carries provable-fairness seeds: the RNG is seeded from
``sha256(server_seed:client_seed:nonce)`` and ``server_seed_hash`` is the
sha256 of the server seed, so a game can be replayed and checked later.
"""

from __future__ import annotations

import hashlib
import logging
import random
import secrets
from typing import Protocol

from gridblitz.models.game import GameEvent, SimulationResult
from gridblitz.models.league import Player, Team

logger = logging.getLogger(__name__)

PLAYOFF_GAME_TYPES = frozenset({"wild_card", "divisional", "conference_championship", "super_bowl"})


class GameSimulator(Protocol):
    """Turns two rosters into a scored sequence of events."""

    def simulate(
        self,
        home: Team,
        away: Team,
        home_players: list[Player],
        away_players: list[Player],
        game_type: str,
    ) -> SimulationResult: ...


def _drive_odds(offense: Team, defense: Team) -> tuple[float, float, float]:
    """(touchdown, field goal, turnover) probabilities for one drive."""
    edge = (offense.offense_rating - defense.defense_rating) / 200
    touchdown = min(max(0.22 + edge, 0.08), 0.45)
    field_goal = min(max(0.16 + (offense.special_teams_rating - 75) / 400, 0.05), 0.3)
    turnover = min(max(0.12 - edge / 2, 0.04), 0.25)
    return touchdown, field_goal, turnover


class DefaultSimulator:
    """Ratings-driven drive simulator.

    Args:
        drives_per_team: Offensive possessions per side in regulation.
        broadcast_ms: Nominal broadcast length; event timestamps are spread
            evenly across it.
        seed: Optional base seed. When set, server seeds are derived from it
            so results are reproducible (tests); otherwise they are random.
    """

    def __init__(
        self,
        drives_per_team: int = 11,
        broadcast_ms: int = 20 * 60 * 1000,
        seed: str | None = None,
    ) -> None:
        self.drives_per_team = drives_per_team
        self.broadcast_ms = broadcast_ms
        self._seed = seed
        self._nonce = 0

    def _next_seeds(self) -> tuple[str, str, int]:
        self._nonce += 1
        if self._seed is None:
            return secrets.token_hex(32), secrets.token_hex(16), self._nonce
        server = hashlib.sha256(f"{self._seed}:server:{self._nonce}".encode()).hexdigest()
        client = hashlib.sha256(f"{self._seed}:client".encode()).hexdigest()[:32]
        return server, client, self._nonce

    def simulate(
        self,
        home: Team,
        away: Team,
        home_players: list[Player],
        away_players: list[Player],
        game_type: str,
    ) -> SimulationResult:
        server_seed, client_seed, nonce = self._next_seeds()
        combined = hashlib.sha256(f"{server_seed}:{client_seed}:{nonce}".encode()).hexdigest()
        rng = random.Random(combined)

        total_drives = self.drives_per_team * 2
        step = self.broadcast_ms // (total_drives + 2)
        scores = {home.id: 0, away.id: 0}
        box = {
            side.id: {"touchdowns": 0, "field_goals": 0, "turnovers": 0, "punts": 0}
            for side in (home, away)
        }
        events: list[GameEvent] = []

        def emit(event_type: str, description: str, timestamp: int) -> None:
            events.append(
                GameEvent(
                    event_number=len(events) + 1,
                    event_type=event_type,
                    description=description,
                    display_timestamp_ms=timestamp,
                    home_score=scores[home.id],
                    away_score=scores[away.id],
                )
            )

        emit("kickoff", f"{away.name} at {home.name}", 0)
        offense, defense = (home, away) if rng.random() < 0.5 else (away, home)
        for drive in range(total_drives):
            touchdown, field_goal, turnover = _drive_odds(offense, defense)
            roll = rng.random()
            timestamp = (drive + 1) * step
            if roll < touchdown:
                scores[offense.id] += 7
                box[offense.id]["touchdowns"] += 1
                emit("touchdown", f"{offense.name} touchdown", timestamp)
            elif roll < touchdown + field_goal:
                scores[offense.id] += 3
                box[offense.id]["field_goals"] += 1
                emit("field_goal", f"{offense.name} field goal", timestamp)
            elif roll < touchdown + field_goal + turnover:
                box[offense.id]["turnovers"] += 1
                emit("turnover", f"{offense.name} turn it over", timestamp)
            else:
                box[offense.id]["punts"] += 1
                emit("punt", f"{offense.name} punt", timestamp)
            offense, defense = defense, offense

        if game_type in PLAYOFF_GAME_TYPES and scores[home.id] == scores[away.id]:
            home_edge = home.special_teams_rating / (
                home.special_teams_rating + away.special_teams_rating
            )
            kicker = home if rng.random() < home_edge else away
            scores[kicker.id] += 3
            box[kicker.id]["field_goals"] += 1
            emit("overtime", f"{kicker.name} win it in overtime", (total_drives + 1) * step)

        emit("game_end", "Final", self.broadcast_ms)

        home_score, away_score = scores[home.id], scores[away.id]
        winners = home_players if home_score >= away_score else away_players
        mvp = max(winners, key=lambda p: (p.rating, p.id), default=None)

        logger.debug(
            "simulated game home=%s away=%s score=%d-%d events=%d",
            home.id,
            away.id,
            home_score,
            away_score,
            len(events),
        )
        return SimulationResult(
            events=events,
            home_score=home_score,
            away_score=away_score,
            box_score={"home": box[home.id], "away": box[away.id]},
            mvp_player_id=mvp.id if mvp else None,
            server_seed_hash=hashlib.sha256(server_seed.encode()).hexdigest(),
            server_seed=server_seed,
            client_seed=client_seed,
            nonce=nonce,
        )
