"""Application settings via pydantic-settings. Loads from environment and .env file."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Default cron expression for the in-process tick driver.
_DEFAULT_TICK_CRON = "*/2 * * * *"

# Pace-to-cron mapping for the in-process driver.
PACE_CRON_MAP: dict[str, str | None] = {
    "fast": "*/1 * * * *",
    "normal": "*/2 * * * *",
    "slow": "*/5 * * * *",
    "manual": None,
}


@dataclass(frozen=True)
class TimingConfig:
    """Durations that drive the season clock.

    Pure modules (projector, orchestrator) take this instead of ``Settings``
    so they can be exercised without touching the environment.
    """

    intermission: timedelta = timedelta(minutes=15)
    week_break: timedelta = timedelta(minutes=30)
    offseason: timedelta = timedelta(minutes=30)
    broadcast_buffer: timedelta = timedelta(seconds=60)
    default_game_duration: timedelta = timedelta(minutes=30)
    duration_sanity_ceiling: timedelta = timedelta(hours=3)
    simulation_timeout: timedelta = timedelta(minutes=10)


class Settings(BaseSettings):
    """GridBlitz application configuration.

    All values can be overridden via environment variables or .env file.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///gridblitz.db"

    # Environment
    gridblitz_env: str = "development"

    # Shared secret for the tick endpoint (sent as ``Authorization: Bearer ...``)
    tick_secret: str = ""

    # In-process tick driver (APScheduler). Off by default: an external cron
    # is expected to hit /api/tick.
    gridblitz_auto_tick: bool = False
    gridblitz_tick_cron: str = _DEFAULT_TICK_CRON
    gridblitz_pace: str = "normal"

    # League
    auto_seed_league: bool = True
    league_seed: int = 42

    # Season clock (seconds)
    intermission_seconds: int = 900
    week_break_seconds: int = 1800
    offseason_seconds: int = 1800
    broadcast_buffer_seconds: int = 60
    default_game_duration_seconds: int = 1800
    duration_ceiling_seconds: int = 10800
    simulation_timeout_seconds: int = 600

    # Logging
    gridblitz_log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _require_tick_secret_in_production(self) -> Settings:
        """Reject a missing tick secret in production; dev may run without one."""
        if self.gridblitz_env == "production" and not self.tick_secret:
            msg = (
                "TICK_SECRET must be set in production. "
                "Generate one with: python -c "
                '"import secrets; print(secrets.token_urlsafe(32))"'
            )
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def _check_durations(self) -> Settings:
        durations = {
            "intermission_seconds": self.intermission_seconds,
            "week_break_seconds": self.week_break_seconds,
            "offseason_seconds": self.offseason_seconds,
            "default_game_duration_seconds": self.default_game_duration_seconds,
            "duration_ceiling_seconds": self.duration_ceiling_seconds,
            "simulation_timeout_seconds": self.simulation_timeout_seconds,
        }
        for name, value in durations.items():
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.broadcast_buffer_seconds < 0:
            raise ValueError("broadcast_buffer_seconds must not be negative")
        return self

    def timing(self) -> TimingConfig:
        """Build the frozen timing config consumed by the core modules."""
        return TimingConfig(
            intermission=timedelta(seconds=self.intermission_seconds),
            week_break=timedelta(seconds=self.week_break_seconds),
            offseason=timedelta(seconds=self.offseason_seconds),
            broadcast_buffer=timedelta(seconds=self.broadcast_buffer_seconds),
            default_game_duration=timedelta(seconds=self.default_game_duration_seconds),
            duration_sanity_ceiling=timedelta(seconds=self.duration_ceiling_seconds),
            simulation_timeout=timedelta(seconds=self.simulation_timeout_seconds),
        )

    def effective_tick_cron(self) -> str | None:
        """Return the cron expression for the in-process tick job.

        Resolution order:
        1. If ``gridblitz_tick_cron`` was explicitly changed from its default,
           honour the user override.
        2. Otherwise, derive from ``gridblitz_pace``.
        3. If pace is ``"manual"``, return ``None`` and no job is started.
        """
        if self.gridblitz_tick_cron != _DEFAULT_TICK_CRON:
            return self.gridblitz_tick_cron
        return PACE_CRON_MAP.get(self.gridblitz_pace, _DEFAULT_TICK_CRON)
