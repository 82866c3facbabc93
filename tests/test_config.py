"""Tests for application configuration."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from gridblitz.config import Settings, TimingConfig


class TestTickSecret:
    def test_production_requires_secret(self) -> None:
        with pytest.raises(ValidationError, match="TICK_SECRET"):
            Settings(gridblitz_env="production", tick_secret="")

    def test_production_with_secret(self) -> None:
        settings = Settings(gridblitz_env="production", tick_secret="s3cret")
        assert settings.tick_secret == "s3cret"

    def test_development_allows_empty_secret(self) -> None:
        settings = Settings(gridblitz_env="development", tick_secret="")
        assert settings.tick_secret == ""


class TestTiming:
    def test_defaults(self) -> None:
        timing = Settings(gridblitz_env="development").timing()
        assert timing == TimingConfig()
        assert timing.intermission == timedelta(minutes=15)
        assert timing.week_break == timedelta(minutes=30)
        assert timing.offseason == timedelta(minutes=30)
        assert timing.broadcast_buffer == timedelta(seconds=60)
        assert timing.simulation_timeout == timedelta(minutes=10)

    def test_overrides(self) -> None:
        settings = Settings(gridblitz_env="development", intermission_seconds=60)
        assert settings.timing().intermission == timedelta(seconds=60)

    def test_non_positive_duration_rejected(self) -> None:
        with pytest.raises(ValidationError, match="week_break_seconds"):
            Settings(gridblitz_env="development", week_break_seconds=0)

    def test_negative_buffer_rejected(self) -> None:
        with pytest.raises(ValidationError, match="broadcast_buffer_seconds"):
            Settings(gridblitz_env="development", broadcast_buffer_seconds=-1)


class TestTickCron:
    def test_pace_drives_cron(self) -> None:
        settings = Settings(gridblitz_env="development", gridblitz_pace="fast")
        assert settings.effective_tick_cron() == "*/1 * * * *"

    def test_manual_pace_disables_job(self) -> None:
        settings = Settings(gridblitz_env="development", gridblitz_pace="manual")
        assert settings.effective_tick_cron() is None

    def test_explicit_cron_wins(self) -> None:
        settings = Settings(
            gridblitz_env="development",
            gridblitz_pace="manual",
            gridblitz_tick_cron="*/3 * * * *",
        )
        assert settings.effective_tick_cron() == "*/3 * * * *"
