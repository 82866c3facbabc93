"""Shared test fixtures."""

import pytest

from gridblitz.config import Settings
from gridblitz.core.seeding import generate_league
from gridblitz.db.engine import create_engine
from gridblitz.db.models import Base


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(
        gridblitz_env="development",
        database_url="sqlite+aiosqlite:///:memory:",
        tick_secret="test-tick-secret",
        auto_seed_league=False,
    )


@pytest.fixture
async def engine():
    eng = create_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def league():
    """The default 32-team league."""
    return generate_league(seed=42)


@pytest.fixture
def teams(league):
    return league.teams
