"""API tests: tick authentication, tick actions, and the read-only season endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from gridblitz.core.seeding import seed_league
from gridblitz.core.simulation import DefaultSimulator
from gridblitz.db.engine import create_engine, get_session
from gridblitz.db.models import Base
from gridblitz.db.repository import Repository
from gridblitz.main import create_app

AUTH = {"Authorization": "Bearer test-tick-secret"}


@pytest.fixture
async def app_and_engine(settings, league):
    """Create test app with an in-memory database holding the default league."""
    application = create_app(settings)
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with get_session(engine) as session:
        await seed_league(Repository(session), league)
    application.state.engine = engine
    application.state.simulator = DefaultSimulator(seed="api")
    yield application, engine
    await engine.dispose()


@pytest.fixture
async def client(app_and_engine):
    application, _ = app_and_engine
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestTickAuth:
    async def test_missing_secret_rejected(self, client):
        resp = await client.post("/api/tick")
        assert resp.status_code == 401

    async def test_wrong_secret_rejected(self, client):
        resp = await client.post("/api/tick", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    async def test_non_bearer_scheme_rejected(self, client):
        resp = await client.post("/api/tick", headers={"Authorization": "test-tick-secret"})
        assert resp.status_code == 401

    async def test_unconfigured_secret_fails_closed(self, app_and_engine, client):
        application, _ = app_and_engine
        application.state.settings.tick_secret = ""
        resp = await client.post("/api/tick", headers={"Authorization": "Bearer "})
        assert resp.status_code == 401


class TestTick:
    async def test_first_tick_creates_season(self, client):
        resp = await client.post("/api/tick", headers=AUTH)
        assert resp.status_code == 200
        body = resp.json()
        assert body["action"] == "create_season"
        assert body["season_number"] == 1
        assert body["message"]

    async def test_get_is_equivalent(self, client):
        await client.post("/api/tick", headers=AUTH)
        resp = await client.get("/api/tick", headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["action"] == "start_game"

    async def test_unexpected_error_is_500(self, client, monkeypatch):
        async def boom(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr("gridblitz.api.tick.tick", boom)
        resp = await client.post("/api/tick", headers=AUTH)
        assert resp.status_code == 500
        assert resp.json() == {"error": "tick_failed", "detail": "disk on fire"}


class TestSeasonEndpoints:
    async def test_no_season_yet(self, client):
        resp = await client.get("/api/seasons/current")
        assert resp.status_code == 404

    async def test_current_schedule_standings(self, client):
        await client.post("/api/tick", headers=AUTH)

        current = (await client.get("/api/seasons/current")).json()["data"]
        assert current["status"] == "regular_season"
        assert current["current_round"] == "Week 1"
        season_id = current["id"]

        week = (await client.get(f"/api/seasons/{season_id}/schedule?week=1")).json()["data"]
        assert len(week) == 16
        assert sum(g["is_featured"] for g in week) == 1
        assert all(g["scheduled_at"] for g in week)

        full = (await client.get(f"/api/seasons/{season_id}/schedule")).json()["data"]
        assert len(full) == 272

        standings = (await client.get(f"/api/seasons/{season_id}/standings")).json()["data"]
        assert len(standings) == 32
        assert all("team_name" in row for row in standings)

    async def test_bracket_before_playoffs(self, client):
        await client.post("/api/tick", headers=AUTH)
        season_id = (await client.get("/api/seasons/current")).json()["data"]["id"]
        resp = await client.get(f"/api/seasons/{season_id}/bracket")
        assert resp.status_code == 404

    async def test_unknown_season(self, client):
        resp = await client.get("/api/seasons/missing/standings")
        assert resp.status_code == 404


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
