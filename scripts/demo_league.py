"""Seed a GridBlitz league and drive it with ticks for demo purposes.

Usage:
    python scripts/demo_league.py seed [LEAGUE.yaml]   # Insert the league (generated or from YAML)
    python scripts/demo_league.py export LEAGUE.yaml   # Write the generated league to YAML
    python scripts/demo_league.py run N [MINUTES]      # N ticks on a virtual clock, MINUTES apart
    python scripts/demo_league.py status               # Print season state and standings

The virtual clock starts at the current time on every run, so ``run`` is
best used with a generous N (a regular-season week is roughly 16 games x
45 minutes of simulated time).

Uses a local SQLite database (demo_gridblitz.db).
"""

from __future__ import annotations

import asyncio
import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

from gridblitz.core.orchestrator import tick
from gridblitz.core.season import round_name
from gridblitz.core.seeding import generate_league, load_league_yaml, save_league_yaml, seed_league
from gridblitz.core.simulation import DefaultSimulator
from gridblitz.core.standings import rank_standings
from gridblitz.db.engine import create_engine, create_tables, get_session
from gridblitz.db.repository import Repository

DEMO_DB = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///demo_gridblitz.db")


async def seed(path: str | None = None):
    config = load_league_yaml(Path(path)) if path else generate_league()
    engine = create_engine(DEMO_DB)
    await create_tables(engine)
    async with get_session(engine) as session:
        inserted = await seed_league(Repository(session), config)
    await engine.dispose()
    print(f"League seeded: {inserted} teams inserted ({config.name})")


def export(path: str):
    save_league_yaml(generate_league(), Path(path))
    print(f"League written to {path}")


async def run(ticks: int, minutes: int = 5):
    engine = create_engine(DEMO_DB)
    await create_tables(engine)
    simulator = DefaultSimulator()
    clock = datetime.now(UTC)
    for _ in range(ticks):
        action = await tick(engine, simulator=simulator, now=clock)
        if action.action != "idle":
            print(f"[{clock:%a %H:%M}] {action.action}: {action.message}")
        clock += timedelta(minutes=minutes)
    await engine.dispose()


async def status():
    engine = create_engine(DEMO_DB)
    await create_tables(engine)
    async with get_session(engine) as session:
        repo = Repository(session)
        season = await repo.get_current_season()
        teams = {t.id: t for t in await repo.get_all_teams()}
        standings = await repo.get_team_standings(season.id) if season else {}
    await engine.dispose()

    if season is None:
        print("No season found. Run 'seed' then 'run'.")
        return
    print(
        f"Season {season.season_number} | {season.status} | {round_name(season.current_week)}"
    )
    if season.champion_team_id:
        print(f"Champion: {teams[season.champion_team_id].name}")
    print(f"{'Team':<28} {'W':>3} {'L':>3} {'T':>3} {'PF':>5} {'PA':>5} {'STRK':>5} {'SEED':>4}")
    print("-" * 62)
    for s in rank_standings(standings.values()):
        seed_label = str(s.playoff_seed) if s.playoff_seed else ""
        print(
            f"{teams[s.team_id].name:<28} {s.wins:>3} {s.losses:>3} {s.ties:>3} "
            f"{s.points_for:>5} {s.points_against:>5} {s.streak:>5} {seed_label:>4}"
        )


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        return

    cmd = sys.argv[1]
    if cmd == "seed":
        asyncio.run(seed(sys.argv[2] if len(sys.argv) > 2 else None))
    elif cmd == "export":
        if len(sys.argv) < 3:
            print("Usage: demo_league.py export LEAGUE.yaml")
            return
        export(sys.argv[2])
    elif cmd == "run":
        n = int(sys.argv[2]) if len(sys.argv) > 2 else 1
        minutes = int(sys.argv[3]) if len(sys.argv) > 3 else 5
        asyncio.run(run(n, minutes))
    elif cmd == "status":
        asyncio.run(status())
    else:
        print(f"Unknown command: {cmd}")
        print(__doc__)


if __name__ == "__main__":
    main()
