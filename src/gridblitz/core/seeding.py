"""League seeding: YAML config loading and league generation.

Supports two flows:
1. Load from YAML (hand-authored league file)
2. Generate programmatically: 2 conferences x 4 divisions x 4 teams with
   rating variance and a small roster per team
"""

from __future__ import annotations

import logging
import random
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, Field

from gridblitz.models.league import CONFERENCES, DIVISIONS, Player, Team

if TYPE_CHECKING:
    from gridblitz.db.repository import Repository

logger = logging.getLogger(__name__)

# 32 (city, nickname, colour) entries, dealt 16 per conference in order.
_TEAM_DATA: list[tuple[str, str, str]] = [
    ("Albany", "Anvils", "#8B0000"),
    ("Baltimore", "Bluecoats", "#002B5C"),
    ("Boise", "Broncs", "#D35400"),
    ("Buffalo", "Blizzard", "#1F4E79"),
    ("Charlotte", "Chargers", "#00778B"),
    ("Cleveland", "Cyclones", "#4B2E83"),
    ("Columbus", "Comets", "#BB0000"),
    ("Denver", "Peaks", "#FF6F00"),
    ("El Paso", "Outlaws", "#7A4A1E"),
    ("Hartford", "Hawks", "#2E4053"),
    ("Kansas City", "Kings", "#C8102E"),
    ("Las Vegas", "Aces", "#111111"),
    ("Louisville", "Thoroughbreds", "#006847"),
    ("Memphis", "Pharaohs", "#D4AF37"),
    ("Milwaukee", "Mariners", "#0B5394"),
    ("Nashville", "Sound", "#4D9DE0"),
    ("Oakland", "Redwoods", "#2D5016"),
    ("Oklahoma City", "Twisters", "#E67E22"),
    ("Omaha", "Stampede", "#8E44AD"),
    ("Orlando", "Suns", "#F1C40F"),
    ("Portland", "Pioneers", "#1E8449"),
    ("Providence", "Friars", "#34495E"),
    ("Raleigh", "Oaks", "#A93226"),
    ("Richmond", "Rebels", "#922B21"),
    ("Sacramento", "Gold", "#B7950B"),
    ("Salt Lake", "Summit", "#5DADE2"),
    ("San Antonio", "Missions", "#717D7E"),
    ("San Diego", "Surf", "#17A589"),
    ("St. Louis", "Arches", "#154360"),
    ("Toronto", "Huskies", "#C0392B"),
    ("Tulsa", "Drillers", "#6E2C00"),
    ("Vancouver", "Orcas", "#0E6655"),
]

# Roster template: (position, jersey number).
_ROSTER: list[tuple[str, int]] = [
    ("QB", 12),
    ("RB", 28),
    ("WR", 11),
    ("WR", 84),
    ("TE", 87),
    ("DEF", 55),
    ("DEF", 24),
    ("K", 3),
]


class LeagueConfig(BaseModel):
    """Configuration for an entire league."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "GridBlitz League"
    teams: list[Team] = Field(default_factory=list)


def _rating(rng: random.Random, base: int, variance: int) -> int:
    return max(40, min(99, base + rng.randint(-variance, variance)))


def generate_league(seed: int = 42) -> LeagueConfig:
    """Generate the default 32-team league.

    Ids are uuid5 values derived from the seed, so the same seed always
    yields the same league.
    """
    rng = random.Random(seed)
    teams: list[Team] = []
    index = 0
    for conference in CONFERENCES:
        for division in DIVISIONS:
            for _ in range(4):
                city, nickname, color = _TEAM_DATA[index]
                team_id = str(uuid.uuid5(uuid.NAMESPACE_DNS, f"team-{seed}-{index}"))
                players = [
                    Player(
                        id=str(uuid.uuid5(uuid.NAMESPACE_DNS, f"player-{seed}-{index}-{slot}")),
                        team_id=team_id,
                        name=f"{nickname} {position} {number}",
                        position=position,
                        number=number,
                        rating=_rating(rng, 72, 12),
                    )
                    for slot, (position, number) in enumerate(_ROSTER)
                ]
                teams.append(
                    Team(
                        id=team_id,
                        name=f"{city} {nickname}",
                        city=city,
                        abbreviation=(city[:2] + nickname[:1]).upper().replace(" ", "X"),
                        conference=conference,
                        division=division,
                        offense_rating=_rating(rng, 78, 14),
                        defense_rating=_rating(rng, 78, 14),
                        special_teams_rating=_rating(rng, 75, 10),
                        color=color,
                        players=players,
                    )
                )
                index += 1
    return LeagueConfig(teams=teams)


def save_league_yaml(config: LeagueConfig, path: Path) -> None:
    """Save league config to YAML."""
    data = config.model_dump()
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_league_yaml(path: Path) -> LeagueConfig:
    """Load league config from YAML."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return LeagueConfig.model_validate(data)


async def seed_league(repo: Repository, config: LeagueConfig) -> int:
    """Insert the league's teams and rosters if the store has no teams yet.

    Returns the number of teams inserted (0 when already seeded).
    """
    existing = await repo.count_teams()
    if existing:
        logger.info("league_seed_skip: %d teams already present", existing)
        return 0

    for team in config.teams:
        await repo.create_team(
            name=team.name,
            city=team.city,
            abbreviation=team.abbreviation,
            conference=team.conference,
            division=team.division,
            offense_rating=team.offense_rating,
            defense_rating=team.defense_rating,
            special_teams_rating=team.special_teams_rating,
            color=team.color,
            team_id=team.id,
        )
        for player in team.players:
            await repo.create_player(
                team_id=team.id,
                name=player.name,
                position=player.position,
                number=player.number,
                rating=player.rating,
                player_id=player.id,
            )
    logger.info("league_seeded league=%s teams=%d", config.name, len(config.teams))
    return len(config.teams)
