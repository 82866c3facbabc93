"""Playoff seeding and bracket management.

Seeding: per conference, the four division winners take seeds 1-4 (seed 1
earns the bye) and the best three of the rest take wild cards 5-7.

Bracket: the Wild Card round is known at seeding time (2v7, 3v6, 4v5).
Later rounds depend on results, so they start as ``PendingRound`` and are
populated by ``advance_playoff_bracket`` once the round before them is
complete:

  - Divisional: seed 1 hosts the lowest remaining seed; the other two
    Wild Card winners meet, higher seed hosting.
  - Championship: the two Divisional winners, higher seed hosting.
  - Super Bowl: the two conference champions, conference A nominally home.

``advance_playoff_bracket`` is a pure reducer and idempotent: replaying a
completion returns an equal bracket and never regenerates a round.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from pydantic import BaseModel

from gridblitz.core.standings import rank_standings
from gridblitz.models.league import CONFERENCES, Conference, TeamStanding
from gridblitz.models.playoffs import (
    ConferenceBracket,
    PendingRound,
    PlayoffBracket,
    PlayoffMatchup,
    PlayoffRoundName,
    PopulatedRound,
    SeededTeam,
)

logger = logging.getLogger(__name__)

SEEDS_PER_CONFERENCE = 7
DIVISION_WINNER_SEEDS = 4


class PlayoffSeeds(BaseModel):
    """Seven seeded records per conference plus everyone who missed out."""

    conferences: dict[Conference, list[TeamStanding]]
    eliminated: list[TeamStanding]

    def all_standings(self) -> list[TeamStanding]:
        seeded = [s for conference in self.conferences.values() for s in conference]
        return seeded + self.eliminated


def calculate_playoff_seeds(standings: Iterable[TeamStanding]) -> PlayoffSeeds:
    """Seed both conferences from final regular-season records.

    Returns copies of the input records with ``playoff_seed`` and
    ``clinched`` filled in.

    Raises:
        ValueError: If a conference has too few teams to fill 7 seeds.
    """
    records = list(standings)
    seeded: dict[Conference, list[TeamStanding]] = {}
    eliminated: list[TeamStanding] = []

    for conference in CONFERENCES:
        members = [s for s in records if s.conference == conference]
        divisions = sorted({s.division for s in members})
        if len(divisions) != DIVISION_WINNER_SEEDS or len(members) < SEEDS_PER_CONFERENCE:
            raise ValueError(
                f"Conference {conference} cannot be seeded: "
                f"{len(members)} teams in {len(divisions)} divisions"
            )

        winners = [
            rank_standings(s for s in members if s.division == division)[0]
            for division in divisions
        ]
        winner_ids = {s.team_id for s in winners}
        ranked_winners = rank_standings(winners)
        ranked_rest = rank_standings(s for s in members if s.team_id not in winner_ids)
        wild_cards = ranked_rest[: SEEDS_PER_CONFERENCE - DIVISION_WINNER_SEEDS]

        conference_seeds: list[TeamStanding] = []
        for index, record in enumerate(ranked_winners):
            clinched = "bye" if index == 0 else "division"
            conference_seeds.append(
                record.model_copy(update={"playoff_seed": index + 1, "clinched": clinched})
            )
        for index, record in enumerate(wild_cards):
            conference_seeds.append(
                record.model_copy(
                    update={
                        "playoff_seed": DIVISION_WINNER_SEEDS + index + 1,
                        "clinched": "wild_card",
                    }
                )
            )
        seeded[conference] = conference_seeds
        eliminated.extend(
            record.model_copy(update={"playoff_seed": None, "clinched": "eliminated"})
            for record in ranked_rest[len(wild_cards) :]
        )

    return PlayoffSeeds(conferences=seeded, eliminated=eliminated)


def _matchup(a: SeededTeam, b: SeededTeam) -> PlayoffMatchup:
    """Build a matchup with the higher seed (lower number) hosting."""
    home, away = (a, b) if a.seed < b.seed else (b, a)
    return PlayoffMatchup(
        home_team_id=home.team_id,
        away_team_id=away.team_id,
        home_seed=home.seed,
        away_seed=away.seed,
    )


def generate_wild_card_matchups(seeds: list[SeededTeam]) -> list[PlayoffMatchup]:
    """2v7, 3v6, 4v5. Seed 1 sits out."""
    by_seed = {s.seed: s for s in seeds}
    return [_matchup(by_seed[high], by_seed[low]) for high, low in ((2, 7), (3, 6), (4, 5))]


def generate_divisional_matchups(
    top_seed: SeededTeam, wild_card_winners: list[SeededTeam]
) -> list[PlayoffMatchup]:
    """Seed 1 vs the lowest remaining seed; the other two winners meet."""
    remaining = sorted(wild_card_winners, key=lambda s: s.seed)
    lowest = remaining[-1]
    return [_matchup(top_seed, lowest), _matchup(remaining[0], remaining[1])]


def generate_playoff_bracket(seeds: PlayoffSeeds) -> PlayoffBracket:
    """Initial bracket: Wild Card populated, everything else pending."""
    conferences: dict[Conference, ConferenceBracket] = {}
    for conference, records in seeds.conferences.items():
        seeded = [SeededTeam(team_id=r.team_id, seed=r.playoff_seed or 0) for r in records]
        top = next(s for s in seeded if s.seed == 1)
        conferences[conference] = ConferenceBracket(
            conference=conference,
            top_seed=top,
            wild_card=PopulatedRound(
                name="wild_card", matchups=generate_wild_card_matchups(seeded)
            ),
        )
    return PlayoffBracket(conferences=conferences)


def _winners(round_: PopulatedRound) -> list[SeededTeam]:
    return [
        SeededTeam(team_id=m.winner_team_id, seed=m.winner_seed)
        for m in round_.matchups
        if m.winner_team_id is not None and m.winner_seed is not None
    ]


def _populate_ready_rounds(bracket: PlayoffBracket) -> None:
    """Fill every pending round whose feeder round is complete (in place)."""
    for conference in bracket.conferences.values():
        wild_card = conference.wild_card
        if (
            isinstance(conference.divisional, PendingRound)
            and isinstance(wild_card, PopulatedRound)
            and wild_card.is_complete
        ):
            conference.divisional = PopulatedRound(
                name="divisional",
                matchups=generate_divisional_matchups(conference.top_seed, _winners(wild_card)),
            )
            logger.info(
                "bracket_round_populated conference=%s round=divisional", conference.conference
            )

        divisional = conference.divisional
        if (
            isinstance(conference.championship, PendingRound)
            and isinstance(divisional, PopulatedRound)
            and divisional.is_complete
        ):
            first, second = _winners(divisional)
            conference.championship = PopulatedRound(
                name="conference_championship", matchups=[_matchup(first, second)]
            )
            logger.info(
                "bracket_round_populated conference=%s round=conference_championship",
                conference.conference,
            )

    if isinstance(bracket.super_bowl, PendingRound):
        champions = {c: b.champion for c, b in bracket.conferences.items()}
        if all(champions.get(c) is not None for c in CONFERENCES):
            home, away = champions["A"], champions["B"]
            bracket.super_bowl = PopulatedRound(
                name="super_bowl",
                matchups=[
                    PlayoffMatchup(
                        home_team_id=home.team_id,
                        away_team_id=away.team_id,
                        home_seed=home.seed,
                        away_seed=away.seed,
                    )
                ],
            )
            logger.info("bracket_round_populated round=super_bowl")


def _populated_rounds(bracket: PlayoffBracket) -> list[PopulatedRound]:
    rounds = [
        r
        for conference in bracket.conferences.values()
        for r in (conference.wild_card, conference.divisional, conference.championship)
    ]
    rounds.append(bracket.super_bowl)
    return [r for r in rounds if isinstance(r, PopulatedRound)]


def round_matchups(bracket: PlayoffBracket, name: PlayoffRoundName) -> list[PlayoffMatchup]:
    """All populated matchups of one round, conference A first."""
    return [m for r in _populated_rounds(bracket) if r.name == name for m in r.matchups]


def find_matchup(bracket: PlayoffBracket, game_id: str) -> PlayoffMatchup | None:
    for r in _populated_rounds(bracket):
        for m in r.matchups:
            if m.game_id == game_id:
                return m
    return None


def advance_playoff_bracket(
    bracket: PlayoffBracket,
    game_id: str,
    winner_team_id: str,
    home_score: int,
    away_score: int,
) -> PlayoffBracket:
    """Record a completed playoff game and populate any round it unlocks.

    Pure: returns a new bracket. An unknown ``game_id`` or an already
    recorded result returns *bracket* unchanged.

    Raises:
        ValueError: If *winner_team_id* did not play in the game.
    """
    updated = bracket.model_copy(deep=True)
    matchup = find_matchup(updated, game_id)
    if matchup is None:
        logger.warning("bracket_advance_unknown_game game=%s", game_id)
        return bracket
    if winner_team_id not in (matchup.home_team_id, matchup.away_team_id):
        raise ValueError(f"Team {winner_team_id} did not play in game {game_id}")
    if matchup.is_complete:
        if matchup.winner_team_id != winner_team_id:
            logger.warning(
                "bracket_advance_conflict game=%s recorded=%s replayed=%s",
                game_id,
                matchup.winner_team_id,
                winner_team_id,
            )
        return bracket

    matchup.home_score = home_score
    matchup.away_score = away_score
    matchup.winner_team_id = winner_team_id
    _populate_ready_rounds(updated)
    return updated


def attach_game_ids(
    bracket: PlayoffBracket,
    name: PlayoffRoundName,
    game_ids: Mapping[tuple[str, str], str],
) -> PlayoffBracket:
    """Return a copy with ``game_id`` set on matchups of round *name*.

    *game_ids* maps ``(home_team_id, away_team_id)`` to the persisted game.
    Matchups that already carry an id keep it.
    """
    updated = bracket.model_copy(deep=True)
    for matchup in round_matchups(updated, name):
        if matchup.game_id is None:
            matchup.game_id = game_ids.get((matchup.home_team_id, matchup.away_team_id))
    return updated
