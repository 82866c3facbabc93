"""Regular-season schedule generation.

Produces an 18-week, 17-game-per-team schedule for a 32-team league
(2 conferences x 4 divisions x 4 teams), deterministically from a seed.

Every team plays:
  - 6 divisional games (home and away against each of its 3 rivals)
  - 4 cross-division games (all of one other division in its conference)
  - 4 inter-conference games (all of one paired division in the other conference)
  - 3 extra conference games against the two remaining same-conference divisions

How it works: each team gets a 5-bit *label* (conference, division position,
slot within division) drawn from seeded shuffles. Every structural "round" of
games is then the pairing ``label <-> label ^ vector`` for a fixed vector, so
each round is a perfect matching of the league: all 32 teams play once.
17 such rounds make up the season. Eight rounds fill the bye-free weeks
(1-4, 15-18). The other nine share weeks 5-14 with the byes: a phantom
"bye round" is added and colour-swapped with real rounds four teams at a
time, so every team sits out exactly once and every week stays a valid
matching.

The stage pipeline (pool, dedupe, trim, byes, placement, home/away
rebalance, divisional spread) runs on top of that structure; the final
schedule is validated before it is returned.
"""

from __future__ import annotations

import logging
import random
from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from gridblitz.core.season import REGULAR_SEASON_WEEKS
from gridblitz.models.league import CONFERENCES, DIVISIONS, Team

logger = logging.getLogger(__name__)

LEAGUE_SIZE = 32
TEAMS_PER_DIVISION = 4
GAMES_PER_TEAM = 17
BYE_WEEK_START = 5
BYE_WEEK_END = 14
MIN_HOME_GAMES = 8
MAX_HOME_GAMES = 9

# Random weeks tried per matchup before falling back to the least-full week.
_SEARCH_ATTEMPTS = 6

MatchupKind = Literal["divisional", "cross_division", "inter_conference", "conference_extra"]


class ScheduleError(ValueError):
    """The league shape or the produced schedule breaks a structural rule."""


@dataclass
class Matchup:
    """A single scheduled regular-season game."""

    home_team_id: str
    away_team_id: str
    kind: MatchupKind = "divisional"
    round_key: str = ""

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def swap_sides(self) -> None:
        self.home_team_id, self.away_team_id = self.away_team_id, self.home_team_id


@dataclass
class SeasonSchedule:
    """Eighteen weeks of matchups plus each team's bye week."""

    seed: str
    weeks: list[list[Matchup]] = field(default_factory=list)
    bye_weeks: dict[str, int] = field(default_factory=dict)

    @property
    def matchups(self) -> list[Matchup]:
        return [m for week in self.weeks for m in week]

    def week_of(self, matchup: Matchup) -> int:
        """1-based week a matchup is played in."""
        for index, week in enumerate(self.weeks):
            if any(m is matchup for m in week):
                return index + 1
        raise ValueError("matchup is not part of this schedule")

    def games_for_team(self, team_id: str) -> list[tuple[int, Matchup]]:
        """``(week, matchup)`` pairs for one team, in week order."""
        return [
            (index + 1, m)
            for index, week in enumerate(self.weeks)
            for m in week
            if m.involves(team_id)
        ]


# ---------------------------------------------------------------------------
# Round structure
# ---------------------------------------------------------------------------

# Label bits: conference (bit 4), division position (bits 3-2), slot (bits 1-0).
_CONFERENCE_BIT = 0b10000


@dataclass(frozen=True)
class _Round:
    key: str
    vector: int
    kind: MatchupKind


_ROUNDS: tuple[_Round, ...] = (
    # Divisional: every slot pairing, played twice (a = lower slot hosts).
    _Round("div-1a", 0b00001, "divisional"),
    _Round("div-1b", 0b00001, "divisional"),
    _Round("div-2a", 0b00010, "divisional"),
    _Round("div-2b", 0b00010, "divisional"),
    _Round("div-3a", 0b00011, "divisional"),
    _Round("div-3b", 0b00011, "divisional"),
    # Cross-division: position p meets position p ^ 1, every slot.
    _Round("cross-0", 0b00100, "cross_division"),
    _Round("cross-1", 0b00101, "cross_division"),
    _Round("cross-2", 0b00110, "cross_division"),
    _Round("cross-3", 0b00111, "cross_division"),
    # Inter-conference: same position in the other conference, every slot.
    _Round("inter-0", 0b10000, "inter_conference"),
    _Round("inter-1", 0b10001, "inter_conference"),
    _Round("inter-2", 0b10010, "inter_conference"),
    _Round("inter-3", 0b10011, "inter_conference"),
    # Extra conference games against positions p ^ 2 and p ^ 3.
    _Round("extra-8", 0b01000, "conference_extra"),
    _Round("extra-9", 0b01001, "conference_extra"),
    _Round("extra-12", 0b01100, "conference_extra"),
)

_ROUNDS_BY_KEY: dict[str, _Round] = {r.key: r for r in _ROUNDS}

# Rounds played across weeks 5-14 alongside the byes; the rest get a full
# bye-free week each.
_BYE_BLOCK_ROUNDS: tuple[str, ...] = (
    "div-1a",
    "div-2a",
    "div-3a",
    "cross-0",
    "cross-1",
    "inter-0",
    "inter-1",
    "extra-8",
    "extra-9",
)
_FULL_WEEKS: tuple[int, ...] = (1, 2, 3, 4, 15, 16, 17, 18)
_BYE_WEEKS: tuple[int, ...] = tuple(range(BYE_WEEK_START, BYE_WEEK_END + 1))

# Phantom round pairing bye partners. Must not be a vector of a block round.
_BYE_VECTOR = 0b01010
_BYE_COLOR = "bye"
# Teams per bye group (one colour swap). 7 groups leave 4 teams for the
# phantom round's own week: eight weeks of 4 byes, two weeks of none.
_BYE_GROUP_SIZE = 4
_BYE_GROUPS = (LEAGUE_SIZE - _BYE_GROUP_SIZE) // _BYE_GROUP_SIZE
_BYE_DEAL_ATTEMPTS = 64


def _slot(label: int) -> int:
    return label & 0b11


def _position(label: int) -> int:
    return (label >> 2) & 0b11


def _home_label(key: str, x: int, y: int) -> int:
    """Pick the host of the pair ``(x, y)`` in round *key*.

    The rules give every team 3 divisional, 2 cross-division, 2
    inter-conference and 1-2 extra home games: 8 or 9 in total.
    """
    r = _ROUNDS_BY_KEY[key]
    s = _slot(r.vector)
    if r.kind == "divisional":
        low, high = min(x, y), max(x, y)
        return low if key.endswith("a") else high
    if r.kind == "cross_division":
        even = x if _position(x) % 2 == 0 else y
        return even if s in (0, 3) else x ^ y ^ even
    if r.kind == "inter_conference":
        first = x if not x & _CONFERENCE_BIT else y
        return first if s in (0, 3) else x ^ y ^ first
    # conference_extra: "low" side holds positions 0-1
    low = x if _position(x) < 2 else y
    high = x ^ y ^ low
    if key == "extra-8":
        return low
    if key == "extra-9":
        return high
    return low if _slot(low) % 2 == 0 else high


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def _validate_league(teams: Sequence[Team]) -> None:
    if len(teams) != LEAGUE_SIZE:
        raise ScheduleError(f"Schedule needs exactly {LEAGUE_SIZE} teams, got {len(teams)}")
    if len({t.id for t in teams}) != LEAGUE_SIZE:
        raise ScheduleError("Team ids must be unique")
    shape = Counter((t.conference, t.division) for t in teams)
    for conference in CONFERENCES:
        for division in DIVISIONS:
            count = shape.get((conference, division), 0)
            if count != TEAMS_PER_DIVISION:
                raise ScheduleError(
                    f"Division {conference}{division} has {count} teams, "
                    f"expected {TEAMS_PER_DIVISION}"
                )


def _label_teams(teams: Sequence[Team], rng: random.Random) -> dict[str, int]:
    """Assign each team its 5-bit label from seeded shuffles."""
    labels: dict[str, int] = {}
    for c_index, conference in enumerate(CONFERENCES):
        divisions = list(DIVISIONS)
        rng.shuffle(divisions)
        for position, division in enumerate(divisions):
            members = sorted(
                t.id for t in teams if t.conference == conference and t.division == division
            )
            rng.shuffle(members)
            for slot, team_id in enumerate(members):
                labels[team_id] = (c_index << 4) | (position << 2) | slot
    return labels


def _build_matchup_pool(labels: dict[str, int]) -> list[Matchup]:
    """Stage 1: every game of every structural round."""
    by_label = {label: team_id for team_id, label in labels.items()}
    pool: list[Matchup] = []
    for r in _ROUNDS:
        for x in range(LEAGUE_SIZE):
            y = x ^ r.vector
            if x > y:
                continue
            home = _home_label(r.key, x, y)
            away = x ^ y ^ home
            pool.append(Matchup(by_label[home], by_label[away], r.kind, r.key))
    return pool


def _deduplicate(pool: list[Matchup]) -> list[Matchup]:
    """Stage 2: one directed meeting per ordered divisional pair, one per other pair."""
    seen: set[tuple[str, ...]] = set()
    unique: list[Matchup] = []
    for m in pool:
        if m.kind == "divisional":
            key: tuple[str, ...] = (m.home_team_id, m.away_team_id)
        else:
            key = tuple(sorted((m.home_team_id, m.away_team_id)))
        if key in seen:
            continue
        seen.add(key)
        unique.append(m)
    return unique


def _enforce_game_count(pool: list[Matchup], rng: random.Random) -> list[Matchup]:
    """Stage 3: cap every team at 17 games, divisional games first."""
    divisional = [m for m in pool if m.kind == "divisional"]
    others = [m for m in pool if m.kind != "divisional"]
    rng.shuffle(divisional)
    rng.shuffle(others)

    counts: Counter[str] = Counter()
    kept: list[Matchup] = []
    for m in divisional + others:
        if counts[m.home_team_id] >= GAMES_PER_TEAM or counts[m.away_team_id] >= GAMES_PER_TEAM:
            continue
        counts[m.home_team_id] += 1
        counts[m.away_team_id] += 1
        kept.append(m)

    short = sorted(t for t, n in counts.items() if n != GAMES_PER_TEAM)
    if short or len(counts) != LEAGUE_SIZE:
        raise ScheduleError(f"Matchup pool leaves teams short of {GAMES_PER_TEAM} games: {short}")
    return kept


@dataclass
class _WeekPlan:
    """Bye weeks plus the template week of every matchup."""

    bye_weeks: dict[str, int]
    template: dict[tuple[str, str], int]


def _find_free_group(vector: int, order: list[int], claimed: set[int]) -> tuple[int, ...] | None:
    for x in order:
        group = (x, x ^ _BYE_VECTOR, x ^ vector, x ^ vector ^ _BYE_VECTOR)
        if not claimed.intersection(group):
            return group
    return None


def _deal_bye_groups(rng: random.Random) -> dict[int, str]:
    """Deal one bye group to each of ``_BYE_GROUPS`` distinct block rounds.

    A dead end (a round with no group disjoint from those already dealt)
    reshuffles and starts over, so no bye week ever holds two groups.
    """
    deal_order = list(_BYE_BLOCK_ROUNDS)
    label_order = list(range(LEAGUE_SIZE))
    for _ in range(_BYE_DEAL_ATTEMPTS):
        rng.shuffle(deal_order)
        rng.shuffle(label_order)
        claimed: set[int] = set()
        group_color: dict[int, str] = {}
        for key in deal_order:
            group = _find_free_group(_ROUNDS_BY_KEY[key].vector, label_order, claimed)
            if group is None:
                continue
            claimed.update(group)
            for label in group:
                group_color[label] = key
            if len(claimed) == _BYE_GROUPS * _BYE_GROUP_SIZE:
                return group_color
    raise ScheduleError(f"Could not deal {_BYE_GROUPS} disjoint bye groups")


def _assign_byes(
    labels: dict[str, int],
    matchups: list[Matchup],
    rng: random.Random,
) -> _WeekPlan:
    """Stage 4: one bye per team in weeks 5-14, plus the template week layout.

    Seven bye groups of four go to seven different block rounds. A group
    ``{x, x^p, x^v, x^v^p}`` swaps the phantom bye round ``p`` with real
    round ``v``: the group sits out in round ``v``'s week and plays its
    round-``v`` games in the phantom round's week instead.
    """
    by_label = {label: team_id for team_id, label in labels.items()}

    colors = [*_BYE_BLOCK_ROUNDS, _BYE_COLOR]
    weeks = list(_BYE_WEEKS)
    rng.shuffle(weeks)
    week_of_color = dict(zip(colors, weeks, strict=True))

    full_rounds = [r.key for r in _ROUNDS if r.key not in _BYE_BLOCK_ROUNDS]
    full_weeks = list(_FULL_WEEKS)
    rng.shuffle(full_weeks)
    week_of_full_round = dict(zip(full_rounds, full_weeks, strict=True))

    group_color = _deal_bye_groups(rng)

    bye_weeks = {
        by_label[label]: week_of_color[group_color.get(label, _BYE_COLOR)]
        for label in range(LEAGUE_SIZE)
    }

    template: dict[tuple[str, str], int] = {}
    for m in matchups:
        if m.round_key not in _BYE_BLOCK_ROUNDS:
            week = week_of_full_round[m.round_key]
        elif group_color.get(labels[m.home_team_id]) == m.round_key:
            week = week_of_color[_BYE_COLOR]
        else:
            week = week_of_color[m.round_key]
        template[(m.home_team_id, m.away_team_id)] = week

    return _WeekPlan(bye_weeks=bye_weeks, template=template)


def _place_matchups(
    matchups: list[Matchup],
    plan: _WeekPlan,
    rng: random.Random,
) -> list[list[Matchup]]:
    """Stage 5: put every matchup in a week.

    Each matchup tries its template week, then a few seeded random weeks,
    then the least-full legal week.
    """
    weeks: list[list[Matchup]] = [[] for _ in range(REGULAR_SEASON_WEEKS)]
    busy: list[set[str]] = [set() for _ in range(REGULAR_SEASON_WEEKS)]

    def legal(m: Matchup, week: int) -> bool:
        index = week - 1
        return (
            m.home_team_id not in busy[index]
            and m.away_team_id not in busy[index]
            and plan.bye_weeks[m.home_team_id] != week
            and plan.bye_weeks[m.away_team_id] != week
        )

    ordered = [m for m in matchups if m.kind == "divisional"]
    ordered += [m for m in matchups if m.kind != "divisional"]
    all_weeks = list(range(1, REGULAR_SEASON_WEEKS + 1))
    forced = 0

    for m in ordered:
        candidates = [plan.template[(m.home_team_id, m.away_team_id)]]
        candidates += rng.sample(all_weeks, _SEARCH_ATTEMPTS)
        week = next((w for w in candidates if legal(m, w)), None)
        if week is None:
            open_weeks = [w for w in all_weeks if legal(m, w)]
            if not open_weeks:
                raise ScheduleError(
                    f"No legal week for {m.home_team_id} vs {m.away_team_id}"
                )
            week = min(open_weeks, key=lambda w: (len(weeks[w - 1]), w))
            forced += 1
        weeks[week - 1].append(m)
        busy[week - 1].update((m.home_team_id, m.away_team_id))

    if forced:
        logger.warning("schedule_force_placed count=%d", forced)
    return weeks


def _balance_home_away(weeks: list[list[Matchup]]) -> int:
    """Stage 6: flip non-divisional games until home counts sit in [8, 9].

    Divisional games are left alone so each rival pair keeps one home game
    apiece. Returns the number of swaps made.
    """
    home_counts: Counter[str] = Counter(m.home_team_id for week in weeks for m in week)
    swaps = 0
    for week in weeks:
        for m in week:
            if m.kind == "divisional":
                continue
            if (
                home_counts[m.home_team_id] > MAX_HOME_GAMES
                and home_counts[m.away_team_id] < MIN_HOME_GAMES
            ):
                home_counts[m.home_team_id] -= 1
                home_counts[m.away_team_id] += 1
                m.swap_sides()
                swaps += 1
    return swaps


def _interleave(week_numbers: list[int], heavy: set[int]) -> list[int]:
    heavy_weeks = [w for w in week_numbers if w in heavy]
    light_weeks = [w for w in week_numbers if w not in heavy]
    first, second = (
        (heavy_weeks, light_weeks)
        if len(heavy_weeks) > len(light_weeks)
        else (light_weeks, heavy_weeks)
    )
    result: list[int] = []
    for i in range(max(len(first), len(second))):
        if i < len(first):
            result.append(first[i])
        if i < len(second):
            result.append(second[i])
    return result


def _spread_divisional_games(
    weeks: list[list[Matchup]],
    bye_weeks: dict[str, int],
) -> tuple[list[list[Matchup]], dict[str, int]]:
    """Stage 7 (cosmetic): alternate divisional-heavy and light weeks.

    Whole weeks are reordered within their group (bye-free weeks among
    themselves, bye weeks among themselves), so no invariant can break.
    """
    heavy = {
        index + 1
        for index, week in enumerate(weeks)
        if week and sum(m.kind == "divisional" for m in week) * 2 > len(week)
    }
    mapping: dict[int, int] = {}
    for group in (list(_FULL_WEEKS), list(_BYE_WEEKS)):
        for target, source in zip(group, _interleave(group, heavy), strict=True):
            mapping[source] = target

    spread: list[list[Matchup]] = [[] for _ in range(REGULAR_SEASON_WEEKS)]
    for source, target in mapping.items():
        spread[target - 1] = weeks[source - 1]
    return spread, {team_id: mapping[week] for team_id, week in bye_weeks.items()}


def validate_schedule(schedule: SeasonSchedule, teams: Sequence[Team]) -> None:
    """Raise ScheduleError unless *schedule* meets every structural rule."""
    if len(schedule.weeks) != REGULAR_SEASON_WEEKS:
        raise ScheduleError(f"Expected {REGULAR_SEASON_WEEKS} weeks, got {len(schedule.weeks)}")

    division_of = {t.id: (t.conference, t.division) for t in teams}
    for team in teams:
        games = schedule.games_for_team(team.id)
        if len(games) != GAMES_PER_TEAM:
            raise ScheduleError(f"Team {team.id} has {len(games)} games")

        played_weeks = [week for week, _ in games]
        if len(set(played_weeks)) != len(played_weeks):
            raise ScheduleError(f"Team {team.id} plays twice in one week")

        idle = set(range(1, REGULAR_SEASON_WEEKS + 1)) - set(played_weeks)
        if len(idle) != 1:
            raise ScheduleError(f"Team {team.id} has {len(idle)} bye weeks")
        bye = idle.pop()
        if not BYE_WEEK_START <= bye <= BYE_WEEK_END:
            raise ScheduleError(f"Team {team.id} has its bye in week {bye}")
        if schedule.bye_weeks.get(team.id) != bye:
            raise ScheduleError(f"Team {team.id} bye week is recorded incorrectly")

        home = sum(m.home_team_id == team.id for _, m in games)
        if not MIN_HOME_GAMES <= home <= MAX_HOME_GAMES:
            raise ScheduleError(f"Team {team.id} has {home} home games")

        rivals = [
            t.id for t in teams if t.id != team.id and division_of[t.id] == division_of[team.id]
        ]
        for rival in rivals:
            meetings = [m for _, m in games if m.involves(rival)]
            hosted = sum(m.home_team_id == team.id for m in meetings)
            if len(meetings) != 2 or hosted != 1:
                raise ScheduleError(f"Team {team.id} meets rival {rival} {len(meetings)} times")


def generate_schedule(teams: Sequence[Team], seed: str) -> SeasonSchedule:
    """Generate the regular-season schedule for a 32-team league.

    Args:
        teams: 32 teams, 4 per (conference, division).
        seed: Season seed; the same teams and seed give the same schedule.

    Returns:
        A validated SeasonSchedule with 18 weeks and one bye per team.

    Raises:
        ScheduleError: If the league shape is wrong or a valid schedule
            could not be produced.
    """
    _validate_league(teams)
    ordered_teams = sorted(teams, key=lambda t: t.id)
    rng = random.Random(f"{seed}:schedule-gen")

    labels = _label_teams(ordered_teams, rng)
    pool = _build_matchup_pool(labels)
    matchups = _enforce_game_count(_deduplicate(pool), rng)
    plan = _assign_byes(labels, matchups, rng)
    weeks = _place_matchups(matchups, plan, rng)
    swaps = _balance_home_away(weeks)
    weeks, bye_weeks = _spread_divisional_games(weeks, plan.bye_weeks)

    schedule = SeasonSchedule(seed=seed, weeks=weeks, bye_weeks=bye_weeks)
    validate_schedule(schedule, ordered_teams)
    logger.info(
        "schedule_generated seed=%s games=%d home_away_swaps=%d",
        seed,
        len(schedule.matchups),
        swaps,
    )
    return schedule
