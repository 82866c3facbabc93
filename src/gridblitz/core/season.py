"""Season lifecycle phases.

A season walks a fixed path, one phase per playoff round:

    REGULAR_SEASON (weeks 1-18) -> WILD_CARD (19) -> DIVISIONAL (20)
        -> CONFERENCE_CHAMPIONSHIP (21) -> SUPER_BOWL (22) -> OFFSEASON

The orchestrator is the only writer of ``SeasonRow.status``; this module
holds the vocabulary and the transition rules it checks against.
"""

from __future__ import annotations

import logging
from enum import StrEnum

logger = logging.getLogger(__name__)

REGULAR_SEASON_WEEKS = 18
TOTAL_WEEKS = 22


class SeasonPhase(StrEnum):
    """All valid season lifecycle phases.

    The str mixin allows direct comparison with raw status strings stored
    in the database (e.g., ``season.status == SeasonPhase.WILD_CARD``).
    """

    REGULAR_SEASON = "regular_season"
    WILD_CARD = "wild_card"
    DIVISIONAL = "divisional"
    CONFERENCE_CHAMPIONSHIP = "conference_championship"
    SUPER_BOWL = "super_bowl"
    OFFSEASON = "offseason"


PLAYOFF_PHASES: tuple[SeasonPhase, ...] = (
    SeasonPhase.WILD_CARD,
    SeasonPhase.DIVISIONAL,
    SeasonPhase.CONFERENCE_CHAMPIONSHIP,
    SeasonPhase.SUPER_BOWL,
)

# Week number of each playoff round.
PLAYOFF_WEEKS: dict[SeasonPhase, int] = {
    SeasonPhase.WILD_CARD: 19,
    SeasonPhase.DIVISIONAL: 20,
    SeasonPhase.CONFERENCE_CHAMPIONSHIP: 21,
    SeasonPhase.SUPER_BOWL: 22,
}

ROUND_NAMES: dict[SeasonPhase, str] = {
    SeasonPhase.WILD_CARD: "Wild Card Round",
    SeasonPhase.DIVISIONAL: "Divisional Round",
    SeasonPhase.CONFERENCE_CHAMPIONSHIP: "Conference Championships",
    SeasonPhase.SUPER_BOWL: "Super Bowl",
}

# Allowed phase transitions. Key = current phase, value = set of valid next phases.
ALLOWED_TRANSITIONS: dict[SeasonPhase, set[SeasonPhase]] = {
    SeasonPhase.REGULAR_SEASON: {SeasonPhase.REGULAR_SEASON, SeasonPhase.WILD_CARD},
    SeasonPhase.WILD_CARD: {SeasonPhase.DIVISIONAL},
    SeasonPhase.DIVISIONAL: {SeasonPhase.CONFERENCE_CHAMPIONSHIP},
    SeasonPhase.CONFERENCE_CHAMPIONSHIP: {SeasonPhase.SUPER_BOWL},
    SeasonPhase.SUPER_BOWL: {SeasonPhase.OFFSEASON},
    SeasonPhase.OFFSEASON: set(),  # terminal; the next season is a new row
}


def normalize_phase(status: str) -> SeasonPhase:
    """Convert a raw status string to a SeasonPhase.

    Raises:
        ValueError: If the status is not a known phase.
    """
    try:
        return SeasonPhase(status)
    except ValueError:
        logger.warning("unknown_season_status status=%s", status)
        raise


def phase_for_week(week: int) -> SeasonPhase:
    """Return the phase a season is in while playing *week*."""
    if 1 <= week <= REGULAR_SEASON_WEEKS:
        return SeasonPhase.REGULAR_SEASON
    for phase, playoff_week in PLAYOFF_WEEKS.items():
        if playoff_week == week:
            return phase
    raise ValueError(f"Week {week} is outside the {TOTAL_WEEKS}-week season")


def next_phase(status: str, current_week: int) -> tuple[SeasonPhase, int]:
    """Return ``(phase, week)`` after the current week is finished.

    Raises:
        ValueError: If the season has nowhere to advance to (Super Bowl week
            completes the season instead, offseason is terminal).
    """
    current = normalize_phase(status)
    if current in (SeasonPhase.SUPER_BOWL, SeasonPhase.OFFSEASON):
        raise ValueError(f"Season in {current.value} cannot advance a week")

    to_week = current_week + 1
    to_phase = phase_for_week(to_week)
    if to_phase not in ALLOWED_TRANSITIONS[current]:
        msg = (
            f"Invalid season transition: {current.value} -> {to_phase.value}. "
            f"Allowed: {sorted(p.value for p in ALLOWED_TRANSITIONS[current])}"
        )
        raise ValueError(msg)
    return to_phase, to_week


def round_name(week: int) -> str:
    """Human label for a week: ``"Week 7"`` or ``"Wild Card Round"``."""
    phase = phase_for_week(week)
    if phase == SeasonPhase.REGULAR_SEASON:
        return f"Week {week}"
    return ROUND_NAMES[phase]
