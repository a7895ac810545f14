from __future__ import annotations

import logging
from dataclasses import dataclass, field

from gridflow.contracts import RandomSource, TeamSide
from gridflow.core.randomness import roll_2d6, roll_die
from gridflow.rules.long_gain import resolve_long_gain
from gridflow.rules.spots import advance, touchback_spot, yards_to_goal
from gridflow.rules.tables import (
    NORMAL_KICKOFF_TABLE,
    ONSIDE_KICK_TABLE,
    PLACE_KICK_COLUMNS,
    PLACE_KICK_TABLE,
    PUNT_DISTANCE_TABLE,
    PUNT_RETURN_TABLE,
)

logger = logging.getLogger(__name__)

KICKOFF_CAP = 50
KICKOFF_FALLBACK_YARD_LINE = 25
KICKOFF_PENALTY_YARDS = 10
FIELD_GOAL_SNAP_YARDS = 17
TWO_POINT_SUCCESS = 0.5
PUNT_MUFF_CHANCE = 0.15
PUNT_MUFF_RECOVERY = 0.5


@dataclass(slots=True)
class KickoffResult:
    """Yard line is measured from the receiving team's goal line."""

    yard_line: int
    turnover: bool = False
    penalty: bool = False
    rolls: list[int] = field(default_factory=list)


@dataclass(slots=True)
class PuntResult:
    ball_on: int
    possession: TeamSide
    distance: int
    return_yards: int = 0
    touchback: bool = False
    fair_catch: bool = False
    muffed: bool = False


def parse_kickoff_yard_line(entry: str | int | None, random_source: RandomSource) -> int:
    if isinstance(entry, int):
        return entry
    if entry == "LG":
        return min(resolve_long_gain(random_source), KICKOFF_CAP)
    if entry == "LG + 5":
        return min(resolve_long_gain(random_source) + 5, KICKOFF_CAP)
    return KICKOFF_FALLBACK_YARD_LINE


def resolve_onside(random_source: RandomSource, kicker_leading_or_tied: bool) -> KickoffResult:
    roll = roll_die(random_source, 6)
    rolls = [roll]
    if kicker_leading_or_tied:
        roll = min(6, roll + 1)
    entry = ONSIDE_KICK_TABLE.get(roll, {"recovered_by": "receiving", "yard_line": 35})
    return KickoffResult(yard_line=int(entry["yard_line"]), turnover=entry["recovered_by"] == "kicking", rolls=rolls)


def resolve_kickoff(random_source: RandomSource, *, onside: bool = False, kicker_leading_or_tied: bool = False) -> KickoffResult:
    """Roll a kickoff.

    A starred entry sets its fumble or penalty marker and forces a reroll; a
    starred reroll of the same kind cancels the marker.
    """
    if onside:
        return resolve_onside(random_source, kicker_leading_or_tied)

    roll = roll_2d6(random_source)
    rolls = [roll]
    entry = NORMAL_KICKOFF_TABLE.get(roll)
    turnover = False
    penalty = False
    if isinstance(entry, str) and "*" in entry:
        turnover = "FUMBLE" in entry.upper()
        penalty = "PENALTY" in entry.upper()
        reroll = roll_2d6(random_source)
        rolls.append(reroll)
        entry = NORMAL_KICKOFF_TABLE.get(reroll)
        if isinstance(entry, str) and "*" in entry:
            if "FUMBLE" in entry.upper():
                turnover = False
            if "PENALTY" in entry.upper():
                penalty = False
            entry = entry.replace("*", "").strip()

    yard_line = parse_kickoff_yard_line(entry, random_source)
    if penalty:
        yard_line = max(0, yard_line - KICKOFF_PENALTY_YARDS)
    return KickoffResult(yard_line=yard_line, turnover=turnover, penalty=penalty, rolls=rolls)


def resolve_punt(ball_on: int, punting_side: TeamSide, random_source: RandomSource) -> PuntResult:
    receiving = punting_side.opponent
    distance = PUNT_DISTANCE_TABLE[roll_2d6(random_source)]
    if distance >= yards_to_goal(punting_side, ball_on):
        return PuntResult(ball_on=touchback_spot(receiving), possession=receiving, distance=distance, touchback=True)

    landing = advance(ball_on, punting_side, distance)
    return_roll = roll_2d6(random_source)
    entry = PUNT_RETURN_TABLE[return_roll]
    kind = entry.get("type")
    if kind == "FC":
        return PuntResult(ball_on=landing, possession=receiving, distance=distance, fair_catch=True)
    if kind == "LG":
        return_yards = resolve_long_gain(random_source)
    else:
        return_yards = int(entry["yards"])
        if return_roll <= 4 and random_source.rand() < PUNT_MUFF_CHANCE:
            # a muff the receiver falls on is played as the ordinary return
            kicking_recovers = random_source.rand() < PUNT_MUFF_RECOVERY
            logger.debug("punt muffed at %s, kicking team recovers: %s", landing, kicking_recovers)
            if kicking_recovers:
                return PuntResult(ball_on=landing, possession=punting_side, distance=distance, muffed=True)
    return PuntResult(
        ball_on=advance(landing, receiving, return_yards),
        possession=receiving,
        distance=distance,
        return_yards=return_yards,
    )


def field_goal_column(attempt_yards: int) -> str | None:
    for label, max_yards in PLACE_KICK_COLUMNS:
        if attempt_yards <= max_yards:
            return label
    return None


def field_goal_attempt_yards(yards_to_goal_line: int) -> int:
    return yards_to_goal_line + FIELD_GOAL_SNAP_YARDS


def attempt_field_goal_kick(random_source: RandomSource, attempt_yards: int) -> bool:
    column = field_goal_column(round(attempt_yards))
    if column is None:
        return False
    return PLACE_KICK_TABLE[roll_2d6(random_source)][column] == "G"


def attempt_pat(random_source: RandomSource) -> bool:
    return PLACE_KICK_TABLE[roll_2d6(random_source)]["PAT"] == "G"


def attempt_two_point(random_source: RandomSource) -> bool:
    return random_source.rand() < TWO_POINT_SUCCESS
