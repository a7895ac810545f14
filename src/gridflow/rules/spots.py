from __future__ import annotations

from gridflow.contracts import TeamSide

FIELD_LENGTH = 100
MIDFIELD = 50
TOUCHBACK_YARDS = 20
FIELD_GOAL_SNAP_DEPTH = 7


def clamp_yard(value: int | float) -> int:
    return max(0, min(FIELD_LENGTH, int(round(value))))


def direction(side: TeamSide) -> int:
    """+1 when ``side`` drives toward yard 100, -1 otherwise."""
    return 1 if side is TeamSide.PLAYER else -1


def advance(ball_on: int, side: TeamSide, yards: int) -> int:
    return clamp_yard(ball_on + direction(side) * yards)


def yards_to_goal(possession: TeamSide, ball_on: int) -> int:
    return FIELD_LENGTH - ball_on if possession is TeamSide.PLAYER else ball_on


def offense_position(possession: TeamSide, ball_on: int) -> int:
    """Distance from the possessing team's own goal line."""
    return ball_on if possession is TeamSide.PLAYER else FIELD_LENGTH - ball_on


def absolute_from_own_goal(side: TeamSide, yard_line: int) -> int:
    return clamp_yard(yard_line if side is TeamSide.PLAYER else FIELD_LENGTH - yard_line)


def goal_to_go_distance(possession: TeamSide, ball_on: int) -> int:
    return max(1, min(10, yards_to_goal(possession, ball_on)))


def touchback_spot(receiving: TeamSide) -> int:
    return absolute_from_own_goal(receiving, TOUCHBACK_YARDS)


def missed_field_goal_spot(ball_on: int, kicking_side: TeamSide) -> tuple[int, TeamSide]:
    receiving = kicking_side.opponent
    spot_of_kick = clamp_yard(ball_on - direction(kicking_side) * FIELD_GOAL_SNAP_DEPTH)
    if receiving is TeamSide.PLAYER:
        new_spot = max(TOUCHBACK_YARDS, spot_of_kick)
    else:
        new_spot = min(FIELD_LENGTH - TOUCHBACK_YARDS, spot_of_kick)
    return clamp_yard(new_spot), receiving


def format_yard_line(ball_on: int) -> str:
    if ball_on == MIDFIELD:
        return "midfield"
    if ball_on < MIDFIELD:
        return f"HOME {ball_on}"
    return f"AWAY {FIELD_LENGTH - ball_on}"
