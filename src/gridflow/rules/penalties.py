from __future__ import annotations

import re

from gridflow.contracts import (
    DecisionHint,
    GameState,
    PenaltyAdminMeta,
    PenaltyAdminResult,
    PenaltyInfo,
    Role,
    TeamSide,
    TimeKeeping,
    TimeOffResult,
)
from gridflow.rules.spots import (
    MIDFIELD,
    advance,
    direction,
    goal_to_go_distance,
    offense_position,
    yards_to_goal,
)
from gridflow.rules.timekeeping import clamp_two_minute

DECISION_TOLERANCE = 0.5
DOWN_VALUE = {1: 5.0, 2: 2.0, 3: 0.0, 4: -3.0}
TURNOVER_VALUE = -10.0

_LONG_GAIN = re.compile(r"\bLG\b", re.IGNORECASE)


def is_long_gain_result(raw_result: str | None) -> bool:
    return bool(raw_result) and bool(_LONG_GAIN.search(raw_result or ""))


def cap_half_distance(yards: int, distance: int) -> tuple[int, bool]:
    cap = distance // 2
    if yards > cap:
        return cap, True
    return yards, False


def deciding_side(pre: GameState, info: PenaltyInfo) -> TeamSide:
    """The offended team chooses: the offense for defensive fouls, else the defense."""
    return pre.possession if info.on is Role.DEFENSE else pre.possession.opponent


def administer_penalty(
    pre: GameState,
    post: GameState,
    info: PenaltyInfo,
    *,
    in_two_minute: bool,
    was_first_down_on_play: bool,
    raw_result: str | None = None,
    time_keeping: TimeKeeping | None = None,
    time_off: TimeOffResult | None = None,
) -> PenaltyAdminResult:
    """Build both candidate states for a flagged snap.

    ``declined`` is the post-play state as it stood; ``accepted`` marches
    the foul from the previous spot (or from midfield for a defensive foul on
    a long-gain play), capped at half the distance to the relevant goal.
    ``in_two_minute`` and ``was_first_down_on_play`` do not change the march;
    they are accepted so callers can pass the full snap context.  The accepted
    clock loses ``time_off`` (the penalty runoff clamped at the two-minute
    warning when omitted).
    """
    tk = time_keeping or TimeKeeping()
    offense = pre.possession
    on_defense = info.on is Role.DEFENSE
    from_midfield = on_defense and is_long_gain_result(raw_result)
    start = MIDFIELD if from_midfield else pre.ball_on

    if on_defense:
        applied, capped = cap_half_distance(info.yards, yards_to_goal(offense, start))
        new_spot = advance(start, offense, applied)
    else:
        applied, capped = cap_half_distance(info.yards, offense_position(offense, start))
        new_spot = advance(start, offense, -applied)

    accepted = pre.copy()
    accepted.ball_on = new_spot
    auto_first_down = info.first_down and on_defense
    if auto_first_down:
        accepted.down = 1
        accepted.to_go = goal_to_go_distance(offense, new_spot)
    else:
        line_to_gain = pre.ball_on + direction(offense) * pre.to_go
        remaining = (line_to_gain - new_spot) * direction(offense)
        if remaining <= 0:
            accepted.down = 1
            accepted.to_go = goal_to_go_distance(offense, new_spot)
        else:
            accepted.down = pre.down + 1 if info.loss_of_down and not on_defense else pre.down
            accepted.to_go = remaining
            if accepted.down > 4:
                accepted.possession = offense.opponent
                accepted.down = 1
                accepted.to_go = goal_to_go_distance(offense.opponent, new_spot)

    runoff = time_off or clamp_two_minute(pre.quarter, pre.clock, tk.penalty)
    accepted.clock = max(0, pre.clock - runoff.time_off)
    untimed = on_defense and pre.quarter <= 4 and (pre.clock == 0 or accepted.clock == 0)
    if untimed:
        accepted.clock = 0

    meta = PenaltyAdminMeta(
        automatic_first_down_applied=auto_first_down,
        half_distance_capped=capped,
        measured_from_midfield_for_lg=from_midfield,
        spot_basis="midfield" if from_midfield else "previous",
        untimed_down_scheduled=untimed,
        applied_yards=applied,
        two_minute_warning=runoff.crossed_two_minute,
    )
    declined = post.copy()
    hint = decision_hint(pre, accepted, declined, info)
    return PenaltyAdminResult(accepted=accepted, declined=declined, meta=meta, decision_hint=hint)


def offense_value(pre: GameState, candidate: GameState) -> float:
    offense = pre.possession
    advanced = yards_to_goal(offense, pre.ball_on) - yards_to_goal(offense, candidate.ball_on)
    if candidate.possession is not offense:
        return advanced + TURNOVER_VALUE
    return advanced + DOWN_VALUE.get(candidate.down, -3.0) + max(0, 10 - candidate.to_go) * 0.2


def decision_hint(pre: GameState, accepted: GameState, declined: GameState, info: PenaltyInfo) -> DecisionHint:
    sign = 1.0 if deciding_side(pre, info) is pre.possession else -1.0
    value_accept = sign * offense_value(pre, accepted)
    value_decline = sign * offense_value(pre, declined)
    if value_accept > value_decline + DECISION_TOLERANCE:
        return DecisionHint.ACCEPT
    if value_decline > value_accept + DECISION_TOLERANCE:
        return DecisionHint.DECLINE
    return DecisionHint.NEUTRAL


def penalty_summary(info: PenaltyInfo, meta: PenaltyAdminMeta) -> str:
    label = info.label or "Penalty"
    text = f"{label}: on {info.on.value}, {meta.applied_yards} yards"
    if meta.half_distance_capped:
        text += " (half the distance to the goal)"
    if meta.measured_from_midfield_for_lg:
        text += ", marked from midfield"
    if meta.automatic_first_down_applied:
        text += ", automatic first down"
    return text
