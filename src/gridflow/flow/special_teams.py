from __future__ import annotations

import logging

from gridflow.contracts import (
    FlowEvent,
    FlowResult,
    GameState,
    KickoffType,
    PATChoice,
    PolicyAPI,
    RandomSource,
    SafetyKickChoice,
    ScoreKind,
    TeamSide,
)
from gridflow.flow.helpers import (
    format_clock,
    hud_event,
    is_leading,
    is_tied,
    kickoff_event,
    log_event,
    random_hash,
    score_event,
    team_name,
    two_minute_events,
)
from gridflow.flow.policy import policy_context
from gridflow.rules.kicking import (
    PuntResult,
    attempt_field_goal_kick,
    attempt_pat,
    attempt_two_point,
    resolve_kickoff,
    resolve_punt,
)
from gridflow.rules.spots import absolute_from_own_goal, format_yard_line, goal_to_go_distance, missed_field_goal_spot
from gridflow.rules.timekeeping import TimeManagement, apply_time_off

logger = logging.getLogger(__name__)

SAFETY_KICKOFF_YARD_LINE = 25
SAFETY_PUNT_YARD_LINE = 35


class SpecialTeamsFlow:
    """Kickoffs, punts, field goals, PATs and safety free kicks."""

    def __init__(self, time_management: TimeManagement, random_source: RandomSource, policy: PolicyAPI) -> None:
        self._time = time_management
        self._rng = random_source
        self._policy = policy

    def perform_kickoff(self, state: GameState, kickoff_type: KickoffType, kicking_side: TeamSide) -> FlowResult:
        events: list[FlowEvent] = []
        next_state = state.copy()
        self._run_clock(next_state, self._time.time_keeping.kickoff, events)

        onside = kickoff_type is KickoffType.ONSIDE
        leading_or_tied = is_leading(kicking_side, next_state.score) or is_tied(next_state.score)
        result = resolve_kickoff(self._rng, onside=onside, kicker_leading_or_tied=leading_or_tied)
        receiver = kicking_side.opponent
        next_state.possession = kicking_side if result.turnover else receiver
        next_state.ball_on = absolute_from_own_goal(receiver, result.yard_line)
        next_state.down = 1
        next_state.to_go = goal_to_go_distance(next_state.possession, next_state.ball_on)

        events.append(kickoff_event(onside))
        kind = "Onside kick" if onside else "Kickoff"
        recovered = " recovered by the kicking team" if result.turnover else ""
        events.append(
            log_event(
                f"{kind} by {team_name(kicking_side)}{recovered}; "
                f"{team_name(next_state.possession)} ball at {format_yard_line(next_state.ball_on)}."
            )
        )
        events.append(hud_event(next_state))
        logger.debug("kickoff rolls=%s yard_line=%s turnover=%s", result.rolls, result.yard_line, result.turnover)
        return FlowResult(state=next_state, events=events)

    def handle_fourth_down_punt(self, pre: GameState, next_state: GameState, events: list[FlowEvent]) -> PuntResult:
        punting = pre.possession
        punt = resolve_punt(pre.ball_on, punting, self._rng)
        next_state.possession = punt.possession
        next_state.ball_on = punt.ball_on
        next_state.down = 1
        next_state.to_go = goal_to_go_distance(next_state.possession, next_state.ball_on)

        if punt.touchback:
            detail = "into the end zone, touchback"
        elif punt.fair_catch:
            detail = "fair catch"
        elif punt.muffed:
            detail = f"muffed, recovered by {team_name(punt.possession)}"
        else:
            detail = f"returned {punt.return_yards} yards"
        events.append(
            log_event(
                f"{team_name(punting)} punts {punt.distance} yards from {format_yard_line(pre.ball_on)}, {detail}; "
                f"{team_name(next_state.possession)} ball at {format_yard_line(next_state.ball_on)}."
            )
        )
        return punt

    def attempt_field_goal(self, state: GameState, attempt_yards: int, kicking_side: TeamSide, *, timed: bool = True) -> FlowResult:
        events: list[FlowEvent] = []
        next_state = state.copy()
        if timed:
            self._run_clock(next_state, self._time.time_keeping.field_goal, events)

        hash_mark = random_hash(self._rng)
        if attempt_field_goal_kick(self._rng, attempt_yards):
            next_state.score.add(kicking_side, 3)
            events.append(score_event(kicking_side, 3, ScoreKind.FIELD_GOAL))
            events.append(
                log_event(
                    f"Field goal from {attempt_yards}, {hash_mark}: it is good. "
                    f"HOME {next_state.score.player}, AWAY {next_state.score.ai}, Q{next_state.quarter} {format_clock(next_state.clock)}."
                )
            )
            kickoff = self.perform_kickoff(next_state, self._kickoff_type(next_state, kicking_side), kicking_side)
            events.extend(kickoff.events)
            return FlowResult(state=kickoff.state, events=events)

        spot, receiving = missed_field_goal_spot(next_state.ball_on, kicking_side)
        next_state.possession = receiving
        next_state.ball_on = spot
        next_state.down = 1
        next_state.to_go = goal_to_go_distance(receiving, spot)
        events.append(
            log_event(
                f"Field goal from {attempt_yards}, {hash_mark}: no good. "
                f"{team_name(receiving)} ball at {format_yard_line(spot)}."
            )
        )
        events.append(hud_event(next_state))
        return FlowResult(state=next_state, events=events)

    def resolve_pat(self, state: GameState, scoring_side: TeamSide) -> FlowResult:
        """Try the extra point or two-point conversion, then kick off."""
        events: list[FlowEvent] = []
        next_state = state.copy()
        choice = self._policy.choose_pat(policy_context(next_state, scoring_side))
        if choice is PATChoice.TWO:
            if attempt_two_point(self._rng):
                next_state.score.add(scoring_side, 2)
                events.append(score_event(scoring_side, 2, ScoreKind.TWO_POINT))
                events.append(log_event("Two-point conversion is good."))
            else:
                events.append(log_event("Two-point conversion fails."))
        elif attempt_pat(self._rng):
            next_state.score.add(scoring_side, 1)
            events.append(score_event(scoring_side, 1, ScoreKind.EXTRA_POINT))
            events.append(log_event("Extra point is good."))
        else:
            events.append(log_event("Extra point is no good."))
        next_state.awaiting_pat = False

        kickoff = self.perform_kickoff(next_state, self._kickoff_type(next_state, scoring_side), scoring_side)
        events.extend(kickoff.events)
        return FlowResult(state=kickoff.state, events=events)

    def resolve_safety_restart(self, state: GameState, conceding_side: TeamSide) -> FlowResult:
        events: list[FlowEvent] = []
        next_state = state.copy()
        choice = self._policy.choose_safety_free_kick(policy_context(next_state, conceding_side))
        yard_line = SAFETY_KICKOFF_YARD_LINE if choice is SafetyKickChoice.KICKOFF_PLUS_25 else SAFETY_PUNT_YARD_LINE
        receiver = conceding_side.opponent
        next_state.possession = receiver
        next_state.ball_on = absolute_from_own_goal(receiver, yard_line)
        next_state.down = 1
        next_state.to_go = goal_to_go_distance(receiver, next_state.ball_on)
        events.append(kickoff_event(False))
        events.append(
            log_event(
                f"Free kick by {team_name(conceding_side)} ({choice.value}); "
                f"{team_name(receiver)} ball at {format_yard_line(next_state.ball_on)}."
            )
        )
        events.append(hud_event(next_state))
        return FlowResult(state=next_state, events=events)

    def run_punt_clock(self, next_state: GameState, events: list[FlowEvent]) -> None:
        self._run_clock(next_state, self._time.time_keeping.punt, events)

    def _kickoff_type(self, state: GameState, kicking_side: TeamSide) -> KickoffType:
        return self._policy.choose_kickoff_type(policy_context(state, kicking_side))

    def _run_clock(self, next_state: GameState, seconds: int, events: list[FlowEvent]) -> None:
        result = self._time.special_teams_time_off(next_state, seconds)
        apply_time_off(next_state, result)
        if result.crossed_two_minute:
            events.extend(two_minute_events())
