"""Single-snap game flow.

``GameFlow.resolve_snap`` threads one play through resolution, penalty
administration, clock management, scoring, special teams and quarter
boundaries, returning the next state and the ordered events for the caller.
A penalty that a human side must decide halts the snap: the pre-snap state is
returned with a ``choice-required`` event and play resumes through
``finalize_penalty_decision``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

from gridflow.contracts import (
    DecisionHint,
    EngineKind,
    FlowEvent,
    FlowEventKind,
    FlowResult,
    GameState,
    KickoffType,
    OutcomeCategory,
    PenaltyAdminMeta,
    PenaltyAdminResult,
    PenaltyDecision,
    PenaltyInfo,
    PlayInput,
    PlayOutcome,
    PolicyAPI,
    RandomSource,
    ScoreKind,
    TeamSide,
    TimeKeeping,
)
from gridflow.core.config import EngineConfig
from gridflow.flow.drives import DriveTracker
from gridflow.flow.helpers import (
    hud_event,
    hud_payload,
    log_event,
    ordinal,
    score_event,
    team_name,
    two_minute_events,
    vfx_event,
)
from gridflow.flow.policy import DefaultPolicy, policy_context
from gridflow.flow.special_teams import SpecialTeamsFlow
from gridflow.rules.charts import ChartResolver
from gridflow.rules.dice import DiceResolver
from gridflow.rules.kicking import field_goal_attempt_yards
from gridflow.rules.penalties import administer_penalty, deciding_side, penalty_summary
from gridflow.rules.snap import SnapApplication, apply_outcome, is_turnover_on_downs, target_goal
from gridflow.rules.spots import format_yard_line, goal_to_go_distance, yards_to_goal
from gridflow.rules.tables import FIELD_GOAL_LABEL, TableRepository
from gridflow.rules.timekeeping import QUARTER_SECONDS, TimeManagement, apply_time_off, is_two_minute

logger = logging.getLogger(__name__)

PENALTY_CHOICE = "penaltyAcceptDecline"
_PUNT_LABEL = re.compile(r"punt", re.IGNORECASE)


class OutcomeResolver(Protocol):
    def resolve(self, play_input: PlayInput, state: GameState, random_source: RandomSource) -> PlayOutcome: ...


def build_resolver(engine: EngineKind, tables: TableRepository, time_keeping: TimeKeeping) -> OutcomeResolver:
    if engine is EngineKind.DICE:
        return DiceResolver(tables)
    return ChartResolver(tables, time_keeping)


@dataclass(slots=True)
class _PendingPenalty:
    pre: GameState
    outcome: PlayOutcome
    application: SnapApplication | None
    admin: PenaltyAdminResult


class GameFlow:
    def __init__(
        self,
        config: EngineConfig,
        random_source: RandomSource,
        *,
        tables: TableRepository | None = None,
        policy: PolicyAPI | None = None,
        drive_tracker: DriveTracker | None = None,
    ) -> None:
        self._config = config
        self._rng = random_source
        self._tables = tables or TableRepository()
        self._policy = policy or DefaultPolicy()
        self._drives = drive_tracker or DriveTracker()
        self._time = TimeManagement(config.time_keeping)
        self._resolver = build_resolver(config.engine, self._tables, config.time_keeping)
        self._special = SpecialTeamsFlow(self._time, random_source, self._policy)
        self._pending: _PendingPenalty | None = None

    @property
    def drives(self) -> DriveTracker:
        return self._drives

    @property
    def policy(self) -> PolicyAPI:
        return self._policy

    @property
    def has_pending_penalty(self) -> bool:
        return self._pending is not None

    def pending_candidates(self) -> PenaltyAdminResult | None:
        return self._pending.admin if self._pending else None

    @staticmethod
    def create_initial_game_state(seed: int | None = None) -> GameState:
        return GameState(seed=seed)

    @staticmethod
    def hud_payload(state: GameState) -> dict[str, Any]:
        return hud_payload(state)

    def start_game(self, state: GameState, receiver: TeamSide) -> FlowResult:
        opening = state.copy()
        opening.opening_kick_to = receiver
        events = [log_event(f"Opening kickoff to {team_name(receiver)}.")]
        kickoff = self._special.perform_kickoff(opening, KickoffType.NORMAL, receiver.opponent)
        events.extend(kickoff.events)
        return FlowResult(state=kickoff.state, events=events)

    def resolve_snap(self, state: GameState, play_input: PlayInput) -> FlowResult:
        if state.game_over:
            raise ValueError("cannot resolve a snap after the game is over")
        if self._pending is not None:
            raise ValueError("a penalty decision is pending; call finalize_penalty_decision first")

        events: list[FlowEvent] = []
        pre = state.copy()
        self._drives.begin_if_needed(pre, events)

        if pre.down == 4 and _PUNT_LABEL.search(play_input.play_label):
            return self._punt(pre, events)
        if play_input.play_label == FIELD_GOAL_LABEL:
            return self._field_goal(pre, events)

        outcome = self._resolver.resolve(play_input, pre, self._rng)
        self._drives.record_play(outcome)
        logger.debug("snap %s -> %s %+d", play_input.play_label, outcome.category.value, outcome.yards)

        if outcome.penalty is not None and outcome.penalty_optional:
            application = apply_outcome(pre, outcome)
            return self._handle_penalty(pre, application.state, outcome, events, application)
        if outcome.category is OutcomeCategory.PENALTY and outcome.penalty is not None:
            return self._handle_penalty(pre, pre, outcome, events, None)
        return self._complete_snap(pre, outcome, events, apply_outcome(pre, outcome))

    def finalize_penalty_decision(
        self,
        chosen_state: GameState,
        decision: PenaltyDecision,
        meta: PenaltyAdminMeta,
        info: PenaltyInfo | None = None,
    ) -> FlowResult:
        return self._finalize_penalty(chosen_state, decision, meta, info, [])

    def resolve_pat_and_restart(self, state: GameState, scoring_side: TeamSide) -> FlowResult:
        return self._special.resolve_pat(state, scoring_side)

    def attempt_field_goal(self, state: GameState, attempt_yards: int, kicking_side: TeamSide) -> FlowResult:
        return self._special.attempt_field_goal(state, attempt_yards, kicking_side)

    def resolve_safety_restart(self, state: GameState, conceding_side: TeamSide) -> FlowResult:
        return self._special.resolve_safety_restart(state, conceding_side)

    def perform_kickoff(self, state: GameState, kickoff_type: KickoffType, kicking_side: TeamSide) -> FlowResult:
        return self._special.perform_kickoff(state, kickoff_type, kicking_side)

    def _complete_snap(
        self,
        pre: GameState,
        outcome: PlayOutcome,
        events: list[FlowEvent],
        application: SnapApplication,
    ) -> FlowResult:
        next_state = application.state
        had_untimed = pre.untimed_down_scheduled
        next_state.untimed_down_scheduled = False

        tempo = self._policy.choose_tempo(policy_context(pre, pre.possession))
        time_off = self._time.calculate_time_off(
            pre,
            outcome,
            tempo,
            had_untimed=had_untimed,
            possession_changed=application.possession_changed,
        )
        apply_time_off(next_state, time_off)
        if time_off.crossed_two_minute:
            events.extend(two_minute_events())
        events.append(log_event(_describe_play(pre, outcome)))

        if application.touchdown and application.scoring_side is not None:
            return self._touchdown(next_state, application.scoring_side, events)
        if application.safety and application.scoring_side is not None:
            return self._safety(next_state, application.scoring_side.opponent, events)

        if application.possession_changed:
            self._drives.end("turnover", next_state, events)
        elif is_turnover_on_downs(pre, application):
            events.append(
                log_event(
                    f"{ordinal(pre.down)} & {pre.to_go}: turnover on downs at {format_yard_line(next_state.ball_on)}."
                )
            )
            self._drives.end("downs", next_state, events)
            next_state.possession = pre.possession.opponent
            next_state.down = 1
            next_state.to_go = goal_to_go_distance(next_state.possession, next_state.ball_on)
        return self._finish(next_state, events)

    def _touchdown(self, next_state: GameState, side: TeamSide, events: list[FlowEvent]) -> FlowResult:
        next_state.score.add(side, 6)
        next_state.awaiting_pat = True
        events.append(log_event("Touchdown!"))
        events.append(score_event(side, 6, ScoreKind.TOUCHDOWN))
        events.append(vfx_event("td"))
        self._drives.end("touchdown" if self._drives.current_side is side else "turnover", next_state, events)

        pat = self._special.resolve_pat(next_state, side)
        events.extend(pat.events)
        return self._finish(pat.state, events)

    def _safety(self, next_state: GameState, conceding: TeamSide, events: list[FlowEvent]) -> FlowResult:
        scoring = conceding.opponent
        next_state.score.add(scoring, 2)
        events.append(log_event("Safety!"))
        events.append(score_event(scoring, 2, ScoreKind.SAFETY))
        self._drives.end("safety", next_state, events)

        restart = self._special.resolve_safety_restart(next_state, conceding)
        events.extend(restart.events)
        return self._finish(restart.state, events)

    def _punt(self, pre: GameState, events: list[FlowEvent]) -> FlowResult:
        next_state = pre.copy()
        if pre.untimed_down_scheduled:
            next_state.untimed_down_scheduled = False
        else:
            self._special.run_punt_clock(next_state, events)
        self._special.handle_fourth_down_punt(pre, next_state, events)
        self._drives.end("punt", next_state, events)
        if next_state.ball_on == target_goal(next_state.possession):
            return self._touchdown(next_state, next_state.possession, events)
        return self._finish(next_state, events)

    def _field_goal(self, pre: GameState, events: list[FlowEvent]) -> FlowResult:
        kicking = pre.possession
        attempt_yards = field_goal_attempt_yards(yards_to_goal(kicking, pre.ball_on))
        start = pre.copy()
        start.untimed_down_scheduled = False
        result = self._special.attempt_field_goal(start, attempt_yards, kicking, timed=not pre.untimed_down_scheduled)
        good = result.state.score.for_side(kicking) > pre.score.for_side(kicking)
        self._drives.end("field_goal" if good else "missed_field_goal", pre, events)
        events.extend(result.events)
        return self._finish(result.state, events)

    def _handle_penalty(
        self,
        pre: GameState,
        post: GameState,
        outcome: PlayOutcome,
        events: list[FlowEvent],
        application: SnapApplication | None,
    ) -> FlowResult:
        info = outcome.penalty
        if info is None:
            raise ValueError(f"outcome {outcome.raw!r} carries no penalty to administer")
        admin = administer_penalty(
            pre,
            post,
            info,
            in_two_minute=is_two_minute(pre.quarter, pre.clock),
            was_first_down_on_play=bool(application and application.first_down),
            raw_result=outcome.raw,
            time_keeping=self._config.time_keeping,
            time_off=self._time.penalty_time_off(pre),
        )
        self._pending = _PendingPenalty(pre=pre, outcome=outcome, application=application, admin=admin)
        if outcome.penalty_forced:
            events.append(log_event(f"{penalty_summary(info, admin.meta)}; enforced, no option."))
            return self._finalize_penalty(admin.accepted, PenaltyDecision.ACCEPT, admin.meta, info, events)

        decider = deciding_side(pre, info)
        if not self._config.is_human(decider):
            decision = PenaltyDecision.DECLINE if admin.decision_hint is DecisionHint.DECLINE else PenaltyDecision.ACCEPT
            chosen = admin.accepted if decision is PenaltyDecision.ACCEPT else admin.declined
            return self._finalize_penalty(chosen, decision, admin.meta, info, events)

        events.append(
            FlowEvent(
                FlowEventKind.CHOICE_REQUIRED,
                {
                    "choice": PENALTY_CHOICE,
                    "data": {
                        "side": decider.value,
                        "summary": penalty_summary(info, admin.meta),
                        "pre_play": {"down": pre.down, "to_go": pre.to_go, "ball_on": pre.ball_on},
                        "accepted": admin.accepted.to_dict(),
                        "declined": admin.declined.to_dict(),
                        "penalty": {"on": info.on.value, "yards": info.yards, "first_down": info.first_down, "label": info.label},
                        "meta": admin.meta.to_dict(),
                        "hint": admin.decision_hint.value,
                    },
                },
            )
        )
        events.append(hud_event(pre))
        return FlowResult(state=pre, events=events)

    def _finalize_penalty(
        self,
        chosen_state: GameState,
        decision: PenaltyDecision,
        meta: PenaltyAdminMeta,
        info: PenaltyInfo | None,
        events: list[FlowEvent],
    ) -> FlowResult:
        pending, self._pending = self._pending, None
        if info is None and pending is not None:
            info = pending.outcome.penalty
        on = info.on.value if info else "defense"
        if decision is PenaltyDecision.DECLINE and pending is not None and pending.application is not None:
            events.append(log_event(f"Penalty on {on} declined; the play stands."))
            return self._complete_snap(pending.pre, pending.outcome, events, pending.application)

        next_state = chosen_state.copy()
        next_state.untimed_down_scheduled = False
        down_text = f"{ordinal(next_state.down)} & {next_state.to_go}"
        if decision is PenaltyDecision.ACCEPT:
            if meta.two_minute_warning:
                events.extend(two_minute_events())
            events.append(log_event(f"Penalty on {on}, {meta.applied_yards} yards, accepted; now {down_text}."))
            if meta.untimed_down_scheduled:
                next_state.untimed_down_scheduled = True
                events.append(log_event("Untimed down will be played due to defensive penalty."))
            if pending is not None and next_state.possession is not pending.pre.possession:
                self._drives.end("downs", next_state, events)
        else:
            events.append(log_event(f"Penalty on {on} declined; play stands; now {down_text}."))
        return self._finish(next_state, events)

    def _finish(self, next_state: GameState, events: list[FlowEvent]) -> FlowResult:
        if not next_state.game_over and next_state.clock == 0 and not next_state.untimed_down_scheduled:
            next_state = self._quarter_transition(next_state, events)
        events.append(hud_event(next_state))
        return FlowResult(state=next_state, events=events)

    def _quarter_transition(self, next_state: GameState, events: list[FlowEvent]) -> GameState:
        ended = next_state.quarter
        events.append(FlowEvent(FlowEventKind.END_OF_QUARTER, {"quarter": ended}))
        events.append(log_event(f"End of Q{ended}: HOME {next_state.score.player}, AWAY {next_state.score.ai}."))
        if ended == 2:
            events.append(FlowEvent(FlowEventKind.HALFTIME, {}))
            self._drives.end("half", next_state, events)
            next_state.quarter = 3
            next_state.clock = QUARTER_SECONDS
            events.append(log_event("Start of quarter 3."))
            kicking = next_state.opening_kick_to or TeamSide.PLAYER
            kickoff = self._special.perform_kickoff(next_state, KickoffType.NORMAL, kicking)
            events.extend(kickoff.events)
            return kickoff.state
        if ended >= 4:
            next_state.game_over = True
            self._drives.end("game", next_state, events)
            events.append(
                FlowEvent(FlowEventKind.FINAL, {"score": {"player": next_state.score.player, "ai": next_state.score.ai}})
            )
            return next_state
        next_state.quarter = ended + 1
        next_state.clock = QUARTER_SECONDS
        events.append(log_event(f"Start of quarter {ended + 1}."))
        return next_state


def _describe_play(pre: GameState, outcome: PlayOutcome) -> str:
    situation = f"{team_name(pre.possession)} {ordinal(pre.down)} & {pre.to_go} at {format_yard_line(pre.ball_on)}"
    if outcome.forced_touchdown is not None:
        return f"{situation}: {outcome.description or 'forced touchdown'}"
    category = outcome.category
    if category is OutcomeCategory.GAIN:
        result = f"gain of {outcome.yards}" if outcome.yards else "no gain"
    elif category is OutcomeCategory.LOSS:
        result = f"loss of {abs(outcome.yards)}"
    elif category is OutcomeCategory.INCOMPLETE:
        result = "incomplete"
    elif category is OutcomeCategory.INTERCEPTION:
        result = f"intercepted, returned {outcome.intercept_return or 0}"
    elif category is OutcomeCategory.FUMBLE:
        result = "fumble, recovered by the defense"
    else:
        result = "no gain"
    if outcome.out_of_bounds:
        result += ", out of bounds"
    return f"{situation}: {result}."
