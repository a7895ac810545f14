from __future__ import annotations

from dataclasses import dataclass

from gridflow.contracts import GameState, OutcomeCategory, PlayOutcome, Role, TeamSide
from gridflow.rules.spots import (
    FIELD_LENGTH,
    advance,
    goal_to_go_distance,
    touchback_spot,
    yards_to_goal,
)


@dataclass(slots=True)
class SnapApplication:
    """Post-play state for one scrimmage outcome, before clock and scoring are applied."""

    state: GameState
    outcome: PlayOutcome
    touchdown: bool = False
    safety: bool = False
    possession_changed: bool = False
    first_down: bool = False
    scoring_side: TeamSide | None = None


def own_goal(side: TeamSide) -> int:
    return 0 if side is TeamSide.PLAYER else FIELD_LENGTH


def target_goal(side: TeamSide) -> int:
    return FIELD_LENGTH if side is TeamSide.PLAYER else 0


def apply_outcome(pre: GameState, outcome: PlayOutcome) -> SnapApplication:
    """Move the ball and the chains for ``outcome``; ``pre`` is left untouched.

    Penalties are not handled here; the penalty administrator builds their
    candidate states.  ``other`` outcomes count as a zero-yard play.
    """
    next_state = pre.copy()
    offense = pre.possession
    result = SnapApplication(state=next_state, outcome=outcome)

    if outcome.forced_touchdown is Role.OFFENSE:
        next_state.ball_on = target_goal(offense)
    elif outcome.forced_touchdown is Role.DEFENSE:
        next_state.possession = offense.opponent
        next_state.ball_on = target_goal(offense.opponent)
        result.possession_changed = True
    elif outcome.category is OutcomeCategory.INTERCEPTION:
        next_state.possession = offense.opponent
        next_state.ball_on = advance(pre.ball_on, offense.opponent, outcome.intercept_return or 0)
        result.possession_changed = True
    elif outcome.category is OutcomeCategory.FUMBLE:
        next_state.possession = offense.opponent
        result.possession_changed = True
    elif outcome.category in (OutcomeCategory.GAIN, OutcomeCategory.LOSS):
        next_state.ball_on = advance(pre.ball_on, offense, outcome.yards)

    _score_check(result)
    if result.touchdown or result.safety:
        return result

    if result.possession_changed:
        next_state.down = 1
        next_state.to_go = goal_to_go_distance(next_state.possession, next_state.ball_on)
        return result

    if outcome.category is OutcomeCategory.INCOMPLETE:
        next_state.down = min(4, pre.down + 1)
        return result

    yards = outcome.yards if outcome.category in (OutcomeCategory.GAIN, OutcomeCategory.LOSS) else 0
    if yards > 0 and yards >= pre.to_go:
        result.first_down = True
        next_state.down = 1
        next_state.to_go = goal_to_go_distance(offense, next_state.ball_on)
    else:
        next_state.down = min(4, pre.down + 1)
        next_state.to_go = max(1, min(pre.to_go - yards, yards_to_goal(offense, next_state.ball_on)))
    return result


def is_turnover_on_downs(pre: GameState, application: SnapApplication) -> bool:
    if pre.down != 4 or application.possession_changed or application.touchdown or application.safety:
        return False
    return not application.first_down


def _score_check(result: SnapApplication) -> None:
    state = result.state
    holder = state.possession
    if state.ball_on == target_goal(holder):
        result.touchdown = True
        result.scoring_side = holder
    elif state.ball_on == own_goal(holder):
        if result.possession_changed:
            # turnover downed in the new offense's own end zone
            state.ball_on = touchback_spot(holder)
        else:
            result.safety = True
            result.scoring_side = holder.opponent
