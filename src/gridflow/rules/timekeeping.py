from __future__ import annotations

from gridflow.contracts import GameState, OutcomeCategory, PlayOutcome, PolicyContext, Tempo, TimeKeeping, TimeOffResult

TWO_MINUTE_MARK = 120
LATE_GAME_SECONDS = 300
QUARTER_SECONDS = 900
BURN_CLOCK_BAND = (35, 40)


def is_two_minute(quarter: int, clock: int) -> bool:
    return quarter in (2, 4) and clock <= TWO_MINUTE_MARK


def calculate_time_off(outcome: PlayOutcome | None, time_keeping: TimeKeeping) -> int:
    if outcome is None:
        return time_keeping.gain_0_to_20
    if outcome.clock_runoff is not None:
        return outcome.clock_runoff
    if outcome.out_of_bounds:
        return time_keeping.out_of_bounds
    category = outcome.category
    if category is OutcomeCategory.INCOMPLETE:
        return time_keeping.incomplete
    if category is OutcomeCategory.INTERCEPTION:
        return time_keeping.interception
    if category is OutcomeCategory.FUMBLE:
        return time_keeping.fumble
    if category is OutcomeCategory.PENALTY:
        return time_keeping.penalty
    if category is OutcomeCategory.LOSS:
        return time_keeping.loss
    if category is OutcomeCategory.GAIN and abs(outcome.yards) > 20:
        return time_keeping.gain_20_plus
    return time_keeping.gain_0_to_20


def time_off_with_two_minute(
    outcome: PlayOutcome | None,
    time_keeping: TimeKeeping,
    *,
    in_two_minute: bool,
    was_first_down: bool,
) -> int:
    if in_two_minute and outcome is not None:
        if outcome.category is OutcomeCategory.INCOMPLETE or outcome.out_of_bounds or was_first_down:
            return 0
    return calculate_time_off(outcome, time_keeping)


def clamp_two_minute(quarter: int, clock: int, time_off: int) -> TimeOffResult:
    if quarter in (2, 4) and clock > TWO_MINUTE_MARK and clock - time_off <= TWO_MINUTE_MARK:
        return TimeOffResult(time_off=clock - TWO_MINUTE_MARK, crossed_two_minute=True)
    return TimeOffResult(time_off=time_off)


class TimeManagement:
    """Clock deduction for scrimmage plays and kicks."""

    def __init__(self, time_keeping: TimeKeeping) -> None:
        self._time_keeping = time_keeping

    @property
    def time_keeping(self) -> TimeKeeping:
        return self._time_keeping

    def calculate_time_off(
        self,
        pre: GameState,
        outcome: PlayOutcome,
        tempo: Tempo,
        *,
        had_untimed: bool,
        possession_changed: bool,
    ) -> TimeOffResult:
        if had_untimed:
            return TimeOffResult(time_off=0)

        was_first_down = (
            not possession_changed
            and outcome.category is OutcomeCategory.GAIN
            and outcome.yards > 0
            and outcome.yards >= pre.to_go
        )
        time_off = time_off_with_two_minute(
            outcome,
            self._time_keeping,
            in_two_minute=is_two_minute(pre.quarter, pre.clock),
            was_first_down=was_first_down,
        )
        # hurry-up always spends at least 5 seconds lining up, even on a stopped clock
        if tempo in (Tempo.HURRY_UP, Tempo.NO_HUDDLE):
            time_off = max(5, int(time_off * 0.7))
        elif tempo is Tempo.BURN_CLOCK and outcome.category in (OutcomeCategory.GAIN, OutcomeCategory.LOSS):
            low, high = BURN_CLOCK_BAND
            time_off = min(high, max(low, time_off))
        return clamp_two_minute(pre.quarter, pre.clock, time_off)

    def special_teams_time_off(self, pre: GameState, seconds: int) -> TimeOffResult:
        return clamp_two_minute(pre.quarter, pre.clock, seconds)

    def penalty_time_off(self, pre: GameState) -> TimeOffResult:
        return clamp_two_minute(pre.quarter, pre.clock, self._time_keeping.penalty)


def apply_time_off(state: GameState, result: TimeOffResult) -> None:
    state.clock = max(0, state.clock - result.time_off)


def default_tempo(ctx: PolicyContext) -> Tempo:
    """Tempo for the offense when no policy overrides it; ``ctx.score_diff`` is from the offense's side."""
    margin = abs(ctx.score_diff)
    if ctx.quarter >= 3 and ctx.clock <= LATE_GAME_SECONDS:
        if ctx.trailing and margin <= 8:
            return Tempo.HURRY_UP
        if ctx.leading and margin <= 14:
            return Tempo.BURN_CLOCK
    if is_two_minute(ctx.quarter, ctx.clock):
        if ctx.trailing:
            return Tempo.HURRY_UP
        if ctx.leading:
            return Tempo.BURN_CLOCK
    return Tempo.NORMAL
