from __future__ import annotations

from dataclasses import dataclass

from gridflow.contracts import (
    FourthDownChoice,
    GameState,
    KickoffType,
    PATChoice,
    PolicyAPI,
    PolicyContext,
    SafetyKickChoice,
    TeamSide,
    Tempo,
)
from gridflow.rules.kicking import field_goal_attempt_yards
from gridflow.rules.spots import FIELD_LENGTH, offense_position
from gridflow.rules.tables import PLACE_KICK_COLUMNS
from gridflow.rules.timekeeping import LATE_GAME_SECONDS, TWO_MINUTE_MARK, default_tempo

MAX_PLACE_KICK_YARDS = PLACE_KICK_COLUMNS[-1][1]
ONSIDE_DEFICIT_LATE = 9
ONSIDE_LATE_SECONDS = 240


def policy_context(state: GameState, side: TeamSide) -> PolicyContext:
    return PolicyContext(
        side=side,
        quarter=state.quarter,
        clock=state.clock,
        score_diff=state.score.diff_for(side),
        down=state.down,
        to_go=state.to_go,
        yardline_100=offense_position(side, state.ball_on),
    )


def kick_distance(ctx: PolicyContext) -> int:
    return field_goal_attempt_yards(FIELD_LENGTH - ctx.yardline_100)


class DefaultPolicy(PolicyAPI):
    """Fallback decisions used whenever no AI policy is injected."""

    def choose_fourth_down(self, ctx: PolicyContext) -> FourthDownChoice:
        distance = kick_distance(ctx)
        if distance <= MAX_PLACE_KICK_YARDS:
            if ctx.to_go <= 1 and distance > 38:
                return FourthDownChoice.GO_FOR_IT
            return FourthDownChoice.FIELD_GOAL
        if ctx.yardline_100 >= 45 and ctx.to_go <= 2:
            return FourthDownChoice.GO_FOR_IT
        if ctx.yardline_100 >= 60 and ctx.to_go <= 4:
            return FourthDownChoice.GO_FOR_IT
        return FourthDownChoice.PUNT

    def choose_pat(self, ctx: PolicyContext) -> PATChoice:
        late = ctx.quarter == 4 and ctx.clock <= LATE_GAME_SECONDS
        if late and -2 <= ctx.score_diff <= -1:
            return PATChoice.TWO
        return PATChoice.KICK

    def choose_tempo(self, ctx: PolicyContext) -> Tempo:
        return default_tempo(ctx)

    def choose_kickoff_type(self, ctx: PolicyContext) -> KickoffType:
        if ctx.quarter != 4 or not ctx.trailing:
            return KickoffType.NORMAL
        if ctx.clock <= TWO_MINUTE_MARK:
            return KickoffType.ONSIDE
        if ctx.clock <= ONSIDE_LATE_SECONDS and ctx.score_diff <= -ONSIDE_DEFICIT_LATE:
            return KickoffType.ONSIDE
        return KickoffType.NORMAL

    def choose_safety_free_kick(self, ctx: PolicyContext) -> SafetyKickChoice:
        return SafetyKickChoice.KICKOFF_PLUS_25


@dataclass(frozen=True, slots=True)
class FieldGoalModel:
    buckets: tuple[tuple[int, float], ...] = ((29, 0.97), (39, 0.92), (49, 0.82), (55, 0.68), (60, 0.50), (66, 0.32))

    def make_probability(self, attempt_yards: int) -> float:
        for max_yards, probability in self.buckets:
            if attempt_yards <= max_yards:
                return probability
        return 0.0


class NFL2025Policy(DefaultPolicy):
    """Fourth-down, PAT and tempo choices from 2025 league tendencies."""

    def __init__(self, field_goal_model: FieldGoalModel | None = None) -> None:
        self._fg = field_goal_model or FieldGoalModel()

    def choose_fourth_down(self, ctx: PolicyContext) -> FourthDownChoice:
        yl = ctx.yardline_100
        to_go = ctx.to_go
        p_make = self._fg.make_probability(kick_distance(ctx))
        early = ctx.quarter == 1 or (ctx.quarter in (2, 3) and ctx.clock > LATE_GAME_SECONDS)
        late = ctx.quarter in (2, 4) and ctx.clock <= LATE_GAME_SECONDS
        two_minute = ctx.clock <= TWO_MINUTE_MARK

        if early:
            if yl <= 40:
                if to_go <= 2 and yl >= 35 and to_go > 1:
                    return FourthDownChoice.FIELD_GOAL if p_make >= 0.75 else FourthDownChoice.PUNT
                return FourthDownChoice.PUNT
            if yl <= 59:
                return FourthDownChoice.GO_FOR_IT if to_go <= 4 else FourthDownChoice.PUNT
            if yl <= 69:
                if to_go <= 5:
                    return FourthDownChoice.GO_FOR_IT
                return FourthDownChoice.FIELD_GOAL if p_make >= 0.75 else FourthDownChoice.PUNT
            if to_go <= 5:
                return FourthDownChoice.GO_FOR_IT
            return FourthDownChoice.FIELD_GOAL if p_make >= 0.5 else FourthDownChoice.GO_FOR_IT

        if late and ctx.trailing:
            if yl >= 50 and to_go <= 5:
                return FourthDownChoice.GO_FOR_IT
            if yl >= 60 and to_go <= 7:
                return FourthDownChoice.GO_FOR_IT
            if yl >= 70 and to_go <= 10:
                return FourthDownChoice.GO_FOR_IT
            if yl < 40 and two_minute and to_go <= 2:
                return FourthDownChoice.GO_FOR_IT

        if late and not ctx.trailing:
            if yl >= 80 and to_go <= 1:
                return FourthDownChoice.GO_FOR_IT
            if yl >= 57 and (ctx.down >= 2 or ctx.clock <= 30):
                return FourthDownChoice.FIELD_GOAL if p_make >= 0.55 else FourthDownChoice.PUNT
            return FourthDownChoice.FIELD_GOAL if p_make >= 0.62 and yl >= 60 else FourthDownChoice.PUNT

        if yl <= 59:
            return FourthDownChoice.PUNT
        if p_make >= 0.62:
            return FourthDownChoice.FIELD_GOAL
        return FourthDownChoice.GO_FOR_IT if to_go <= 2 else FourthDownChoice.PUNT

    def choose_pat(self, ctx: PolicyContext) -> PATChoice:
        if ctx.quarter < 4 or ctx.clock > LATE_GAME_SECONDS:
            return PATChoice.TWO if ctx.score_diff <= -9 else PATChoice.KICK
        if ctx.score_diff in (-8, -4):
            return PATChoice.TWO
        return PATChoice.KICK

    def choose_tempo(self, ctx: PolicyContext) -> Tempo:
        late = ctx.quarter in (2, 4) and ctx.clock <= LATE_GAME_SECONDS
        if (late or ctx.clock <= TWO_MINUTE_MARK) and ctx.trailing:
            return Tempo.HURRY_UP
        if (late or ctx.clock <= TWO_MINUTE_MARK) and ctx.score_diff >= 9:
            return Tempo.BURN_CLOCK
        return Tempo.NORMAL
