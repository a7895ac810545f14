from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence


class TeamSide(str, Enum):
    PLAYER = "player"
    AI = "ai"

    @property
    def opponent(self) -> TeamSide:
        return TeamSide.AI if self is TeamSide.PLAYER else TeamSide.PLAYER


class Role(str, Enum):
    OFFENSE = "offense"
    DEFENSE = "defense"


class OutcomeCategory(str, Enum):
    GAIN = "gain"
    LOSS = "loss"
    INCOMPLETE = "incomplete"
    INTERCEPTION = "interception"
    FUMBLE = "fumble"
    PENALTY = "penalty"
    OTHER = "other"


class Tempo(str, Enum):
    NORMAL = "normal"
    HURRY_UP = "hurry_up"
    NO_HUDDLE = "no_huddle"
    BURN_CLOCK = "burn_clock"


class KickoffType(str, Enum):
    NORMAL = "normal"
    ONSIDE = "onside"


class PATChoice(str, Enum):
    KICK = "kick"
    TWO = "two"


class SafetyKickChoice(str, Enum):
    KICKOFF_PLUS_25 = "kickoff+25"
    PUNT_FROM_20 = "puntFrom20"


class FourthDownChoice(str, Enum):
    GO_FOR_IT = "go_for_it"
    PUNT = "punt"
    FIELD_GOAL = "field_goal"


class PenaltyDecision(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class DecisionHint(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    NEUTRAL = "neutral"


class EngineKind(str, Enum):
    CHART = "chart"
    DICE = "dice"


class FlowEventKind(str, Enum):
    LOG = "log"
    SCORE = "score"
    HUD = "hud"
    KICKOFF = "kickoff"
    CHOICE_REQUIRED = "choice-required"
    END_OF_QUARTER = "endOfQuarter"
    HALFTIME = "halftime"
    FINAL = "final"
    VFX = "vfx"


class ScoreKind(str, Enum):
    TOUCHDOWN = "TD"
    EXTRA_POINT = "XP"
    TWO_POINT = "TwoPoint"
    FIELD_GOAL = "FG"
    SAFETY = "Safety"


class DiceOutcomeKind(str, Enum):
    NORMAL = "normal"
    DEFENSIVE_TD = "DEF_TD"
    OFFENSIVE_TD = "OFF_TD"
    PENALTY_OVERRIDE = "PENALTY_OVERRIDE"
    PENALTY_CHOICE = "PENALTY_CHOICE"


class RandomSource(Protocol):
    def rand(self) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def choice(self, items: Sequence[Any]) -> Any: ...

    def spawn(self, substream_id: str) -> RandomSource: ...


@dataclass(slots=True)
class Score:
    player: int = 0
    ai: int = 0

    def for_side(self, side: TeamSide) -> int:
        return self.player if side is TeamSide.PLAYER else self.ai

    def add(self, side: TeamSide, points: int) -> None:
        if side is TeamSide.PLAYER:
            self.player += points
        else:
            self.ai += points

    def diff_for(self, side: TeamSide) -> int:
        return self.for_side(side) - self.for_side(side.opponent)


@dataclass(slots=True)
class GameState:
    """Live game state; ball_on is measured from the player's own goal line."""

    seed: int | None = None
    quarter: int = 1
    clock: int = 900
    down: int = 1
    to_go: int = 10
    ball_on: int = 25
    possession: TeamSide = TeamSide.PLAYER
    score: Score = field(default_factory=Score)
    awaiting_pat: bool = False
    game_over: bool = False
    untimed_down_scheduled: bool = False
    opening_kick_to: TeamSide | None = None

    def copy(self) -> GameState:
        return GameState(
            seed=self.seed,
            quarter=self.quarter,
            clock=self.clock,
            down=self.down,
            to_go=self.to_go,
            ball_on=self.ball_on,
            possession=self.possession,
            score=Score(player=self.score.player, ai=self.score.ai),
            awaiting_pat=self.awaiting_pat,
            game_over=self.game_over,
            untimed_down_scheduled=self.untimed_down_scheduled,
            opening_kick_to=self.opening_kick_to,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "quarter": self.quarter,
            "clock": self.clock,
            "down": self.down,
            "to_go": self.to_go,
            "ball_on": self.ball_on,
            "possession": self.possession.value,
            "score": {"player": self.score.player, "ai": self.score.ai},
            "awaiting_pat": self.awaiting_pat,
            "game_over": self.game_over,
            "untimed_down_scheduled": self.untimed_down_scheduled,
            "opening_kick_to": self.opening_kick_to.value if self.opening_kick_to else None,
        }


@dataclass(slots=True)
class PenaltyInfo:
    on: Role
    yards: int
    first_down: bool = False
    label: str = ""
    loss_of_down: bool = False


@dataclass(slots=True)
class PlayOutcome:
    category: OutcomeCategory
    yards: int = 0
    out_of_bounds: bool = False
    penalty: PenaltyInfo | None = None
    intercept_return: int | None = None
    long_gain_rolls: list[int] = field(default_factory=list)
    raw: str = ""
    rule: str = ""
    forced_touchdown: Role | None = None
    penalty_optional: bool = False
    penalty_forced: bool = False
    clock_runoff: int | None = None
    # chart estimate for inspection; the orchestrator times the play itself
    resolver_time_off: int | None = None
    description: str = ""


@dataclass(frozen=True, slots=True)
class DiceRoll:
    d1: int
    d2: int

    @property
    def sum(self) -> int:
        return self.d1 + self.d2

    @property
    def is_doubles(self) -> bool:
        return self.d1 == self.d2


@dataclass(slots=True)
class TurnoverInfo:
    type: str
    return_yards: int = 0
    return_to: str = "LOS"


@dataclass(slots=True)
class PenaltySlot:
    slot: int
    side: Role
    yards: int
    label: str
    auto_first_down: bool = False
    loss_of_down: bool = False
    replay_down: bool = False
    override_play_result: bool = False
    offsetting: bool = False


@dataclass(slots=True)
class DiceOutcome:
    kind: DiceOutcomeKind
    roll: DiceRoll
    yards: int = 0
    final_yards: int = 0
    turnover: TurnoverInfo | None = None
    out_of_bounds: bool = False
    incomplete: bool = False
    tags: list[str] = field(default_factory=list)
    is_first_down: bool = False
    clock_runoff: int = 30
    penalty: PenaltySlot | None = None
    penalty_roll: int | None = None
    can_accept_decline: bool = False
    description: str = ""


@dataclass(slots=True)
class PlayInput:
    deck_name: str
    play_label: str
    defense_label: str

    def to_dict(self) -> dict[str, str]:
        return {"deck_name": self.deck_name, "play_label": self.play_label, "defense_label": self.defense_label}


@dataclass(slots=True)
class FlowEvent:
    kind: FlowEventKind
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str | None:
        value = self.payload.get("message")
        return str(value) if value is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "payload": self.payload}


@dataclass(slots=True)
class FlowResult:
    state: GameState
    events: list[FlowEvent]


@dataclass(slots=True)
class PenaltyAdminMeta:
    automatic_first_down_applied: bool
    half_distance_capped: bool
    measured_from_midfield_for_lg: bool
    spot_basis: str
    untimed_down_scheduled: bool
    applied_yards: int
    two_minute_warning: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "automatic_first_down_applied": self.automatic_first_down_applied,
            "half_distance_capped": self.half_distance_capped,
            "measured_from_midfield_for_lg": self.measured_from_midfield_for_lg,
            "spot_basis": self.spot_basis,
            "untimed_down_scheduled": self.untimed_down_scheduled,
            "applied_yards": self.applied_yards,
            "two_minute_warning": self.two_minute_warning,
        }


@dataclass(slots=True)
class PenaltyAdminResult:
    accepted: GameState
    declined: GameState
    meta: PenaltyAdminMeta
    decision_hint: DecisionHint


@dataclass(slots=True)
class TimeKeeping:
    gain_0_to_20: int = 30
    gain_20_plus: int = 45
    loss: int = 30
    out_of_bounds: int = 15
    incomplete: int = 15
    interception: int = 30
    penalty: int = 15
    fumble: int = 15
    kickoff: int = 15
    field_goal: int = 15
    punt: int = 15
    extra_point: int = 0


@dataclass(slots=True)
class TimeOffResult:
    time_off: int
    crossed_two_minute: bool = False


@dataclass(slots=True)
class PolicyContext:
    """Situation seen from the deciding side; yardline_100 counts from its own goal."""

    side: TeamSide
    quarter: int
    clock: int
    score_diff: int
    down: int = 1
    to_go: int = 10
    yardline_100: int = 25

    @property
    def leading(self) -> bool:
        return self.score_diff > 0

    @property
    def trailing(self) -> bool:
        return self.score_diff < 0


class PolicyAPI(Protocol):
    def choose_fourth_down(self, ctx: PolicyContext) -> FourthDownChoice: ...

    def choose_pat(self, ctx: PolicyContext) -> PATChoice: ...

    def choose_tempo(self, ctx: PolicyContext) -> Tempo: ...

    def choose_kickoff_type(self, ctx: PolicyContext) -> KickoffType: ...

    def choose_safety_free_kick(self, ctx: PolicyContext) -> SafetyKickChoice: ...


class PlayCaller(Protocol):
    def call_play(self, state: GameState, random_source: RandomSource) -> PlayInput: ...


@dataclass(slots=True)
class ValidationIssue:
    code: str
    severity: str
    field_path: str
    entity_id: str
    message: str


@dataclass(slots=True)
class ValidationResult:
    ok: bool
    issues: list[ValidationIssue]


class ValidationError(ValueError):
    def __init__(self, issues: list[ValidationIssue]) -> None:
        message = "; ".join(f"{i.code}:{i.entity_id}:{i.message}" for i in issues)
        super().__init__(message)
        self.issues = issues


@dataclass(slots=True)
class ResourceManifest:
    resource_type: str
    schema_version: str
    resource_version: str
    generated_at: str
    checksum: str


@dataclass(slots=True)
class ForensicArtifact:
    artifact_id: str
    timestamp: datetime
    engine_scope: str
    error_code: str
    message: str
    state_snapshot: Mapping[str, Any]
    context: Mapping[str, Any]
    identifiers: Mapping[str, str]
    causal_fragment: Sequence[str]
