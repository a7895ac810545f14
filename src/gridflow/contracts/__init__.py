from .types import (
    DecisionHint,
    DiceOutcome,
    DiceOutcomeKind,
    DiceRoll,
    EngineKind,
    FlowEvent,
    FlowEventKind,
    FlowResult,
    ForensicArtifact,
    FourthDownChoice,
    GameState,
    KickoffType,
    OutcomeCategory,
    PATChoice,
    PenaltyAdminMeta,
    PenaltyAdminResult,
    PenaltyDecision,
    PenaltyInfo,
    PenaltySlot,
    PlayCaller,
    PlayInput,
    PlayOutcome,
    PolicyAPI,
    PolicyContext,
    RandomSource,
    ResourceManifest,
    Role,
    SafetyKickChoice,
    Score,
    ScoreKind,
    TeamSide,
    Tempo,
    TimeKeeping,
    TimeOffResult,
    TurnoverInfo,
    ValidationError,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "DecisionHint",
    "DiceOutcome",
    "DiceOutcomeKind",
    "DiceRoll",
    "EngineKind",
    "FlowEvent",
    "FlowEventKind",
    "FlowResult",
    "ForensicArtifact",
    "FourthDownChoice",
    "GameState",
    "KickoffType",
    "OutcomeCategory",
    "PATChoice",
    "PenaltyAdminMeta",
    "PenaltyAdminResult",
    "PenaltyDecision",
    "PenaltyInfo",
    "PenaltySlot",
    "PlayCaller",
    "PlayInput",
    "PlayOutcome",
    "PolicyAPI",
    "PolicyContext",
    "RandomSource",
    "ResourceManifest",
    "Role",
    "SafetyKickChoice",
    "Score",
    "ScoreKind",
    "TeamSide",
    "Tempo",
    "TimeKeeping",
    "TimeOffResult",
    "TurnoverInfo",
    "ValidationError",
    "ValidationIssue",
    "ValidationResult",
]
