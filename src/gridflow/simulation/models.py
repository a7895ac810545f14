from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from gridflow.contracts import FlowEvent, GameState, PlayInput
from gridflow.flow.drives import DriveSummary


@dataclass(slots=True)
class GameRecord:
    seed: int
    events: list[FlowEvent]
    final_state: GameState
    drives: list[DriveSummary] = field(default_factory=list)
    plays: list[PlayInput] = field(default_factory=list)

    @property
    def player_score(self) -> int:
        return self.final_state.score.player

    @property
    def ai_score(self) -> int:
        return self.final_state.score.ai

    @property
    def winner(self) -> str:
        if self.player_score == self.ai_score:
            return "tie"
        return "home" if self.player_score > self.ai_score else "away"


@dataclass(slots=True)
class EventValidation:
    ok: bool
    issues: list[str]
    stats: dict[str, int]


@dataclass(slots=True)
class GameCheck:
    """One validated game as it travels back from a batch worker."""

    seed: int
    player_score: int
    ai_score: int
    winner: str
    validation: EventValidation
    drive_count: int = 0
    snap_count: int = 0

    def to_row(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "player_score": self.player_score,
            "ai_score": self.ai_score,
            "winner": self.winner,
            "ok": self.validation.ok,
            "issue_count": len(self.validation.issues),
            "issues": "; ".join(self.validation.issues),
            "drive_count": self.drive_count,
            "snap_count": self.snap_count,
        }


@dataclass(slots=True)
class BatchProgress:
    done: int
    total: int
    passed: int
    failed: int


@dataclass(slots=True)
class BatchSummary:
    total: int
    passed: int
    failed: int
    failures: list[dict[str, Any]]
    avg_player: float
    avg_ai: float
    cancelled: bool = False
    games: list[GameCheck] = field(default_factory=list)
