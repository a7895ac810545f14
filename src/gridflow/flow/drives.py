from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from gridflow.contracts import FlowEvent, GameState, OutcomeCategory, PlayOutcome, TeamSide
from gridflow.flow.helpers import log_event, team_name
from gridflow.rules.spots import format_yard_line

logger = logging.getLogger(__name__)

DRIVE_RESULTS = ("touchdown", "punt", "downs", "safety", "turnover", "field_goal", "missed_field_goal", "half", "game")


@dataclass(slots=True)
class DriveSummary:
    side: TeamSide
    plays: int
    yards: int
    result: str
    start_ball_on: int
    end_ball_on: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "side": self.side.value,
            "plays": self.plays,
            "yards": self.yards,
            "result": self.result,
            "start_ball_on": self.start_ball_on,
            "end_ball_on": self.end_ball_on,
        }


@dataclass(slots=True)
class _OpenDrive:
    side: TeamSide
    start_ball_on: int
    plays: int = 0
    yards: int = 0


@dataclass(slots=True)
class DriveTracker:
    summaries: list[DriveSummary] = field(default_factory=list)
    _current: _OpenDrive | None = None

    @property
    def current_side(self) -> TeamSide | None:
        return self._current.side if self._current else None

    def begin_if_needed(self, state: GameState, events: list[FlowEvent]) -> None:
        if self._current is not None and self._current.side is state.possession:
            return
        self.begin(state.possession, state, events)

    def begin(self, side: TeamSide, state: GameState, events: list[FlowEvent]) -> None:
        self._current = _OpenDrive(side=side, start_ball_on=state.ball_on)
        events.append(log_event(f"{team_name(side)} takes over at {format_yard_line(state.ball_on)}."))

    def record_play(self, outcome: PlayOutcome) -> None:
        if self._current is None:
            return
        self._current.plays += 1
        if outcome.category in (OutcomeCategory.GAIN, OutcomeCategory.LOSS):
            self._current.yards += outcome.yards

    def end(self, result: str, state: GameState, events: list[FlowEvent]) -> DriveSummary | None:
        if result not in DRIVE_RESULTS:
            raise ValueError(f"unknown drive result '{result}'")
        if self._current is None:
            return None
        drive = self._current
        summary = DriveSummary(
            side=drive.side,
            plays=drive.plays,
            yards=drive.yards,
            result=result,
            start_ball_on=drive.start_ball_on,
            end_ball_on=state.ball_on,
        )
        self.summaries.append(summary)
        self._current = None
        yards_word = "gained" if drive.yards >= 0 else "lost"
        events.append(
            log_event(f"{team_name(drive.side)} drive ends ({result}): {drive.plays} plays, {abs(drive.yards)} yards {yards_word}.")
        )
        logger.debug("drive summary %s", summary.to_dict())
        return summary
