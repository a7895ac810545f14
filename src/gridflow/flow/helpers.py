from __future__ import annotations

from typing import Any

from gridflow.contracts import FlowEvent, FlowEventKind, GameState, RandomSource, Score, ScoreKind, TeamSide


def is_leading(side: TeamSide, score: Score) -> bool:
    return score.diff_for(side) > 0


def is_tied(score: Score) -> bool:
    return score.player == score.ai


def score_delta(side: TeamSide, points: int) -> dict[str, int]:
    if side is TeamSide.PLAYER:
        return {"player_delta": points, "ai_delta": 0}
    return {"player_delta": 0, "ai_delta": points}


def random_hash(random_source: RandomSource) -> str:
    r = random_source.rand()
    if r < 0.45:
        return "left hash"
    if r < 0.9:
        return "right hash"
    return "middle"


def team_name(side: TeamSide) -> str:
    return "HOME" if side is TeamSide.PLAYER else "AWAY"


def format_clock(seconds: int) -> str:
    return f"{seconds // 60}:{seconds % 60:02d}"


def ordinal(n: int) -> str:
    return {1: "1st", 2: "2nd", 3: "3rd"}.get(n, f"{n}th")


def hud_payload(state: GameState) -> dict[str, Any]:
    return {
        "quarter": state.quarter,
        "clock": state.clock,
        "down": state.down,
        "to_go": state.to_go,
        "ball_on": state.ball_on,
        "possession": state.possession.value,
        "score": {"player": state.score.player, "ai": state.score.ai},
    }


def log_event(message: str) -> FlowEvent:
    return FlowEvent(FlowEventKind.LOG, {"message": message})


def hud_event(state: GameState) -> FlowEvent:
    return FlowEvent(FlowEventKind.HUD, hud_payload(state))


def score_event(side: TeamSide, points: int, kind: ScoreKind) -> FlowEvent:
    return FlowEvent(FlowEventKind.SCORE, {**score_delta(side, points), "kind": kind.value})


def kickoff_event(onside: bool) -> FlowEvent:
    return FlowEvent(FlowEventKind.KICKOFF, {"onside": onside})


def vfx_event(kind: str) -> FlowEvent:
    return FlowEvent(FlowEventKind.VFX, {"kind": kind})


def two_minute_events() -> list[FlowEvent]:
    return [log_event("Two-minute warning."), vfx_event("twoMinute")]
