from __future__ import annotations

from gridflow.contracts import FlowEvent, FlowEventKind
from gridflow.simulation.models import EventValidation

KICKOFF_WINDOW = 15


def validate_events(events: list[FlowEvent]) -> EventValidation:
    """Structural checks over one game's event stream."""
    issues: list[str] = []
    stats = {"hud_count": 0, "log_count": 0, "score_events": 0, "kickoff_events": 0}

    kinds = [event.kind for event in events]
    if FlowEventKind.FINAL not in kinds:
        issues.append("No final event emitted.")
    if FlowEventKind.KICKOFF not in kinds:
        issues.append("No kickoff event observed.")

    last_clock_by_quarter: dict[int, int] = {}
    last_quarter = 1
    for index, event in enumerate(events):
        if event.kind is FlowEventKind.HUD:
            stats["hud_count"] += 1
            quarter = int(event.payload.get("quarter", 0))
            clock = int(event.payload.get("clock", 0))
            ball_on = int(event.payload.get("ball_on", -1))
            if quarter < last_quarter:
                issues.append(f"Quarter decreased from {last_quarter} to {quarter} at hud #{stats['hud_count']}.")
            last = last_clock_by_quarter.get(quarter)
            if last is not None and clock > last:
                issues.append(f"Clock increased within Q{quarter}: {last} -> {clock}.")
            last_clock_by_quarter[quarter] = clock if last is None else min(last, clock)
            last_quarter = max(last_quarter, quarter)
            if not 0 <= ball_on <= 100:
                issues.append(f"ball_on out of bounds: {ball_on} at Q{quarter} clock {clock}.")
        elif event.kind is FlowEventKind.LOG:
            stats["log_count"] += 1
        elif event.kind is FlowEventKind.SCORE:
            stats["score_events"] += 1
            window = kinds[index + 1 : index + 1 + KICKOFF_WINDOW]
            # the game's last scoring sequence may end without a kickoff
            terminal = FlowEventKind.KICKOFF not in kinds[index + 1 :]
            if FlowEventKind.KICKOFF not in window and not terminal:
                issues.append(f"No kickoff event within {KICKOFF_WINDOW} events after score ({event.payload.get('kind')}).")
        elif event.kind is FlowEventKind.KICKOFF:
            stats["kickoff_events"] += 1

    if stats["hud_count"] == 0:
        issues.append("No HUD updates observed.")
    if stats["log_count"] < 1:
        issues.append("Too few log lines emitted.")
    return EventValidation(ok=not issues, issues=issues, stats=stats)

