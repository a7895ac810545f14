from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from gridflow.contracts import EngineKind, TeamSide, TimeKeeping, ValidationError, ValidationIssue

DEFAULT_MAX_SNAPS = 400


@dataclass(slots=True)
class EngineConfig:
    """Construction-time engine selection; nothing reads a module-level flag."""

    engine: EngineKind = EngineKind.CHART
    human_sides: frozenset[TeamSide] = frozenset({TeamSide.PLAYER})
    time_keeping: TimeKeeping = field(default_factory=TimeKeeping)
    max_snaps: int = DEFAULT_MAX_SNAPS

    def is_human(self, side: TeamSide) -> bool:
        return side in self.human_sides


def headless_config(engine: EngineKind = EngineKind.CHART, max_snaps: int = DEFAULT_MAX_SNAPS) -> EngineConfig:
    return EngineConfig(engine=engine, human_sides=frozenset(), max_snaps=max_snaps)


def load_engine_config(source: Path | Mapping[str, Any]) -> EngineConfig:
    if isinstance(source, Path):
        raw = json.loads(source.read_text(encoding="utf-8"))
        origin = source.name
    else:
        raw = dict(source)
        origin = "<mapping>"
    if not isinstance(raw, dict):
        raise ValidationError([_issue("INVALID_CONFIG_DOCUMENT", "$", origin, "config must be a JSON object")])

    issues: list[ValidationIssue] = []
    allowed = {"engine", "human_sides", "time_keeping", "max_snaps"}
    for key in sorted(set(raw) - allowed):
        issues.append(_issue("UNKNOWN_CONFIG_KEY", key, origin, f"unsupported key '{key}'"))

    engine = EngineKind.CHART
    if "engine" in raw:
        try:
            engine = EngineKind(str(raw["engine"]))
        except ValueError:
            issues.append(_issue("INVALID_ENGINE", "engine", origin, f"unsupported engine '{raw['engine']}'"))

    human_sides: frozenset[TeamSide] = frozenset({TeamSide.PLAYER})
    if "human_sides" in raw:
        parsed: set[TeamSide] = set()
        for value in raw["human_sides"] or []:
            try:
                parsed.add(TeamSide(str(value)))
            except ValueError:
                issues.append(_issue("INVALID_HUMAN_SIDE", "human_sides", origin, f"unknown side '{value}'"))
        human_sides = frozenset(parsed)

    time_keeping = TimeKeeping()
    known_tk = {f.name for f in fields(TimeKeeping)}
    for key, value in dict(raw.get("time_keeping") or {}).items():
        if key not in known_tk:
            issues.append(_issue("UNKNOWN_TIME_KEEPING_KEY", f"time_keeping.{key}", origin, f"unsupported key '{key}'"))
            continue
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            issues.append(_issue("INVALID_TIME_KEEPING_VALUE", f"time_keeping.{key}", origin, "seconds must be a non-negative int"))
            continue
        setattr(time_keeping, key, value)

    max_snaps = raw.get("max_snaps", DEFAULT_MAX_SNAPS)
    if not isinstance(max_snaps, int) or isinstance(max_snaps, bool) or max_snaps < 1:
        issues.append(_issue("INVALID_MAX_SNAPS", "max_snaps", origin, "max_snaps must be a positive int"))
        max_snaps = DEFAULT_MAX_SNAPS

    if issues:
        raise ValidationError(issues)
    return EngineConfig(engine=engine, human_sides=human_sides, time_keeping=time_keeping, max_snaps=max_snaps)


def _issue(code: str, field_path: str, entity_id: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, severity="blocking", field_path=field_path, entity_id=entity_id, message=message)
