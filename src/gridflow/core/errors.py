from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Sequence

from gridflow.contracts import ForensicArtifact, GameState
from gridflow.core.ids import make_id, now_utc


class EngineIntegrityError(RuntimeError):
    """A table or state contract the engine relies on broke in the middle of a snap."""

    def __init__(self, artifact: ForensicArtifact) -> None:
        super().__init__(f"{artifact.error_code}: {artifact.message}")
        self.artifact = artifact


def build_forensic_artifact(
    engine_scope: str,
    error_code: str,
    message: str,
    state_snapshot: dict[str, object],
    context: dict[str, object],
    identifiers: dict[str, str],
    causal_fragment: list[str],
) -> ForensicArtifact:
    return ForensicArtifact(
        artifact_id=make_id(f"forensic_{engine_scope}"),
        timestamp=now_utc(),
        engine_scope=engine_scope,
        error_code=error_code,
        message=message,
        state_snapshot=state_snapshot,
        context=context,
        identifiers=identifiers,
        causal_fragment=causal_fragment,
    )


def integrity_error(
    engine_scope: str,
    error_code: str,
    message: str,
    state: GameState,
    *,
    context: dict[str, Any] | None = None,
    identifiers: dict[str, str] | None = None,
    causal_fragment: Sequence[str] = (),
) -> EngineIntegrityError:
    """Snapshot ``state`` at the failure point and wrap it for raising."""
    artifact = build_forensic_artifact(
        engine_scope=engine_scope,
        error_code=error_code,
        message=message,
        state_snapshot=state.to_dict(),
        context=dict(context or {}),
        identifiers=dict(identifiers or {}),
        causal_fragment=list(causal_fragment),
    )
    return EngineIntegrityError(artifact)


def persist_forensic_artifact(artifact: ForensicArtifact, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    payload = asdict(artifact)
    payload["timestamp"] = artifact.timestamp.isoformat()
    path = output_dir / f"{artifact.artifact_id}.json"
    path.write_text(json.dumps(payload, default=str, indent=2, sort_keys=True), encoding="utf-8")
    return path
