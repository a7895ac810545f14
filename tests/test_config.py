from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from gridflow.contracts import EngineKind, TeamSide, ValidationError
from gridflow.core import (
    EngineConfig,
    batch_id_for,
    build_forensic_artifact,
    headless_config,
    load_engine_config,
    persist_forensic_artifact,
)


def _codes(exc: ValidationError) -> set[str]:
    return {issue.code for issue in exc.issues}


def test_defaults_treat_home_as_human():
    config = EngineConfig()
    assert config.engine is EngineKind.CHART
    assert config.is_human(TeamSide.PLAYER)
    assert not config.is_human(TeamSide.AI)
    assert not headless_config().human_sides
    assert headless_config(EngineKind.DICE, max_snaps=10).max_snaps == 10


def test_load_engine_config_from_mapping():
    config = load_engine_config(
        {"engine": "dice", "human_sides": ["ai"], "time_keeping": {"kickoff": 10, "penalty": 0}, "max_snaps": 50}
    )
    assert config.engine is EngineKind.DICE
    assert config.human_sides == frozenset({TeamSide.AI})
    assert config.time_keeping.kickoff == 10
    assert config.time_keeping.penalty == 0
    assert config.time_keeping.punt == 15
    assert config.max_snaps == 50


def test_load_engine_config_from_file(tmp_path: Path):
    path = tmp_path / "engine.json"
    path.write_text(json.dumps({"engine": "chart", "human_sides": []}), encoding="utf-8")
    config = load_engine_config(path)
    assert config.engine is EngineKind.CHART
    assert config.human_sides == frozenset()


def test_invalid_config_reports_every_issue():
    with pytest.raises(ValidationError) as exc:
        load_engine_config(
            {
                "engine": "bogus",
                "human_sides": ["VISITOR"],
                "time_keeping": {"kickoff": -1, "halftime": 3, "punt": True},
                "max_snaps": 0,
                "extra": 1,
            }
        )
    assert _codes(exc.value) == {
        "INVALID_ENGINE",
        "INVALID_HUMAN_SIDE",
        "INVALID_TIME_KEEPING_VALUE",
        "UNKNOWN_TIME_KEEPING_KEY",
        "INVALID_MAX_SNAPS",
        "UNKNOWN_CONFIG_KEY",
    }
    assert all(issue.severity == "blocking" for issue in exc.value.issues)


def test_config_document_must_be_an_object(tmp_path: Path):
    path = tmp_path / "engine.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValidationError) as exc:
        load_engine_config(path)
    assert _codes(exc.value) == {"INVALID_CONFIG_DOCUMENT"}
    assert exc.value.issues[0].entity_id == "engine.json"


def test_forensic_artifact_is_written_as_json(tmp_path: Path):
    artifact = build_forensic_artifact(
        engine_scope="dice",
        error_code="DICE_ENTRY_MISSING",
        message="no entry for sum 12",
        state_snapshot={"quarter": 1},
        context={"sum": 12},
        identifiers={"matchup": "default"},
        causal_fragment=["roll 2d20"],
    )
    path = persist_forensic_artifact(artifact, tmp_path / "forensics")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["error_code"] == "DICE_ENTRY_MISSING"
    assert data["identifiers"] == {"matchup": "default"}
    assert path.name == f"{artifact.artifact_id}.json"
    assert artifact.artifact_id.startswith("forensic_dice_")
    assert data["timestamp"] == artifact.timestamp.isoformat()


def test_batch_id_names_engine_and_seed_span():
    batch_id = batch_id_for([7, 3, 5], "dice", at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC))
    assert batch_id.startswith("batch_dice_3-7_20260102T030405_")
    assert batch_id_for([], "chart").startswith("batch_chart_none_")
