from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from importlib import resources
from typing import Any

from gridflow.contracts import ResourceManifest, ValidationError, ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)

EXPECTED_SCHEMA_VERSION = "1.0"
DICE_SUMS = tuple(str(n) for n in range(3, 40))
PENALTY_SLOTS = tuple(str(n) for n in range(1, 11))
FORCED_OVERRIDE_SLOTS = ("4", "5", "6")
DEFENSE_LETTERS = ("A", "B", "C", "D", "E", "F", "G", "H", "I", "J")
WILDCARD_CARD = "*"

DEF_LABEL_TO_NUM: dict[str, int] = {
    "Goal Line": 1,
    "Short Yardage": 2,
    "Inside Blitz": 3,
    "Running": 4,
    "Run & Pass": 5,
    "Pass & Run": 6,
    "Passing": 7,
    "Outside Blitz": 8,
    "Prevent": 9,
    "Prevent Deep": 0,
}

DEF_NUM_TO_LETTER: dict[int, str] = {1: "A", 2: "B", 3: "C", 4: "D", 5: "E", 6: "F", 7: "G", 8: "H", 9: "I", 0: "J"}

DECK_NAME_TO_CHART_KEY: dict[str, str] = {
    "Pro Style": "ProStyle",
    "Ball Control": "BallControl",
    "Aerial Style": "AerialStyle",
}

LABEL_TO_CHART_KEY: dict[str, str] = {
    "Run & Pass Option": "Run/Pass Option",
    "Sideline Pass": "Side Line Pass",
}

OFFENSE_BASE_LABELS: tuple[str, ...] = (
    "Power Up Middle",
    "Power Off Tackle",
    "QB Keeper",
    "Slant Run",
    "End Run",
    "Reverse",
    "Draw",
    "Trap",
    "Run & Pass Option",
    "Flair Pass",
    "Sideline Pass",
    "Look In Pass",
    "Screen Pass",
    "Pop Pass",
    "Button Hook Pass",
    "Razzle Dazzle",
    "Down & Out Pass",
    "Down & In Pass",
    "Long Bomb",
    "Stop & Go Pass",
)
PUNT_LABEL = "Punt (4th Down Only)"
FIELD_GOAL_LABEL = "Field Goal"
DECK_NAMES: tuple[str, ...] = tuple(DECK_NAME_TO_CHART_KEY)
DEFENSE_LABELS: tuple[str, ...] = tuple(DEF_LABEL_TO_NUM)


# 1d6 long gain; roll 1 adds another 1d6 x 10.
LONG_GAIN_TABLE: dict[int, str] = {
    1: "+50 and (+10 x 1D6)",
    2: "+50",
    3: "+45",
    4: "+40",
    5: "+35",
    6: "+30",
}

# 2d6 normal kickoff; starred entries force a reroll.
NORMAL_KICKOFF_TABLE: dict[int, str | int] = {
    2: "FUMBLE*",
    3: "PENALTY -10*",
    4: 10,
    5: 15,
    6: 20,
    7: 25,
    8: 30,
    9: 35,
    10: 40,
    11: "LG",
    12: "LG + 5",
}

# 1d6 onside kick; yard line measured from the receiving team's goal.
ONSIDE_KICK_TABLE: dict[int, dict[str, Any]] = {
    1: {"recovered_by": "kicking", "yard_line": 40},
    2: {"recovered_by": "kicking", "yard_line": 40},
    3: {"recovered_by": "receiving", "yard_line": 35},
    4: {"recovered_by": "receiving", "yard_line": 35},
    5: {"recovered_by": "receiving", "yard_line": 35},
    6: {"recovered_by": "receiving", "yard_line": 30},
}

PUNT_DISTANCE_TABLE: dict[int, int] = {2: 30, 3: 35, 4: 38, 5: 40, 6: 42, 7: 43, 8: 44, 9: 46, 10: 48, 11: 50, 12: 52}

PUNT_RETURN_TABLE: dict[int, dict[str, Any]] = {
    2: {"type": "LG"},
    3: {"yards": 20},
    4: {"yards": 15},
    5: {"yards": 12},
    6: {"yards": 10},
    7: {"yards": 8},
    8: {"yards": 6},
    9: {"yards": 5},
    10: {"yards": 3},
    11: {"yards": 0},
    12: {"type": "FC"},
}

PLACE_KICK_COLUMNS: tuple[tuple[str, int], ...] = (
    ("1-12", 12),
    ("13-22", 22),
    ("23-32", 32),
    ("33-38", 38),
    ("39-45", 45),
)

PLACE_KICK_TABLE: dict[int, dict[str, str]] = {
    2: {"PAT": "NG", "1-12": "NG", "13-22": "NG", "23-32": "G", "33-38": "G", "39-45": "G"},
    3: {"PAT": "G", "1-12": "NG", "13-22": "NG", "23-32": "NG", "33-38": "G", "39-45": "NG"},
    4: {"PAT": "G", "1-12": "G", "13-22": "NG", "23-32": "NG", "33-38": "NG", "39-45": "NG"},
    5: {"PAT": "G", "1-12": "G", "13-22": "G", "23-32": "NG", "33-38": "NG", "39-45": "NG"},
    6: {"PAT": "G", "1-12": "G", "13-22": "G", "23-32": "G", "33-38": "NG", "39-45": "NG"},
    7: {"PAT": "G", "1-12": "G", "13-22": "G", "23-32": "G", "33-38": "G", "39-45": "NG"},
    8: {"PAT": "G", "1-12": "G", "13-22": "G", "23-32": "G", "33-38": "NG", "39-45": "NG"},
    9: {"PAT": "G", "1-12": "G", "13-22": "G", "23-32": "NG", "33-38": "NG", "39-45": "NG"},
    10: {"PAT": "G", "1-12": "G", "13-22": "G", "23-32": "NG", "33-38": "NG", "39-45": "NG"},
    11: {"PAT": "G", "1-12": "G", "13-22": "NG", "23-32": "NG", "33-38": "G", "39-45": "NG"},
    12: {"PAT": "NG", "1-12": "NG", "13-22": "G", "23-32": "G", "33-38": "G", "39-45": "G"},
}


@dataclass(slots=True)
class TableBundle:
    manifest: ResourceManifest
    resources_by_id: dict[str, dict[str, Any]]


class TableRepository:
    """Read-only outcome tables, loaded once per session and passed to resolvers."""

    def __init__(self, bundle_overrides: dict[str, dict[str, Any]] | None = None, *, strict: bool = False) -> None:
        self._bundle_overrides = bundle_overrides or {}
        self._strict = strict
        self.load_issues: list[ValidationIssue] = []
        self._charts = self._load_optional("offense_charts.json", "offense_chart", _validate_chart_bundle)
        self._penalties = self._load_optional("penalty_tables.json", "penalty_table", _validate_penalty_bundle)
        self._matchups = self._load_optional("matchup_tables.json", "matchup_table", self._validate_matchup_bundle)
        self._matchups_by_cards: dict[tuple[str, str], dict[str, Any]] = {}
        if self._matchups is not None:
            self._matchups_by_cards = {
                (str(t["off_card"]), str(t["def_card"])): t for t in self._matchups.resources_by_id.values()
            }

    @property
    def charts_available(self) -> bool:
        return self._charts is not None

    @property
    def dice_available(self) -> bool:
        return self._matchups is not None and self._penalties is not None

    def chart_result(self, deck_key: str, play_key: str, letter: str) -> str | None:
        if self._charts is None:
            return None
        deck = self._charts.resources_by_id.get(deck_key)
        if deck is None:
            return None
        row = deck.get("plays", {}).get(play_key)
        if row is None:
            return None
        value = row.get(letter)
        return str(value) if value is not None else None

    def chart_play_keys(self, deck_key: str) -> list[str]:
        if self._charts is None or deck_key not in self._charts.resources_by_id:
            return []
        return sorted(self._charts.resources_by_id[deck_key].get("plays", {}))

    def matchup_table(self, off_card_id: str, def_card_id: str) -> dict[str, Any] | None:
        for key in ((off_card_id, def_card_id), (off_card_id, WILDCARD_CARD), (WILDCARD_CARD, WILDCARD_CARD)):
            if key in self._matchups_by_cards:
                return self._matchups_by_cards[key]
        return None

    def penalty_table(self, table_id: str) -> dict[str, Any] | None:
        if self._penalties is None:
            return None
        return self._penalties.resources_by_id.get(table_id)

    def _load_optional(self, filename: str, expected_type: str, validator: Any) -> TableBundle | None:
        try:
            bundle = self._load_bundle(filename, expected_type)
            issues = validator(bundle)
            if issues:
                raise ValidationError(issues)
            return bundle
        except ValidationError as exc:
            if self._strict:
                raise
            self.load_issues.extend(exc.issues)
            logger.warning("table bundle %s unavailable, resolving with stub outcomes: %s", filename, exc)
            return None

    def _load_bundle(self, filename: str, expected_type: str) -> TableBundle:
        if filename in self._bundle_overrides:
            payload = self._bundle_overrides[filename]
        else:
            package = resources.files("gridflow.resources") / "tables"
            try:
                payload = json.loads((package / filename).read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                issue = _blocking("TABLE_BUNDLE_UNREADABLE", filename, expected_type, str(exc))
                raise ValidationError([issue]) from exc
        manifest_data = payload.get("manifest")
        resources_list = payload.get("resources")
        if not isinstance(manifest_data, dict) or not isinstance(resources_list, list):
            issue = _blocking("INVALID_TABLE_BUNDLE", filename, expected_type, "table bundle must provide manifest and resources list")
            raise ValidationError([issue])

        required_manifest_fields = {"resource_type", "schema_version", "resource_version", "generated_at", "checksum"}
        missing_manifest = sorted(required_manifest_fields - set(manifest_data.keys()))
        if missing_manifest:
            issue = _blocking(
                "MISSING_MANIFEST_FIELDS", f"{filename}.manifest", expected_type, f"manifest missing required fields {missing_manifest}"
            )
            raise ValidationError([issue])

        manifest = ResourceManifest(
            resource_type=str(manifest_data["resource_type"]),
            schema_version=str(manifest_data["schema_version"]),
            resource_version=str(manifest_data["resource_version"]),
            generated_at=str(manifest_data["generated_at"]),
            checksum=str(manifest_data["checksum"]),
        )
        issues = _validate_manifest(manifest, expected_type, resources_list)
        if issues:
            raise ValidationError(issues)

        by_id: dict[str, dict[str, Any]] = {}
        for entry in resources_list:
            if not isinstance(entry, dict):
                continue
            rid = str(entry.get("id", ""))
            if not rid:
                continue
            by_id[rid] = dict(entry)
        if not by_id:
            issue = _blocking("EMPTY_TABLE_SET", filename, expected_type, "table bundle contains no usable ids")
            raise ValidationError([issue])
        return TableBundle(manifest=manifest, resources_by_id=by_id)

    def _validate_matchup_bundle(self, bundle: TableBundle) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for table_id, raw in bundle.resources_by_id.items():
            issues.extend(validate_matchup_table(raw, table_id=table_id).issues)
            ref = raw.get("doubles", {}).get("2-19", {}).get("penalty_table_ref")
            if self._penalties is not None and ref and ref not in self._penalties.resources_by_id:
                issues.append(
                    _blocking("PENALTY_TABLE_REF_MISSING", f"{table_id}.doubles.2-19", table_id, f"unknown penalty table '{ref}'")
                )
        return issues


def canonical_checksum(resources_list: list[dict[str, Any]]) -> str:
    canonical = json.dumps(resources_list, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(canonical).hexdigest()


def validate_matchup_table(raw: dict[str, Any], *, table_id: str | None = None) -> ValidationResult:
    tid = table_id or str(raw.get("id", "matchup"))
    issues: list[ValidationIssue] = []
    for key in ("version", "off_card", "def_card"):
        if not isinstance(raw.get(key), str):
            issues.append(_blocking("MATCHUP_FIELD_MISSING", f"{tid}.{key}", tid, f"'{key}' must be a string"))
    if raw.get("dice") != "2d20":
        issues.append(_blocking("MATCHUP_DICE_INVALID", f"{tid}.dice", tid, "dice must be '2d20'"))

    entries = raw.get("entries")
    if not isinstance(entries, dict):
        issues.append(_blocking("MATCHUP_ENTRIES_MISSING", f"{tid}.entries", tid, "entries must be an object"))
        entries = {}
    for dice_sum in DICE_SUMS:
        entry = entries.get(dice_sum)
        path = f"{tid}.entries.{dice_sum}"
        if not isinstance(entry, dict):
            issues.append(_blocking("MATCHUP_SUM_MISSING", path, tid, f"no entry for dice sum {dice_sum}"))
            continue
        if not _is_int(entry.get("yards")):
            issues.append(_blocking("MATCHUP_YARDS_INVALID", f"{path}.yards", tid, "yards must be an int"))
        if entry.get("clock") not in {"10", "20", "30"}:
            issues.append(_blocking("MATCHUP_CLOCK_INVALID", f"{path}.clock", tid, "clock must be '10', '20' or '30'"))
        turnover = entry.get("turnover")
        if turnover is not None:
            if not isinstance(turnover, dict) or turnover.get("type") not in {"INT", "FUM"}:
                issues.append(_blocking("MATCHUP_TURNOVER_INVALID", f"{path}.turnover", tid, "turnover type must be INT or FUM"))
            elif not _is_int(turnover.get("return_yards", 0)) or int(turnover.get("return_yards", 0)) < 0:
                issues.append(_blocking("MATCHUP_RETURN_INVALID", f"{path}.turnover", tid, "return_yards must be a non-negative int"))
            elif turnover.get("return_to", "LOS") != "LOS":
                issues.append(_blocking("MATCHUP_RETURN_INVALID", f"{path}.turnover", tid, "only LOS returns are supported"))
    for extra in sorted(set(entries) - set(DICE_SUMS)):
        issues.append(_blocking("MATCHUP_SUM_UNEXPECTED", f"{tid}.entries.{extra}", tid, f"unexpected dice sum {extra}"))

    doubles = raw.get("doubles")
    if not isinstance(doubles, dict):
        issues.append(_blocking("MATCHUP_DOUBLES_MISSING", f"{tid}.doubles", tid, "doubles must be an object"))
    else:
        if doubles.get("1", {}).get("result") != "DEF_TD":
            issues.append(_blocking("MATCHUP_DOUBLES_INVALID", f"{tid}.doubles.1", tid, "1-1 doubles must be DEF_TD"))
        if doubles.get("20", {}).get("result") != "OFF_TD":
            issues.append(_blocking("MATCHUP_DOUBLES_INVALID", f"{tid}.doubles.20", tid, "20-20 doubles must be OFF_TD"))
        if not isinstance(doubles.get("2-19", {}).get("penalty_table_ref"), str):
            issues.append(_blocking("MATCHUP_DOUBLES_INVALID", f"{tid}.doubles.2-19", tid, "2-19 doubles need a penalty_table_ref"))

    meta = raw.get("meta")
    if not isinstance(meta, dict):
        issues.append(_blocking("MATCHUP_META_MISSING", f"{tid}.meta", tid, "meta must be an object"))
    else:
        if not isinstance(meta.get("field_pos_clamp"), bool):
            issues.append(_blocking("MATCHUP_META_INVALID", f"{tid}.meta.field_pos_clamp", tid, "field_pos_clamp must be a bool"))
        if meta.get("risk_profile") not in {"low", "medium", "high"}:
            issues.append(_blocking("MATCHUP_META_INVALID", f"{tid}.meta.risk_profile", tid, "risk_profile must be low, medium or high"))
        explosive = meta.get("explosive_start_sum")
        if not _is_int(explosive) or not 20 <= int(explosive) <= 39:
            issues.append(_blocking("MATCHUP_META_INVALID", f"{tid}.meta.explosive_start_sum", tid, "explosive_start_sum must be 20..39"))
    return ValidationResult(ok=not issues, issues=issues)


def validate_penalty_table(raw: dict[str, Any], *, table_id: str | None = None) -> ValidationResult:
    tid = table_id or str(raw.get("id", "penalty"))
    issues: list[ValidationIssue] = []
    entries = raw.get("entries")
    if not isinstance(entries, dict):
        issues.append(_blocking("PENALTY_ENTRIES_MISSING", f"{tid}.entries", tid, "entries must be an object"))
        return ValidationResult(ok=False, issues=issues)
    if set(entries) != set(PENALTY_SLOTS):
        issues.append(
            _blocking("PENALTY_SLOT_COUNT", f"{tid}.entries", tid, f"expected exactly slots 1..10, got {sorted(entries, key=str)}")
        )
    for slot in PENALTY_SLOTS:
        entry = entries.get(slot)
        if not isinstance(entry, dict):
            continue
        path = f"{tid}.entries.{slot}"
        if entry.get("side") not in {"offense", "defense", "offset"}:
            issues.append(_blocking("PENALTY_SIDE_INVALID", f"{path}.side", tid, "side must be offense, defense or offset"))
        if "yards" in entry and not _is_int(entry["yards"]):
            issues.append(_blocking("PENALTY_YARDS_INVALID", f"{path}.yards", tid, "yards must be an int"))
        if not isinstance(entry.get("label"), str):
            issues.append(_blocking("PENALTY_LABEL_MISSING", f"{path}.label", tid, "label must be a string"))
        if slot in FORCED_OVERRIDE_SLOTS and entry.get("override_play_result") is not True:
            issues.append(_blocking("PENALTY_OVERRIDE_REQUIRED", f"{path}.override_play_result", tid, "slots 4-6 must override the play"))
    return ValidationResult(ok=not issues, issues=issues)


def _validate_chart_bundle(bundle: TableBundle) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for deck_key, deck in bundle.resources_by_id.items():
        plays = deck.get("plays")
        if not isinstance(plays, dict) or not plays:
            issues.append(_blocking("CHART_PLAYS_MISSING", f"{deck_key}.plays", deck_key, "deck has no plays"))
            continue
        for play_key, row in plays.items():
            if not isinstance(row, dict):
                issues.append(_blocking("CHART_ROW_INVALID", f"{deck_key}.{play_key}", deck_key, "row must map defense letters"))
                continue
            unknown = sorted(set(row) - set(DEFENSE_LETTERS))
            if unknown:
                issues.append(
                    _blocking("CHART_LETTER_UNKNOWN", f"{deck_key}.{play_key}", deck_key, f"unknown defense letters {unknown}")
                )
    return issues


def _validate_penalty_bundle(bundle: TableBundle) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for table_id, raw in bundle.resources_by_id.items():
        issues.extend(validate_penalty_table(raw, table_id=table_id).issues)
    return issues


def _validate_manifest(manifest: ResourceManifest, expected_type: str, resources_list: list[dict[str, Any]]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if manifest.resource_type != expected_type:
        issues.append(
            _blocking(
                "TABLE_TYPE_MISMATCH", "manifest.resource_type", expected_type, f"expected '{expected_type}', got '{manifest.resource_type}'"
            )
        )
    if manifest.schema_version != EXPECTED_SCHEMA_VERSION:
        issues.append(
            _blocking(
                "TABLE_SCHEMA_MISMATCH",
                "manifest.schema_version",
                expected_type,
                f"expected schema {EXPECTED_SCHEMA_VERSION}, got {manifest.schema_version}",
            )
        )
    checksum = canonical_checksum(resources_list)
    if manifest.checksum != checksum:
        issues.append(
            _blocking("TABLE_CHECKSUM_MISMATCH", "manifest.checksum", expected_type, f"expected {checksum}, got {manifest.checksum}")
        )
    return issues


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _blocking(code: str, field_path: str, entity_id: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, severity="blocking", field_path=field_path, entity_id=entity_id, message=message)
