from __future__ import annotations

import pytest

from gridflow.contracts import DiceOutcomeKind, OutcomeCategory, Role
from gridflow.core import EngineIntegrityError
from gridflow.core.randomness import ScriptedRandomSource
from gridflow.rules import DiceResolver, TableRepository
from gridflow.rules.dice import clamp_field_position, clock_runoff_for, penalty_slot
from tests.helpers import die, make_state, play


def _rolls(d1: int, d2: int, *d10: int) -> ScriptedRandomSource:
    return ScriptedRandomSource([die(d1, 20), die(d2, 20), *(die(face, 10) for face in d10)])


def _resolver() -> DiceResolver:
    return DiceResolver(TableRepository())


def test_snake_eyes_is_a_defensive_touchdown():
    outcome = _resolver().resolve(play("Draw", "Passing"), make_state(), _rolls(1, 1))
    assert outcome.category is OutcomeCategory.OTHER
    assert outcome.forced_touchdown is Role.DEFENSE


def test_double_twenties_is_an_offensive_touchdown():
    outcome = _resolver().resolve(play("Draw", "Passing"), make_state(), _rolls(20, 20))
    assert outcome.forced_touchdown is Role.OFFENSE


def test_plain_roll_reads_matchup_entry_by_sum():
    outcome = _resolver().resolve(play("Draw", "Passing"), make_state(), _rolls(10, 11))
    assert outcome.category is OutcomeCategory.GAIN
    assert outcome.yards == 5
    assert outcome.clock_runoff == 30
    assert outcome.raw == "2d20 10-11"

    first_down = _resolver().resolve(play("Draw", "Passing"), make_state(to_go=5), _rolls(10, 11))
    assert first_down.clock_runoff == 20


def test_interception_and_incomplete_entries():
    pick = _resolver().resolve(play("Draw", "Passing"), make_state(), _rolls(1, 2))
    assert pick.category is OutcomeCategory.INTERCEPTION
    assert pick.intercept_return == 12

    incomplete = _resolver().resolve(play("Draw", "Passing"), make_state(), _rolls(3, 4))
    assert incomplete.category is OutcomeCategory.INCOMPLETE
    assert incomplete.clock_runoff == 10


def test_penalty_doubles_attach_optional_penalty_to_the_play():
    outcome = _resolver().resolve(play("Draw", "Passing"), make_state(), _rolls(5, 5, 7))
    assert outcome.category is OutcomeCategory.GAIN
    assert outcome.yards == 1
    assert outcome.penalty_optional
    assert not outcome.penalty_forced
    assert outcome.penalty.on is Role.DEFENSE
    assert outcome.penalty.yards == 10
    assert outcome.penalty.first_down
    assert outcome.penalty.label == "Defensive holding"


def test_override_slot_replaces_the_play():
    outcome = _resolver().resolve(play("Draw", "Passing"), make_state(), _rolls(2, 2, 4))
    assert outcome.category is OutcomeCategory.PENALTY
    assert outcome.penalty_forced
    assert outcome.penalty.on is Role.DEFENSE
    assert outcome.penalty.yards == 15


def test_offsetting_slot_picks_a_side_and_five_yards():
    entry = {"side": "offset", "override_play_result": True, "label": "Offsetting fouls"}
    slot = penalty_slot(6, entry, ScriptedRandomSource([0.2]))
    assert slot.offsetting
    assert slot.side is Role.OFFENSE
    assert slot.yards == 5
    assert penalty_slot(6, entry, ScriptedRandomSource([0.8])).side is Role.DEFENSE


def test_resolve_snap_reports_missing_entry_as_integrity_error():
    repo = TableRepository()
    with pytest.raises(EngineIntegrityError) as ex:
        _resolver().resolve_snap(
            "Draw",
            "Passing",
            {"id": "x", "entries": {}},
            repo.penalty_table("standard"),
            make_state(),
            _rolls(3, 9),
        )
    assert ex.value.artifact.error_code == "DICE_ENTRY_MISSING"
    assert ex.value.artifact.identifiers == {"off_card": "Draw", "def_card": "Passing"}


def test_resolve_snap_returns_raw_dice_outcome():
    repo = TableRepository()
    matchup = repo.matchup_table("Draw", "Passing")
    dice = _resolver().resolve_snap("Draw", "Passing", matchup, repo.penalty_table("standard"), make_state(), _rolls(5, 5, 7))
    assert dice.kind is DiceOutcomeKind.PENALTY_CHOICE
    assert dice.can_accept_decline
    assert dice.penalty_roll == 7


def test_clamp_field_position_keeps_ball_on_field():
    assert clamp_field_position(95, 10) == 5
    assert clamp_field_position(3, -10) == -3
    assert clamp_field_position(40, 12) == 12


def test_clock_runoff_by_play_shape():
    assert clock_runoff_for(out_of_bounds=True, first_down=True, incomplete=False) == 10
    assert clock_runoff_for(out_of_bounds=False, first_down=False, incomplete=True) == 10
    assert clock_runoff_for(out_of_bounds=False, first_down=True, incomplete=False) == 20
    assert clock_runoff_for(out_of_bounds=False, first_down=False, incomplete=False) == 30
