"""2d20 matchup resolution.

Doubles route to special results: 1-1 is a defensive touchdown, 20-20 an
offensive touchdown, any other pair rolls a d10 on the referenced penalty
table.  Penalty slots flagged ``override_play_result`` replace the play
outright; the rest attach to the ordinary result as an accept/decline choice.
"""

from __future__ import annotations

import logging
from typing import Any

from gridflow.contracts import (
    DiceOutcome,
    DiceOutcomeKind,
    DiceRoll,
    GameState,
    OutcomeCategory,
    PenaltyInfo,
    PenaltySlot,
    PlayInput,
    PlayOutcome,
    RandomSource,
    Role,
    TurnoverInfo,
)
from gridflow.core.errors import integrity_error
from gridflow.core.randomness import roll_die
from gridflow.rules.charts import stub_outcome
from gridflow.rules.spots import FIELD_LENGTH, offense_position
from gridflow.rules.tables import TableRepository

logger = logging.getLogger(__name__)

DEFAULT_PENALTY_YARDS = 10
OFFSET_PENALTY_YARDS = 5
INTERCEPTION_TAGS = {"turnover", "interception"}
INCOMPLETE_TAGS = {"incomplete", "incompletion"}


def roll_d20(random_source: RandomSource) -> int:
    return roll_die(random_source, 20)


def roll_d10(random_source: RandomSource) -> int:
    return roll_die(random_source, 10)


def clamp_field_position(position: int, yards: int) -> int:
    """Clamp ``yards`` so a ball at ``position`` (offense's own goal = 0) stays on the field."""
    if position + yards > FIELD_LENGTH:
        return FIELD_LENGTH - position if yards > 0 else -position
    if position + yards < 0:
        return -position
    return yards


def clock_runoff_for(out_of_bounds: bool, first_down: bool, incomplete: bool) -> int:
    if out_of_bounds or incomplete:
        return 10
    if first_down:
        return 20
    return 30


class DiceResolver:
    def __init__(self, tables: TableRepository) -> None:
        self._tables = tables

    def resolve_snap(
        self,
        off_card_id: str,
        def_card_id: str,
        matchup_table: dict[str, Any],
        penalty_table: dict[str, Any],
        state: GameState,
        random_source: RandomSource,
    ) -> DiceOutcome:
        roll = DiceRoll(roll_d20(random_source), roll_d20(random_source))
        if roll.is_doubles:
            if roll.d1 == 1:
                return DiceOutcome(kind=DiceOutcomeKind.DEFENSIVE_TD, roll=roll, description="Doubles 1-1: defensive touchdown")
            if roll.d1 == 20:
                return DiceOutcome(kind=DiceOutcomeKind.OFFENSIVE_TD, roll=roll, description="Doubles 20-20: offensive touchdown")
            return self._penalty_doubles(roll, off_card_id, def_card_id, matchup_table, penalty_table, state, random_source)
        return self._base_result(roll, off_card_id, def_card_id, matchup_table, state)

    def resolve(self, play_input: PlayInput, state: GameState, random_source: RandomSource) -> PlayOutcome:
        if not self._tables.dice_available:
            logger.warning("dice tables unavailable; stub result for %s", play_input.play_label)
            return stub_outcome("dice tables unavailable")
        matchup = self._tables.matchup_table(play_input.play_label, play_input.defense_label)
        if matchup is None:
            logger.warning("no matchup table for %s vs %s", play_input.play_label, play_input.defense_label)
            return stub_outcome(f"no matchup table for {play_input.play_label} vs {play_input.defense_label}")
        ref = str(matchup.get("doubles", {}).get("2-19", {}).get("penalty_table_ref", ""))
        penalty_table = self._tables.penalty_table(ref)
        if penalty_table is None:
            logger.warning("penalty table '%s' missing for matchup %s", ref, matchup.get("id"))
            return stub_outcome(f"penalty table '{ref}' missing")

        dice = self.resolve_snap(play_input.play_label, play_input.defense_label, matchup, penalty_table, state, random_source)
        logger.debug("dice %s-%s -> %s", dice.roll.d1, dice.roll.d2, dice.kind.value)
        return to_play_outcome(dice)

    def _penalty_doubles(
        self,
        roll: DiceRoll,
        off_card_id: str,
        def_card_id: str,
        matchup_table: dict[str, Any],
        penalty_table: dict[str, Any],
        state: GameState,
        random_source: RandomSource,
    ) -> DiceOutcome:
        penalty_roll = roll_d10(random_source)
        entry = penalty_table.get("entries", {}).get(str(penalty_roll))
        if entry is None:
            raise integrity_error(
                "dice",
                "PENALTY_SLOT_MISSING",
                f"penalty table has no slot {penalty_roll}",
                state,
                context={"penalty_table": penalty_table.get("id"), "roll": [roll.d1, roll.d2]},
                identifiers={"off_card": off_card_id, "def_card": def_card_id},
                causal_fragment=["2d20 doubles", f"d10={penalty_roll}"],
            )
        slot = penalty_slot(penalty_roll, entry, random_source)
        if slot.override_play_result:
            signed = slot.yards if slot.side is Role.DEFENSE else -slot.yards
            yards = clamp_field_position(offense_position(state.possession, state.ball_on), signed)
            return DiceOutcome(
                kind=DiceOutcomeKind.PENALTY_OVERRIDE,
                roll=roll,
                yards=yards,
                final_yards=yards,
                penalty=slot,
                penalty_roll=penalty_roll,
                description=f"Doubles {roll.d1}-{roll.d2}: {slot.label} (replaces the play)",
            )

        base = self._base_result(roll, off_card_id, def_card_id, matchup_table, state)
        base.kind = DiceOutcomeKind.PENALTY_CHOICE
        base.penalty = slot
        base.penalty_roll = penalty_roll
        base.can_accept_decline = True
        base.description = f"{base.description}; {slot.label} may be accepted or declined"
        return base

    def _base_result(
        self,
        roll: DiceRoll,
        off_card_id: str,
        def_card_id: str,
        matchup_table: dict[str, Any],
        state: GameState,
    ) -> DiceOutcome:
        entry = matchup_table.get("entries", {}).get(str(roll.sum))
        if entry is None:
            raise integrity_error(
                "dice",
                "DICE_ENTRY_MISSING",
                f"matchup table has no entry for dice sum {roll.sum}",
                state,
                context={"matchup_table": matchup_table.get("id"), "roll": [roll.d1, roll.d2]},
                identifiers={"off_card": off_card_id, "def_card": def_card_id},
                causal_fragment=["2d20 lookup", f"sum={roll.sum}"],
            )

        raw_yards = int(entry.get("yards", 0))
        yards = raw_yards
        if matchup_table.get("meta", {}).get("field_pos_clamp"):
            yards = clamp_field_position(offense_position(state.possession, state.ball_on), raw_yards)

        tags = [str(tag) for tag in entry.get("tags", [])]
        turnover = None
        if isinstance(entry.get("turnover"), dict):
            raw_turnover = entry["turnover"]
            turnover = TurnoverInfo(
                type=str(raw_turnover["type"]),
                return_yards=int(raw_turnover.get("return_yards", 0)),
                return_to=str(raw_turnover.get("return_to", "LOS")),
            )
        elif INTERCEPTION_TAGS & set(tags):
            turnover = TurnoverInfo(type="INT")

        incomplete = turnover is None and bool(INCOMPLETE_TAGS & set(tags))
        out_of_bounds = bool(entry.get("oob", False))
        first_down = turnover is None and not incomplete and yards > 0 and yards >= state.to_go
        return DiceOutcome(
            kind=DiceOutcomeKind.NORMAL,
            roll=roll,
            yards=raw_yards,
            final_yards=yards,
            turnover=turnover,
            out_of_bounds=out_of_bounds,
            incomplete=incomplete,
            tags=tags,
            is_first_down=first_down,
            clock_runoff=clock_runoff_for(out_of_bounds, first_down, incomplete),
            description=_describe(roll, yards, turnover, incomplete),
        )


def penalty_slot(slot: int, entry: dict[str, Any], random_source: RandomSource) -> PenaltySlot:
    label = str(entry.get("label", f"Penalty slot {slot}"))
    common = {
        "slot": slot,
        "label": label,
        "auto_first_down": bool(entry.get("auto_first_down", False)),
        "loss_of_down": bool(entry.get("loss_of_down", False)),
        "replay_down": bool(entry.get("replay_down", False)),
        "override_play_result": bool(entry.get("override_play_result", False)),
    }
    if entry.get("side") == "offset":
        side = Role.OFFENSE if random_source.rand() < 0.5 else Role.DEFENSE
        return PenaltySlot(side=side, yards=OFFSET_PENALTY_YARDS, offsetting=True, **common)
    return PenaltySlot(side=Role(str(entry["side"])), yards=int(entry.get("yards") or DEFAULT_PENALTY_YARDS), **common)


def to_play_outcome(dice: DiceOutcome) -> PlayOutcome:
    raw = f"2d20 {dice.roll.d1}-{dice.roll.d2}"
    if dice.kind is DiceOutcomeKind.DEFENSIVE_TD:
        return PlayOutcome(
            category=OutcomeCategory.OTHER,
            forced_touchdown=Role.DEFENSE,
            raw=raw,
            rule="doubles",
            clock_runoff=dice.clock_runoff,
            description=dice.description,
        )
    if dice.kind is DiceOutcomeKind.OFFENSIVE_TD:
        return PlayOutcome(
            category=OutcomeCategory.OTHER,
            forced_touchdown=Role.OFFENSE,
            raw=raw,
            rule="doubles",
            clock_runoff=dice.clock_runoff,
            description=dice.description,
        )
    if dice.kind is DiceOutcomeKind.PENALTY_OVERRIDE and dice.penalty is not None:
        return PlayOutcome(
            category=OutcomeCategory.PENALTY,
            penalty=_penalty_info(dice.penalty),
            penalty_forced=True,
            raw=raw,
            rule="penalty_override",
            clock_runoff=dice.clock_runoff,
            description=dice.description,
        )

    if dice.turnover is not None and dice.turnover.type == "INT":
        outcome = PlayOutcome(category=OutcomeCategory.INTERCEPTION, intercept_return=dice.turnover.return_yards)
    elif dice.turnover is not None:
        outcome = PlayOutcome(category=OutcomeCategory.FUMBLE)
    elif dice.incomplete:
        outcome = PlayOutcome(category=OutcomeCategory.INCOMPLETE)
    else:
        category = OutcomeCategory.LOSS if dice.final_yards < 0 else OutcomeCategory.GAIN
        outcome = PlayOutcome(category=category, yards=dice.final_yards)
    outcome.out_of_bounds = dice.out_of_bounds
    outcome.raw = raw
    outcome.rule = "matchup"
    outcome.clock_runoff = dice.clock_runoff
    outcome.description = dice.description
    if dice.can_accept_decline and dice.penalty is not None:
        outcome.penalty = _penalty_info(dice.penalty)
        outcome.penalty_optional = True
    return outcome


def _penalty_info(slot: PenaltySlot) -> PenaltyInfo:
    return PenaltyInfo(
        on=slot.side,
        yards=slot.yards,
        first_down=slot.auto_first_down,
        label=slot.label,
        loss_of_down=slot.loss_of_down,
    )


def _describe(roll: DiceRoll, yards: int, turnover: TurnoverInfo | None, incomplete: bool) -> str:
    prefix = f"Roll {roll.d1}+{roll.d2}={roll.sum}"
    if turnover is not None:
        kind = "interception" if turnover.type == "INT" else "fumble"
        return f"{prefix}: {kind}, return {turnover.return_yards}"
    if incomplete:
        return f"{prefix}: incomplete"
    return f"{prefix}: {yards:+d} yards"
