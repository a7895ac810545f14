from __future__ import annotations

import logging

from gridflow.contracts import GameState, OutcomeCategory, PlayInput, PlayOutcome, RandomSource, TimeKeeping
from gridflow.rules.parsing import parse_result_string
from gridflow.rules.tables import (
    DECK_NAME_TO_CHART_KEY,
    DEF_LABEL_TO_NUM,
    DEF_NUM_TO_LETTER,
    LABEL_TO_CHART_KEY,
    TableRepository,
)
from gridflow.rules.timekeeping import time_off_with_two_minute

logger = logging.getLogger(__name__)

STUB_RUNOFF_SECONDS = 30


def stub_outcome(reason: str) -> PlayOutcome:
    return PlayOutcome(
        category=OutcomeCategory.OTHER,
        yards=0,
        rule="stub",
        clock_runoff=STUB_RUNOFF_SECONDS,
        description=reason,
    )


def chart_time_off(outcome: PlayOutcome, state: GameState, time_keeping: TimeKeeping) -> int:
    """Clock estimate recorded on chart outcomes for inspection only.

    Chart plays have always been timed as if outside the two-minute window,
    so an incompletion at 1:40 of Q4 still reports its full base time off.
    Nothing downstream reads it; ``TimeManagement`` owns the real clock.
    """
    was_first_down = outcome.category is OutcomeCategory.GAIN and 0 < outcome.yards and outcome.yards >= state.to_go
    return time_off_with_two_minute(outcome, time_keeping, in_two_minute=False, was_first_down=was_first_down)


def defense_letter(defense_label: str) -> str | None:
    number = DEF_LABEL_TO_NUM.get(defense_label)
    if number is None:
        return None
    return DEF_NUM_TO_LETTER[number]


class ChartResolver:
    """Deterministic chart lookup: (deck, play, defense) -> result string -> outcome."""

    def __init__(self, tables: TableRepository, time_keeping: TimeKeeping | None = None) -> None:
        self._tables = tables
        self._time_keeping = time_keeping or TimeKeeping()

    def lookup(self, play_input: PlayInput) -> str | None:
        deck_key = DECK_NAME_TO_CHART_KEY.get(play_input.deck_name, play_input.deck_name)
        play_key = LABEL_TO_CHART_KEY.get(play_input.play_label, play_input.play_label)
        letter = defense_letter(play_input.defense_label)
        if letter is None:
            return None
        return self._tables.chart_result(deck_key, play_key, letter)

    def resolve(self, play_input: PlayInput, state: GameState, random_source: RandomSource) -> PlayOutcome:
        if not self._tables.charts_available:
            logger.warning("offense charts unavailable; stub result for %s", play_input.play_label)
            return stub_outcome("charts unavailable")
        text = self.lookup(play_input)
        if text is None:
            logger.warning(
                "no chart entry for deck=%s play=%s defense=%s",
                play_input.deck_name,
                play_input.play_label,
                play_input.defense_label,
            )
            return stub_outcome(f"no chart entry for {play_input.play_label} vs {play_input.defense_label}")

        outcome = parse_result_string(text, random_source)
        outcome.resolver_time_off = chart_time_off(outcome, state, self._time_keeping)
        logger.debug("chart %s -> %s (%s)", play_input.to_dict(), outcome.category.value, text)
        return outcome
