"""Chart result strings to structured play outcomes.

Rules are tried in ``RESULT_RULES`` order and the first match wins, so a
string such as ``"LG PENALTY +20"`` is a penalty, not a long gain.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from gridflow.contracts import OutcomeCategory, PenaltyInfo, PlayOutcome, RandomSource, Role
from gridflow.rules.long_gain import roll_long_gain

_SIGNED_OR_BARE = re.compile(r"[+-]?\d+")
_SIGNED = re.compile(r"[+-]\d+")
_NEGATIVE = re.compile(r"-\d+")
_OUT_OF_BOUNDS = re.compile(r"O/?B", re.IGNORECASE)
_FIRST_DOWN = re.compile(r"1st\s*Down", re.IGNORECASE)
_COMPLETE = re.compile(r"Complete\s*[+-]\d+", re.IGNORECASE)

RuleBuilder = Callable[[str, PlayOutcome, RandomSource], None]


@dataclass(frozen=True, slots=True)
class ResultRule:
    name: str
    pattern: re.Pattern[str]
    build: RuleBuilder


def _incomplete(text: str, outcome: PlayOutcome, random_source: RandomSource) -> None:
    outcome.category = OutcomeCategory.INCOMPLETE


def _fumble(text: str, outcome: PlayOutcome, random_source: RandomSource) -> None:
    outcome.category = OutcomeCategory.FUMBLE


def _interception(text: str, outcome: PlayOutcome, random_source: RandomSource) -> None:
    outcome.category = OutcomeCategory.INTERCEPTION
    match = _SIGNED_OR_BARE.search(text)
    outcome.intercept_return = int(match.group(0)) if match else 0


def _penalty(text: str, outcome: PlayOutcome, random_source: RandomSource) -> None:
    match = _SIGNED.search(text)
    yards = int(match.group(0)) if match else 0
    outcome.category = OutcomeCategory.PENALTY
    outcome.penalty = PenaltyInfo(
        on=Role.DEFENSE if yards > 0 else Role.OFFENSE,
        yards=abs(yards),
        first_down=bool(_FIRST_DOWN.search(text)),
        label=text,
    )


def _sack(text: str, outcome: PlayOutcome, random_source: RandomSource) -> None:
    match = _NEGATIVE.search(text)
    if match:
        outcome.yards = int(match.group(0))
    outcome.category = OutcomeCategory.LOSS


def _long_gain(text: str, outcome: PlayOutcome, random_source: RandomSource) -> None:
    rolled = roll_long_gain(random_source)
    outcome.yards = rolled.yards
    outcome.long_gain_rolls = rolled.rolls
    outcome.category = OutcomeCategory.GAIN


def _signed_yards(text: str, outcome: PlayOutcome, random_source: RandomSource) -> None:
    outcome.yards = int(_SIGNED_OR_BARE.search(text).group(0))  # type: ignore[union-attr]
    outcome.category = OutcomeCategory.LOSS if outcome.yards < 0 else OutcomeCategory.GAIN


def _complete(text: str, outcome: PlayOutcome, random_source: RandomSource) -> None:
    found = _COMPLETE.search(text)
    outcome.yards = int(_SIGNED.search(found.group(0)).group(0))  # type: ignore[union-attr]
    outcome.category = OutcomeCategory.LOSS if outcome.yards < 0 else OutcomeCategory.GAIN


RESULT_RULES: tuple[ResultRule, ...] = (
    ResultRule("incomplete", re.compile(r"Incomplete", re.IGNORECASE), _incomplete),
    ResultRule("fumble", re.compile(r"FUMBLE", re.IGNORECASE), _fumble),
    ResultRule("interception", re.compile(r"INTERCEPT", re.IGNORECASE), _interception),
    ResultRule("penalty", re.compile(r"PENALTY", re.IGNORECASE), _penalty),
    ResultRule("sack", re.compile(r"Sack", re.IGNORECASE), _sack),
    ResultRule("long_gain", re.compile(r"LG"), _long_gain),
    ResultRule("signed_yards", _SIGNED_OR_BARE, _signed_yards),
    ResultRule("complete", _COMPLETE, _complete),
)


def parse_result_string(text: str | None, random_source: RandomSource) -> PlayOutcome:
    outcome = PlayOutcome(category=OutcomeCategory.OTHER)
    if not text or not text.strip():
        outcome.rule = "empty"
        return outcome

    cleaned = text.strip()
    outcome.raw = cleaned
    outcome.out_of_bounds = bool(_OUT_OF_BOUNDS.search(cleaned))
    for rule in RESULT_RULES:
        if rule.pattern.search(cleaned):
            rule.build(cleaned, outcome, random_source)
            outcome.rule = rule.name
            return outcome
    outcome.rule = "other"
    return outcome
