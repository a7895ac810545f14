from __future__ import annotations

import re
from dataclasses import dataclass, field

from gridflow.contracts import RandomSource
from gridflow.core.randomness import roll_die
from gridflow.rules.tables import LONG_GAIN_TABLE

_YARDS = re.compile(r"[+-]?\d+")


@dataclass(slots=True)
class LongGainRoll:
    yards: int
    rolls: list[int] = field(default_factory=list)


def roll_long_gain(random_source: RandomSource) -> LongGainRoll:
    roll = roll_die(random_source, 6)
    entry = LONG_GAIN_TABLE.get(roll)
    if entry is None:
        return LongGainRoll(yards=30, rolls=[roll])
    base = int(_YARDS.search(entry).group(0))  # type: ignore[union-attr]
    if "and" in entry:
        bonus_roll = roll_die(random_source, 6)
        return LongGainRoll(yards=base + bonus_roll * 10, rolls=[roll, bonus_roll])
    return LongGainRoll(yards=base, rolls=[roll])


def resolve_long_gain(random_source: RandomSource) -> int:
    return roll_long_gain(random_source).yards
