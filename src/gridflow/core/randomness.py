from __future__ import annotations

import hashlib
import random
from typing import Any, Sequence

from gridflow.contracts import RandomSource


class PythonRandomSource(RandomSource):
    """Seeded game stream.  Counts draws so replays can compare how much randomness a game used."""

    def __init__(self, seed: int | None = None) -> None:
        self._seed = seed
        self._rng = random.Random(seed)
        self._draws = 0

    @property
    def draws(self) -> int:
        return self._draws

    def rand(self) -> float:
        self._draws += 1
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        self._draws += 1
        return self._rng.randint(a, b)

    def choice(self, items: Sequence[Any]) -> Any:
        if not items:
            raise ValueError("choice items must not be empty")
        return items[int(self.rand() * len(items))]

    def spawn(self, substream_id: str) -> PythonRandomSource:
        # unseeded parents hand out unseeded children
        if self._seed is None:
            return PythonRandomSource()
        return PythonRandomSource(_child_seed(self._seed, substream_id))


def _child_seed(seed: int, substream_id: str) -> int:
    digest = hashlib.blake2b(f"{seed}/{substream_id}".encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big")


class ScriptedRandomSource(RandomSource):
    """Replays a fixed sequence of draws; used to pin dice in tests and replays."""

    def __init__(self, values: Sequence[float], *, fallback: RandomSource | None = None) -> None:
        self._values = list(values)
        self._index = 0
        self._fallback = fallback

    @property
    def consumed(self) -> int:
        return self._index

    def rand(self) -> float:
        if self._index < len(self._values):
            value = self._values[self._index]
            self._index += 1
            return value
        if self._fallback is None:
            raise IndexError(f"scripted random source exhausted after {self._index} draws")
        return self._fallback.rand()

    def randint(self, a: int, b: int) -> int:
        return a + int(self.rand() * (b - a + 1))

    def choice(self, items: Sequence[Any]) -> Any:
        if not items:
            raise ValueError("choice items must not be empty")
        return items[int(self.rand() * len(items))]

    def spawn(self, substream_id: str) -> RandomSource:
        if self._fallback is None:
            return ScriptedRandomSource([])
        return self._fallback.spawn(substream_id)


def roll_die(random_source: RandomSource, sides: int) -> int:
    return int(random_source.rand() * sides) + 1


def roll_2d6(random_source: RandomSource) -> int:
    return roll_die(random_source, 6) + roll_die(random_source, 6)


def gameplay_random() -> PythonRandomSource:
    return PythonRandomSource(seed=None)


def seeded_random(seed: int) -> PythonRandomSource:
    return PythonRandomSource(seed=seed)
