from __future__ import annotations

import logging
import multiprocessing
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, wait
from typing import Callable, Iterable, Protocol, Sequence

from gridflow.core.config import EngineConfig, headless_config
from gridflow.simulation.models import BatchProgress, BatchSummary, GameCheck
from gridflow.simulation.session import simulate_one_game
from gridflow.simulation.validation import validate_events

logger = logging.getLogger(__name__)

ProgressHandler = Callable[[BatchProgress], None]

DEFAULT_CHUNK_SIZE = 25
CANCEL_POLL_SECONDS = 0.1


class StopFlag(Protocol):
    def is_set(self) -> bool: ...


class CancelToken:
    """Cooperative cancellation shared between the caller and a running batch."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def check_game(seed: int, config: EngineConfig) -> GameCheck:
    record = simulate_one_game(seed, config)
    return GameCheck(
        seed=seed,
        player_score=record.player_score,
        ai_score=record.ai_score,
        winner=record.winner,
        validation=validate_events(record.events),
        drive_count=len(record.drives),
        snap_count=len(record.plays),
    )


def run_chunk(seeds: Sequence[int], config: EngineConfig, stop: StopFlag | None = None) -> list[GameCheck]:
    # module-level so worker processes can unpickle it
    games: list[GameCheck] = []
    for seed in seeds:
        if stop is not None and stop.is_set():
            break
        games.append(check_game(seed, config))
    return games


def chunked(seeds: Sequence[int], chunk_size: int) -> list[list[int]]:
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    return [list(seeds[i : i + chunk_size]) for i in range(0, len(seeds), chunk_size)]


def parse_seed_range(text: str) -> list[int]:
    """``"1-50"`` -> 1..50 inclusive; ``"7"`` -> [7]; comma lists are concatenated."""
    seeds: list[int] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part[1:]:
            split_at = part.index("-", 1)
            start, end = int(part[:split_at]), int(part[split_at + 1 :])
            if end < start:
                raise ValueError(f"seed range '{part}' is reversed")
            seeds.extend(range(start, end + 1))
        else:
            seeds.append(int(part))
    return seeds


def run_batch(
    seeds: Iterable[int],
    *,
    config: EngineConfig | None = None,
    workers: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: ProgressHandler | None = None,
    cancel: CancelToken | None = None,
) -> BatchSummary:
    """Simulate and validate every seed.

    With ``workers > 1`` chunks run on a process pool, at most ``workers`` in
    flight.  Both paths check for cancellation between seeds: workers watch a
    manager-backed event mirrored from the token, and chunks not yet started
    are dropped.
    """
    seed_list = list(seeds)
    cfg = config or headless_config()
    chunks = chunked(seed_list, chunk_size)
    token = cancel or CancelToken()
    games: list[GameCheck] = []

    def report() -> None:
        passed = sum(1 for g in games if g.validation.ok)
        progress = BatchProgress(done=len(games), total=len(seed_list), passed=passed, failed=len(games) - passed)
        logger.info("batch progress %s/%s passed=%s failed=%s", progress.done, progress.total, progress.passed, progress.failed)
        if on_progress is not None:
            on_progress(progress)

    if workers <= 1:
        for chunk in chunks:
            for seed in chunk:
                if token.cancelled:
                    break
                games.append(check_game(seed, cfg))
            report()
            if token.cancelled:
                break
    else:
        with multiprocessing.Manager() as manager, ProcessPoolExecutor(max_workers=workers) as executor:
            stop = manager.Event()
            pending_chunks = iter(chunks)
            in_flight: set[Future[list[GameCheck]]] = set()

            def submit_next() -> bool:
                chunk = next(pending_chunks, None)
                if chunk is None:
                    return False
                in_flight.add(executor.submit(run_chunk, chunk, cfg, stop))
                return True

            if token.cancelled:
                stop.set()
            for _ in range(workers):
                if not submit_next():
                    break
            while in_flight:
                done, _ = wait(in_flight, timeout=CANCEL_POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    in_flight.discard(future)
                    if future.cancelled():
                        continue
                    games.extend(future.result())
                    report()
                    if not token.cancelled:
                        submit_next()
                if token.cancelled:
                    stop.set()
                    for future in in_flight:
                        future.cancel()

    if token.cancelled:
        logger.warning("batch cancelled after %s of %s games", len(games), len(seed_list))
    return summarize(games, total=len(seed_list), cancelled=token.cancelled)


def summarize(games: list[GameCheck], *, total: int | None = None, cancelled: bool = False) -> BatchSummary:
    games = sorted(games, key=lambda g: g.seed)
    passed = sum(1 for g in games if g.validation.ok)
    count = len(games)
    return BatchSummary(
        total=total if total is not None else count,
        passed=passed,
        failed=count - passed,
        failures=[{"seed": g.seed, "issues": list(g.validation.issues)} for g in games if not g.validation.ok],
        avg_player=round(sum(g.player_score for g in games) / count, 2) if count else 0.0,
        avg_ai=round(sum(g.ai_score for g in games) / count, 2) if count else 0.0,
        cancelled=cancelled,
        games=games,
    )
