from .batch import CancelToken, parse_seed_range, run_batch, summarize
from .models import BatchProgress, BatchSummary, EventValidation, GameCheck, GameRecord
from .replay import ReplayAction, ReplayHarness, events_digest
from .session import GameSession, PolicyPlayCaller, RandomPlayCaller, ScriptedPlayCaller, simulate_one_game
from .validation import validate_events

__all__ = [
    "BatchProgress",
    "BatchSummary",
    "CancelToken",
    "EventValidation",
    "GameCheck",
    "GameRecord",
    "GameSession",
    "PolicyPlayCaller",
    "RandomPlayCaller",
    "ReplayAction",
    "ReplayHarness",
    "ScriptedPlayCaller",
    "events_digest",
    "parse_seed_range",
    "run_batch",
    "simulate_one_game",
    "summarize",
    "validate_events",
]
