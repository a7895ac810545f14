from .config import EngineConfig, headless_config, load_engine_config
from .errors import EngineIntegrityError, build_forensic_artifact, integrity_error, persist_forensic_artifact
from .events import EventBus
from .ids import batch_id_for, make_id, now_utc
from .randomness import PythonRandomSource, ScriptedRandomSource, gameplay_random, roll_2d6, roll_die, seeded_random

__all__ = [
    "EngineConfig",
    "EngineIntegrityError",
    "EventBus",
    "PythonRandomSource",
    "ScriptedRandomSource",
    "batch_id_for",
    "build_forensic_artifact",
    "gameplay_random",
    "headless_config",
    "integrity_error",
    "load_engine_config",
    "make_id",
    "now_utc",
    "persist_forensic_artifact",
    "roll_2d6",
    "roll_die",
    "seeded_random",
]
