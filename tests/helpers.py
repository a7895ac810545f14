from __future__ import annotations

from gridflow.contracts import EngineKind, FlowEvent, FlowEventKind, GameState, PlayInput, TeamSide
from gridflow.core.config import EngineConfig, headless_config
from gridflow.core.randomness import ScriptedRandomSource
from gridflow.flow import GameFlow


def die(face: int, sides: int = 6) -> float:
    """A draw that ``roll_die(rng, sides)`` turns into ``face``."""
    return (face - 1) / sides + 0.01


def scripted(*faces: int, sides: int = 6) -> ScriptedRandomSource:
    return ScriptedRandomSource([die(face, sides) for face in faces])


def make_state(**overrides) -> GameState:
    state = GameState(seed=1, quarter=1, clock=900, down=1, to_go=10, ball_on=30, possession=TeamSide.PLAYER)
    for key, value in overrides.items():
        setattr(state, key, value)
    return state


def make_flow(*faces: int, config: EngineConfig | None = None, sides: int = 6, policy=None) -> GameFlow:
    return GameFlow(config or headless_config(), scripted(*faces, sides=sides), policy=policy)


def dice_config(human: bool = False) -> EngineConfig:
    config = headless_config(engine=EngineKind.DICE)
    if human:
        config.human_sides = frozenset({TeamSide.PLAYER})
    return config


def play(play_label: str, defense_label: str, deck_name: str = "Pro Style") -> PlayInput:
    return PlayInput(deck_name=deck_name, play_label=play_label, defense_label=defense_label)


def kinds(events: list[FlowEvent]) -> list[FlowEventKind]:
    return [event.kind for event in events]


def messages(events: list[FlowEvent]) -> list[str]:
    return [event.payload["message"] for event in events if event.kind is FlowEventKind.LOG]
