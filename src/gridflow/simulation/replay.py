from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from gridflow.contracts import EngineKind, FlowEvent, PlayInput, TeamSide
from gridflow.core.config import EngineConfig, headless_config
from gridflow.simulation.session import GameSession


@dataclass(slots=True)
class ReplayAction:
    deck_name: str
    play_label: str
    defense_label: str

    def to_play_input(self) -> PlayInput:
        return PlayInput(deck_name=self.deck_name, play_label=self.play_label, defense_label=self.defense_label)


class ReplayHarness:
    """Re-runs a recorded play sequence on two fresh sessions and compares fingerprints."""

    def __init__(self, seed: int, receiver: TeamSide = TeamSide.PLAYER, engine: EngineKind = EngineKind.CHART) -> None:
        self.seed = seed
        self.receiver = receiver
        self.engine = engine
        self.actions: list[ReplayAction] = []

    def record(self, play_input: PlayInput) -> None:
        self.actions.append(
            ReplayAction(deck_name=play_input.deck_name, play_label=play_input.play_label, defense_label=play_input.defense_label)
        )

    def save(self, path: Path) -> None:
        payload = {
            "seed": self.seed,
            "receiver": self.receiver.value,
            "engine": self.engine.value,
            "actions": [{"deck_name": a.deck_name, "play_label": a.play_label, "defense_label": a.defense_label} for a in self.actions],
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    @staticmethod
    def load(path: Path) -> ReplayHarness:
        data = json.loads(path.read_text(encoding="utf-8"))
        harness = ReplayHarness(
            seed=int(data["seed"]),
            receiver=TeamSide(data.get("receiver", TeamSide.PLAYER.value)),
            engine=EngineKind(data.get("engine", EngineKind.CHART.value)),
        )
        for raw in data["actions"]:
            harness.actions.append(
                ReplayAction(deck_name=raw["deck_name"], play_label=raw["play_label"], defense_label=raw["defense_label"])
            )
        return harness

    def replay(self, config: EngineConfig | None = None) -> tuple[dict[str, Any], dict[str, Any]]:
        cfg = config or headless_config(engine=self.engine)
        return self._fingerprint(self._run(cfg)), self._fingerprint(self._run(cfg))

    def is_deterministic(self, config: EngineConfig | None = None) -> bool:
        first, second = self.replay(config)
        return first == second

    def _run(self, config: EngineConfig) -> GameSession:
        session = GameSession(config, self.seed)
        session.start(self.receiver)
        for action in self.actions:
            if session.state.game_over:
                break
            session.play(action.to_play_input())
        return session

    def _fingerprint(self, session: GameSession) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "snaps": session.snaps,
            "rng_draws": session.rng_draws,
            "final_state": session.state.to_dict(),
            "event_count": len(session.events),
            "events_sha256": events_digest(session.events),
        }


def events_digest(events: list[FlowEvent]) -> str:
    canonical = json.dumps([e.to_dict() for e in events], sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
