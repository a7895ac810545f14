from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from gridflow.contracts import (
    FlowEvent,
    FlowEventKind,
    FlowResult,
    FourthDownChoice,
    GameState,
    PenaltyDecision,
    PlayCaller,
    PlayInput,
    PolicyAPI,
    RandomSource,
    TeamSide,
)
from gridflow.core.config import EngineConfig, headless_config
from gridflow.core.events import EventBus
from gridflow.core.randomness import seeded_random
from gridflow.flow.helpers import log_event
from gridflow.flow.orchestrator import PENALTY_CHOICE, GameFlow
from gridflow.flow.policy import DefaultPolicy, policy_context
from gridflow.rules.tables import (
    DECK_NAMES,
    DEFENSE_LABELS,
    FIELD_GOAL_LABEL,
    OFFENSE_BASE_LABELS,
    PUNT_LABEL,
    TableRepository,
)
from gridflow.simulation.models import GameRecord

logger = logging.getLogger(__name__)

PenaltyDecider = Callable[[dict[str, Any]], PenaltyDecision]

DEFAULT_DECK = "Pro Style"
DEFAULT_PLAY = "Run & Pass Option"
DEFAULT_DEFENSE = "Run & Pass"


class ScriptedPlayCaller(PlayCaller):
    """Cycles through fixed play and defense labels."""

    def __init__(
        self,
        deck_name: str = DEFAULT_DECK,
        plays: Sequence[str] = (DEFAULT_PLAY,),
        defenses: Sequence[str] = (DEFAULT_DEFENSE,),
    ) -> None:
        if not plays or not defenses:
            raise ValueError("scripted caller needs at least one play and one defense")
        self._deck_name = deck_name
        self._plays = tuple(plays)
        self._defenses = tuple(defenses)
        self._index = 0

    def call_play(self, state: GameState, random_source: RandomSource) -> PlayInput:
        play = self._plays[self._index % len(self._plays)]
        defense = self._defenses[self._index % len(self._defenses)]
        self._index += 1
        return PlayInput(deck_name=self._deck_name, play_label=play, defense_label=defense)


class RandomPlayCaller(PlayCaller):
    """Draws a scrimmage play and a defense from the caller's own stream each snap."""

    def __init__(self, deck_name: str | None = None) -> None:
        if deck_name is not None and deck_name not in DECK_NAMES:
            raise ValueError(f"unknown deck '{deck_name}'")
        self._deck_name = deck_name

    def call_play(self, state: GameState, random_source: RandomSource) -> PlayInput:
        deck = self._deck_name or random_source.choice(DECK_NAMES)
        return PlayInput(
            deck_name=deck,
            play_label=random_source.choice(OFFENSE_BASE_LABELS),
            defense_label=random_source.choice(DEFENSE_LABELS),
        )


class PolicyPlayCaller(PlayCaller):
    """Lets the policy pick punt or field goal on fourth down; other downs go to ``fallback``."""

    def __init__(self, policy: PolicyAPI, fallback: PlayCaller | None = None) -> None:
        self._policy = policy
        self._fallback = fallback or ScriptedPlayCaller()

    def call_play(self, state: GameState, random_source: RandomSource) -> PlayInput:
        base = self._fallback.call_play(state, random_source)
        if state.down != 4:
            return base
        choice = self._policy.choose_fourth_down(policy_context(state, state.possession))
        if choice is FourthDownChoice.PUNT:
            return PlayInput(deck_name=base.deck_name, play_label=PUNT_LABEL, defense_label=base.defense_label)
        if choice is FourthDownChoice.FIELD_GOAL:
            return PlayInput(deck_name=base.deck_name, play_label=FIELD_GOAL_LABEL, defense_label=base.defense_label)
        return base


def follow_hint(data: dict[str, Any]) -> PenaltyDecision:
    return PenaltyDecision.DECLINE if data.get("hint") == "decline" else PenaltyDecision.ACCEPT


class GameSession:
    def __init__(
        self,
        config: EngineConfig,
        seed: int,
        *,
        tables: TableRepository | None = None,
        policy: PolicyAPI | None = None,
        caller: PlayCaller | None = None,
        bus: EventBus | None = None,
        penalty_decider: PenaltyDecider | None = None,
    ) -> None:
        self.config = config
        self.seed = seed
        self._random_source = seeded_random(seed)
        self._caller_sources = {
            side: self._random_source.spawn(f"caller:{side.value}") for side in (TeamSide.PLAYER, TeamSide.AI)
        }
        self._policy = policy or DefaultPolicy()
        self.flow = GameFlow(config, self._random_source, tables=tables, policy=self._policy)
        self._caller = caller or PolicyPlayCaller(self._policy)
        self.bus = bus or EventBus()
        self._penalty_decider = penalty_decider or follow_hint
        self.state = GameFlow.create_initial_game_state(seed)
        self.events: list[FlowEvent] = []
        self.plays: list[PlayInput] = []
        self.snaps = 0

    @property
    def rng_draws(self) -> int:
        """Draws taken from the game stream so far; play-caller streams are not counted."""
        return self._random_source.draws

    def start(self, receiver: TeamSide | None = None) -> None:
        if receiver is None:
            receiver = TeamSide.PLAYER if self._random_source.rand() < 0.5 else TeamSide.AI
        self.state.possession = receiver
        self._apply(self.flow.start_game(self.state, receiver))

    def play(self, play_input: PlayInput) -> FlowResult:
        """Resolve one snap, settling any penalty choice with the session's decider."""
        self.plays.append(play_input)
        self.snaps += 1
        result = self.flow.resolve_snap(self.state, play_input)
        self._apply(result)
        choice = _pending_choice(result.events)
        if choice is not None and self.flow.has_pending_penalty:
            result = self._settle_penalty(choice)
        return result

    def step(self) -> FlowResult:
        offense = self.state.possession
        return self.play(self._caller.call_play(self.state, self._caller_sources[offense]))

    def run(self, max_snaps: int | None = None) -> GameRecord:
        limit = max_snaps if max_snaps is not None else self.config.max_snaps
        while not self.state.game_over and self.snaps < limit:
            self.step()
        if not self.state.game_over:
            logger.warning("seed %s stopped after %s snaps without a final whistle", self.seed, self.snaps)
            self._apply(
                FlowResult(
                    state=self.state,
                    events=[
                        log_event(f"Simulation stopped after {self.snaps} snaps."),
                        FlowEvent(
                            FlowEventKind.FINAL,
                            {"score": {"player": self.state.score.player, "ai": self.state.score.ai}},
                        ),
                    ],
                )
            )
        return self.record()

    def record(self) -> GameRecord:
        return GameRecord(
            seed=self.seed,
            events=list(self.events),
            final_state=self.state.copy(),
            drives=list(self.flow.drives.summaries),
            plays=list(self.plays),
        )

    def _settle_penalty(self, choice: dict[str, Any]) -> FlowResult:
        candidates = self.flow.pending_candidates()
        if candidates is None:
            raise RuntimeError("penalty choice emitted without pending candidates")
        decision = self._penalty_decider(choice)
        chosen = candidates.accepted if decision is PenaltyDecision.ACCEPT else candidates.declined
        result = self.flow.finalize_penalty_decision(chosen, decision, candidates.meta)
        self._apply(result)
        return result

    def _apply(self, result: FlowResult) -> None:
        self.state = result.state
        self.events.extend(result.events)
        self.bus.publish_all(result.events)


def _pending_choice(events: list[FlowEvent]) -> dict[str, Any] | None:
    for event in events:
        if event.kind is FlowEventKind.CHOICE_REQUIRED and event.payload.get("choice") == PENALTY_CHOICE:
            return dict(event.payload.get("data") or {})
    return None


def simulate_one_game(
    seed: int,
    config: EngineConfig | None = None,
    *,
    tables: TableRepository | None = None,
    policy: PolicyAPI | None = None,
    caller: PlayCaller | None = None,
) -> GameRecord:
    session = GameSession(config or headless_config(), seed, tables=tables, policy=policy, caller=caller)
    session.start()
    record = session.run()
    logger.debug("seed %s final HOME %s AWAY %s", seed, record.player_score, record.ai_score)
    return record
