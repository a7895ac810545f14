from __future__ import annotations

from pathlib import Path

import pytest

from gridflow.contracts import FlowEvent, FlowEventKind, PenaltyDecision, TeamSide
from gridflow.core import EngineConfig, EventBus, headless_config, seeded_random
from gridflow.flow import DefaultPolicy
from gridflow.rules.tables import DECK_NAMES, DEFENSE_LABELS, FIELD_GOAL_LABEL, OFFENSE_BASE_LABELS, PUNT_LABEL
from gridflow.simulation import (
    CancelToken,
    EventValidation,
    GameCheck,
    GameSession,
    PolicyPlayCaller,
    RandomPlayCaller,
    ReplayHarness,
    ScriptedPlayCaller,
    events_digest,
    parse_seed_range,
    run_batch,
    simulate_one_game,
    summarize,
    validate_events,
)
from gridflow.simulation.batch import chunked, run_chunk
from tests.helpers import kinds, make_state, messages, play


def _hud(quarter: int, clock: int, ball_on: int = 25) -> FlowEvent:
    return FlowEvent(FlowEventKind.HUD, {"quarter": quarter, "clock": clock, "ball_on": ball_on})


def _log(message: str = "snap") -> FlowEvent:
    return FlowEvent(FlowEventKind.LOG, {"message": message})


def test_simulated_game_reaches_final_and_validates():
    record = simulate_one_game(3)
    assert record.final_state.game_over
    assert kinds(record.events).count(FlowEventKind.FINAL) == 1
    assert validate_events(record.events).ok
    assert record.drives
    assert record.winner in {"home", "away", "tie"}


def test_same_seed_produces_identical_event_stream():
    first = simulate_one_game(11)
    second = simulate_one_game(11)
    assert events_digest(first.events) == events_digest(second.events)
    assert first.final_state.to_dict() == second.final_state.to_dict()


def test_session_publishes_every_event_on_the_bus():
    bus = EventBus()
    seen: list[FlowEvent] = []
    bus.subscribe(seen.append)
    session = GameSession(headless_config(), 5, bus=bus)
    session.start(TeamSide.AI)
    session.run()
    assert seen == session.events
    assert bus.emitted_count() == len(session.events)
    assert bus.emitted_count("final") == 1
    assert bus.emitted_count("kickoff") >= 1


def test_snap_cap_emits_a_synthetic_final():
    session = GameSession(headless_config(max_snaps=5), 3)
    session.start(TeamSide.PLAYER)
    record = session.run()
    assert session.snaps == 5
    assert not record.final_state.game_over
    assert record.events[-1].kind is FlowEventKind.FINAL
    assert "Simulation stopped after 5 snaps." in messages(record.events)
    assert validate_events(record.events).ok


def test_session_penalty_decider_settles_human_choices():
    declined: list[dict] = []

    def decline(data):
        declined.append(data)
        return PenaltyDecision.DECLINE

    caller = ScriptedPlayCaller(plays=("Trap",), defenses=("Short Yardage",))
    session = GameSession(EngineConfig(), 2, caller=caller, penalty_decider=decline)
    session.start(TeamSide.PLAYER)
    session.state = make_state(ball_on=30, clock=800)
    session.step()

    assert declined and declined[0]["side"] == TeamSide.PLAYER.value
    assert FlowEventKind.CHOICE_REQUIRED in kinds(session.events)
    assert not session.flow.has_pending_penalty
    assert (session.state.ball_on, session.state.down, session.state.to_go) == (30, 1, 10)
    assert session.state.clock == 800


def test_session_default_decider_follows_the_hint():
    caller = ScriptedPlayCaller(plays=("Trap",), defenses=("Short Yardage",))
    session = GameSession(EngineConfig(), 2, caller=caller)
    session.start(TeamSide.PLAYER)
    session.state = make_state(ball_on=30, clock=800)
    session.step()
    assert (session.state.ball_on, session.state.down, session.state.to_go) == (35, 1, 5)


def test_scripted_caller_cycles_and_rejects_empty_scripts():
    caller = ScriptedPlayCaller(plays=("Draw", "Trap"), defenses=("Passing",))
    rng = seeded_random(1)
    labels = [caller.call_play(make_state(), rng).play_label for _ in range(3)]
    assert labels == ["Draw", "Trap", "Draw"]
    with pytest.raises(ValueError):
        ScriptedPlayCaller(plays=())


def test_random_caller_draws_known_labels():
    caller = RandomPlayCaller()
    rng = seeded_random(9)
    for _ in range(10):
        call = caller.call_play(make_state(), rng)
        assert call.deck_name in DECK_NAMES
        assert call.play_label in OFFENSE_BASE_LABELS
        assert call.defense_label in DEFENSE_LABELS
    assert RandomPlayCaller("Aerial Style").call_play(make_state(), rng).deck_name == "Aerial Style"
    with pytest.raises(ValueError):
        RandomPlayCaller("Wishbone")


def test_policy_caller_kicks_on_fourth_down_only():
    caller = PolicyPlayCaller(DefaultPolicy())
    rng = seeded_random(1)
    assert caller.call_play(make_state(down=4, to_go=8, ball_on=20), rng).play_label == PUNT_LABEL
    assert caller.call_play(make_state(down=4, to_go=5, ball_on=80), rng).play_label == FIELD_GOAL_LABEL
    assert caller.call_play(make_state(down=1, ball_on=80), rng).play_label == "Run & Pass Option"


def test_validation_flags_missing_structure():
    result = validate_events([])
    assert not result.ok
    assert "No final event emitted." in result.issues
    assert "No kickoff event observed." in result.issues
    assert "No HUD updates observed." in result.issues


def test_validation_flags_clock_running_backwards():
    events = [
        FlowEvent(FlowEventKind.KICKOFF, {}),
        _log(),
        _hud(1, 800),
        _hud(1, 820),
        FlowEvent(FlowEventKind.FINAL, {}),
    ]
    result = validate_events(events)
    assert result.issues == ["Clock increased within Q1: 800 -> 820."]


def test_validation_requires_kickoff_after_non_terminal_score():
    late = [
        FlowEvent(FlowEventKind.KICKOFF, {}),
        _hud(1, 900),
        FlowEvent(FlowEventKind.SCORE, {"kind": "TD"}),
        *[_log() for _ in range(16)],
        FlowEvent(FlowEventKind.KICKOFF, {}),
        _hud(1, 850),
        FlowEvent(FlowEventKind.FINAL, {}),
    ]
    assert validate_events(late).issues == ["No kickoff event within 15 events after score (TD)."]

    terminal = [FlowEvent(FlowEventKind.KICKOFF, {}), _log(), _hud(4, 3), FlowEvent(FlowEventKind.SCORE, {"kind": "FG"}), FlowEvent(FlowEventKind.FINAL, {})]
    assert validate_events(terminal).ok


def test_parse_seed_range_and_chunking():
    assert parse_seed_range("1-3,7") == [1, 2, 3, 7]
    assert parse_seed_range("4") == [4]
    with pytest.raises(ValueError):
        parse_seed_range("5-2")
    assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    with pytest.raises(ValueError):
        chunked([1], 0)


def test_in_process_batch_reports_progress():
    progress = []
    summary = run_batch([3, 1, 2], chunk_size=2, on_progress=progress.append)
    assert summary.total == 3
    assert summary.passed == 3
    assert summary.failed == 0
    assert not summary.cancelled
    assert [g.seed for g in summary.games] == [1, 2, 3]
    assert [p.done for p in progress] == [2, 3]


def test_batch_cancellation_stops_after_current_chunk():
    token = CancelToken()
    summary = run_batch([1, 2, 3, 4], chunk_size=2, on_progress=lambda _: token.cancel(), cancel=token)
    assert summary.cancelled
    assert summary.total == 4
    assert len(summary.games) == 2


def test_pool_batch_cancelled_up_front_runs_no_seeds():
    token = CancelToken()
    token.cancel()
    summary = run_batch([1, 2, 3, 4], workers=2, chunk_size=2, cancel=token)
    assert summary.cancelled
    assert summary.total == 4
    assert summary.games == []


def test_worker_chunk_stops_at_the_next_seed_once_flagged():
    class StopAfter:
        def __init__(self, seeds_allowed: int) -> None:
            self.checks = 0
            self.seeds_allowed = seeds_allowed

        def is_set(self) -> bool:
            self.checks += 1
            return self.checks > self.seeds_allowed

    games = run_chunk([1, 2, 3], headless_config(), StopAfter(1))
    assert [g.seed for g in games] == [1]
    assert [g.seed for g in run_chunk([1, 2], headless_config())] == [1, 2]


def test_process_pool_batch_matches_in_process_scores():
    pooled = run_batch([1, 2, 3], workers=2, chunk_size=1)
    serial = run_batch([1, 2, 3])
    assert pooled.total == 3
    assert [(g.seed, g.player_score, g.ai_score) for g in pooled.games] == [
        (g.seed, g.player_score, g.ai_score) for g in serial.games
    ]


def test_summarize_collects_failures():
    bad = GameCheck(seed=5, player_score=7, ai_score=3, winner="home", validation=EventValidation(False, ["a", "b"], {}))
    good = GameCheck(seed=2, player_score=0, ai_score=3, winner="away", validation=EventValidation(True, [], {}))
    summary = summarize([bad, good])
    assert summary.failures == [{"seed": 5, "issues": ["a", "b"]}]
    assert (summary.passed, summary.failed) == (1, 1)
    assert summary.avg_player == 3.5
    assert summary.avg_ai == 3.0


def test_replay_round_trip_is_deterministic(tmp_path: Path):
    harness = ReplayHarness(seed=4)
    for label, defense in [("Draw", "Passing"), ("Long Bomb", "Prevent"), ("Trap", "Running")]:
        harness.record(play(label, defense))
    path = tmp_path / "replay.json"
    harness.save(path)

    loaded = ReplayHarness.load(path)
    assert loaded.seed == 4
    assert loaded.receiver is TeamSide.PLAYER
    assert [a.play_label for a in loaded.actions] == ["Draw", "Long Bomb", "Trap"]
    assert loaded.is_deterministic()
    first, _ = loaded.replay()
    assert first["snaps"] == 3


def test_seeded_streams_count_draws_and_spawn_stable_children():
    rng = seeded_random(5)
    rng.rand()
    rng.choice(["a", "b"])
    assert rng.draws == 2
    assert seeded_random(5).spawn("caller:player").rand() == seeded_random(5).spawn("caller:player").rand()
    assert seeded_random(5).spawn("caller:player").rand() != seeded_random(5).spawn("caller:ai").rand()

    session = GameSession(headless_config(), 6)
    session.start()
    assert session.rng_draws > 1
