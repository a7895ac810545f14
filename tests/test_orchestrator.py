from __future__ import annotations

import pytest

from gridflow.contracts import FlowEventKind, GameState, KickoffType, OutcomeCategory, PenaltyDecision, PlayOutcome, TeamSide
from gridflow.core.config import EngineConfig, headless_config
from gridflow.core.randomness import ScriptedRandomSource
from gridflow.flow import PENALTY_CHOICE, GameFlow
from gridflow.rules.tables import FIELD_GOAL_LABEL, PUNT_LABEL
from tests.helpers import dice_config, die, kinds, make_flow, make_state, messages, play


def _score_kinds(events) -> list[str]:
    return [e.payload["kind"] for e in events if e.kind is FlowEventKind.SCORE]


def _dice_rolls(*pairs: tuple[int, int], d10: int | None = None) -> list[float]:
    values: list[float] = []
    for d1, d2 in pairs:
        values.extend([die(d1, 20), die(d2, 20)])
    if d10 is not None:
        values.insert(2, die(d10, 10))
    return values


def test_opening_kickoff_sets_receiver_and_runs_kick_clock():
    flow = make_flow(4, 3)
    result = flow.start_game(GameFlow.create_initial_game_state(9), TeamSide.PLAYER)

    assert result.state.possession is TeamSide.PLAYER
    assert result.state.ball_on == 25
    assert result.state.clock == 885
    assert result.state.opening_kick_to is TeamSide.PLAYER
    assert kinds(result.events) == [FlowEventKind.LOG, FlowEventKind.KICKOFF, FlowEventKind.LOG, FlowEventKind.HUD]
    assert messages(result.events)[0] == "Opening kickoff to HOME."


def test_fourth_down_stop_is_turnover_on_downs():
    flow = make_flow()
    state = make_state(ball_on=30, down=4, to_go=3)
    result = flow.resolve_snap(state, play("Power Up Middle", "Goal Line"))

    assert result.state.ball_on == 31
    assert result.state.possession is TeamSide.AI
    assert (result.state.down, result.state.to_go) == (1, 10)
    assert result.state.clock == 870
    assert kinds(result.events) == [FlowEventKind.LOG] * 4 + [FlowEventKind.HUD]
    assert "turnover on downs" in messages(result.events)[2]
    assert flow.drives.summaries[-1].result == "downs"
    assert flow.drives.summaries[-1].yards == 1
    assert state.ball_on == 30


def test_touchdown_scores_extra_point_then_kicks_off():
    flow = make_flow(4, 3, 4, 3)
    result = flow.resolve_snap(make_state(ball_on=95, to_go=5), play("Run & Pass Option", "Run & Pass"))

    assert (result.state.score.player, result.state.score.ai) == (7, 0)
    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 75
    assert result.state.clock == 855
    assert not result.state.awaiting_pat
    assert _score_kinds(result.events) == ["TD", "XP"]

    event_kinds = kinds(result.events)
    xp_index = [i for i, e in enumerate(result.events) if e.kind is FlowEventKind.SCORE][-1]
    assert FlowEventKind.KICKOFF in event_kinds[xp_index:]
    assert {"kind": "td"} in [e.payload for e in result.events if e.kind is FlowEventKind.VFX]
    assert event_kinds[-1] is FlowEventKind.HUD
    assert flow.drives.summaries[-1].result == "touchdown"


def test_interception_changes_possession_at_return_spot():
    flow = make_flow()
    result = flow.resolve_snap(make_state(ball_on=40), play("Long Bomb", "Outside Blitz"))

    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 20
    assert (result.state.down, result.state.to_go) == (1, 10)
    assert result.state.clock == 870
    assert flow.drives.summaries[-1].result == "turnover"


def test_interception_returned_to_end_zone_is_a_touchdown_for_the_defense():
    flow = make_flow(4, 3, 4, 3)
    result = flow.resolve_snap(make_state(ball_on=15), play("Long Bomb", "Outside Blitz"))

    assert (result.state.score.player, result.state.score.ai) == (0, 7)
    assert result.state.possession is TeamSide.PLAYER
    assert result.state.ball_on == 25
    assert result.events[-1].kind is FlowEventKind.HUD


def test_sack_in_own_end_zone_is_a_safety_and_free_kick():
    flow = make_flow()
    result = flow.resolve_snap(make_state(ball_on=2), play("Run & Pass Option", "Outside Blitz"))

    assert (result.state.score.player, result.state.score.ai) == (0, 2)
    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 75
    assert _score_kinds(result.events) == ["Safety"]
    assert "Safety!" in messages(result.events)
    assert flow.drives.summaries[-1].result == "safety"


def test_fourth_down_punt_hands_ball_over():
    flow = make_flow(3, 4, 6, 6)
    result = flow.resolve_snap(make_state(ball_on=30, down=4, to_go=8), play(PUNT_LABEL, "Run & Pass"))

    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 73
    assert result.state.clock == 885
    assert flow.drives.summaries[-1].result == "punt"
    assert any("fair catch" in m for m in messages(result.events))


def test_field_goal_good_scores_three_and_kicks_off():
    flow = GameFlow(headless_config(), ScriptedRandomSource([0.1, die(5), die(6), die(4), die(3)]))
    result = flow.resolve_snap(make_state(ball_on=80, down=4, to_go=6), play(FIELD_GOAL_LABEL, "Run & Pass"))

    assert result.state.score.player == 3
    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 75
    assert result.state.clock == 870
    assert _score_kinds(result.events) == ["FG"]
    assert flow.drives.summaries[-1].result == "field_goal"


def test_missed_field_goal_turns_ball_over_at_spot_of_kick():
    flow = GameFlow(headless_config(), ScriptedRandomSource([0.1, die(4), die(4)]))
    result = flow.resolve_snap(make_state(ball_on=80, down=4, to_go=6), play(FIELD_GOAL_LABEL, "Run & Pass"))

    assert result.state.score.player == 0
    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 73
    assert flow.drives.summaries[-1].result == "missed_field_goal"


def test_crossing_two_minutes_stops_at_warning_once():
    flow = make_flow()
    result = flow.resolve_snap(make_state(quarter=2, clock=130), play("Long Bomb", "Short Yardage"))

    assert result.state.clock == 120
    assert result.state.ball_on == 70
    assert messages(result.events).count("Two-minute warning.") == 1
    assert [e.payload for e in result.events if e.kind is FlowEventKind.VFX] == [{"kind": "twoMinute"}]


def test_clock_expiring_advances_the_quarter():
    flow = make_flow()
    result = flow.resolve_snap(make_state(clock=20), play("Run & Pass Option", "Run & Pass"))

    end = [e for e in result.events if e.kind is FlowEventKind.END_OF_QUARTER]
    assert [e.payload for e in end] == [{"quarter": 1}]
    assert "End of Q1: HOME 0, AWAY 0." in messages(result.events)
    assert (result.state.quarter, result.state.clock) == (2, 900)
    assert (result.state.ball_on, result.state.down, result.state.to_go) == (35, 2, 5)
    assert result.events[-1].kind is FlowEventKind.HUD
    assert result.events[-1].payload["quarter"] == 2


def test_second_half_opens_with_the_opening_receiver_kicking():
    flow = make_flow(4, 3)
    state = make_state(quarter=2, clock=20, opening_kick_to=TeamSide.PLAYER)
    result = flow.resolve_snap(state, play("Run & Pass Option", "Run & Pass"))

    assert FlowEventKind.HALFTIME in kinds(result.events)
    assert result.state.quarter == 3
    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 75
    assert result.state.clock == 885
    assert flow.drives.summaries[-1].result == "half"


def test_end_of_fourth_quarter_is_final():
    flow = make_flow()
    state = make_state(quarter=4, clock=20)
    state.score.player = 10
    state.score.ai = 3
    result = flow.resolve_snap(state, play("Run & Pass Option", "Run & Pass"))

    assert result.state.game_over
    finals = [e for e in result.events if e.kind is FlowEventKind.FINAL]
    assert [e.payload for e in finals] == [{"score": {"player": 10, "ai": 3}}]
    assert flow.drives.summaries[-1].result == "game"
    with pytest.raises(ValueError):
        flow.resolve_snap(result.state, play("Run & Pass Option", "Run & Pass"))


def test_human_penalty_choice_halts_the_snap_until_decided():
    flow = GameFlow(EngineConfig(), ScriptedRandomSource([]))
    state = make_state(ball_on=30)
    result = flow.resolve_snap(state, play("Trap", "Short Yardage"))

    assert result.state.ball_on == 30
    assert result.state.clock == 900
    assert flow.has_pending_penalty
    choice = [e for e in result.events if e.kind is FlowEventKind.CHOICE_REQUIRED]
    assert len(choice) == 1
    assert choice[0].payload["choice"] == PENALTY_CHOICE
    data = choice[0].payload["data"]
    assert data["side"] == "player"
    assert data["accepted"]["ball_on"] == 35
    assert data["hint"] == "accept"
    assert result.events[-1].kind is FlowEventKind.HUD

    with pytest.raises(ValueError):
        flow.resolve_snap(result.state, play("Trap", "Short Yardage"))

    candidates = flow.pending_candidates()
    final = flow.finalize_penalty_decision(candidates.accepted, PenaltyDecision.ACCEPT, candidates.meta)
    assert not flow.has_pending_penalty
    assert (final.state.ball_on, final.state.down, final.state.to_go) == (35, 1, 5)
    assert final.state.clock == 885
    assert "Penalty on defense, 5 yards, accepted; now 1st & 5." in messages(final.events)
    assert final.events[-1].kind is FlowEventKind.HUD


def test_computer_side_settles_penalty_from_the_hint():
    flow = make_flow()
    result = flow.resolve_snap(make_state(ball_on=70, possession=TeamSide.AI), play("Trap", "Short Yardage"))

    assert not flow.has_pending_penalty
    assert FlowEventKind.CHOICE_REQUIRED not in kinds(result.events)
    assert (result.state.ball_on, result.state.down, result.state.to_go) == (65, 1, 5)


def test_accepted_penalty_runoff_stops_at_two_minute_warning():
    flow = make_flow()
    result = flow.resolve_snap(make_state(quarter=4, clock=130, ball_on=30), play("Trap", "Short Yardage"))

    assert (result.state.ball_on, result.state.down, result.state.to_go) == (35, 1, 5)
    assert result.state.clock == 120
    assert messages(result.events).count("Two-minute warning.") == 1
    assert [e.payload for e in result.events if e.kind is FlowEventKind.VFX] == [{"kind": "twoMinute"}]


def test_human_accepts_penalty_across_two_minutes():
    flow = GameFlow(EngineConfig(), ScriptedRandomSource([]))
    pending = flow.resolve_snap(make_state(quarter=2, clock=125, ball_on=30), play("Trap", "Short Yardage"))
    assert "Two-minute warning." not in messages(pending.events)

    candidates = flow.pending_candidates()
    assert candidates.meta.two_minute_warning
    final = flow.finalize_penalty_decision(candidates.accepted, PenaltyDecision.ACCEPT, candidates.meta)
    assert final.state.clock == 120
    assert messages(final.events).count("Two-minute warning.") == 1


def test_penalty_handling_rejects_outcome_without_a_foul():
    flow = make_flow()
    state = make_state()
    with pytest.raises(ValueError):
        flow._handle_penalty(state, state, PlayOutcome(category=OutcomeCategory.PENALTY, raw="PENALTY"), [], None)
    assert not flow.has_pending_penalty


def test_declined_dice_penalty_lets_the_play_stand():
    flow = GameFlow(dice_config(human=True), ScriptedRandomSource(_dice_rolls((5, 5), d10=7)))
    pending = flow.resolve_snap(make_state(ball_on=30), play("Draw", "Passing"))
    assert FlowEventKind.CHOICE_REQUIRED in kinds(pending.events)

    candidates = flow.pending_candidates()
    assert candidates.accepted.ball_on == 40
    result = flow.finalize_penalty_decision(candidates.declined, PenaltyDecision.DECLINE, candidates.meta)

    assert "Penalty on defense declined; the play stands." in messages(result.events)
    assert (result.state.ball_on, result.state.down, result.state.to_go) == (31, 2, 9)
    assert result.state.clock == 870


def test_forced_dice_penalty_is_enforced_without_choice():
    flow = GameFlow(dice_config(human=True), ScriptedRandomSource(_dice_rolls((2, 2), d10=4)))
    result = flow.resolve_snap(make_state(ball_on=30), play("Draw", "Passing"))

    assert not flow.has_pending_penalty
    assert FlowEventKind.CHOICE_REQUIRED not in kinds(result.events)
    assert any(m.endswith("enforced, no option.") for m in messages(result.events))
    assert (result.state.ball_on, result.state.down, result.state.to_go) == (45, 1, 10)
    assert result.state.clock == 885


def test_defensive_foul_at_zero_grants_untimed_down():
    rolls = _dice_rolls((2, 2), d10=4) + _dice_rolls((10, 11))
    flow = GameFlow(dice_config(), ScriptedRandomSource(rolls))
    first = flow.resolve_snap(make_state(clock=10), play("Draw", "Passing"))

    assert first.state.clock == 0
    assert first.state.quarter == 1
    assert first.state.untimed_down_scheduled
    assert "Untimed down will be played due to defensive penalty." in messages(first.events)
    assert FlowEventKind.END_OF_QUARTER not in kinds(first.events)

    second = flow.resolve_snap(first.state, play("Draw", "Passing"))
    assert not second.state.untimed_down_scheduled
    assert second.state.quarter == 2
    assert [e.payload for e in second.events if e.kind is FlowEventKind.END_OF_QUARTER] == [{"quarter": 1}]


def test_resolve_snap_never_mutates_the_caller_state():
    flow = make_flow(4, 3, 4, 3)
    state = make_state(ball_on=95, to_go=5)
    before = state.to_dict()
    flow.resolve_snap(state, play("Run & Pass Option", "Run & Pass"))
    assert state.to_dict() == before
    assert isinstance(GameFlow.hud_payload(state), dict)
    assert GameFlow.hud_payload(GameState())["score"] == {"player": 0, "ai": 0}


def test_extra_point_then_restart_kickoff():
    flow = make_flow(3, 4, 4, 3)
    state = make_state(ball_on=100, awaiting_pat=True)
    state.score.player = 6
    result = flow.resolve_pat_and_restart(state, TeamSide.PLAYER)

    assert result.state.score.player == 7
    assert not result.state.awaiting_pat
    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 75
    assert kinds(result.events) == [
        FlowEventKind.SCORE,
        FlowEventKind.LOG,
        FlowEventKind.KICKOFF,
        FlowEventKind.LOG,
        FlowEventKind.HUD,
    ]


def test_safety_free_kick_from_the_twenty_five():
    flow = make_flow()
    result = flow.resolve_safety_restart(make_state(ball_on=0), TeamSide.PLAYER)

    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 75
    assert result.state.clock == 900
    assert FlowEventKind.KICKOFF in kinds(result.events)


def test_onside_kick_kept_by_receiver_when_kicker_is_tied():
    flow = make_flow(6)
    result = flow.perform_kickoff(make_state(), KickoffType.ONSIDE, TeamSide.PLAYER)

    assert result.state.possession is TeamSide.AI
    assert result.state.ball_on == 70
    assert result.state.clock == 885
    assert messages(result.events)[0].startswith("Onside kick by HOME")


def test_direct_long_field_goal_misses_without_rolling():
    rng = ScriptedRandomSource([0.1])
    flow = GameFlow(headless_config(), rng)
    result = flow.attempt_field_goal(make_state(ball_on=60, down=4), 57, TeamSide.PLAYER)

    assert rng.consumed == 1
    assert result.state.possession is TeamSide.AI
    assert result.state.clock == 885
    assert result.state.score.player == 0
    assert "no good" in messages(result.events)[0]
