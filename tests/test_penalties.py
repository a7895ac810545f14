from __future__ import annotations

from gridflow.contracts import DecisionHint, PenaltyInfo, Role, TeamSide
from gridflow.rules import administer_penalty
from gridflow.rules.penalties import cap_half_distance, deciding_side, penalty_summary
from tests.helpers import make_state


def _administer(pre, info, post=None, raw=None):
    return administer_penalty(
        pre,
        post or pre,
        info,
        in_two_minute=False,
        was_first_down_on_play=False,
        raw_result=raw,
    )


def test_defensive_foul_near_goal_is_half_the_distance():
    pre = make_state(ball_on=95, to_go=5)
    result = _administer(pre, PenaltyInfo(on=Role.DEFENSE, yards=5))
    assert result.accepted.ball_on == 97
    assert result.accepted.down == 1
    assert result.accepted.to_go == 3
    assert result.meta.half_distance_capped
    assert result.meta.applied_yards == 2


def test_long_gain_defensive_foul_marks_from_midfield():
    pre = make_state(ball_on=30)
    result = _administer(pre, PenaltyInfo(on=Role.DEFENSE, yards=20), raw="LG PENALTY +20")
    assert result.accepted.ball_on == 70
    assert result.meta.measured_from_midfield_for_lg
    assert result.meta.spot_basis == "midfield"
    assert (result.accepted.down, result.accepted.to_go) == (1, 10)


def test_defensive_foul_at_end_of_quarter_schedules_untimed_down():
    pre = make_state(quarter=4, clock=10)
    result = _administer(pre, PenaltyInfo(on=Role.DEFENSE, yards=5))
    assert result.accepted.clock == 0
    assert result.meta.untimed_down_scheduled

    offense = _administer(pre, PenaltyInfo(on=Role.OFFENSE, yards=5))
    assert offense.accepted.clock == 0
    assert not offense.meta.untimed_down_scheduled


def test_penalty_runoff_is_clamped_at_two_minutes():
    result = _administer(make_state(quarter=2, clock=130), PenaltyInfo(on=Role.OFFENSE, yards=5))
    assert result.accepted.clock == 120
    assert result.meta.two_minute_warning

    early = _administer(make_state(quarter=3, clock=130), PenaltyInfo(on=Role.OFFENSE, yards=5))
    assert early.accepted.clock == 115
    assert not early.meta.two_minute_warning


def test_offensive_foul_backed_up_is_half_the_distance():
    pre = make_state(ball_on=3)
    result = _administer(pre, PenaltyInfo(on=Role.OFFENSE, yards=10))
    assert result.accepted.ball_on == 2
    assert result.meta.half_distance_capped
    assert result.meta.applied_yards == 1


def test_offensive_foul_keeps_line_to_gain():
    pre = make_state(ball_on=40, down=2, to_go=4)
    result = _administer(pre, PenaltyInfo(on=Role.OFFENSE, yards=10))
    assert result.accepted.ball_on == 30
    assert result.accepted.down == 2
    assert result.accepted.to_go == 14


def test_loss_of_down_on_fourth_turns_the_ball_over():
    pre = make_state(ball_on=40, down=4, to_go=5)
    result = _administer(pre, PenaltyInfo(on=Role.OFFENSE, yards=15, loss_of_down=True))
    assert result.accepted.ball_on == 25
    assert result.accepted.possession is TeamSide.AI
    assert result.accepted.down == 1
    assert result.accepted.to_go == 10


def test_away_offense_marches_toward_zero():
    pre = make_state(ball_on=60, possession=TeamSide.AI)
    result = _administer(pre, PenaltyInfo(on=Role.DEFENSE, yards=15, first_down=True))
    assert result.accepted.ball_on == 45
    assert result.meta.automatic_first_down_applied
    assert (result.accepted.down, result.accepted.to_go) == (1, 10)


def test_declined_candidate_is_the_post_play_state():
    pre = make_state(ball_on=30)
    post = make_state(ball_on=31, down=2, to_go=9)
    result = _administer(pre, PenaltyInfo(on=Role.DEFENSE, yards=10, first_down=True), post=post)
    assert result.declined.ball_on == 31
    assert result.declined is not post
    assert result.decision_hint is DecisionHint.ACCEPT


def test_defense_declines_when_the_play_cost_the_offense_more():
    pre = make_state(ball_on=30, down=3, to_go=10)
    post = make_state(ball_on=20, down=4, to_go=20)
    result = _administer(pre, PenaltyInfo(on=Role.OFFENSE, yards=5), post=post)
    assert deciding_side(pre, PenaltyInfo(on=Role.OFFENSE, yards=5)) is TeamSide.AI
    assert result.decision_hint is DecisionHint.DECLINE


def test_cap_half_distance_and_summary():
    assert cap_half_distance(15, 20) == (10, True)
    assert cap_half_distance(5, 20) == (5, False)

    pre = make_state(ball_on=95, to_go=5)
    info = PenaltyInfo(on=Role.DEFENSE, yards=5, label="Encroachment")
    result = _administer(pre, info)
    assert penalty_summary(info, result.meta) == "Encroachment: on defense, 2 yards (half the distance to the goal)"
