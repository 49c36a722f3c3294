"""
Tests for the ball-by-ball delivery processor.

Run with: pytest tests/test_processor.py -v
"""
import pytest

from app.engine.errors import InvalidDeliveryError
from app.engine.processor import DeliveryProcessor
from app.engine.profile import MatchProfile
from app.engine.state import CompletionReason, DeliveryInput, ExtraType, WicketType


TWO_OVERS = MatchProfile(
    name="Test",
    overs_per_innings=2,
    balls_per_over=6,
    powerplay_overs=1,
    max_overs_per_bowler=0,
    max_wickets=10,
)

processor = DeliveryProcessor()


def fresh(target=None, innings_number=1):
    """New innings: Lions batting, Tigers bowling"""
    return processor.start_innings(1, innings_number, "Lions", "Tigers", target=target)


def ball(state, bowler="X", profile=TWO_OVERS, striker=None, non_striker=None, **kwargs):
    """Apply one delivery; batsmen default to whoever the state has at the crease"""
    delivery = DeliveryInput(
        striker=striker or state.striker or "A",
        non_striker=non_striker or state.non_striker or "B",
        bowler=bowler,
        **kwargs,
    )
    return processor.apply(state, delivery, profile)


def over(state, bowler, runs=0, profile=TWO_OVERS):
    """Six legal balls from one bowler, each scoring `runs`"""
    for _ in range(profile.balls_per_over):
        state = ball(state, bowler, profile, runs_off_bat=runs).innings
    return state


def assert_rejected(state, reason, **kwargs):
    with pytest.raises(InvalidDeliveryError) as exc:
        ball(state, **kwargs)
    assert exc.value.reason == reason


class TestStartInnings:
    """Fresh innings setup"""

    def test_first_innings_has_no_target(self):
        state = processor.start_innings(1, 1, "Lions", "Tigers", target=99)
        assert state.target is None
        assert state.deliveries == ()
        assert state.striker is None

    def test_second_innings_needs_target(self):
        with pytest.raises(ValueError):
            processor.start_innings(1, 2, "Tigers", "Lions")

    def test_only_two_innings(self):
        with pytest.raises(ValueError):
            processor.start_innings(1, 3, "Tigers", "Lions", target=10)


class TestLegalDeliveries:
    """Runs, ball counting and strike rotation on legal balls"""

    def test_twelve_singles_complete_two_over_innings(self):
        """Twelve singles in a two-over innings: 12/0 in 2.0 overs"""
        state = over(fresh(), "X", runs=1)
        state = over(state, "Y", runs=1)

        assert state.total_runs == 12
        assert state.wickets == 0
        assert state.overs_display(6) == "2.0"
        assert state.is_completed
        assert state.completion_reason == CompletionReason.OVERS

    def test_completion_event_on_last_ball(self):
        state = over(fresh(), "X", runs=1)
        for _ in range(5):
            outcome = ball(state, "Y", runs_off_bat=1)
            assert outcome.boundary_event is None
            state = outcome.innings
        outcome = ball(state, "Y", runs_off_bat=1)
        event = outcome.boundary_event
        assert event is not None
        assert event.reason == CompletionReason.OVERS
        assert (event.runs, event.wickets, event.legal_balls) == (12, 0, 12)

    def test_single_rotates_strike(self):
        state = ball(fresh(), runs_off_bat=1).innings
        assert state.striker == "B"
        assert state.non_striker == "A"

    def test_two_keeps_strike(self):
        state = ball(fresh(), runs_off_bat=2).innings
        assert state.striker == "A"

    def test_boundary_keeps_strike(self):
        outcome = ball(fresh(), runs_off_bat=4)
        assert outcome.delivery.is_boundary
        assert outcome.innings.striker == "A"

    def test_all_run_four_rotates_nothing_but_three_does(self):
        state = ball(fresh(), runs_off_bat=3).innings
        assert state.striker == "B"
        outcome = ball(state, runs_off_bat=4, is_boundary=False)
        assert not outcome.delivery.is_boundary
        assert outcome.innings.striker == "B"

    def test_end_of_over_swaps_ends(self):
        state = over(fresh(), "X")
        assert state.striker == "B"
        assert state.current_over == 1
        assert state.current_ball_in_over == 0
        assert state.current_bowler is None
        assert state.previous_over_bowler == "X"
        assert state.bowler_overs == {"X": 1}

    def test_single_off_last_ball_keeps_striker_for_next_over(self):
        """Six singles: the rotation and the change of ends cancel out"""
        state = over(fresh(), "X", runs=1)
        assert state.striker == "B"

    def test_ball_in_over_recorded_before_increment(self):
        state = fresh()
        positions = []
        for _ in range(6):
            outcome = ball(state)
            positions.append((outcome.delivery.over_number, outcome.delivery.ball_in_over))
            state = outcome.innings
        assert positions == [(0, i) for i in range(6)]

    def test_powerplay_flag_follows_profile(self):
        state = over(fresh(), "X")
        assert all(d.is_powerplay for d in state.deliveries)
        outcome = ball(state, "Y")
        assert not outcome.delivery.is_powerplay

    def test_sequence_is_ledger_index(self):
        state = fresh()
        for _ in range(4):
            state = ball(state, extra_type="wide").innings
        assert [d.sequence for d in state.deliveries] == [0, 1, 2, 3]


class TestExtras:
    """Wides, no-balls, byes, leg-byes and penalties"""

    def test_wide_does_not_count_as_ball(self):
        state = ball(fresh(), extra_type="wide").innings
        assert state.total_runs == 1
        assert state.legal_balls == 0
        assert state.current_ball_in_over == 0
        assert state.deliveries[0].extra_runs == TWO_OVERS.wide_runs

    def test_wide_extra_runs_default_from_profile(self):
        pairs = MatchProfile(name="Pairs", overs_per_innings=2, wide_runs=2, no_ball_runs=2, max_wickets=5)
        state = ball(fresh(), profile=pairs, extra_type="wide").innings
        assert state.total_runs == 2

    def test_wide_with_runs_run_rotates_on_odd(self):
        # 1 for the wide plus one run taken
        state = ball(fresh(), extra_type="wide", extra_runs=2).innings
        assert state.striker == "B"
        state = ball(fresh(), extra_type="wide", extra_runs=3).innings
        assert state.striker == "A"

    def test_no_ball_counts_runs_off_bat_and_extra(self):
        outcome = ball(fresh(), extra_type="no_ball", runs_off_bat=4)
        state = outcome.innings
        assert state.total_runs == 5
        assert state.legal_balls == 0
        assert state.striker == "A"
        assert outcome.delivery.is_boundary

    def test_no_ball_single_rotates(self):
        state = ball(fresh(), extra_type="no_ball", runs_off_bat=1).innings
        assert state.striker == "B"

    def test_bye_is_legal_and_rotates(self):
        state = ball(fresh(), extra_type="bye", extra_runs=1).innings
        assert state.legal_balls == 1
        assert state.total_runs == 1
        assert state.striker == "B"

    def test_leg_bye_four_keeps_strike(self):
        state = ball(fresh(), extra_type="leg_bye", extra_runs=4).innings
        assert state.total_runs == 4
        assert state.striker == "A"

    def test_penalty_is_not_a_delivery(self):
        state = ball(fresh(), runs_off_bat=1).innings
        state = ball(state, extra_type="penalty", extra_runs=5).innings
        assert state.total_runs == 6
        assert state.legal_balls == 1
        assert state.striker == "B"

    def test_wide_below_profile_minimum_rejected(self):
        assert_rejected(fresh(), "extra_runs_below_minimum", extra_type="wide", extra_runs=0)

    def test_no_ball_below_profile_minimum_rejected(self):
        pairs = MatchProfile(name="Pairs", overs_per_innings=2, wide_runs=2, no_ball_runs=2, max_wickets=5)
        assert_rejected(fresh(), "extra_runs_below_minimum", profile=pairs, extra_type="no_ball", extra_runs=1)
        state = ball(fresh(), profile=pairs, extra_type="no_ball", extra_runs=2).innings
        assert state.total_runs == 2

    def test_extra_runs_without_extra_type(self):
        assert_rejected(fresh(), "unexpected_extra_runs", extra_runs=2)

    def test_runs_off_bat_on_wide(self):
        assert_rejected(fresh(), "runs_off_bat_not_allowed", extra_type="wide", runs_off_bat=1)

    def test_bye_needs_runs(self):
        assert_rejected(fresh(), "extra_runs_required", extra_type="bye")
        assert_rejected(fresh(), "extra_runs_required", extra_type="leg_bye", extra_runs=0)

    def test_negative_runs(self):
        assert_rejected(fresh(), "negative_runs", runs_off_bat=-1)
        assert_rejected(fresh(), "negative_runs", extra_type="wide", extra_runs=-1)

    def test_unknown_extra_type(self):
        with pytest.raises(InvalidDeliveryError) as exc:
            DeliveryInput(striker="A", non_striker="B", bowler="X", extra_type="overthrow")
        assert exc.value.reason == "unknown_extra_type"


class TestFreeHit:
    """Free hit after a no-ball"""

    def test_no_ball_then_bowled_is_rejected(self):
        state = ball(fresh(), extra_type="no_ball", extra_runs=1).innings
        assert state.is_free_hit_next

        before = state
        assert_rejected(state, "free_hit_wicket", is_wicket=True, wicket_type="bowled")
        assert state is before
        assert len(state.deliveries) == 1
        assert state.is_free_hit_next

    def test_no_ball_then_run_out_is_accepted(self):
        state = ball(fresh(), extra_type="no_ball", extra_runs=1).innings
        outcome = ball(state, is_wicket=True, wicket_type="run_out", dismissed_batsman="A", fielder="F")
        assert outcome.delivery.is_free_hit
        assert outcome.innings.wickets == 1
        assert not outcome.innings.is_free_hit_next

    def test_free_hit_carries_through_wide(self):
        state = ball(fresh(), extra_type="no_ball").innings
        state = ball(state, extra_type="wide").innings
        assert state.is_free_hit_next
        outcome = ball(state)
        assert outcome.delivery.is_free_hit
        assert not outcome.innings.is_free_hit_next

    def test_free_hit_carries_through_penalty(self):
        state = ball(fresh(), extra_type="no_ball").innings
        state = ball(state, extra_type="penalty", extra_runs=5).innings
        assert state.is_free_hit_next

    def test_consecutive_no_balls_keep_free_hit(self):
        state = ball(fresh(), extra_type="no_ball").innings
        outcome = ball(state, extra_type="no_ball")
        assert outcome.delivery.is_free_hit
        assert outcome.innings.is_free_hit_next

    def test_wide_gives_no_free_hit_by_default(self):
        assert not ball(fresh(), extra_type="wide").innings.is_free_hit_next

    def test_free_hit_on_wide(self):
        club = MatchProfile(name="Club", overs_per_innings=2, free_hit_on_wide=True)
        state = ball(fresh(), profile=club, extra_type="wide").innings
        assert state.is_free_hit_next
        assert_rejected(state, "free_hit_wicket", profile=club, is_wicket=True, wicket_type="bowled")
        outcome = ball(state, profile=club, runs_off_bat=1)
        assert outcome.delivery.is_free_hit
        assert not outcome.innings.is_free_hit_next

    def test_free_hit_disabled(self):
        no_free_hit = MatchProfile(name="Old", overs_per_innings=2, free_hit_enabled=False)
        state = ball(fresh(), profile=no_free_hit, extra_type="no_ball").innings
        assert not state.is_free_hit_next
        outcome = ball(state, profile=no_free_hit, is_wicket=True, wicket_type="bowled")
        assert outcome.innings.wickets == 1


class TestBowlerRotation:
    """One bowler per over, no consecutive overs, per-bowler limits"""

    def test_same_bowler_consecutive_overs_rejected(self):
        state = over(fresh(), "X")
        assert_rejected(state, "consecutive_overs", bowler="X")

    def test_bowler_change_mid_over_rejected(self):
        state = ball(fresh(), "X").innings
        assert_rejected(state, "bowler_changed_mid_over", bowler="Y")

    def test_bowler_over_limit(self):
        capped = MatchProfile(name="Capped", overs_per_innings=4, max_overs_per_bowler=1)
        state = over(fresh(), "X", profile=capped)
        state = over(state, "Y", profile=capped)
        assert_rejected(state, "bowler_over_limit", bowler="X", profile=capped)
        state = ball(state, "Z", profile=capped).innings
        assert state.current_bowler == "Z"

    def test_unlimited_overs_per_bowler(self):
        state = over(fresh(), "X")
        state = ball(state, "Y").innings
        assert state.current_bowler == "Y"

    def test_penalty_between_overs_leaves_bowler_open(self):
        state = over(fresh(), "X")
        state = ball(state, "Y", extra_type="penalty", extra_runs=5).innings
        assert state.current_bowler is None
        assert state.previous_over_bowler == "X"
        state = ball(state, "Z").innings
        assert state.current_bowler == "Z"

    def test_penalty_named_for_last_over_bowler(self):
        state = over(fresh(), "X")
        state = ball(state, "X", extra_type="penalty", extra_runs=5).innings
        assert state.total_runs == 5
        assert_rejected(state, "consecutive_overs", bowler="X")

    def test_penalty_mid_over_keeps_bowler(self):
        state = ball(fresh(), "X").innings
        state = ball(state, "Y", extra_type="penalty", extra_runs=5).innings
        assert state.current_bowler == "X"

    def test_bowler_cannot_bat(self):
        assert_rejected(fresh(), "bowler_is_batsman", bowler="A")

    def test_bowler_required(self):
        assert_rejected(fresh(), "bowler_required", bowler="")

    def test_wides_do_not_end_the_over(self):
        state = fresh()
        for _ in range(5):
            state = ball(state, "X").innings
        state = ball(state, "X", extra_type="wide").innings
        assert state.current_bowler == "X"
        state = ball(state, "X").innings
        assert state.current_bowler is None
        assert state.bowler_overs == {"X": 1}


class TestBatsmen:
    """Who may be at the crease"""

    def test_striker_mismatch(self):
        state = ball(fresh()).innings
        assert_rejected(state, "striker_mismatch", striker="B", non_striker="A")

    def test_non_striker_mismatch(self):
        state = ball(fresh()).innings
        assert_rejected(state, "non_striker_mismatch", striker="A", non_striker="C")

    def test_same_batsman_both_ends(self):
        assert_rejected(fresh(), "same_batsman", striker="A", non_striker="A")

    def test_new_batsman_fills_vacated_end(self):
        state = ball(fresh(), is_wicket=True, wicket_type="bowled").innings
        assert state.striker is None
        assert state.non_striker == "B"
        state = ball(state, striker="C").innings
        assert state.striker == "C"

    def test_dismissed_batsman_cannot_return(self):
        state = ball(fresh(), is_wicket=True, wicket_type="bowled").innings
        assert_rejected(state, "batsman_already_dismissed", striker="A")


class TestWickets:
    """Dismissal rules"""

    def test_bowled_counts_wicket(self):
        outcome = ball(fresh(), is_wicket=True, wicket_type="bowled")
        assert outcome.innings.wickets == 1
        assert outcome.delivery.dismissed_batsman == "A"
        assert outcome.delivery.bowler_wicket

    def test_run_out_needs_named_batsman(self):
        assert_rejected(fresh(), "dismissed_batsman_required", is_wicket=True, wicket_type="run_out")

    def test_run_out_at_non_strikers_end(self):
        outcome = ball(fresh(), runs_off_bat=1, is_wicket=True, wicket_type="run_out", dismissed_batsman="B")
        state = outcome.innings
        assert state.total_runs == 1
        assert state.wickets == 1
        # Single completed: A crossed to the non-striker's end, B's slot is vacant
        assert "B" in state.dismissed
        assert state.non_striker == "A"
        assert state.striker is None

    def test_caught_non_striker_rejected(self):
        assert_rejected(
            fresh(), "dismissal_requires_striker",
            is_wicket=True, wicket_type="caught", dismissed_batsman="B", fielder="F",
        )

    def test_dismissed_batsman_must_be_at_crease(self):
        assert_rejected(
            fresh(), "dismissed_batsman_not_at_crease",
            is_wicket=True, wicket_type="run_out", dismissed_batsman="Z",
        )

    def test_wicket_type_required(self):
        assert_rejected(fresh(), "wicket_type_required", is_wicket=True)

    def test_wicket_type_without_wicket(self):
        assert_rejected(fresh(), "wicket_type_without_wicket", wicket_type="bowled")

    def test_bowled_off_no_ball_rejected(self):
        assert_rejected(
            fresh(), "wicket_not_allowed_on_extra",
            extra_type="no_ball", is_wicket=True, wicket_type="bowled",
        )

    def test_stumped_off_wide_accepted(self):
        outcome = ball(fresh(), extra_type="wide", is_wicket=True, wicket_type="stumped", fielder="K")
        assert outcome.innings.wickets == 1
        assert outcome.innings.legal_balls == 0
        assert outcome.innings.total_runs == 1

    def test_lbw_off_wide_rejected(self):
        assert_rejected(
            fresh(), "wicket_not_allowed_on_extra",
            extra_type="wide", is_wicket=True, wicket_type="lbw",
        )

    def test_wicket_on_penalty_rejected(self):
        assert_rejected(
            fresh(), "wicket_on_penalty",
            extra_type="penalty", extra_runs=5, is_wicket=True, wicket_type="run_out", dismissed_batsman="A",
        )

    def test_unknown_wicket_type(self):
        with pytest.raises(InvalidDeliveryError) as exc:
            DeliveryInput(striker="A", non_striker="B", bowler="X", is_wicket=True, wicket_type="handled")
        assert exc.value.reason == "unknown_wicket_type"

    def test_retired_hurt_is_not_a_wicket(self):
        state = ball(fresh(), is_wicket=True, wicket_type="retired_hurt").innings
        assert state.wickets == 0
        assert "A" in state.retired
        assert "A" not in state.dismissed
        assert state.striker is None

    def test_retired_hurt_batsman_can_return(self):
        state = ball(fresh(), is_wicket=True, wicket_type="retired_hurt").innings
        state = ball(state, striker="C", is_wicket=True, wicket_type="bowled").innings
        state = ball(state, striker="A").innings
        assert state.striker == "A"
        assert state.retired == frozenset()
        assert state.wickets == 1

    def test_all_out_completes_innings(self):
        short = MatchProfile(name="Short", overs_per_innings=2, max_wickets=2)
        state = ball(fresh(), profile=short, is_wicket=True, wicket_type="bowled").innings
        outcome = ball(state, profile=short, striker="C", is_wicket=True, wicket_type="lbw")
        assert outcome.innings.is_completed
        assert outcome.innings.completion_reason == CompletionReason.ALL_OUT
        assert outcome.boundary_event.wickets == 2

    def test_ball_after_completion_rejected(self):
        state = over(fresh(), "X")
        state = over(state, "Y")
        assert_rejected(state, "innings_completed", bowler="X")


class TestNonDeliveries:
    """Retirements and timed out happen between balls"""

    def test_retiring_mid_over_takes_no_ball(self):
        state = ball(fresh(), runs_off_bat=1).innings
        outcome = ball(state, is_wicket=True, wicket_type="retired_hurt")
        state = outcome.innings
        assert not outcome.delivery.is_legal
        assert state.legal_balls == 1
        assert state.current_ball_in_over == 1
        assert state.current_bowler == "X"
        assert (state.striker, state.non_striker) == (None, "A")

        state = ball(state, striker="C").innings
        for _ in range(4):
            state = ball(state).innings
        assert state.legal_balls == 6
        assert state.current_over == 1
        assert state.bowler_overs == {"X": 1}

    def test_timed_out_is_not_a_ball(self):
        state = ball(fresh(), is_wicket=True, wicket_type="bowled").innings
        outcome = ball(state, striker="C", is_wicket=True, wicket_type="timed_out")
        state = outcome.innings
        assert state.legal_balls == 1
        assert state.wickets == 2
        assert "C" in state.dismissed
        assert state.striker is None
        assert not outcome.delivery.bowler_wicket

    def test_retirement_on_free_hit_keeps_it(self):
        state = ball(fresh(), extra_type="no_ball").innings
        state = ball(state, is_wicket=True, wicket_type="retired_out").innings
        assert state.wickets == 1
        assert state.is_free_hit_next
        outcome = ball(state, striker="C")
        assert outcome.delivery.is_free_hit

    def test_retirement_carries_no_runs(self):
        assert_rejected(fresh(), "runs_on_non_delivery", runs_off_bat=1, is_wicket=True, wicket_type="retired_hurt")
        assert_rejected(
            fresh(), "runs_on_non_delivery", extra_type="wide", is_wicket=True, wicket_type="retired_out",
        )

    def test_retirement_between_overs_needs_no_bowler(self):
        state = over(fresh(), "X")
        outcome = ball(state, bowler="", is_wicket=True, wicket_type="retired_hurt")
        assert outcome.delivery.bowler == ""
        assert outcome.innings.current_bowler is None
        state = ball(outcome.innings, "Y", striker="C").innings
        assert state.current_bowler == "Y"

    def test_non_deliveries_replay_identically(self):
        state = ball(fresh(), runs_off_bat=1).innings
        state = ball(state, is_wicket=True, wicket_type="retired_hurt").innings
        state = ball(state, "Y", striker="C", extra_type="penalty", extra_runs=5).innings
        state = ball(state, runs_off_bat=2).innings
        assert processor.replay(fresh(), state.deliveries, TWO_OVERS) == state
        assert state.legal_balls == 2


RETIRE_AT_10 = MatchProfile(name="Junior", overs_per_innings=2, retire_at_score=10)
LAST_MAN = MatchProfile(name="Last man", overs_per_innings=2, max_wickets=2, last_man_can_play=True)


class TestProfileRules:
    """Retire at a score and the last man batting alone"""

    def test_batsman_retires_on_reaching_score(self):
        state = ball(fresh(), profile=RETIRE_AT_10, runs_off_bat=6).innings
        state = ball(state, profile=RETIRE_AT_10, runs_off_bat=4).innings
        assert state.striker is None
        assert state.non_striker == "B"
        assert "A" in state.retired
        assert "A" in state.limit_retired
        assert state.wickets == 0
        assert state.legal_balls == 2

    def test_retired_batsman_may_return(self):
        state = ball(fresh(), profile=RETIRE_AT_10, runs_off_bat=6).innings
        state = ball(state, profile=RETIRE_AT_10, runs_off_bat=4).innings
        state = ball(state, profile=RETIRE_AT_10, striker="C", is_wicket=True, wicket_type="bowled").innings
        state = ball(state, profile=RETIRE_AT_10, striker="A", runs_off_bat=2).innings
        # Back in, and not sent off a second time
        assert state.striker == "A"
        assert "A" not in state.retired

    def test_retired_batsman_may_not_return(self):
        no_return = MatchProfile(name="Junior", overs_per_innings=2, retire_at_score=10, retired_can_return=False)
        state = ball(fresh(), profile=no_return, runs_off_bat=6).innings
        state = ball(state, profile=no_return, runs_off_bat=4).innings
        state = ball(state, profile=no_return, striker="C", is_wicket=True, wicket_type="bowled").innings
        assert_rejected(state, "retired_cannot_return", profile=no_return, striker="A")

    def test_negative_retire_score_rejected(self):
        with pytest.raises(ValueError):
            MatchProfile(retire_at_score=-1)

    def _last_pair_broken(self):
        state = ball(fresh(), profile=LAST_MAN, is_wicket=True, wicket_type="bowled").innings
        return ball(state, profile=LAST_MAN, striker="C", is_wicket=True, wicket_type="bowled").innings

    def test_last_man_bats_alone(self):
        state = self._last_pair_broken()
        assert not state.is_completed
        assert (state.striker, state.non_striker) == ("B", None)

        state = processor.apply(state, DeliveryInput(striker="B", bowler="X", runs_off_bat=1), LAST_MAN).innings
        assert (state.striker, state.non_striker) == ("B", None)
        assert state.total_runs == 1

    def test_last_man_takes_no_partner(self):
        assert_rejected(
            self._last_pair_broken(), "non_striker_not_allowed", profile=LAST_MAN, striker="B", non_striker="D",
        )

    def test_last_man_out_ends_innings(self):
        state = self._last_pair_broken()
        outcome = processor.apply(
            state, DeliveryInput(striker="B", bowler="X", is_wicket=True, wicket_type="bowled"), LAST_MAN
        )
        assert outcome.innings.completion_reason == CompletionReason.ALL_OUT
        assert outcome.innings.wickets == 3

    def test_both_batsmen_needed_before_last_man(self):
        with pytest.raises(InvalidDeliveryError) as exc:
            processor.apply(fresh(), DeliveryInput(striker="A", bowler="X"), LAST_MAN)
        assert exc.value.reason == "batsman_required"


class TestChase:
    """Second-innings target handling"""

    def test_target_reached_ends_innings(self):
        state = fresh(target=5, innings_number=2)
        state = ball(state, runs_off_bat=4).innings
        assert not state.is_completed
        outcome = ball(state, runs_off_bat=1)
        assert outcome.innings.is_completed
        assert outcome.innings.completion_reason == CompletionReason.TARGET_REACHED
        # No rotation once the innings is over
        assert outcome.innings.striker == "A"

    def test_target_reached_with_wide(self):
        state = fresh(target=1, innings_number=2)
        outcome = ball(state, extra_type="wide")
        assert outcome.boundary_event.reason == CompletionReason.TARGET_REACHED

    def test_target_takes_precedence_over_overs(self):
        state = over(fresh(target=12, innings_number=2), "X", runs=1)
        for _ in range(5):
            state = ball(state, "Y", runs_off_bat=1).innings
        state = ball(state, "Y", runs_off_bat=1).innings
        assert state.completion_reason == CompletionReason.TARGET_REACHED

    def test_revised_target(self):
        state = processor.start_innings(1, 2, "Tigers", "Lions", target=20, target_revised=True)
        assert state.target_revised
        state = ball(state, runs_off_bat=6).innings
        revised = processor.revise_target(state, 8)
        assert (revised.target, revised.target_revised) == (8, True)
        outcome = ball(revised, runs_off_bat=2)
        assert outcome.innings.completion_reason == CompletionReason.TARGET_REACHED

    def test_revised_target_must_be_ahead_of_score(self):
        state = ball(fresh(target=20, innings_number=2), runs_off_bat=6).innings
        with pytest.raises(ValueError):
            processor.revise_target(state, 6)
        with pytest.raises(ValueError):
            processor.revise_target(fresh(), 10)

    def test_undo_keeps_revised_target(self):
        state = processor.start_innings(1, 2, "Tigers", "Lions", target=20, target_revised=True)
        state = ball(state, runs_off_bat=6).innings
        rebuilt, _ = processor.undo_last_delivery(state, TWO_OVERS)
        assert (rebuilt.target, rebuilt.target_revised) == (20, True)


class TestCloseInnings:
    """Closing an innings by hand"""

    def test_close_innings(self):
        state = ball(fresh(), runs_off_bat=2).innings
        closed, event = processor.close_innings(state)
        assert closed.is_completed
        assert event.reason == CompletionReason.CLOSED
        assert event.runs == 2
        assert_rejected(closed, "innings_completed")

    def test_close_completed_innings_rejected(self):
        state = over(over(fresh(), "X"), "Y")
        with pytest.raises(InvalidDeliveryError):
            processor.close_innings(state)

    def test_reopen_hand_closed_innings(self):
        state = ball(fresh(), runs_off_bat=2).innings
        closed, _ = processor.close_innings(state)
        assert closed.closed_by_hand
        assert processor.reopen_innings(closed, TWO_OVERS) == state

    def test_reopen_needs_hand_close(self):
        state = over(over(fresh(), "X"), "Y")
        with pytest.raises(InvalidDeliveryError) as exc:
            processor.reopen_innings(state, TWO_OVERS)
        assert exc.value.reason == "innings_not_closed"


class TestReplayAndUndo:
    """Rebuilding state from the ledger"""

    def _some_innings(self):
        state = fresh()
        state = ball(state, "X", runs_off_bat=1).innings
        state = ball(state, "X", extra_type="no_ball", runs_off_bat=2).innings
        state = ball(state, "X", extra_type="wide", extra_runs=2).innings
        state = ball(state, "X", is_wicket=True, wicket_type="run_out", dismissed_batsman="A", fielder="F").innings
        state = ball(state, "X", striker="C", runs_off_bat=4).innings
        return state

    def test_replay_reproduces_state(self):
        state = self._some_innings()
        assert processor.replay(fresh(), state.deliveries, TWO_OVERS) == state

    def test_undo_matches_replay_of_prefix(self):
        state = self._some_innings()
        rebuilt, voided = processor.undo_last_delivery(state, TWO_OVERS)
        assert voided == state.deliveries[-1]
        assert rebuilt == processor.replay(fresh(), state.deliveries[:-1], TWO_OVERS)
        assert len(rebuilt.deliveries) == len(state.deliveries) - 1

    def test_undo_clears_free_hit(self):
        state = ball(fresh(), extra_type="no_ball").innings
        rebuilt, _ = processor.undo_last_delivery(state, TWO_OVERS)
        assert not rebuilt.is_free_hit_next
        assert rebuilt.total_runs == 0

    def test_undo_reopens_completed_innings(self):
        state = over(over(fresh(), "X"), "Y")
        rebuilt, _ = processor.undo_last_delivery(state, TWO_OVERS)
        assert not rebuilt.is_completed
        assert rebuilt.current_bowler == "Y"

    def test_nothing_to_undo(self):
        with pytest.raises(InvalidDeliveryError) as exc:
            processor.undo_last_delivery(fresh(), TWO_OVERS)
        assert exc.value.reason == "nothing_to_undo"

    def test_delivery_to_input_round_trip(self):
        state = self._some_innings()
        for delivery in state.deliveries:
            assert delivery.to_input().extra_type == delivery.extra_type
        assert state.deliveries[0].extra_type == ExtraType.NONE
        assert state.deliveries[3].wicket_type == WicketType.RUN_OUT
