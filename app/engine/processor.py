"""
Delivery Processor - the ball-by-ball state machine.

apply() is a pure transition: (innings state, scorer input, profile) ->
(new innings state, appended delivery, optional InningsCompleted event).
Everything is validated before anything is built, so a rejected delivery
leaves the caller's state exactly as it was.
"""
import logging
from dataclasses import replace
from typing import Optional, Tuple

from app.engine.errors import InvalidDeliveryError
from app.engine.profile import MatchProfile
from app.engine.state import (
    BOWLER_WICKETS,
    NON_DELIVERY_WICKETS,
    WIDE_BOWLER_WICKETS,
    CompletionReason,
    Delivery,
    DeliveryInput,
    DeliveryOutcome,
    ExtraType,
    InningsCompleted,
    InningsState,
    WicketType,
)

logger = logging.getLogger(__name__)


class DeliveryProcessor:
    """Validates and applies deliveries to an innings"""

    def start_innings(
        self,
        match_id,
        innings_number: int,
        batting_side: str,
        bowling_side: str,
        target: Optional[int] = None,
        target_revised: bool = False,
    ) -> InningsState:
        """Fresh innings; openers and the first bowler come with the first delivery"""
        if innings_number not in (1, 2):
            raise ValueError(f"innings_number must be 1 or 2, got {innings_number}")
        if innings_number == 2 and target is None:
            raise ValueError("Second innings needs a target")
        if target is not None and target < 1:
            raise ValueError("target must be at least 1")
        return InningsState(
            match_id=match_id,
            innings_number=innings_number,
            batting_side=batting_side,
            bowling_side=bowling_side,
            target=target if innings_number == 2 else None,
            target_revised=target_revised and innings_number == 2,
        )

    def apply(self, state: InningsState, delivery: DeliveryInput, profile: MatchProfile) -> DeliveryOutcome:
        if state.is_completed:
            raise InvalidDeliveryError("innings_completed", f"Innings {state.innings_number} is already completed")

        extra_runs = self._resolve_extra_runs(delivery, profile)
        self._validate_batsmen(state, delivery, profile)
        non_delivery = self._is_non_delivery(delivery)
        if not non_delivery:
            self._validate_bowler(state, delivery, profile)
        dismissed_batsman = self._validate_wicket(state, delivery)

        extra_type = delivery.extra_type
        is_boundary = delivery.is_boundary
        if is_boundary is None:
            is_boundary = delivery.runs_off_bat in (4, 6)

        record = Delivery(
            sequence=len(state.deliveries),
            innings_number=state.innings_number,
            over_number=state.current_over,
            ball_in_over=state.current_ball_in_over,
            striker=delivery.striker,
            non_striker=delivery.non_striker or None,
            bowler=delivery.bowler or state.current_bowler or "",
            runs_off_bat=delivery.runs_off_bat,
            extra_runs=extra_runs,
            extra_type=extra_type,
            is_wicket=delivery.is_wicket,
            wicket_type=delivery.wicket_type if delivery.is_wicket else None,
            dismissed_batsman=dismissed_batsman,
            fielder=delivery.fielder if delivery.is_wicket else None,
            is_powerplay=profile.is_powerplay_over(state.current_over),
            is_free_hit=state.is_free_hit_next,
            is_boundary=bool(is_boundary) and not non_delivery,
        )

        total_runs = state.total_runs + record.total_runs
        wickets = state.wickets + (1 if record.counts_as_wicket else 0)
        legal_balls = state.legal_balls + (1 if record.is_legal else 0)
        ball_in_over = state.current_ball_in_over + (1 if record.is_legal else 0)
        current_over = state.current_over

        batsman_runs = state.batsman_runs
        if record.runs_off_bat:
            batsman_runs = dict(state.batsman_runs)
            batsman_runs[record.striker] = batsman_runs.get(record.striker, 0) + record.runs_off_bat

        # A returning retired batsman is back at the crease
        retired = state.retired - {record.striker, record.non_striker}
        limit_retired = state.limit_retired
        dismissed = state.dismissed

        striker, non_striker = record.striker, record.non_striker
        if record.is_wicket:
            if record.wicket_type == WicketType.RETIRED_HURT:
                retired = retired | {dismissed_batsman}
            else:
                dismissed = dismissed | {dismissed_batsman}
            striker, non_striker = self._vacate(striker, non_striker, dismissed_batsman)

        # Free hit: set by a no-ball (and a wide when the profile says so),
        # carried through wides and anything that is not a delivery
        if record.is_non_delivery:
            free_hit_next = state.is_free_hit_next
        elif extra_type == ExtraType.NO_BALL:
            free_hit_next = profile.free_hit_enabled
        elif extra_type == ExtraType.WIDE:
            free_hit_next = state.is_free_hit_next or profile.free_hit_on_wide
        else:
            free_hit_next = False

        reason = self._completion_reason(state, total_runs, wickets, legal_balls, profile)

        if reason is None and not record.is_boundary and self._runs_run(record, profile) % 2 == 1:
            striker, non_striker = non_striker, striker

        current_bowler = state.current_bowler if record.is_non_delivery else record.bowler
        previous_over_bowler = state.previous_over_bowler
        bowler_overs = state.bowler_overs
        if record.is_legal and ball_in_over == profile.balls_per_over:
            ball_in_over = 0
            current_over += 1
            bowler_overs = dict(state.bowler_overs)
            bowler_overs[record.bowler] = bowler_overs.get(record.bowler, 0) + 1
            previous_over_bowler = record.bowler
            current_bowler = None
            if reason is None:
                striker, non_striker = non_striker, striker

        if profile.retire_at_score:
            for batsman in (striker, non_striker):
                if (
                    batsman is not None
                    and batsman not in limit_retired
                    and batsman_runs.get(batsman, 0) >= profile.retire_at_score
                ):
                    limit_retired = limit_retired | {batsman}
                    retired = retired | {batsman}
                    striker, non_striker = self._vacate(striker, non_striker, batsman)
                    logger.debug("%s retired on reaching %s", batsman, profile.retire_at_score)

        # The last man bats alone and always takes strike
        if profile.last_man_can_play and wickets >= profile.max_wickets:
            striker, non_striker = striker or non_striker, None

        new_state = replace(
            state,
            deliveries=state.deliveries + (record,),
            current_over=current_over,
            current_ball_in_over=ball_in_over,
            striker=striker,
            non_striker=non_striker,
            current_bowler=current_bowler,
            previous_over_bowler=previous_over_bowler,
            is_free_hit_next=free_hit_next if reason is None else False,
            is_completed=reason is not None,
            completion_reason=reason,
            total_runs=total_runs,
            wickets=wickets,
            legal_balls=legal_balls,
            bowler_overs=bowler_overs,
            dismissed=dismissed,
            retired=retired,
            limit_retired=limit_retired,
            batsman_runs=batsman_runs,
        )

        event = None
        if reason is not None:
            event = self._completed_event(new_state, reason)
            logger.debug(
                "Innings %s of match %s ended (%s) at %s",
                state.innings_number, state.match_id, reason.value, new_state.score_display,
            )
        return DeliveryOutcome(innings=new_state, delivery=record, boundary_event=event)

    def close_innings(
        self, state: InningsState, reason: CompletionReason = CompletionReason.CLOSED
    ) -> Tuple[InningsState, InningsCompleted]:
        """End an innings by hand (declaration, scorer's end-innings button)"""
        if state.is_completed:
            raise InvalidDeliveryError("innings_completed", f"Innings {state.innings_number} is already completed")
        new_state = replace(
            state, is_completed=True, completion_reason=reason, is_free_hit_next=False, closed_by_hand=True
        )
        return new_state, self._completed_event(new_state, reason)

    def reopen_innings(self, state: InningsState, profile: MatchProfile) -> InningsState:
        """Take back a hand close; the ledger is untouched"""
        if not state.closed_by_hand:
            raise InvalidDeliveryError("innings_not_closed", f"Innings {state.innings_number} was not closed by hand")
        return self.replay(self._fresh(state), state.deliveries, profile)

    def revise_target(self, state: InningsState, target: int) -> InningsState:
        """Replace the chase target mid-innings, e.g. after a rain-reduced match"""
        if state.innings_number != 2:
            raise ValueError("Only the second innings has a target")
        if state.is_completed:
            raise InvalidDeliveryError("innings_completed", f"Innings {state.innings_number} is already completed")
        if target <= state.total_runs:
            raise ValueError(f"Revised target {target} is already reached at {state.score_display}")
        return replace(state, target=target, target_revised=True)

    def replay(self, start: InningsState, deliveries, profile: MatchProfile) -> InningsState:
        """Rebuild innings state by re-applying recorded deliveries in order"""
        state = start
        for delivery in deliveries:
            state = self.apply(state, delivery.to_input(), profile).innings
        return state

    def undo_last_delivery(self, state: InningsState, profile: MatchProfile) -> Tuple[InningsState, Delivery]:
        """
        Drop the last delivery and rebuild the state from the rest of the ledger.
        Returns the rebuilt state and the voided delivery.
        """
        if not state.deliveries:
            raise InvalidDeliveryError("nothing_to_undo", "No deliveries recorded in this innings")
        rebuilt = self.replay(self._fresh(state), state.deliveries[:-1], profile)
        return rebuilt, state.deliveries[-1]

    # Validation

    def _resolve_extra_runs(self, delivery: DeliveryInput, profile: MatchProfile) -> int:
        extra_type = delivery.extra_type
        extra_runs = delivery.extra_runs

        if delivery.runs_off_bat < 0 or (extra_runs is not None and extra_runs < 0):
            raise InvalidDeliveryError("negative_runs", "Runs cannot be negative")

        if delivery.is_wicket and delivery.wicket_type in NON_DELIVERY_WICKETS:
            if extra_type != ExtraType.NONE or extra_runs or delivery.runs_off_bat:
                raise InvalidDeliveryError(
                    "runs_on_non_delivery", f"{delivery.wicket_type.value} is recorded between balls, with no runs"
                )

        if extra_type == ExtraType.NONE:
            if extra_runs:
                raise InvalidDeliveryError("unexpected_extra_runs", "Extra runs need an extra type")
            return 0

        if extra_type in (ExtraType.WIDE, ExtraType.BYE, ExtraType.LEG_BYE, ExtraType.PENALTY):
            if delivery.runs_off_bat:
                raise InvalidDeliveryError(
                    "runs_off_bat_not_allowed", f"No runs off the bat on a {extra_type.value}"
                )

        if extra_type in (ExtraType.WIDE, ExtraType.NO_BALL):
            minimum = profile.wide_runs if extra_type == ExtraType.WIDE else profile.no_ball_runs
            if extra_runs is None:
                return minimum
            if extra_runs < minimum:
                raise InvalidDeliveryError(
                    "extra_runs_below_minimum", f"A {extra_type.value} is worth at least {minimum} under {profile.name}"
                )
            return extra_runs

        if not extra_runs:
            raise InvalidDeliveryError("extra_runs_required", f"A {extra_type.value} needs at least one run")
        if extra_type == ExtraType.PENALTY and delivery.is_wicket:
            raise InvalidDeliveryError("wicket_on_penalty", "Penalty runs cannot carry a wicket")
        return extra_runs

    def _validate_batsmen(self, state: InningsState, delivery: DeliveryInput, profile: MatchProfile) -> None:
        batting_alone = profile.last_man_can_play and state.wickets >= profile.max_wickets
        if not delivery.striker:
            raise InvalidDeliveryError("batsman_required", "The striker must be named")
        if batting_alone:
            if delivery.non_striker:
                raise InvalidDeliveryError("non_striker_not_allowed", "The last batsman bats alone")
        elif not delivery.non_striker:
            raise InvalidDeliveryError("batsman_required", "Both batsmen must be named")
        if delivery.striker == delivery.non_striker:
            raise InvalidDeliveryError("same_batsman", "Striker and non-striker must differ")
        if state.striker is not None and delivery.striker != state.striker:
            raise InvalidDeliveryError("striker_mismatch", f"{state.striker} is on strike, not {delivery.striker}")
        if state.non_striker is not None and delivery.non_striker != state.non_striker:
            raise InvalidDeliveryError(
                "non_striker_mismatch", f"{state.non_striker} is the non-striker, not {delivery.non_striker}"
            )
        for batsman in (delivery.striker, delivery.non_striker):
            if batsman in state.dismissed:
                raise InvalidDeliveryError("batsman_already_dismissed", f"{batsman} is already out")
            if (
                not profile.retired_can_return
                and batsman in state.limit_retired
                and batsman not in (state.striker, state.non_striker)
            ):
                raise InvalidDeliveryError("retired_cannot_return", f"{batsman} retired and may not bat again")

    def _validate_bowler(self, state: InningsState, delivery: DeliveryInput, profile: MatchProfile) -> None:
        bowler = delivery.bowler
        if not bowler:
            raise InvalidDeliveryError("bowler_required", "A bowler must be named")
        if bowler in (delivery.striker, delivery.non_striker):
            raise InvalidDeliveryError("bowler_is_batsman", f"{bowler} is batting")

        if state.current_bowler is not None:
            if bowler != state.current_bowler:
                raise InvalidDeliveryError(
                    "bowler_changed_mid_over", f"{state.current_bowler} is bowling this over"
                )
            return

        # First ball of an over
        if bowler == state.previous_over_bowler:
            raise InvalidDeliveryError("consecutive_overs", f"{bowler} bowled the previous over")
        max_overs = profile.max_overs_per_bowler
        if max_overs and state.bowler_overs.get(bowler, 0) >= max_overs:
            raise InvalidDeliveryError("bowler_over_limit", f"{bowler} has bowled the maximum {max_overs} overs")

    def _validate_wicket(self, state: InningsState, delivery: DeliveryInput) -> Optional[str]:
        """Returns the dismissed batsman, or None when no wicket fell"""
        if not delivery.is_wicket:
            if delivery.wicket_type is not None:
                raise InvalidDeliveryError("wicket_type_without_wicket", "Wicket type given but no wicket")
            return None

        wicket_type = delivery.wicket_type
        if wicket_type is None:
            raise InvalidDeliveryError("wicket_type_required", "A wicket needs a wicket type")
        if state.is_free_hit_next and wicket_type not in NON_DELIVERY_WICKETS | {WicketType.RUN_OUT}:
            raise InvalidDeliveryError("free_hit_wicket", "Only a run out is possible on a free hit")
        if delivery.extra_type == ExtraType.NO_BALL and wicket_type in BOWLER_WICKETS:
            raise InvalidDeliveryError(
                "wicket_not_allowed_on_extra", f"Cannot be out {wicket_type.value} off a no-ball"
            )
        if delivery.extra_type == ExtraType.WIDE and wicket_type in BOWLER_WICKETS - WIDE_BOWLER_WICKETS:
            raise InvalidDeliveryError(
                "wicket_not_allowed_on_extra", f"Cannot be out {wicket_type.value} off a wide"
            )

        dismissed = delivery.dismissed_batsman
        if dismissed is None:
            if wicket_type == WicketType.RUN_OUT:
                raise InvalidDeliveryError("dismissed_batsman_required", "Name the batsman who was run out")
            dismissed = delivery.striker
        if dismissed not in (delivery.striker, delivery.non_striker):
            raise InvalidDeliveryError("dismissed_batsman_not_at_crease", f"{dismissed} is not at the crease")
        if wicket_type in BOWLER_WICKETS and dismissed != delivery.striker:
            raise InvalidDeliveryError(
                "dismissal_requires_striker", f"Only the striker can be out {wicket_type.value}"
            )
        return dismissed

    # Helpers

    def _is_non_delivery(self, delivery: DeliveryInput) -> bool:
        if delivery.extra_type == ExtraType.PENALTY:
            return True
        return delivery.is_wicket and delivery.wicket_type in NON_DELIVERY_WICKETS

    def _vacate(self, striker, non_striker, batsman):
        if batsman == striker:
            return None, non_striker
        return striker, None

    def _fresh(self, state: InningsState) -> InningsState:
        return self.start_innings(
            state.match_id, state.innings_number, state.batting_side, state.bowling_side,
            state.target, state.target_revised,
        )

    def _runs_run(self, record: Delivery, profile: MatchProfile) -> int:
        """Runs the batsmen physically ran on this delivery"""
        if record.extra_type == ExtraType.WIDE:
            return max(0, record.extra_runs - profile.wide_runs)
        if record.extra_type == ExtraType.NO_BALL:
            return record.runs_off_bat + max(0, record.extra_runs - profile.no_ball_runs)
        if record.extra_type in (ExtraType.BYE, ExtraType.LEG_BYE):
            return record.extra_runs
        if record.extra_type == ExtraType.PENALTY:
            return 0
        return record.runs_off_bat

    def _completion_reason(
        self, state: InningsState, total_runs: int, wickets: int, legal_balls: int, profile: MatchProfile
    ) -> Optional[CompletionReason]:
        if state.target is not None and total_runs >= state.target:
            return CompletionReason.TARGET_REACHED
        if wickets >= profile.all_out_wickets:
            return CompletionReason.ALL_OUT
        if profile.is_limited_overs and legal_balls >= profile.balls_per_innings:
            return CompletionReason.OVERS
        return None

    def _completed_event(self, state: InningsState, reason: CompletionReason) -> InningsCompleted:
        return InningsCompleted(
            match_id=state.match_id,
            innings_number=state.innings_number,
            reason=reason,
            runs=state.total_runs,
            wickets=state.wickets,
            legal_balls=state.legal_balls,
        )
