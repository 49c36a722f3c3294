"""
Match Engine - match-level state machine around the delivery processor.

Owns the toss, innings setup and the innings break, and moves the match to
its terminal state when the second innings ends. Each innings itself is
driven by DeliveryProcessor; this class only decides which innings is live.
"""
import logging
from typing import Iterable, List, Optional

from app.engine.errors import InningsNotFoundError, MatchStateError
from app.engine.processor import DeliveryProcessor
from app.engine.profile import MatchProfile
from app.engine.result import MatchResult, MatchResultResolver, ResultType
from app.engine.state import (
    TERMINAL_STATES,
    CompletionReason,
    Delivery,
    DeliveryInput,
    DeliveryOutcome,
    InningsCompleted,
    InningsState,
    MatchState,
    TossDecision,
)

logger = logging.getLogger(__name__)


def innings_to_dict(innings: InningsState, balls_per_over: int) -> dict:
    """Scoreboard view of one innings"""
    return {
        "innings_number": innings.innings_number,
        "batting_side": innings.batting_side,
        "bowling_side": innings.bowling_side,
        "target": innings.target,
        "target_revised": innings.target_revised,
        "runs": innings.total_runs,
        "wickets": innings.wickets,
        "overs": innings.overs_display(balls_per_over),
        "striker": innings.striker,
        "non_striker": innings.non_striker,
        "current_bowler": innings.current_bowler,
        "is_free_hit_next": innings.is_free_hit_next,
        "is_completed": innings.is_completed,
        "completion_reason": innings.completion_reason.value if innings.completion_reason else None,
    }


class MatchEngine:
    """One match: two sides, a profile, and at most two innings"""

    def __init__(
        self,
        match_id,
        profile: MatchProfile,
        team_a: str,
        team_b: str,
        processor: Optional[DeliveryProcessor] = None,
        resolver: Optional[MatchResultResolver] = None,
    ):
        if team_a == team_b:
            raise ValueError("A match needs two different sides")
        self.match_id = match_id
        self.profile = profile
        self.team_a = team_a
        self.team_b = team_b
        self.processor = processor or DeliveryProcessor()
        self.resolver = resolver or MatchResultResolver()

        self.toss_winner: Optional[str] = None
        self.toss_decision: Optional[TossDecision] = None
        self.batting_first_side: Optional[str] = None
        self.innings: List[InningsState] = []
        self.state = MatchState.SCHEDULED
        self.result: Optional[MatchResult] = None

    def opponent(self, side: str) -> str:
        if side == self.team_a:
            return self.team_b
        if side == self.team_b:
            return self.team_a
        raise ValueError(f"{side} is not playing in this match")

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def current_innings(self) -> Optional[InningsState]:
        if self.state != MatchState.INNINGS_IN_PROGRESS:
            return None
        return self.innings[-1]

    def get_innings(self, innings_number: int) -> InningsState:
        if innings_number < 1 or innings_number > len(self.innings):
            raise InningsNotFoundError(self.match_id, innings_number)
        return self.innings[innings_number - 1]

    def record_toss(self, winner: str, decision) -> None:
        self._require(MatchState.SCHEDULED, "record the toss")
        decision = TossDecision(decision)
        self.opponent(winner)

        self.toss_winner = winner
        self.toss_decision = decision
        self.batting_first_side = winner if decision == TossDecision.BAT else self.opponent(winner)
        self.state = MatchState.TOSS_DONE
        logger.debug(
            "Match %s: %s won the toss and chose to %s", self.match_id, winner, decision.value
        )

    def start_innings(self, target: Optional[int] = None) -> InningsState:
        """
        Open the next innings. The second innings chases first-innings runs + 1
        unless a revised target (e.g. a DLS par score) is given.
        """
        if target is not None and self.state != MatchState.INNINGS_BREAK:
            raise ValueError("Only the second innings can be given a revised target")
        if self.state == MatchState.TOSS_DONE and not self.innings:
            innings = self.processor.start_innings(
                self.match_id, 1, self.batting_first_side, self.opponent(self.batting_first_side)
            )
        elif self.state == MatchState.INNINGS_BREAK and len(self.innings) == 1:
            first = self.innings[0]
            innings = self.processor.start_innings(
                self.match_id, 2, first.bowling_side, first.batting_side,
                target=first.total_runs + 1 if target is None else target,
                target_revised=target is not None,
            )
        else:
            raise MatchStateError(f"Cannot start an innings while the match is {self.state.value}")

        self.innings.append(innings)
        self.state = MatchState.INNINGS_IN_PROGRESS
        logger.debug(
            "Match %s: innings %d started, %s batting", self.match_id, innings.innings_number, innings.batting_side
        )
        return innings

    def apply_delivery(self, innings_number: int, delivery: DeliveryInput) -> DeliveryOutcome:
        innings = self.get_innings(innings_number)
        if self.state in (MatchState.ABANDONED, MatchState.NO_RESULT):
            raise MatchStateError(f"Match {self.match_id} is {self.state.value}")

        outcome = self.processor.apply(innings, delivery, self.profile)
        self.innings[innings_number - 1] = outcome.innings
        if outcome.boundary_event is not None:
            self._innings_completed(outcome.boundary_event)
        return outcome

    def revise_target(self, target: int) -> InningsState:
        """Change the live chase target, e.g. when rain shortens the second innings"""
        innings = self.current_innings()
        if innings is None or innings.innings_number != 2:
            raise MatchStateError("A target can only be revised during the second innings")
        revised = self.processor.revise_target(innings, target)
        self.innings[-1] = revised
        logger.debug("Match %s: target revised to %d", self.match_id, target)
        return revised

    def close_innings(
        self, innings_number: int, reason: CompletionReason = CompletionReason.CLOSED
    ) -> InningsCompleted:
        innings = self.get_innings(innings_number)
        if self.state in (MatchState.ABANDONED, MatchState.NO_RESULT):
            raise MatchStateError(f"Match {self.match_id} is {self.state.value}")
        closed, event = self.processor.close_innings(innings, reason)
        self.innings[innings_number - 1] = closed
        self._innings_completed(event)
        return event

    def undo_last_delivery(self, innings_number: int) -> Optional[Delivery]:
        """
        Void the last delivery of the latest innings. Undoing the ball that
        ended an innings reopens it, and clears the result if there was one.
        An innings closed by hand is only reopened; no ball is voided and
        None is returned.
        """
        innings = self.get_innings(innings_number)
        if innings_number != len(self.innings):
            raise MatchStateError(
                f"Innings {innings_number} is closed and innings {len(self.innings)} has started"
            )
        if self.state in (MatchState.ABANDONED, MatchState.NO_RESULT):
            raise MatchStateError(f"Match {self.match_id} is {self.state.value}")

        if innings.closed_by_hand:
            self.innings[innings_number - 1] = self.processor.reopen_innings(innings, self.profile)
            self.state = MatchState.INNINGS_IN_PROGRESS
            self.result = None
            logger.debug("Match %s: reopened innings %d", self.match_id, innings_number)
            return None

        rebuilt, voided = self.processor.undo_last_delivery(innings, self.profile)
        self.innings[innings_number - 1] = rebuilt
        self.state = MatchState.INNINGS_IN_PROGRESS
        self.result = None
        logger.debug(
            "Match %s: voided delivery %d of innings %d", self.match_id, voided.sequence, innings_number
        )
        return voided

    def abandon(self, no_result: bool = False) -> MatchResult:
        """End the match without a result (weather, forfeit, ...)"""
        if self.is_finished:
            raise MatchStateError(f"Match {self.match_id} is already {self.state.value}")
        self.state = MatchState.NO_RESULT if no_result else MatchState.ABANDONED
        self.result = self.resolver.resolve(self)
        logger.debug("Match %s ended without a result (%s)", self.match_id, self.state.value)
        return self.result

    def replay_innings(
        self, innings_number: int, deliveries: Iterable[Delivery], closed_reason=None, target: Optional[int] = None
    ) -> None:
        """
        Rebuild an innings from a stored ledger: start it (with its revised
        target, if it had one), re-apply every delivery and close it by hand
        if it was closed that way.
        """
        if innings_number != len(self.innings) + 1:
            raise MatchStateError(f"Innings {innings_number} cannot be replayed before innings {len(self.innings) + 1}")
        self.start_innings(target)
        for delivery in deliveries:
            self.apply_delivery(innings_number, delivery.to_input())
        if closed_reason is not None and not self.innings[-1].is_completed:
            self.close_innings(innings_number, CompletionReason(closed_reason))

    def to_dict(self) -> dict:
        bpo = self.profile.balls_per_over
        current = self.current_innings()
        return {
            "match_id": self.match_id,
            "profile": self.profile.to_dict(),
            "team_a": self.team_a,
            "team_b": self.team_b,
            "toss_winner": self.toss_winner,
            "toss_decision": self.toss_decision.value if self.toss_decision else None,
            "batting_first_side": self.batting_first_side,
            "state": self.state.value,
            "current_innings": current.innings_number if current else None,
            "innings": [innings_to_dict(innings, bpo) for innings in self.innings],
            "result": self.result.to_dict() if self.result else None,
        }

    def _innings_completed(self, event: InningsCompleted) -> None:
        logger.debug(
            "Match %s: innings %d completed (%s) at %d/%d",
            self.match_id, event.innings_number, event.reason.value, event.runs, event.wickets,
        )
        if event.innings_number == 1:
            self.state = MatchState.INNINGS_BREAK
            return
        self.result = self.resolver.resolve(self)
        self.state = MatchState.TIED if self.result.result_type == ResultType.TIE else MatchState.COMPLETED

    def _require(self, state: MatchState, action: str) -> None:
        if self.state != state:
            raise MatchStateError(f"Cannot {action} while the match is {self.state.value}")
