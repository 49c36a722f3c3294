"""
Value types shared by the scoring engine: deliveries, innings state, events.
"""
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional

from app.engine.errors import InvalidDeliveryError


class ExtraType(str, Enum):
    NONE = "none"
    WIDE = "wide"
    NO_BALL = "no_ball"
    BYE = "bye"
    LEG_BYE = "leg_bye"
    PENALTY = "penalty"


class WicketType(str, Enum):
    BOWLED = "bowled"
    CAUGHT = "caught"
    CAUGHT_BEHIND = "caught_behind"
    CAUGHT_AND_BOWLED = "caught_and_bowled"
    LBW = "lbw"
    RUN_OUT = "run_out"
    STUMPED = "stumped"
    HIT_WICKET = "hit_wicket"
    OBSTRUCTING_FIELD = "obstructing_field"
    TIMED_OUT = "timed_out"
    RETIRED_HURT = "retired_hurt"
    RETIRED_OUT = "retired_out"


# Dismissals credited to the bowler
BOWLER_WICKETS = frozenset({
    WicketType.BOWLED,
    WicketType.CAUGHT,
    WicketType.CAUGHT_BEHIND,
    WicketType.CAUGHT_AND_BOWLED,
    WicketType.LBW,
    WicketType.STUMPED,
    WicketType.HIT_WICKET,
})

# Of the bowler's dismissals, only these can happen off a wide
WIDE_BOWLER_WICKETS = frozenset({WicketType.STUMPED, WicketType.HIT_WICKET})

# Recorded between balls: no ball slot, no ball faced, not the bowler's
NON_DELIVERY_WICKETS = frozenset({
    WicketType.RETIRED_HURT,
    WicketType.RETIRED_OUT,
    WicketType.TIMED_OUT,
})


class TossDecision(str, Enum):
    BAT = "bat"
    BOWL = "bowl"


class MatchState(str, Enum):
    SCHEDULED = "scheduled"
    TOSS_DONE = "toss_done"
    INNINGS_IN_PROGRESS = "innings_in_progress"
    INNINGS_BREAK = "innings_break"
    COMPLETED = "completed"
    TIED = "tied"
    NO_RESULT = "no_result"
    ABANDONED = "abandoned"


TERMINAL_STATES = frozenset({
    MatchState.COMPLETED,
    MatchState.TIED,
    MatchState.NO_RESULT,
    MatchState.ABANDONED,
})


class CompletionReason(str, Enum):
    OVERS = "overs"
    ALL_OUT = "all_out"
    TARGET_REACHED = "target_reached"
    CLOSED = "closed"


def overs_display(legal_balls: int, balls_per_over: int) -> str:
    """Cricket overs notation, e.g. 113 balls at 6 per over -> "18.5" """
    return f"{legal_balls // balls_per_over}.{legal_balls % balls_per_over}"


def overs_decimal(legal_balls: int, balls_per_over: int) -> float:
    """True decimal overs: 18.5 is 18 + 5/6, not 18.5"""
    return legal_balls // balls_per_over + (legal_balls % balls_per_over) / balls_per_over


@dataclass
class DeliveryInput:
    """What the scorer submits for one ball"""
    striker: str
    non_striker: Optional[str] = None  # None when the last man bats alone
    bowler: Optional[str] = None  # may be left out for penalties and retirements
    runs_off_bat: int = 0
    extra_type: ExtraType = ExtraType.NONE
    extra_runs: Optional[int] = None  # None -> profile default for wides/no-balls
    is_wicket: bool = False
    wicket_type: Optional[WicketType] = None
    dismissed_batsman: Optional[str] = None
    fielder: Optional[str] = None
    is_boundary: Optional[bool] = None  # None -> inferred from a 4 or 6 off the bat

    def __post_init__(self):
        try:
            self.extra_type = ExtraType(self.extra_type or ExtraType.NONE)
        except ValueError:
            raise InvalidDeliveryError("unknown_extra_type", f"Unknown extra type: {self.extra_type}") from None
        if self.wicket_type is not None:
            try:
                self.wicket_type = WicketType(self.wicket_type)
            except ValueError:
                raise InvalidDeliveryError("unknown_wicket_type", f"Unknown wicket type: {self.wicket_type}") from None


@dataclass(frozen=True)
class Delivery:
    """One ledger entry. Never edited once appended."""
    sequence: int
    innings_number: int
    over_number: int
    ball_in_over: int
    striker: str
    non_striker: Optional[str]
    bowler: str
    runs_off_bat: int = 0
    extra_runs: int = 0
    extra_type: ExtraType = ExtraType.NONE
    is_wicket: bool = False
    wicket_type: Optional[WicketType] = None
    dismissed_batsman: Optional[str] = None
    fielder: Optional[str] = None
    is_powerplay: bool = False
    is_free_hit: bool = False
    is_boundary: bool = False

    @property
    def is_non_delivery(self) -> bool:
        """Penalties and retirements happen between balls"""
        if self.extra_type == ExtraType.PENALTY:
            return True
        return self.is_wicket and self.wicket_type in NON_DELIVERY_WICKETS

    @property
    def is_legal(self) -> bool:
        if self.is_non_delivery:
            return False
        return self.extra_type in (ExtraType.NONE, ExtraType.BYE, ExtraType.LEG_BYE)

    @property
    def total_runs(self) -> int:
        return self.runs_off_bat + self.extra_runs

    @property
    def counts_as_wicket(self) -> bool:
        """Retired hurt leaves the crease but is not a wicket"""
        return self.is_wicket and self.wicket_type != WicketType.RETIRED_HURT

    @property
    def bowler_wicket(self) -> bool:
        return self.counts_as_wicket and self.wicket_type in BOWLER_WICKETS

    @property
    def bowler_conceded(self) -> int:
        """Runs charged to the bowler; byes, leg-byes and penalties are not"""
        if self.extra_type in (ExtraType.NONE, ExtraType.NO_BALL):
            return self.runs_off_bat + (self.extra_runs if self.extra_type == ExtraType.NO_BALL else 0)
        if self.extra_type == ExtraType.WIDE:
            return self.extra_runs
        return 0

    def to_input(self) -> DeliveryInput:
        """Rebuild the scorer input this entry was recorded from (used by replay)"""
        return DeliveryInput(
            striker=self.striker,
            non_striker=self.non_striker,
            bowler=self.bowler,
            runs_off_bat=self.runs_off_bat,
            extra_type=self.extra_type,
            extra_runs=self.extra_runs,
            is_wicket=self.is_wicket,
            wicket_type=self.wicket_type,
            dismissed_batsman=self.dismissed_batsman,
            fielder=self.fielder,
            is_boundary=self.is_boundary,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["extra_type"] = self.extra_type.value
        data["wicket_type"] = self.wicket_type.value if self.wicket_type else None
        return data


@dataclass(frozen=True)
class InningsState:
    """
    Live state of one innings. Only DeliveryProcessor builds new values of it;
    every transition returns a fresh instance.
    """
    match_id: object
    innings_number: int
    batting_side: str
    bowling_side: str
    target: Optional[int] = None
    deliveries: tuple = ()

    current_over: int = 0
    current_ball_in_over: int = 0
    striker: Optional[str] = None
    non_striker: Optional[str] = None
    current_bowler: Optional[str] = None
    previous_over_bowler: Optional[str] = None
    is_free_hit_next: bool = False
    is_completed: bool = False
    completion_reason: Optional[CompletionReason] = None

    # Processor bookkeeping
    total_runs: int = 0
    wickets: int = 0
    legal_balls: int = 0
    bowler_overs: dict = field(default_factory=dict)  # bowler -> completed overs
    dismissed: frozenset = frozenset()
    retired: frozenset = frozenset()
    limit_retired: frozenset = frozenset()  # retired on reaching retire_at_score
    batsman_runs: dict = field(default_factory=dict)
    closed_by_hand: bool = False
    target_revised: bool = False

    def overs_display(self, balls_per_over: int) -> str:
        return overs_display(self.legal_balls, balls_per_over)

    @property
    def score_display(self) -> str:
        return f"{self.total_runs}/{self.wickets}"


@dataclass(frozen=True)
class InningsCompleted:
    """Boundary event emitted when an innings ends"""
    match_id: object
    innings_number: int
    reason: CompletionReason
    runs: int
    wickets: int
    legal_balls: int


@dataclass(frozen=True)
class DeliveryOutcome:
    innings: InningsState
    delivery: Delivery
    boundary_event: Optional[InningsCompleted] = None
