"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from app.engine.state import MatchState, TossDecision


# Profile Schemas
class ProfileSchema(BaseModel):
    name: str = "Custom"
    overs_per_innings: int = 20
    balls_per_over: int = 6
    wide_runs: int = 1
    no_ball_runs: int = 1
    free_hit_enabled: bool = True
    powerplay_overs: int = 6
    max_overs_per_bowler: int = 4
    max_wickets: int = 10
    free_hit_on_wide: bool = False
    retire_at_score: int = 0
    retired_can_return: bool = True
    last_man_can_play: bool = False

    class Config:
        from_attributes = True


# Match Schemas
class MatchCreateRequest(BaseModel):
    team_a: str
    team_b: str
    profile: Optional[str] = None  # preset name
    custom_profile: Optional[ProfileSchema] = None
    venue: Optional[str] = None
    tournament_id: Optional[int] = None


class MatchResponse(BaseModel):
    id: int
    team_a: str
    team_b: str
    venue: Optional[str] = None
    match_date: datetime
    tournament_id: Optional[int] = None
    state: MatchState
    toss_winner: Optional[str] = None
    toss_decision: Optional[TossDecision] = None
    winner: Optional[str] = None
    result_summary: Optional[str] = None
    profile: ProfileSchema

    class Config:
        from_attributes = True


class TossRequest(BaseModel):
    winner: str
    decision: TossDecision


class AbandonRequest(BaseModel):
    no_result: bool = False


class InningsStartRequest(BaseModel):
    target: Optional[int] = None  # revised (DLS) target for the second innings


class TargetRequest(BaseModel):
    target: int


# Innings Schemas
class InningsStateResponse(BaseModel):
    innings_number: int
    batting_side: str
    bowling_side: str
    target: Optional[int] = None
    target_revised: bool = False
    runs: int
    wickets: int
    overs: str
    striker: Optional[str] = None
    non_striker: Optional[str] = None
    current_bowler: Optional[str] = None
    is_free_hit_next: bool
    is_completed: bool
    completion_reason: Optional[str] = None


class MatchStateResponse(BaseModel):
    match_id: int
    profile: ProfileSchema
    team_a: str
    team_b: str
    toss_winner: Optional[str] = None
    toss_decision: Optional[TossDecision] = None
    batting_first_side: Optional[str] = None
    state: MatchState
    current_innings: Optional[int] = None
    innings: List[InningsStateResponse]
    result: Optional["MatchResultResponse"] = None


# Delivery Schemas
class DeliveryRequest(BaseModel):
    """
    One ball as entered by the scorer. extra_type and wicket_type stay plain
    strings so an unknown value is rejected with the engine's reason code.
    """
    striker: str
    non_striker: Optional[str] = None
    bowler: Optional[str] = None
    runs_off_bat: int = 0
    extra_type: str = "none"
    extra_runs: Optional[int] = None
    is_wicket: bool = False
    wicket_type: Optional[str] = None
    dismissed_batsman: Optional[str] = None
    fielder: Optional[str] = None
    is_boundary: Optional[bool] = None


class DeliveryResponse(BaseModel):
    sequence: int
    innings_number: int
    over_number: int
    ball_in_over: int
    striker: str
    non_striker: Optional[str] = None
    bowler: str
    runs_off_bat: int
    extra_runs: int
    extra_type: str
    is_wicket: bool
    wicket_type: Optional[str] = None
    dismissed_batsman: Optional[str] = None
    fielder: Optional[str] = None
    is_powerplay: bool
    is_free_hit: bool
    is_boundary: bool


class InningsCompletedResponse(BaseModel):
    innings_number: int
    reason: str
    runs: int
    wickets: int
    legal_balls: int


class DeliveryResultResponse(BaseModel):
    delivery: DeliveryResponse
    innings: InningsStateResponse
    innings_completed: Optional[InningsCompletedResponse] = None
    match_state: MatchState


class UndoResponse(BaseModel):
    voided: Optional[DeliveryResponse] = None  # None when undo only reopened a closed innings
    innings: InningsStateResponse


# Result Schemas
class InningsSummaryResponse(BaseModel):
    side: str
    runs: int
    wickets: int
    legal_balls: int
    overs: str


class MatchResultResponse(BaseModel):
    match_id: int
    result_type: str
    summary: str
    team_a: str
    team_b: str
    winner: Optional[str] = None
    loser: Optional[str] = None
    margin: Optional[str] = None
    margin_runs: Optional[int] = None
    margin_wickets: Optional[int] = None
    balls_remaining: Optional[int] = None
    revised_target: Optional[int] = None
    first_innings: Optional[InningsSummaryResponse] = None
    second_innings: Optional[InningsSummaryResponse] = None


MatchStateResponse.model_rebuild()


# Tournament Schemas
class TournamentCreateRequest(BaseModel):
    name: str
    teams: List[str] = []
    points_win: Optional[int] = None
    points_tie: Optional[int] = None
    points_loss: Optional[int] = None
    points_no_result: Optional[int] = None


class TournamentResponse(BaseModel):
    id: int
    name: str
    points_win: int
    points_tie: int
    points_loss: int
    points_no_result: int

    class Config:
        from_attributes = True


class StandingsApplyRequest(BaseModel):
    match_id: int


class StandingResponse(BaseModel):
    position: int
    team_id: str
    played: int
    won: int
    lost: int
    tied: int
    no_result: int
    points: int
    nrr: float
    runs_scored: int
    overs_faced: float
    runs_conceded: int
    overs_bowled: float


# Auth Schemas
class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
