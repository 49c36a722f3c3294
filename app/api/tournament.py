"""
Tournament points table routes
"""
from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_service, http_error
from app.api.schemas import (
    StandingResponse,
    StandingsApplyRequest,
    TournamentCreateRequest,
    TournamentResponse,
)
from app.auth.utils import get_current_scorer
from app.config import settings
from app.engine.errors import ScoringError
from app.engine.scoring_service import ScoringService
from app.engine.standings import PointsTable, TournamentTeamStanding

router = APIRouter(prefix="/tournaments", tags=["Tournaments"])


def _standing_responses(standings: List[TournamentTeamStanding]) -> List[StandingResponse]:
    return [
        StandingResponse(
            position=pos,
            team_id=s.team_id,
            played=s.matches_played,
            won=s.won,
            lost=s.lost,
            tied=s.tied,
            no_result=s.no_result,
            points=s.points,
            nrr=s.nrr,
            runs_scored=s.runs_scored,
            overs_faced=s.overs_faced,
            runs_conceded=s.runs_conceded,
            overs_bowled=s.overs_bowled,
        )
        for pos, s in enumerate(standings, 1)
    ]


@router.post("", response_model=TournamentResponse)
def create_tournament(
    request: TournamentCreateRequest,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    """Create a tournament; points not given fall back to the configured defaults"""
    points = PointsTable(
        win=settings.POINTS_WIN if request.points_win is None else request.points_win,
        tie=settings.POINTS_TIE if request.points_tie is None else request.points_tie,
        loss=settings.POINTS_LOSS if request.points_loss is None else request.points_loss,
        no_result=settings.POINTS_NO_RESULT if request.points_no_result is None else request.points_no_result,
    )
    tournament = service.create_tournament(request.name, points=points, teams=request.teams)
    return TournamentResponse.model_validate(tournament)


@router.post("/{tournament_id}/standings", response_model=List[StandingResponse])
def apply_match_to_standings(
    tournament_id: int,
    request: StandingsApplyRequest,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    """Apply a finished match to the points table. A second call for the same match is a 409."""
    try:
        result = service.resolve_match(request.match_id)
        service.update_standings(tournament_id, result)
        standings = service.get_standings(tournament_id)
    except ScoringError as e:
        raise http_error(e)
    return _standing_responses(standings)


@router.get("/{tournament_id}/standings", response_model=List[StandingResponse])
def get_standings(tournament_id: int, service: ScoringService = Depends(get_service)):
    """Current standings sorted by points, then NRR"""
    try:
        standings = service.get_standings(tournament_id)
    except ScoringError as e:
        raise http_error(e)
    return _standing_responses(standings)
