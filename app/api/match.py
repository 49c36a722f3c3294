"""
Live scoring API routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_service, http_error
from app.api.schemas import (
    AbandonRequest,
    DeliveryRequest,
    DeliveryResponse,
    DeliveryResultResponse,
    InningsCompletedResponse,
    InningsStartRequest,
    InningsStateResponse,
    MatchCreateRequest,
    MatchResponse,
    MatchResultResponse,
    MatchStateResponse,
    ProfileSchema,
    TargetRequest,
    TossRequest,
    UndoResponse,
)
from app.auth.utils import get_current_scorer
from app.engine.errors import ScoringError
from app.engine.match_engine import innings_to_dict
from app.engine.profile import PROFILES, MatchProfile
from app.engine.scoring_service import ScoringService
from app.engine.state import DeliveryInput

router = APIRouter(prefix="/matches", tags=["Scoring"])
profiles_router = APIRouter(prefix="/profiles", tags=["Profiles"])


@profiles_router.get("", response_model=List[ProfileSchema])
def list_profiles():
    """Preset rule sets a match can be created with"""
    return [ProfileSchema.model_validate(profile) for profile in PROFILES.values()]


@router.post("", response_model=MatchResponse)
def create_match(
    request: MatchCreateRequest,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    try:
        profile = request.profile
        if request.custom_profile is not None:
            profile = MatchProfile(**request.custom_profile.model_dump())
        match = service.create_match(
            request.team_a,
            request.team_b,
            profile=profile,
            venue=request.venue,
            tournament_id=request.tournament_id,
        )
    except (ScoringError, ValueError) as e:
        raise http_error(e)
    return MatchResponse.model_validate(match)


@router.get("/{match_id}", response_model=MatchStateResponse)
def get_match(match_id: int, service: ScoringService = Depends(get_service)):
    """Live match state, rebuilt from the ledger. Public, for scoreboards and overlays."""
    try:
        return MatchStateResponse(**service.get_match_state(match_id))
    except ScoringError as e:
        raise http_error(e)


@router.post("/{match_id}/toss", response_model=MatchStateResponse)
def record_toss(
    match_id: int,
    request: TossRequest,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    try:
        engine = service.record_toss(match_id, request.winner, request.decision)
    except (ScoringError, ValueError) as e:
        raise http_error(e)
    return MatchStateResponse(**engine.to_dict())


@router.post("/{match_id}/innings", response_model=InningsStateResponse)
def start_innings(
    match_id: int,
    request: Optional[InningsStartRequest] = None,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    """
    Open the next innings. The second one chases first-innings runs + 1
    unless the body carries a revised target.
    """
    try:
        innings = service.start_innings(match_id, target=request.target if request else None)
        profile = service.get_match(match_id).profile
    except (ScoringError, ValueError) as e:
        raise http_error(e)
    return InningsStateResponse(**innings_to_dict(innings, profile.balls_per_over))


@router.post("/{match_id}/target", response_model=InningsStateResponse)
def revise_target(
    match_id: int,
    request: TargetRequest,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    """Revise the live chase target (DLS)"""
    try:
        innings = service.revise_target(match_id, request.target)
        profile = service.get_match(match_id).profile
    except (ScoringError, ValueError) as e:
        raise http_error(e)
    return InningsStateResponse(**innings_to_dict(innings, profile.balls_per_over))


@router.post("/{match_id}/innings/{innings_number}/deliveries", response_model=DeliveryResultResponse)
def record_delivery(
    match_id: int,
    innings_number: int,
    request: DeliveryRequest,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    """
    Record one ball. A rejected ball returns 422 with a reason code and
    leaves the match exactly as it was.
    """
    try:
        outcome = service.apply_delivery(match_id, innings_number, DeliveryInput(**request.model_dump()))
        match = service.get_match(match_id)
    except ScoringError as e:
        raise http_error(e)

    event = outcome.boundary_event
    return DeliveryResultResponse(
        delivery=DeliveryResponse(**outcome.delivery.to_dict()),
        innings=InningsStateResponse(**innings_to_dict(outcome.innings, match.profile.balls_per_over)),
        innings_completed=InningsCompletedResponse(
            innings_number=event.innings_number,
            reason=event.reason.value,
            runs=event.runs,
            wickets=event.wickets,
            legal_balls=event.legal_balls,
        ) if event else None,
        match_state=match.state,
    )


@router.delete("/{match_id}/innings/{innings_number}/deliveries/last", response_model=UndoResponse)
def undo_last_delivery(
    match_id: int,
    innings_number: int,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    """Void the last ball of the live innings, or reopen it if it was closed by hand"""
    try:
        voided = service.undo_last_delivery(match_id, innings_number)
        innings = service.get_match_state(match_id)["innings"][innings_number - 1]
    except ScoringError as e:
        raise http_error(e)
    return UndoResponse(
        voided=DeliveryResponse(**voided.to_dict()) if voided else None,
        innings=InningsStateResponse(**innings),
    )


@router.post("/{match_id}/innings/{innings_number}/close", response_model=InningsCompletedResponse)
def close_innings(
    match_id: int,
    innings_number: int,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    try:
        event = service.close_innings(match_id, innings_number)
    except ScoringError as e:
        raise http_error(e)
    return InningsCompletedResponse(
        innings_number=event.innings_number,
        reason=event.reason.value,
        runs=event.runs,
        wickets=event.wickets,
        legal_balls=event.legal_balls,
    )


@router.get("/{match_id}/innings/{innings_number}/statistics")
def get_statistics(
    match_id: int,
    innings_number: int,
    upto: Optional[int] = Query(None, ge=0),
    service: ScoringService = Depends(get_service),
):
    """Batting, bowling and fielding cards, partnerships, extras and totals"""
    try:
        stats = service.get_statistics(match_id, innings_number, upto=upto)
    except (ScoringError, ValueError) as e:
        raise http_error(e)
    return stats.to_dict()


@router.post("/{match_id}/result", response_model=MatchResultResponse)
def resolve_match(
    match_id: int,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    try:
        result = service.resolve_match(match_id)
    except ScoringError as e:
        raise http_error(e)
    return MatchResultResponse(**result.to_dict())


@router.post("/{match_id}/abandon", response_model=MatchResultResponse)
def abandon_match(
    match_id: int,
    request: AbandonRequest,
    scorer: str = Depends(get_current_scorer),
    service: ScoringService = Depends(get_service),
):
    try:
        result = service.abandon_match(match_id, no_result=request.no_result)
    except ScoringError as e:
        raise http_error(e)
    return MatchResultResponse(**result.to_dict())
