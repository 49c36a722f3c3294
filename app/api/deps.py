"""
Shared route dependencies and error translation
"""
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.engine.errors import (
    IncompleteMatchError,
    InningsNotFoundError,
    InvalidDeliveryError,
    MatchNotFoundError,
    MatchStateError,
    StandingsAlreadyAppliedError,
    TournamentNotFoundError,
)
from app.engine.scoring_service import ScoringService


def get_service(db: Session = Depends(get_db)) -> ScoringService:
    return ScoringService(db)


def http_error(e: Exception) -> HTTPException:
    """Map an engine error to the HTTP error the client sees"""
    if isinstance(e, InvalidDeliveryError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"reason": e.reason, "message": e.message},
        )
    if isinstance(e, (MatchNotFoundError, InningsNotFoundError, TournamentNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (IncompleteMatchError, MatchStateError, StandingsAlreadyAppliedError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
