"""
Authentication API routes
"""
from fastapi import APIRouter, HTTPException, status

from app.api.schemas import RefreshRequest, TokenResponse
from app.auth.utils import create_access_token, verify_token

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(request: RefreshRequest):
    """
    Refresh a scorer's access token using a valid refresh token.
    """
    scorer_id = verify_token(request.refresh_token, "refresh")

    if scorer_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    return TokenResponse(access_token=create_access_token(scorer_id))
