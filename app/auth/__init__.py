"""
Authentication module for scorer JWT tokens
"""
from app.auth.utils import get_current_scorer, create_access_token, create_refresh_token
from app.auth.config import settings

__all__ = [
    "get_current_scorer",
    "create_access_token",
    "create_refresh_token",
    "settings",
]
