"""
Authentication configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()


class AuthSettings:
    """Scorer token settings from environment variables"""

    # JWT settings
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))  # a full match day
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7  # 7 days


settings = AuthSettings()
