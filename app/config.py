"""
Application configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings from environment variables"""

    # Storage
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "crease.db")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS: list = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
        if origin.strip()
    ]

    # Profile used when a match is created without one
    DEFAULT_PROFILE: str = os.getenv("DEFAULT_PROFILE", "ICC T20")

    # Points table for new tournaments
    POINTS_WIN: int = int(os.getenv("POINTS_WIN", "2"))
    POINTS_TIE: int = int(os.getenv("POINTS_TIE", "1"))
    POINTS_LOSS: int = int(os.getenv("POINTS_LOSS", "0"))
    POINTS_NO_RESULT: int = int(os.getenv("POINTS_NO_RESULT", "0"))


settings = Settings()
