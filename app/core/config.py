"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./table_booking.db")

    # Security
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "admin_token_123")

    # Application
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    # Recommendations
    RECOMMENDATION_LIMIT: int = 5
    LOW_DEPOSIT_THRESHOLD: float = 50
    MID_DEPOSIT_THRESHOLD: float = 100
    SMALL_PARTY_MAX: int = 8

    # Booking rules
    MAX_PARTY_SIZE: int = 25
    MAX_ADVANCE_DAYS: int = 183  # ~6 months

    # Commit / store behaviour
    COMMIT_LOCK_TIMEOUT_SECONDS: float = 5.0
    STORE_MAX_RETRIES: int = 3
    STORE_RETRY_DELAY_SECONDS: float = 0.2

    model_config = SettingsConfigDict(env_file=".env")

settings = Settings()
