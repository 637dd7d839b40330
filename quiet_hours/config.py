"""
Configuration settings for the Quiet Hours API.
Uses pydantic-settings for environment variable management.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ======================
    # Application
    # ======================
    APP_NAME: str = "Quiet Hours API"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # ======================
    # MongoDB
    # ======================
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "quiet_hours"
    MONGODB_COLLECTION: str = "study_blocks"

    # ======================
    # Supabase Auth
    # ======================
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    IDENTITY_TIMEOUT_SECONDS: float = 10.0

    # ======================
    # Resend Email
    # ======================
    RESEND_API_KEY: str = ""
    EMAIL_FROM_ADDRESS: str = "Quiet Hours <onboarding@resend.dev>"

    # ======================
    # Reminder cron
    # ======================
    CRON_SECRET: str = ""  # empty rejects every trigger call
    REMINDER_LEAD_MINUTES: int = 10
    REMINDER_WINDOW_MINUTES: int = 2  # tolerance for the polling cadence
    UPCOMING_LOOKAHEAD_MINUTES: int = 60
    UPCOMING_LIMIT: int = 10


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
