"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "ExamPrep API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Session listing (newest first, capped page size)
    SESSION_LIST_DEFAULT_LIMIT: int = Field(default=20, ge=1)
    SESSION_LIST_MAX_LIMIT: int = Field(default=100, ge=1)

    # Attempt cap across a user's previous sessions for the same test.
    # Off by default: every new session is attempt 1.
    ENFORCE_MAX_ATTEMPTS: bool = False

    # Sentry Error Tracking
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking (leave empty to disable)",
    )
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry traces sample rate (0.0-1.0, 0.1 = 10% of transactions)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_list_limits(self) -> Self:
        """Default page size must fit inside the cap."""
        if self.SESSION_LIST_DEFAULT_LIMIT > self.SESSION_LIST_MAX_LIMIT:
            raise ValueError(
                f"SESSION_LIST_DEFAULT_LIMIT ({self.SESSION_LIST_DEFAULT_LIMIT}) "
                f"must be <= SESSION_LIST_MAX_LIMIT ({self.SESSION_LIST_MAX_LIMIT})"
            )
        return self


settings = Settings()
