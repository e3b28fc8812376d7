"""Nexus Learn application settings loaded from environment variables."""

from enum import StrEnum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    """Deployment environment."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class LogLevel(StrEnum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application-wide settings loaded from environment variables / .env file.

    All secrets and deployment-specific values live here. Never hardcode them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./nexus_learn.db",
        description="Async connection string for the archive database.",
    )

    # --- Generative model ---
    GEMINI_API_KEY: str = Field(
        default="",
        description="Gemini API key. Empty means the model client is offline.",
    )
    GEMINI_BASE_URL: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="REST root of the generative language API.",
    )
    TEXT_MODEL: str = Field(
        default="gemini-3-flash-preview",
        description="Model used for narrative turns, scenes and debate.",
    )
    IMAGE_MODEL: str = Field(
        default="gemini-2.5-flash-image",
        description="Model used for scene illustrations.",
    )
    RESPONSE_LANGUAGE: str = Field(
        default="English",
        description="Language the narrative is written in.",
    )

    # --- Deadlines (seconds) ---
    TURN_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)
    SCENE_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)
    IMAGE_TIMEOUT_SECONDS: float = Field(default=20.0, gt=0)
    LLM_MAX_RETRIES: int = Field(
        default=2,
        ge=0,
        description="Retries for transient HTTP errors inside a call's deadline.",
    )

    # --- Live sessions ---
    SESSION_TTL_SECONDS: float = Field(
        default=3600.0,
        gt=0,
        description="Idle time after which a live simulation or story is evicted.",
    )
    MAX_LIVE_SESSIONS: int = Field(
        default=500,
        ge=1,
        description="Live sessions kept per kind; the least recently used is evicted.",
    )

    # --- Logging ---
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application log level.",
    )

    # --- Environment ---
    ENVIRONMENT: Environment = Field(
        default=Environment.DEV,
        description="Deployment environment (dev/staging/prod).",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == Environment.PROD


def get_settings() -> Settings:
    """Factory function for dependency injection via FastAPI Depends."""
    return Settings()
