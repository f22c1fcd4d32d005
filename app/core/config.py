from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.version import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    PORT: int = 8000
    APP_NAME: str = "StudyBuddy Matching"
    APP_ENV: Literal["development", "production", "test"] = "production"

    REDIS_URL: str = "redis://redis:6379/0"
    # Maximum number of connections Redis client will open per process
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_KEY_PREFIX: str = "studybuddy:"

    # Profiles
    # IN_PROGRESS profiles below this reliability are ignored for matching
    MIN_PROFILE_RELIABILITY: float = 0.25
    # Role value stored for groups without any usable member
    NEUTRAL_ROLE_SCORE: float = 0.5

    # Recommendations
    RECOMMENDATION_LIMIT: int = 10
    # < 1.0 lifts the crowded low band of raw scores, 1.0 is linear
    CALIBRATION_EXPONENT: float = 0.6

    # Recalculation
    EVENT_WORKERS: int = 4
    EVENT_QUEUE_MAXSIZE: int = 10000
    RECONCILE_INTERVAL_SECONDS: int = 3600  # 0 = disabled
    # Time allowed on shutdown for queued events before they are abandoned
    SHUTDOWN_DRAIN_SECONDS: float = 10.0


settings = Settings()

APP_VERSION = __version__
