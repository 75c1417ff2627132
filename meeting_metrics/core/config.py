# meeting_metrics/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (and an optional `.env`
    file) at runtime.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    APP_NAME: str = "Meeting Metrics"
    APP_ENV: str = Field("local", description="Environment name: local/test/dev/stage/prod")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./meeting_metrics.db",
        description="SQLAlchemy-compatible async database URL",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level used when the application configures logging.",
    )

    REPORTING_TIMEZONE: str = Field(
        default="UTC",
        description=(
            "IANA time zone whose calendar defines month boundaries for the "
            "monthly performance rollup (e.g. 'Asia/Kolkata')."
        ),
    )

    LEADERBOARD_LIMIT: int = Field(
        default=10,
        description="Default number of performance records returned by the leaderboard listing.",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
