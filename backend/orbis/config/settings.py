"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from orbis.config import settings

    # Access settings
    db_url = settings.POSTGRES_URL
    cap = (settings.REVIEW_DAILY_CAP_MIN, settings.REVIEW_DAILY_CAP_MAX)
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Orbis"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "orbis"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "orbis"

    # Create missing tables on startup (use migrations in production)
    DB_INIT_ON_STARTUP: bool = True

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Spaced repetition scheduling
    SCHEDULE_HISTORY_LIMIT: int = 10  # Ratings kept per item, oldest evicted
    SCHEDULE_SNOOZE_DAYS: int = 7

    # Daily review intake cap
    REVIEW_DAILY_CAP_MIN: int = 3
    REVIEW_DAILY_CAP_MAX: int = 5

    # Code execution sandbox
    SANDBOX_TIMEOUT_MS: int = 5000
    SANDBOX_START_METHOD: str = "spawn"  # multiprocessing start method
    SANDBOX_SHUTDOWN_TIMEOUT_SECONDS: float = 1.0
    # Names tried, in order, when a request does not name its entry point
    SANDBOX_ENTRY_POINTS: list[str] = [
        "solution",
        "main",
        "two_sum",
        "twoSum",
        "longest_palindrome",
        "longestPalindrome",
        "is_valid",
        "isValid",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
