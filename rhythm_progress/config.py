"""
Configuration settings for rhythm-progress.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable is read with the RHYTHM_ prefix (e.g. RHYTHM_PROGRESS_DIR).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RHYTHM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    progress_dir: Path = Field(
        default=Path.home() / ".rhythm_progress",
        description="Directory holding the persisted progress document",
    )
    storage_key: str = Field(
        default="rhythmCurriculum_progress",
        description="Fixed key (file stem) of the progress document",
    )

    # ========================================
    # Curriculum
    # ========================================
    curriculum_path: Path | None = Field(
        default=None,
        description="JSON curriculum catalog; the bundled rhythm curriculum is used when unset",
    )

    # ========================================
    # Analytics & Recommendations
    # ========================================
    trend_window_days: int = Field(
        default=30,
        description="Look-back window for quality trend regression",
    )
    trend_rate_period_days: int = Field(
        default=7,
        description="Period the fitted daily slope is scaled to before classification",
    )
    recommendation_count: int = Field(
        default=3,
        description="Number of lessons returned by multi-recommendation queries",
    )
    default_strategy: str = Field(
        default="sequential",
        description="Strategy used when none is given (sequential, review, mastery-skip, quality-targeted)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(
        default="INFO",
        description="loguru level for the CLI handler",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
