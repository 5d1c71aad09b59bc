"""Environment-based configuration for FaceMatch."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from facematch.matching.matcher import DEFAULT_THRESHOLD


class Settings(BaseSettings):
    """Application settings loaded from FACEMATCH_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FACEMATCH_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 5000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Authentication (None = disabled)
    api_key: str | None = None

    # Matching
    match_threshold: float = Field(default=DEFAULT_THRESHOLD, ge=0.0)
    parallel_probes: bool = False

    # Concurrency
    max_concurrent: int = Field(default=2, ge=1)
    queue_timeout: float = Field(default=5.0, gt=0.0)


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
