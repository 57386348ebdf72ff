"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    DB_TIMEOUT_S: float = 5.0
    APP_CONFIG_PATH: str = "app_config.json"

    MAX_QUESTIONS: int = Field(default=5, ge=1)
    UPSTREAM_TIMEOUT_S: float = Field(default=30.0, gt=0)
    ROLE_WEIGHTED_OVERALL: bool = False

    # Report calibration points, compared against the rounded overall average.
    CONFIDENCE_HIGH: float = 7.5
    CONFIDENCE_MEDIUM: float = 5.0
    HIRE_YES: float = 7.0
    HIRE_MAYBE: float = 5.0
    BAND_STRONG_HIRE: float = 8.5
    BAND_HIRE: float = 7.0
    BAND_BORDERLINE: float = 5.0
    ROADMAP_MAX_ITEMS: int = 5

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
