"""Centralized configuration loaded from environment."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from baselinekit.statistics.defaults import COMPLIANCE_ALPHA, DEFAULT_CONFIDENCE


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    baseline_dir: Path = Field(default=Path("baselines"), alias="BASELINE_DIR")
    specs_dir: Path = Field(default=Path("specs"), alias="SPECS_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    confidence: float = Field(default=DEFAULT_CONFIDENCE, gt=0.0, lt=1.0, alias="CONFIDENCE")
    compliance_alpha: float = Field(default=COMPLIANCE_ALPHA, gt=0.0, lt=1.0, alias="COMPLIANCE_ALPHA")
    expires_in_days: int = Field(default=0, ge=0, alias="BASELINE_EXPIRES_IN_DAYS")


settings = Settings()
