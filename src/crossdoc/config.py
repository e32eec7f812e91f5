"""
CrossDoc Configuration

Centralized configuration using Pydantic Settings.
All configuration is loaded from environment variables with sensible defaults.
"""

import logging
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SimilaritySettings(BaseSettings):
    """Similarity tier thresholds."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    # score >= match_threshold: aligned
    match_threshold: float = Field(
        default=0.85, ge=0.0, le=1.0, alias="CROSSDOC_MATCH_THRESHOLD"
    )
    # drift_threshold <= score < match_threshold: drift; below: mismatch
    drift_threshold: float = Field(
        default=0.5, ge=0.0, le=1.0, alias="CROSSDOC_DRIFT_THRESHOLD"
    )
    # Two best-match candidates closer than this are ambiguous
    ambiguity_margin: float = Field(
        default=0.05, ge=0.0, le=1.0, alias="CROSSDOC_AMBIGUITY_MARGIN"
    )

    @model_validator(mode="after")
    def check_ordering(self) -> "SimilaritySettings":
        """Drift threshold can never exceed the match threshold."""
        if self.drift_threshold > self.match_threshold:
            raise ValueError(
                f"drift threshold {self.drift_threshold} exceeds "
                f"match threshold {self.match_threshold}"
            )
        return self


class EngineSettings(BaseSettings):
    """Engine behaviour switches."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    parallel_rules: bool = Field(default=True, alias="CROSSDOC_PARALLEL_RULES")
    emit_rule_diagnostics: bool = Field(default=True, alias="CROSSDOC_EMIT_RULE_DIAGNOSTICS")
    report_missing_tests: bool = Field(default=True, alias="CROSSDOC_REPORT_MISSING_TESTS")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )


class Settings(BaseSettings):
    """
    Main CrossDoc settings aggregator.

    Usage:
        from crossdoc.config import get_settings
        settings = get_settings()
        print(settings.similarity.match_threshold)
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    similarity: SimilaritySettings = Field(default_factory=SimilaritySettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Singleton pattern for settings
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured level to the ``crossdoc`` logger hierarchy."""
    settings = settings or get_settings()
    logging.getLogger("crossdoc").setLevel(settings.logging.log_level)
