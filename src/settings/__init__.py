"""Centralized configuration for the Broadway scorecard project.

All thresholds used by identity resolution, duplicate detection, content
verification and score aggregation are configurable. Every value has a
safe default and can be overridden via environment variables (.env file).

Usage:
    from src.settings import settings

    settings.resolver.max_distance
    settings.paths.review_texts_dir
"""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.settings.base import LoggingSettings, PathsSettings
from src.settings.matching import DuplicateSettings, ResolverSettings, VerifierSettings
from src.settings.scoring import BuzzSettings

__all__ = [
    # Main
    "Settings",
    "settings",
    # Base
    "PathsSettings",
    "LoggingSettings",
    # Matching
    "ResolverSettings",
    "DuplicateSettings",
    "VerifierSettings",
    # Scoring
    "BuzzSettings",
    # Utilities
    "get_settings_summary",
]


# =============================================================================
# GLOBAL SETTINGS
# =============================================================================


class Settings(BaseSettings):
    """Global application settings.

    Aggregates all configuration sections into a single object.
    Access via the singleton: `from src.settings import settings`
    """

    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # Paths and logging
    paths: PathsSettings = Field(default_factory=PathsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Identity resolution
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    dedup: DuplicateSettings = Field(default_factory=DuplicateSettings)
    verifier: VerifierSettings = Field(default_factory=VerifierSettings)

    # Score aggregation
    buzz: BuzzSettings = Field(default_factory=BuzzSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"development", "production", "test"}
        v_lower = v.lower()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid ENVIRONMENT. Valid: {valid_envs}")
        return v_lower


# =============================================================================
# SINGLETON INSTANCE
# =============================================================================

settings = Settings()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_settings_summary() -> dict[str, Any]:
    """Return the tunable thresholds as a flat dictionary.

    Written alongside audit reports so a run can be reproduced.

    Returns:
        Mapping of section.key to value.
    """
    config = settings.model_dump(exclude={"paths", "logging"})
    summary: dict[str, Any] = {}
    for section, values in config.items():
        if isinstance(values, dict):
            for key, value in values.items():
                summary[f"{section}.{key}"] = value
        else:
            summary[section] = values
    return summary
