"""Base configuration settings.

Contains foundational settings for data paths and logging.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# PROJECT ROOT DETECTION
# =============================================================================

_PROJECT_ROOT = Path(__file__).parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


def get_project_root() -> Path:
    """Get project root directory."""
    return _PROJECT_ROOT


def get_env_file() -> Path:
    """Get .env file path."""
    return _ENV_FILE


# =============================================================================
# PATH SETTINGS
# =============================================================================


class PathsSettings(BaseSettings):
    """Dataset, audit and logs paths configuration.

    The canonical dataset is owned by the ingestion pipeline; these paths
    only tell the batch drivers where to read from and write reports to.

    Attributes:
        data_dir: Root of the canonical dataset.
        logs_dir: Application logs directory.
    """

    data_dir: Path = Field(default=_PROJECT_ROOT / "data", alias="DATA_DIR")
    logs_dir: Path = Field(default=_PROJECT_ROOT / "logs", alias="LOG_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def project_root(self) -> Path:
        """Project root directory."""
        return _PROJECT_ROOT

    @property
    def shows_file(self) -> Path:
        """Show catalog (shows.json)."""
        return self.data_dir / "shows.json"

    @property
    def review_texts_dir(self) -> Path:
        """Per-show review directories (one JSON file per outlet/critic)."""
        return self.data_dir / "review-texts"

    @property
    def audience_buzz_file(self) -> Path:
        """Combined audience buzz scores keyed by show id."""
        return self.data_dir / "audience-buzz.json"

    @property
    def audit_dir(self) -> Path:
        """Audit reports (mismatches, levenshtein pairs)."""
        return self.data_dir / "audit"

    @property
    def cache_dir(self) -> Path:
        """Batch caches persisted between runs."""
        return self.data_dir / "cache"

    def ensure_directories(self) -> None:
        """Create output directories if they don't exist."""
        directories = [
            self.audit_dir,
            self.cache_dir,
            self.logs_dir,
        ]
        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


# =============================================================================
# LOGGING SETTINGS
# =============================================================================


class LoggingSettings(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid LOG_LEVEL. Valid: {valid_levels}")
        return v_upper
