"""Identity resolution and content verification settings.

Thresholds were tuned empirically against the review dataset; they are
exposed here so they can be adjusted per run without code changes.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResolverSettings(BaseSettings):
    """Critic-name fuzzy resolution.

    Attributes:
        max_distance: Maximum edit distance for a levenshtein match.
        min_length: Both names must be strictly longer than this.
    """

    max_distance: int = Field(default=2, ge=0, alias="LEVENSHTEIN_MAX_DISTANCE")
    min_length: int = Field(default=5, ge=0, alias="LEVENSHTEIN_MIN_LENGTH")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class DuplicateSettings(BaseSettings):
    """Show/review duplicate detection.

    Attributes:
        min_title_length: Normalized titles must be longer than this.
        min_slug_length: Slugs must be longer than this for containment.
        venue_prefix_length: Title prefix compared for same-venue shows.
        min_containment_length: Titles must be longer than this for containment.
        revival_min_days: Opening dates further apart mark separate runs.
    """

    min_title_length: int = Field(default=3, ge=0, alias="DEDUP_MIN_TITLE_LENGTH")
    min_slug_length: int = Field(default=5, ge=0, alias="DEDUP_MIN_SLUG_LENGTH")
    venue_prefix_length: int = Field(default=10, ge=1, alias="DEDUP_VENUE_PREFIX_LENGTH")
    min_containment_length: int = Field(default=5, ge=0, alias="DEDUP_MIN_CONTAINMENT_LENGTH")
    revival_min_days: int = Field(default=180, ge=0, alias="DEDUP_REVIVAL_MIN_DAYS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class VerifierSettings(BaseSettings):
    """Content-to-show verification and audit thresholds.

    Attributes:
        quarantine_min_negative: Negative signals required before quarantine.
        preview_window_days: Grace period around the show's run.
        min_text_length: Shorter texts are not verified.
        max_mismatch_rate: Audit fails above this confident mismatch rate.
    """

    quarantine_min_negative: int = Field(
        default=2, ge=1, alias="VERIFY_QUARANTINE_MIN_NEGATIVE"
    )
    preview_window_days: int = Field(default=30, ge=0, alias="VERIFY_PREVIEW_WINDOW_DAYS")
    min_text_length: int = Field(default=200, ge=0, alias="VERIFY_MIN_TEXT_LENGTH")
    max_mismatch_rate: float = Field(
        default=0.10, ge=0.0, le=1.0, alias="AUDIT_MAX_MISMATCH_RATE"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
