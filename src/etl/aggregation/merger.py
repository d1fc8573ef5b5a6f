"""Review merger.

Combines a duplicate review into the record that is kept, preferring the
richer value for each field. Inputs are never mutated; a new Review is
returned.
"""

import logging
from dataclasses import dataclass
from typing import Any

from src.etl.aggregation.schemas import EXCERPT_FIELDS, Review

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

INVALID_URL_MARKER = "undefined"
"""Scrapers occasionally template a missing value into the URL."""

_FILL_IF_MISSING = (
    "outlet_id",
    "critic_name",
    "publish_date",
    "assigned_score",
    "original_score",
    "original_rating",
    *EXCERPT_FIELDS,
)


# =============================================================================
# MERGE STATISTICS
# =============================================================================


@dataclass
class MergeStats:
    """Statistics for review merges.

    Attributes:
        total_merged: Duplicate records folded into a kept record.
        text_replaced: Merges where the duplicate had the longer text.
        url_replaced: Merges that repaired a missing or invalid URL.
        fields_filled: Individual fields filled from the duplicate.
    """

    total_merged: int = 0
    text_replaced: int = 0
    url_replaced: int = 0
    fields_filled: int = 0

    def log_summary(self) -> None:
        """Log merge statistics summary."""
        logger.info(
            "Merge complete: %d duplicates merged (text=%d, url=%d, fields=%d)",
            self.total_merged,
            self.text_replaced,
            self.url_replaced,
            self.fields_filled,
        )


# =============================================================================
# HELPERS
# =============================================================================


def is_valid_url(url: str | None) -> bool:
    """Check that a URL is present and not a templating artefact."""
    return bool(url) and INVALID_URL_MARKER not in url


def _text_length(text: str | None) -> int:
    return len(text) if text else 0


# =============================================================================
# REVIEW MERGER
# =============================================================================


class ReviewMerger:
    """Merges duplicate reviews field by field.

    Attributes:
        stats: Merge statistics.
    """

    def __init__(self) -> None:
        """Initialize merger with empty statistics."""
        self.stats = MergeStats()

    def merge(self, existing: Review, duplicate: Review) -> Review:
        """Merge a duplicate into the existing review.

        Rules:
        - longer full text wins
        - a valid URL replaces a missing or invalid one
        - missing excerpts, scores, byline and date are filled in
        - source tags are unioned in first-seen order

        Args:
            existing: Record being kept.
            duplicate: Record being folded in.

        Returns:
            New merged Review.
        """
        update: dict[str, Any] = {}

        if _text_length(duplicate.full_text) > _text_length(existing.full_text):
            update["full_text"] = duplicate.full_text
            self.stats.text_replaced += 1

        if not is_valid_url(existing.url) and is_valid_url(duplicate.url):
            update["url"] = duplicate.url
            self.stats.url_replaced += 1

        if not existing.outlet and duplicate.outlet:
            update["outlet"] = duplicate.outlet

        for name in _FILL_IF_MISSING:
            if getattr(existing, name) is None and getattr(duplicate, name) is not None:
                update[name] = getattr(duplicate, name)
                self.stats.fields_filled += 1

        sources = list(dict.fromkeys([*existing.source_tags, *duplicate.source_tags]))
        if sources != existing.source_tags:
            update["source_tags"] = sources

        self.stats.total_merged += 1
        logger.debug(
            "Merged review %s/%s into existing record (%d fields updated)",
            existing.show_id,
            existing.normalized_critic,
            len(update),
        )
        return existing.model_copy(update=update, deep=True)


def merge_reviews(existing: Review, duplicate: Review) -> Review:
    """Merge two reviews with a throwaway merger.

    Args:
        existing: Record being kept.
        duplicate: Record being folded in.

    Returns:
        New merged Review.
    """
    return ReviewMerger().merge(existing, duplicate)
