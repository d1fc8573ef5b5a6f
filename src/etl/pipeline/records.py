"""JSON record I/O for the batch drivers.

Reads the show catalog and per-show review files, validating each
record once at this boundary. Malformed records are logged, reported as
issues and skipped; they never abort a run.
"""

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from src.etl.aggregation.issues import AuditIssue, IssueCategory
from src.etl.aggregation.schemas import Review, Show

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

IGNORED_REVIEW_FILES = frozenset({"failed-fetches.json"})
"""Bookkeeping files stored next to review files."""

JSON_INDENT = 2

_QUARANTINE_KEYS = {
    "wrongFullText": "wrong_full_text",
    "contentMismatchNote": "content_mismatch_note",
    "contentMismatchScore": "content_mismatch_score",
    "contentTier": "content_tier",
}


# =============================================================================
# RAW JSON
# =============================================================================


def read_json(path: Path) -> Any:
    """Read a JSON file.

    Args:
        path: Source file path.

    Returns:
        Deserialized data.
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: Any) -> None:
    """Write data to a JSON file, creating parent directories.

    Args:
        path: Target file path.
        data: Data to serialize.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=JSON_INDENT, ensure_ascii=False, default=str)
        f.write("\n")


def _malformed(
    issues: list[AuditIssue] | None,
    show_id: str | None,
    path: Path,
    error: Exception,
) -> None:
    """Log and record a malformed input issue."""
    logger.warning("Skipping malformed record %s: %s", path, error)
    if issues is not None:
        issues.append(
            AuditIssue(
                category=IssueCategory.MALFORMED_INPUT,
                show_id=show_id,
                file=path.name,
                message=str(error).splitlines()[0],
            )
        )


# =============================================================================
# SHOWS
# =============================================================================


def parse_shows(
    payload: Any,
    source: Path,
    issues: list[AuditIssue] | None = None,
) -> list[Show]:
    """Validate show records with unique ids and slugs.

    Args:
        payload: ``{"shows": [...]}`` or a bare list of show dicts.
        source: File the payload was read from (for messages).
        issues: Collector for malformed records.

    Returns:
        Valid shows in file order; later duplicates of an id or slug are
        skipped.
    """
    records = payload.get("shows", []) if isinstance(payload, dict) else payload
    if not isinstance(records, list):
        _malformed(issues, None, source, ValueError("show catalog is not a list"))
        return []

    shows: list[Show] = []
    seen_ids: set[str] = set()
    seen_slugs: set[str] = set()

    for index, record in enumerate(records):
        try:
            show = Show.model_validate(record)
        except ValidationError as e:
            show_id = record.get("id") if isinstance(record, dict) else None
            _malformed(issues, show_id, source, ValueError(f"show #{index}: {e}"))
            continue

        if show.id in seen_ids or show.slug in seen_slugs:
            _malformed(
                issues,
                show.id,
                source,
                ValueError(f"duplicate show id or slug '{show.id}' / '{show.slug}'"),
            )
            continue

        seen_ids.add(show.id)
        seen_slugs.add(show.slug)
        shows.append(show)

    logger.debug("Loaded %d shows from %s", len(shows), source)
    return shows


def load_shows(path: Path, issues: list[AuditIssue] | None = None) -> list[Show]:
    """Load the show catalog.

    Args:
        path: shows.json path.
        issues: Collector for malformed records.

    Returns:
        Valid shows, empty when the file is unreadable.
    """
    try:
        payload = read_json(path)
    except (OSError, json.JSONDecodeError) as e:
        _malformed(issues, None, path, e)
        return []
    return parse_shows(payload, path, issues)


# =============================================================================
# REVIEWS
# =============================================================================


@dataclass
class ReviewFile:
    """A review record together with its file.

    Attributes:
        path: Review file path.
        review: Validated record.
        raw: Parsed JSON as read, for lossless write-back.
    """

    path: Path
    review: Review
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def show_id(self) -> str:
        """Show the record belongs to."""
        return self.review.show_id


def iter_review_paths(review_dir: Path, show_id: str | None = None) -> Iterator[Path]:
    """Yield review file paths in sorted order.

    Args:
        review_dir: Root directory with one sub-directory per show.
        show_id: Restrict to one show directory.

    Yields:
        Review JSON file paths.
    """
    if not review_dir.is_dir():
        logger.warning("Review directory %s does not exist", review_dir)
        return

    if show_id is not None:
        show_dirs = [review_dir / show_id]
    else:
        show_dirs = sorted(p for p in review_dir.iterdir() if p.is_dir())

    for show_dir in show_dirs:
        if not show_dir.is_dir():
            logger.warning("No review directory for show %s", show_dir.name)
            continue
        for path in sorted(show_dir.glob("*.json")):
            if path.name not in IGNORED_REVIEW_FILES:
                yield path


def load_review(path: Path, issues: list[AuditIssue] | None = None) -> ReviewFile | None:
    """Load and validate one review file.

    The show id defaults to the name of the containing directory.

    Args:
        path: Review file path.
        issues: Collector for malformed records.

    Returns:
        ReviewFile, or None when the file is malformed.
    """
    show_id = path.parent.name
    try:
        raw = read_json(path)
        if not isinstance(raw, dict):
            raise ValueError("review file is not a JSON object")
        review = Review.model_validate({"showId": show_id, **raw})
    except (OSError, json.JSONDecodeError, ValidationError, ValueError) as e:
        _malformed(issues, show_id, path, e)
        return None
    return ReviewFile(path=path, review=review, raw=raw)


def load_reviews(
    review_dir: Path,
    show_id: str | None = None,
    issues: list[AuditIssue] | None = None,
) -> list[ReviewFile]:
    """Load every valid review file under a directory.

    Args:
        review_dir: Root review directory.
        show_id: Restrict to one show.
        issues: Collector for malformed records.

    Returns:
        Valid review files in path order.
    """
    loaded = (load_review(path, issues) for path in iter_review_paths(review_dir, show_id))
    return [item for item in loaded if item is not None]


def review_to_json(review: Review, raw: dict[str, Any] | None = None) -> dict[str, Any]:
    """Serialize a review on top of its original JSON.

    Keys the model does not know are preserved from ``raw``. After a
    quarantine the primary text is written as null; after a restore the
    quarantine keys are removed.

    Args:
        review: Record to write.
        raw: Original JSON object.

    Returns:
        JSON object.
    """
    record = {**(raw or {}), **review.to_record()}
    if review.is_quarantined and review.full_text is None:
        record["fullText"] = None
    for key, attr in _QUARANTINE_KEYS.items():
        if getattr(review, attr) is None:
            record.pop(key, None)
    return record


def save_review(item: ReviewFile) -> None:
    """Write a review file back to its path."""
    write_json(item.path, review_to_json(item.review, item.raw))
    logger.debug("Saved %s", item.path)
