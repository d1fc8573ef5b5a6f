"""Audit issue taxonomy and driver-level exceptions.

Core components never raise for expectable bad input; they return a
verdict or match type instead. Batch drivers turn those results into
categorized issues and only fail a run when a configured threshold is
exceeded.
"""

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class IssueCategory(StrEnum):
    """Kinds of problems an audit run reports."""

    MALFORMED_INPUT = "malformed_input"
    AMBIGUOUS_MATCH = "ambiguous_match"
    UNKNOWN_ENTITY = "unknown_entity"
    CONTENT_MISMATCH = "content_mismatch"


@dataclass(frozen=True)
class AuditIssue:
    """One reported problem.

    Attributes:
        category: Issue kind.
        show_id: Show concerned (None for catalog-level issues).
        file: Record file name, when the issue concerns one file.
        message: Human readable description.
        details: Extra structured data for the JSON report.
    """

    category: IssueCategory
    show_id: str | None
    file: str | None
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON friendly dictionary."""
        data = asdict(self)
        data["category"] = str(self.category)
        return data


class AuditError(Exception):
    """Base exception for audit runs."""

    pass


class MismatchThresholdExceeded(AuditError):
    """Raised when the confident mismatch rate exceeds the configured maximum."""

    def __init__(self, rate: float, max_rate: float) -> None:
        """Store the observed and allowed rates.

        Args:
            rate: Observed mismatch rate.
            max_rate: Configured maximum.
        """
        self.rate = rate
        self.max_rate = max_rate
        super().__init__(f"Mismatch rate {rate:.1%} exceeds maximum {max_rate:.1%}")
