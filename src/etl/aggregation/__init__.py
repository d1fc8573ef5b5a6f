"""Identity resolution, verification and score aggregation for reviews.

This module provides the alias resolver, duplicate detector, content
verifier, review merger and audience buzz score calculator, plus the
audit batch driver that runs them over the dataset
(``src.etl.aggregation.aggregator``, imported on demand since it
depends on the record loader).

Example:
    >>> from src.etl.aggregation import calculate_combined_score
    >>> calculate_combined_score({"reddit": {"score": 70}}).score
    70
"""

from src.etl.aggregation.deduplicator import (
    DeduplicationStats,
    DuplicateDetector,
    DuplicateRule,
    MatchResult,
    ReviewDeduplicator,
    check_for_duplicate,
    check_review_duplicate,
    filter_duplicates,
)
from src.etl.aggregation.issues import (
    AuditError,
    AuditIssue,
    IssueCategory,
    MismatchThresholdExceeded,
)
from src.etl.aggregation.merger import MergeStats, ReviewMerger, merge_reviews
from src.etl.aggregation.resolver import (
    AliasMatch,
    AliasResolver,
    LevenshteinAuditLog,
    MatchType,
    find_critic_pairs,
    resolve_alias,
)
from src.etl.aggregation.schemas import BuzzSources, Review, Show, ShowStatus, SourceScore
from src.etl.aggregation.score_calculator import (
    AggregatedScore,
    BuzzScoreCalculator,
    BuzzStats,
    CombinedScore,
    Designation,
    DesignationBand,
    calculate_combined_score,
    designation_for,
)
from src.etl.aggregation.verifier import (
    ContentVerifier,
    SignalSpec,
    Verdict,
    VerificationVerdict,
    quarantine,
    restore,
    verify_content,
)

__all__ = [
    # Issues
    "AuditIssue",
    "IssueCategory",
    "AuditError",
    "MismatchThresholdExceeded",
    # Resolver
    "AliasMatch",
    "AliasResolver",
    "LevenshteinAuditLog",
    "MatchType",
    "find_critic_pairs",
    "resolve_alias",
    # Duplicates
    "DuplicateDetector",
    "DuplicateRule",
    "MatchResult",
    "ReviewDeduplicator",
    "DeduplicationStats",
    "check_for_duplicate",
    "check_review_duplicate",
    "filter_duplicates",
    # Merger
    "ReviewMerger",
    "MergeStats",
    "merge_reviews",
    # Verifier
    "ContentVerifier",
    "SignalSpec",
    "Verdict",
    "VerificationVerdict",
    "quarantine",
    "restore",
    "verify_content",
    # Scores
    "AggregatedScore",
    "BuzzScoreCalculator",
    "BuzzStats",
    "CombinedScore",
    "Designation",
    "DesignationBand",
    "calculate_combined_score",
    "designation_for",
    # Schemas
    "Show",
    "ShowStatus",
    "Review",
    "SourceScore",
    "BuzzSources",
]
