"""Show and review duplicate detection.

Shows are compared through an ordered chain of named rules; the first
rule that fires wins and is logged so false positives can be traced.
Reviews are keyed by (show, outlet, critic) with a weaker fallback for
unbylined pieces. Detection only classifies; merging is done by
ReviewDeduplicator through the ReviewMerger.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from src.etl.aggregation.merger import ReviewMerger
from src.etl.aggregation.resolver import AliasResolver, MatchType
from src.etl.aggregation.schemas import Review, Show
from src.etl.normalization import UNKNOWN

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

MIN_TITLE_LENGTH = 3
"""Normalized titles must be longer than this to match on equality."""

MIN_SLUG_LENGTH = 5
"""Slugs must be longer than this for containment checks."""

VENUE_PREFIX_LENGTH = 10
"""Normalized title prefix compared for shows at the same venue."""

MIN_CONTAINMENT_LENGTH = 5
"""Titles must be longer than this for substring checks."""

REVIVAL_MIN_DAYS = 180
"""Opening dates further apart than this denote separate productions."""

CONFIDENCE_HIGH = "high"
CONFIDENCE_LOW = "low"
CONFIDENCE_AMBIGUOUS = "ambiguous"
CONFIDENCE_NONE = "none"


# =============================================================================
# MATCH RESULT
# =============================================================================


@dataclass(frozen=True)
class MatchResult:
    """Outcome of a duplicate check.

    Attributes:
        is_duplicate: Whether the candidate duplicates an existing record.
        reason: Human readable explanation for audit trails.
        rule: Name of the rule that fired (None when nothing matched).
        matched: Existing record that matched.
        confidence: high, low, ambiguous or none.
    """

    is_duplicate: bool
    reason: str = ""
    rule: str | None = None
    matched: Show | Review | None = None
    confidence: str = CONFIDENCE_NONE

    @property
    def is_ambiguous(self) -> bool:
        """Whether the match needs human confirmation."""
        return self.confidence == CONFIDENCE_AMBIGUOUS


NO_MATCH = MatchResult(is_duplicate=False)


# =============================================================================
# SHOW RULES
# =============================================================================


@dataclass(frozen=True)
class ShowKeys:
    """Comparison keys computed once per show.

    Attributes:
        id: Show id.
        title: Display title.
        lowered: Trimmed, lowercased display title.
        normalized: Canonical title key.
        slug: URL slug.
        venue: Lowercased venue.
        opening_date: Official opening.
    """

    id: str
    title: str
    lowered: str
    normalized: str
    slug: str
    venue: str
    opening_date: date | None

    @classmethod
    def of(cls, show: Show) -> "ShowKeys":
        """Build keys from a show record."""
        return cls(
            id=show.id,
            title=show.title,
            lowered=show.title.strip().lower(),
            normalized=show.normalized_title,
            slug=show.slug,
            venue=(show.venue or "").strip().lower(),
            opening_date=show.opening_date,
        )


RulePredicate = Callable[[ShowKeys, ShowKeys, "DuplicateDetector"], bool]


@dataclass(frozen=True)
class DuplicateRule:
    """Named duplicate predicate with its audit reason.

    Attributes:
        name: Rule identifier, logged when it fires.
        reason_template: Format string with {candidate} and {existing}.
        predicate: (candidate, existing, detector) -> bool.
    """

    name: str
    reason_template: str
    predicate: RulePredicate

    def reason(self, candidate: ShowKeys, existing: ShowKeys) -> str:
        """Render the audit reason for a pair."""
        return self.reason_template.format(candidate=candidate.title, existing=existing.title)


def _exact_title_or_id(a: ShowKeys, b: ShowKeys, _: "DuplicateDetector") -> bool:
    return a.id == b.id or (bool(a.lowered) and a.lowered == b.lowered)


def _exact_slug(a: ShowKeys, b: ShowKeys, _: "DuplicateDetector") -> bool:
    return bool(a.slug) and a.slug == b.slug


def _normalized_title(a: ShowKeys, b: ShowKeys, d: "DuplicateDetector") -> bool:
    return a.normalized == b.normalized and len(a.normalized) > d.min_title_length


def _slug_containment(a: ShowKeys, b: ShowKeys, d: "DuplicateDetector") -> bool:
    if len(a.slug) <= d.min_slug_length or len(b.slug) <= d.min_slug_length:
        return False
    return a.slug in b.slug or b.slug in a.slug


def _venue_title_prefix(a: ShowKeys, b: ShowKeys, d: "DuplicateDetector") -> bool:
    if not a.venue or a.venue != b.venue:
        return False
    size = d.venue_prefix_length
    if len(a.normalized) < size or len(b.normalized) < size:
        return False
    return a.normalized[:size] == b.normalized[:size]


def _title_containment(a: ShowKeys, b: ShowKeys, d: "DuplicateDetector") -> bool:
    limit = d.min_containment_length
    if len(a.normalized) <= limit or len(b.normalized) <= limit:
        return False
    return a.normalized in b.normalized or b.normalized in a.normalized


DEFAULT_SHOW_RULES: tuple[DuplicateRule, ...] = (
    DuplicateRule(
        "exact_title_or_id",
        "Exact title or id match: '{candidate}' = '{existing}'",
        _exact_title_or_id,
    ),
    DuplicateRule(
        "exact_slug",
        "Exact slug match: '{candidate}' = '{existing}'",
        _exact_slug,
    ),
    DuplicateRule(
        "normalized_title",
        "Normalized title match: '{candidate}' ~ '{existing}'",
        _normalized_title,
    ),
    DuplicateRule(
        "slug_containment",
        "Slug containment: '{candidate}' ~ '{existing}'",
        _slug_containment,
    ),
    DuplicateRule(
        "venue_title_prefix",
        "Same venue and title prefix: '{candidate}' ~ '{existing}'",
        _venue_title_prefix,
    ),
    DuplicateRule(
        "title_containment",
        "Title containment: '{candidate}' ~ '{existing}'",
        _title_containment,
    ),
)
"""Show rules in priority order."""


# =============================================================================
# DUPLICATE DETECTOR
# =============================================================================


class DuplicateDetector:
    """Classifies candidate shows and reviews against existing records.

    Attributes:
        rules: Show rules in priority order.
        min_title_length: Threshold for normalized title equality.
        min_slug_length: Threshold for slug containment.
        venue_prefix_length: Prefix size for same-venue titles.
        min_containment_length: Threshold for title containment.
        revival_min_days: Opening gap that marks a revival.
        resolver: Critic name resolver.
    """

    def __init__(
        self,
        rules: Iterable[DuplicateRule] = DEFAULT_SHOW_RULES,
        min_title_length: int = MIN_TITLE_LENGTH,
        min_slug_length: int = MIN_SLUG_LENGTH,
        venue_prefix_length: int = VENUE_PREFIX_LENGTH,
        min_containment_length: int = MIN_CONTAINMENT_LENGTH,
        revival_min_days: int = REVIVAL_MIN_DAYS,
        resolver: AliasResolver | None = None,
    ) -> None:
        """Initialize detector thresholds and rule chain."""
        self.rules = tuple(rules)
        self.min_title_length = min_title_length
        self.min_slug_length = min_slug_length
        self.venue_prefix_length = venue_prefix_length
        self.min_containment_length = min_containment_length
        self.revival_min_days = revival_min_days
        self.resolver = resolver or AliasResolver()

    @classmethod
    def from_settings(cls, settings: Any) -> "DuplicateDetector":
        """Build a detector from the application Settings object.

        Args:
            settings: Settings with ``dedup`` and ``resolver`` sections.

        Returns:
            Configured DuplicateDetector.
        """
        return cls(
            min_title_length=settings.dedup.min_title_length,
            min_slug_length=settings.dedup.min_slug_length,
            venue_prefix_length=settings.dedup.venue_prefix_length,
            min_containment_length=settings.dedup.min_containment_length,
            revival_min_days=settings.dedup.revival_min_days,
            resolver=AliasResolver(
                max_distance=settings.resolver.max_distance,
                min_length=settings.resolver.min_length,
            ),
        )

    # =========================================================================
    # Shows
    # =========================================================================

    def check_for_duplicate(self, candidate: Show, existing: Iterable[Show]) -> MatchResult:
        """Check a candidate show against existing shows.

        Rules are tried in priority order; for each rule the existing
        shows are scanned in order, so the strongest rule wins and ties go
        to the first record.

        Args:
            candidate: New show.
            existing: Known shows.

        Returns:
            MatchResult of the first firing rule, or NO_MATCH.
        """
        candidate_keys = ShowKeys.of(candidate)
        pairs: list[tuple[Show, ShowKeys]] = []
        for show in existing:
            keys = ShowKeys.of(show)
            if not self.is_revival(candidate_keys, keys):
                pairs.append((show, keys))

        for rule in self.rules:
            for show, keys in pairs:
                if rule.predicate(candidate_keys, keys, self):
                    reason = rule.reason(candidate_keys, keys)
                    logger.debug("Duplicate show (%s): %s", rule.name, reason)
                    return MatchResult(
                        is_duplicate=True,
                        reason=reason,
                        rule=rule.name,
                        matched=show,
                        confidence=CONFIDENCE_HIGH,
                    )

        return NO_MATCH

    def is_revival(self, a: ShowKeys, b: ShowKeys) -> bool:
        """Check whether two shows are separate productions of one title.

        Args:
            a: First show keys.
            b: Second show keys.

        Returns:
            True when both have opening dates more than revival_min_days
            apart. The same id is never a revival.
        """
        if a.id == b.id or a.opening_date is None or b.opening_date is None:
            return False
        gap = abs((a.opening_date - b.opening_date).days)
        if gap > self.revival_min_days:
            logger.debug(
                "Skipping revival pair '%s' (%s) / '%s' (%s)",
                a.title,
                a.opening_date,
                b.title,
                b.opening_date,
            )
            return True
        return False

    # =========================================================================
    # Reviews
    # =========================================================================

    def check_review_duplicate(self, candidate: Review, existing: Iterable[Review]) -> MatchResult:
        """Check a candidate review against existing reviews.

        A strong match on (show, outlet, critic) or a trusted critic alias
        wins immediately. Edit-distance critic matches and unbylined pairs
        are remembered and returned only if no strong match exists.

        Args:
            candidate: New review.
            existing: Known reviews.

        Returns:
            MatchResult (high, low or ambiguous confidence), or NO_MATCH.
        """
        fallback: MatchResult | None = None
        outlet = candidate.normalized_outlet_id

        for review in existing:
            if review.show_id != candidate.show_id or review.normalized_outlet_id != outlet:
                continue

            if not candidate.has_critic or not review.has_critic:
                if fallback is None and not candidate.has_critic and not review.has_critic:
                    fallback = MatchResult(
                        is_duplicate=True,
                        reason=f"Same show and outlet '{outlet}' without critic names",
                        rule="unbylined_outlet",
                        matched=review,
                        confidence=CONFIDENCE_LOW,
                    )
                continue

            if candidate.normalized_critic == review.normalized_critic != UNKNOWN:
                return self._review_match("review_key", candidate, review, "Same review key")

            match = self.resolver.resolve(candidate.critic_name, review.critic_name)
            if match.auto_merge:
                return self._review_match(
                    f"critic_{match.match_type}", candidate, review, "Critic alias match"
                )
            if match.match_type is MatchType.LEVENSHTEIN and (
                fallback is None or not fallback.is_ambiguous
            ):
                fallback = MatchResult(
                    is_duplicate=False,
                    reason=(
                        f"Possible critic typo '{candidate.critic_name}' ~ "
                        f"'{review.critic_name}' (distance {match.distance})"
                    ),
                    rule="critic_levenshtein",
                    matched=review,
                    confidence=CONFIDENCE_AMBIGUOUS,
                )

        if fallback is not None:
            logger.debug("Review check (%s): %s", fallback.rule, fallback.reason)
            return fallback
        return NO_MATCH

    @staticmethod
    def _review_match(rule: str, candidate: Review, existing: Review, label: str) -> MatchResult:
        reason = (
            f"{label}: {candidate.show_id}/{candidate.normalized_outlet_id}/"
            f"{candidate.critic_name} = {existing.critic_name}"
        )
        logger.debug("Duplicate review (%s): %s", rule, reason)
        return MatchResult(
            is_duplicate=True,
            reason=reason,
            rule=rule,
            matched=existing,
            confidence=CONFIDENCE_HIGH,
        )

    def filter_duplicates(
        self, candidates: Iterable[Review], existing: Iterable[Review]
    ) -> tuple[list[Review], list[tuple[Review, MatchResult]]]:
        """Split candidate reviews into new records and duplicates.

        Accepted candidates join the comparison set, so two copies of the
        same review within one batch are also caught. Ambiguous matches
        count as new.

        Args:
            candidates: Incoming reviews.
            existing: Known reviews.

        Returns:
            (new reviews, [(duplicate, result), ...]).
        """
        known = list(existing)
        new: list[Review] = []
        duplicates: list[tuple[Review, MatchResult]] = []

        for candidate in candidates:
            result = self.check_review_duplicate(candidate, known)
            if result.is_duplicate:
                duplicates.append((candidate, result))
                continue
            new.append(candidate)
            known.append(candidate)

        return new, duplicates


_default_detector = DuplicateDetector()


def check_for_duplicate(candidate: Show, existing: Iterable[Show]) -> MatchResult:
    """Check a show against existing shows with default thresholds."""
    return _default_detector.check_for_duplicate(candidate, existing)


def check_review_duplicate(candidate: Review, existing: Iterable[Review]) -> MatchResult:
    """Check a review against existing reviews with default thresholds."""
    return _default_detector.check_review_duplicate(candidate, existing)


def filter_duplicates(
    candidates: Iterable[Review], existing: Iterable[Review]
) -> tuple[list[Review], list[tuple[Review, MatchResult]]]:
    """Split reviews into new records and duplicates with default thresholds."""
    return _default_detector.filter_duplicates(candidates, existing)


# =============================================================================
# DEDUPLICATION STATISTICS
# =============================================================================


@dataclass
class DeduplicationStats:
    """Statistics for review deduplication.

    Attributes:
        total_input: Reviews before deduplication.
        total_output: Reviews after deduplication.
        by_rule: Duplicates merged per firing rule.
        ambiguous: Edit-distance pairs left for human review.
    """

    total_input: int = 0
    total_output: int = 0
    by_rule: dict[str, int] = field(default_factory=dict)
    ambiguous: int = 0

    @property
    def total_duplicates(self) -> int:
        """Calculate total duplicates merged."""
        return sum(self.by_rule.values())

    def log_summary(self) -> None:
        """Log deduplication statistics summary."""
        rules = ", ".join(f"{name}={count}" for name, count in sorted(self.by_rule.items()))
        logger.info(
            "Deduplication: %d -> %d reviews (-%d duplicates: %s), %d ambiguous",
            self.total_input,
            self.total_output,
            self.total_duplicates,
            rules or "none",
            self.ambiguous,
        )


# =============================================================================
# REVIEW DEDUPLICATOR
# =============================================================================


class ReviewDeduplicator:
    """Collapses duplicate reviews, merging each duplicate into the first copy.

    Attributes:
        detector: Duplicate detector.
        merger: Review merger.
        stats: Deduplication statistics.
        ambiguous: Edit-distance matches found in the last run.
    """

    def __init__(
        self,
        detector: DuplicateDetector | None = None,
        merger: ReviewMerger | None = None,
    ) -> None:
        """Initialize deduplicator."""
        self.detector = detector or _default_detector
        self.merger = merger or ReviewMerger()
        self.stats = DeduplicationStats()
        self.ambiguous: list[tuple[Review, MatchResult]] = []

    def deduplicate(self, reviews: Iterable[Review]) -> list[Review]:
        """Remove duplicate reviews.

        Args:
            reviews: Reviews in priority order (earlier copies are kept).

        Returns:
            Unique reviews with duplicates merged in.
        """
        self.stats = DeduplicationStats()
        self.ambiguous = []
        unique: list[Review] = []

        for review in reviews:
            self.stats.total_input += 1
            result = self.detector.check_review_duplicate(review, unique)

            if result.is_duplicate:
                index = next(i for i, kept in enumerate(unique) if kept is result.matched)
                unique[index] = self.merger.merge(unique[index], review)
                self.stats.by_rule[result.rule] = self.stats.by_rule.get(result.rule, 0) + 1
                continue

            if result.is_ambiguous:
                self.ambiguous.append((review, result))
                self.stats.ambiguous += 1
            unique.append(review)

        self.stats.total_output = len(unique)
        self.stats.log_summary()
        return unique
