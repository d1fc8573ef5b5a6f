"""Review audit batch driver.

Runs the identity and content checks over the canonical dataset, one
show at a time:

1. Load the show catalog and review files (malformed records skipped)
2. Flag unknown outlets and critics
3. Detect duplicate reviews and ambiguous critic spellings
4. Check article URLs filed under more than one show
5. Verify review text against its show, quarantining in fix mode

Results are collected in an AuditReport with counts per issue category.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from src.etl.aggregation.deduplicator import CONFIDENCE_LOW, DuplicateDetector
from src.etl.aggregation.issues import AuditIssue, IssueCategory, MismatchThresholdExceeded
from src.etl.aggregation.resolver import (
    LevenshteinAuditLog,
    MatchType,
    find_critic_pairs,
)
from src.etl.aggregation.schemas import Show
from src.etl.aggregation.verifier import ContentVerifier, Verdict, quarantine
from src.etl.normalization import is_known_critic, is_known_outlet
from src.etl.pipeline.records import ReviewFile, load_reviews, load_shows, save_review, write_json
from src.etl.utils.url_cache import UrlDiscoveryCache

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

MAX_MISMATCH_RATE = 0.10
"""Default share of confident mismatches tolerated before a run fails."""

AUDIT_REPORT_FILENAME = "review-audit.json"
LEVENSHTEIN_REPORT_FILENAME = "levenshtein-matches.json"

_MISMATCH_VERDICTS = frozenset({Verdict.PROBABLE_MISMATCH, Verdict.CONFIDENT_MISMATCH})


# =============================================================================
# AUDIT REPORT
# =============================================================================


@dataclass
class AuditReport:
    """Outcome of an audit run.

    Attributes:
        start_time: Run start timestamp.
        end_time: Run end timestamp.
        fix_mode: Whether quarantines were written.
        max_mismatch_rate: Allowed confident mismatch rate.
        shows_checked: Show directories processed.
        files_checked: Valid review files processed.
        verified: Texts that went through the verifier.
        skipped_short: Texts too short to verify.
        already_quarantined: Files whose text was already moved aside.
        quarantined: Files quarantined during this run.
        duplicates: Duplicate review descriptions.
        verdicts: Verdict -> count.
        issues: Issues found.
    """

    start_time: datetime | None = None
    end_time: datetime | None = None
    fix_mode: bool = False
    max_mismatch_rate: float = MAX_MISMATCH_RATE
    shows_checked: int = 0
    files_checked: int = 0
    verified: int = 0
    skipped_short: int = 0
    already_quarantined: int = 0
    quarantined: int = 0
    duplicates: list[dict[str, Any]] = field(default_factory=list)
    verdicts: Counter = field(default_factory=Counter)
    issues: list[AuditIssue] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        """Calculate run duration in seconds."""
        if not self.start_time or not self.end_time:
            return 0.0
        return round((self.end_time - self.start_time).total_seconds(), 2)

    @property
    def mismatch_rate(self) -> float:
        """Share of verified texts judged confident mismatches."""
        if self.verified == 0:
            return 0.0
        return self.verdicts[Verdict.CONFIDENT_MISMATCH] / self.verified

    def add_issue(
        self,
        category: IssueCategory,
        show_id: str | None,
        file: str | None,
        message: str,
        **details: Any,
    ) -> None:
        """Record an issue."""
        self.issues.append(AuditIssue(category, show_id, file, message, details))

    def counts_by_category(self) -> dict[str, int]:
        """Count issues per category, listing every category."""
        counts = Counter(issue.category for issue in self.issues)
        return {str(category): counts.get(category, 0) for category in IssueCategory}

    def check_threshold(self) -> None:
        """Fail the run when too many texts are confident mismatches.

        Raises:
            MismatchThresholdExceeded: If mismatch_rate > max_mismatch_rate.
        """
        if self.mismatch_rate > self.max_mismatch_rate:
            raise MismatchThresholdExceeded(self.mismatch_rate, self.max_mismatch_rate)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary for JSON export."""
        return {
            "generated_at": datetime.now(UTC).isoformat(),
            "duration_seconds": self.duration_seconds,
            "fix_mode": self.fix_mode,
            "summary": {
                "shows_checked": self.shows_checked,
                "files_checked": self.files_checked,
                "verified": self.verified,
                "skipped_short": self.skipped_short,
                "already_quarantined": self.already_quarantined,
                "quarantined": self.quarantined,
                "duplicates": len(self.duplicates),
                "mismatch_rate": round(self.mismatch_rate, 4),
                "max_mismatch_rate": self.max_mismatch_rate,
            },
            "verdicts": {str(verdict): self.verdicts.get(verdict, 0) for verdict in Verdict},
            "issues_by_category": self.counts_by_category(),
            "duplicates": self.duplicates,
            "issues": [issue.to_dict() for issue in self.issues],
        }

    def format_summary(self) -> str:
        """Build the human readable summary printed by the CLI."""
        lines = [
            "Review audit",
            "=" * 40,
            f"Shows checked:        {self.shows_checked}",
            f"Review files:         {self.files_checked}",
            f"Texts verified:       {self.verified}",
            f"Too short to verify:  {self.skipped_short}",
            f"Already quarantined:  {self.already_quarantined}",
            f"Duplicate reviews:    {len(self.duplicates)}",
            "",
            "Verdicts:",
        ]
        lines += [f"  {verdict:<20} {self.verdicts.get(verdict, 0)}" for verdict in Verdict]
        lines += ["", "Issues:"]
        lines += [f"  {name:<20} {count}" for name, count in self.counts_by_category().items()]
        lines += [
            "",
            f"Mismatch rate: {self.mismatch_rate:.1%} (max {self.max_mismatch_rate:.1%})",
        ]
        if self.fix_mode:
            lines.append(f"Quarantined this run: {self.quarantined}")
        return "\n".join(lines)

    def log_summary(self) -> None:
        """Log audit summary."""
        logger.info(
            "Audit complete in %.2fs: %d files, %d verified, %d quarantined, issues=%s",
            self.duration_seconds,
            self.files_checked,
            self.verified,
            self.quarantined,
            self.counts_by_category(),
        )


# =============================================================================
# REVIEW AUDITOR
# =============================================================================


class ReviewAuditor:
    """Sequential audit over the review dataset.

    Attributes:
        shows_file: Show catalog path.
        review_dir: Root review directory.
        detector: Duplicate detector.
        verifier: Content verifier.
        url_cache: Cross-show URL cache (loaded and saved by the caller).
        levenshtein_log: Critic spellings awaiting confirmation.
        max_mismatch_rate: Allowed confident mismatch rate.
        report: Report of the last run.
    """

    def __init__(
        self,
        shows_file: Path,
        review_dir: Path,
        detector: DuplicateDetector | None = None,
        verifier: ContentVerifier | None = None,
        url_cache: UrlDiscoveryCache | None = None,
        max_mismatch_rate: float = MAX_MISMATCH_RATE,
    ) -> None:
        """Initialize auditor with its components."""
        self.shows_file = shows_file
        self.review_dir = review_dir
        self.detector = detector or DuplicateDetector()
        self.verifier = verifier or ContentVerifier()
        self.url_cache = url_cache if url_cache is not None else UrlDiscoveryCache()
        self.max_mismatch_rate = max_mismatch_rate
        self.levenshtein_log = LevenshteinAuditLog()
        self.report = AuditReport()

    @classmethod
    def from_settings(cls, settings: Any, url_cache: UrlDiscoveryCache | None = None) -> "ReviewAuditor":
        """Build an auditor from the application Settings object."""
        return cls(
            shows_file=settings.paths.shows_file,
            review_dir=settings.paths.review_texts_dir,
            detector=DuplicateDetector.from_settings(settings),
            verifier=ContentVerifier.from_settings(settings),
            url_cache=url_cache,
            max_mismatch_rate=settings.verifier.max_mismatch_rate,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def run(self, show_id: str | None = None, fix: bool = False) -> AuditReport:
        """Audit every show, or a single show.

        Args:
            show_id: Restrict to one show directory.
            fix: Write quarantines back to the review files.

        Returns:
            AuditReport for the run.
        """
        self.report = AuditReport(
            start_time=datetime.now(UTC),
            fix_mode=fix,
            max_mismatch_rate=self.max_mismatch_rate,
        )
        self.levenshtein_log = LevenshteinAuditLog()
        logger.info("Starting review audit%s", f" for {show_id}" if show_id else "")

        catalog = load_shows(self.shows_file, self.report.issues)
        shows = {show.id: show for show in catalog}
        files = load_reviews(self.review_dir, show_id, self.report.issues)

        by_show: dict[str, list[ReviewFile]] = defaultdict(list)
        for item in files:
            by_show[item.show_id].append(item)

        for current_id, items in by_show.items():
            self.report.shows_checked += 1
            self.report.files_checked += len(items)
            self._audit_show(current_id, items, shows.get(current_id), catalog, fix)

        self.report.end_time = datetime.now(UTC)
        self.report.log_summary()
        return self.report

    def export_json(self, audit_dir: Path) -> list[Path]:
        """Write the audit report and pending levenshtein pairs.

        Args:
            audit_dir: Output directory.

        Returns:
            Paths written.
        """
        report_path = audit_dir / AUDIT_REPORT_FILENAME
        write_json(report_path, self.report.to_dict())
        logger.info("Exported audit report to %s", report_path)
        pairs_path = self.levenshtein_log.export_json(audit_dir / LEVENSHTEIN_REPORT_FILENAME)
        return [report_path, pairs_path]

    # =========================================================================
    # Per-show stages
    # =========================================================================

    def _audit_show(
        self,
        show_id: str,
        items: list[ReviewFile],
        show: Show | None,
        catalog: list[Show],
        fix: bool,
    ) -> None:
        """Run every check for one show's review files."""
        if show is None:
            self.report.add_issue(
                IssueCategory.UNKNOWN_ENTITY,
                show_id,
                None,
                f"{len(items)} review files for a show missing from the catalog",
            )

        self.url_cache.forget_show(show_id)
        for item in items:
            try:
                self._check_entities(item)
                self._check_url(item)
            except Exception as e:
                logger.exception("Unexpected error auditing %s", item.path)
                self.report.add_issue(
                    IssueCategory.MALFORMED_INPUT, show_id, item.path.name, str(e)
                )

        self._check_duplicates(show_id, items)

        if show is None:
            return
        for item in items:
            try:
                self._verify(item, show, catalog, fix)
            except Exception as e:
                logger.exception("Unexpected error verifying %s", item.path)
                self.report.add_issue(
                    IssueCategory.MALFORMED_INPUT, show_id, item.path.name, str(e)
                )

    def _check_entities(self, item: ReviewFile) -> None:
        """Report outlets and critics missing from the alias tables."""
        review = item.review
        outlet = review.outlet_id or review.outlet
        if not is_known_outlet(outlet):
            self.report.add_issue(
                IssueCategory.UNKNOWN_ENTITY,
                review.show_id,
                item.path.name,
                f"Unknown outlet '{outlet}'",
                outlet_id=review.normalized_outlet_id,
            )
        if review.has_critic and not is_known_critic(review.critic_name):
            self.report.add_issue(
                IssueCategory.UNKNOWN_ENTITY,
                review.show_id,
                item.path.name,
                f"Unknown critic '{review.critic_name}'",
                critic=review.normalized_critic,
            )

    def _check_url(self, item: ReviewFile) -> None:
        """Report article URLs already filed under another show."""
        others = self.url_cache.record(item.review.url, item.show_id, item.path.name)
        if others:
            self.report.add_issue(
                IssueCategory.AMBIGUOUS_MATCH,
                item.show_id,
                item.path.name,
                f"URL also filed under {', '.join(sorted({e.show_id for e in others}))}",
                url=item.review.url,
            )

    def _check_duplicates(self, show_id: str, items: list[ReviewFile]) -> None:
        """Report duplicate review files and ambiguous critic spellings."""
        files_by_review = {id(item.review): item.path.name for item in items}
        _, duplicates = self.detector.filter_duplicates([item.review for item in items], [])

        for review, result in duplicates:
            kept = files_by_review.get(id(result.matched))
            file = files_by_review.get(id(review))
            if result.confidence == CONFIDENCE_LOW:
                self.report.add_issue(
                    IssueCategory.AMBIGUOUS_MATCH,
                    show_id,
                    file,
                    f"Possible duplicate of {kept}: {result.reason}",
                    rule=result.rule,
                )
                continue
            self.report.duplicates.append(
                {"show_id": show_id, "file": file, "duplicate_of": kept, "rule": result.rule}
            )

        names = [item.review.critic_name for item in items if item.review.has_critic]
        for pair in find_critic_pairs(show_id, names, self.detector.resolver):
            if pair.match_type is not MatchType.LEVENSHTEIN:
                continue
            self.levenshtein_log.record(pair)
            self.report.add_issue(
                IssueCategory.AMBIGUOUS_MATCH,
                show_id,
                None,
                f"Critic names '{pair.name_a}' and '{pair.name_b}' differ by {pair.distance}",
            )

    def _verify(self, item: ReviewFile, show: Show, catalog: list[Show], fix: bool) -> None:
        """Verify one text and quarantine it in fix mode."""
        review = item.review
        if review.is_quarantined:
            self.report.already_quarantined += 1
            return
        if not self.verifier.is_verifiable(review.full_text):
            self.report.skipped_short += 1
            return

        verdict = self.verifier.verify(review.full_text, show, review=review, catalog=catalog)
        self.report.verified += 1
        self.report.verdicts[verdict.verdict] += 1

        if verdict.verdict not in _MISMATCH_VERDICTS:
            return

        self.report.add_issue(
            IssueCategory.CONTENT_MISMATCH,
            show.id,
            item.path.name,
            verdict.mismatch_note or "No evidence the text concerns this show",
            **verdict.to_dict(),
        )

        if fix and verdict.should_quarantine(self.verifier.quarantine_min_negative):
            item.review = quarantine(review, verdict, self.verifier.quarantine_min_negative)
            save_review(item)
            self.report.quarantined += 1
