"""Content-to-show verification and reversible quarantine.

Scraped article text sometimes belongs to a different show (a wrong
search hit, a previous production, a roundup page). The verifier
collects positive and negative signals from a declarative table and
maps the counts to a verdict. Only confident mismatches with enough
independent negative signals are quarantined, and quarantine only moves
text aside so it can be restored.
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import StrEnum
from typing import Any

from unidecode import unidecode

from src.etl.aggregation.schemas import Review, Show
from src.etl.normalization import (
    UNKNOWN,
    extract_domain,
    normalize_title,
    outlet_for_domain,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

QUARANTINE_MIN_NEGATIVE = 2
"""Negative signals required before text is quarantined."""

PREVIEW_WINDOW_DAYS = 30
"""Grace period before previews and after closing."""

MIN_TEXT_LENGTH = 200
"""Texts shorter than this carry too little evidence to verify."""

MIN_WORD_LENGTH = 2
"""Title words must be longer than this to count as significant."""

MIN_NAME_LENGTH = 3
"""Venue cores and surnames must be longer than this."""

MIN_OTHER_TITLE_LENGTH = 5
"""Other show titles must be longer than this to count as a mention."""

TIER_EXCERPT = "excerpt"
TIER_NEEDS_RESCRAPE = "needs-rescrape"

_VENUE_SUFFIX_PATTERN = re.compile(r"\s*\b(?:theatre|theater)$")
_YEAR_PATTERN = re.compile(r"(\d{4})$")
_NON_WORD_PATTERN = re.compile(r"[^\w\s]|_")
_WHITESPACE_PATTERN = re.compile(r"\s+")


# =============================================================================
# TYPES
# =============================================================================


class Polarity(StrEnum):
    """Direction of a signal."""

    POSITIVE = "positive"
    NEGATIVE = "negative"


class Verdict(StrEnum):
    """Whether scraped text concerns the claimed show."""

    CONFIDENT_MATCH = "confident_match"
    PROBABLE_MATCH = "probable_match"
    PROBABLE_MISMATCH = "probable_mismatch"
    CONFIDENT_MISMATCH = "confident_mismatch"


@dataclass(frozen=True)
class SignalHit:
    """One signal that fired.

    Attributes:
        name: Signal name.
        polarity: Positive or negative.
        weight: Contribution to the score.
        detail: What matched, for notes and logs.
    """

    name: str
    polarity: Polarity
    weight: int
    detail: str


@dataclass(frozen=True)
class VerificationVerdict:
    """Verification outcome for one text.

    Attributes:
        verdict: Decision table result.
        score: Positive weights minus negative weights.
        positive_signals: Positive hits in table order.
        negative_signals: Negative hits in table order.
        wrong_show_mentioned: Title of another show the text is about.
    """

    verdict: Verdict
    score: int
    positive_signals: tuple[SignalHit, ...] = ()
    negative_signals: tuple[SignalHit, ...] = ()
    wrong_show_mentioned: str | None = None

    @property
    def negative_signal_count(self) -> int:
        """Number of negative signals."""
        return len(self.negative_signals)

    @property
    def signal_names(self) -> list[str]:
        """Names of all signals that fired."""
        return [hit.name for hit in (*self.positive_signals, *self.negative_signals)]

    @property
    def mismatch_note(self) -> str:
        """Negative signal details joined for the review record."""
        return "; ".join(hit.detail for hit in self.negative_signals)

    def should_quarantine(self, min_negative: int = QUARANTINE_MIN_NEGATIVE) -> bool:
        """Whether the text must be moved aside.

        Args:
            min_negative: Required negative signal count.

        Returns:
            True only for confident mismatches with enough negatives.
        """
        return (
            self.verdict is Verdict.CONFIDENT_MISMATCH
            and self.negative_signal_count >= min_negative
        )

    def to_dict(self) -> dict[str, Any]:
        """Build a JSON friendly summary."""
        return {
            "verdict": str(self.verdict),
            "score": self.score,
            "positive_signals": [hit.name for hit in self.positive_signals],
            "negative_signals": [hit.detail for hit in self.negative_signals],
            "negative_signal_count": self.negative_signal_count,
            "wrong_show_mentioned": self.wrong_show_mentioned,
        }


# =============================================================================
# TEXT HELPERS
# =============================================================================


def flatten_text(text: str | None) -> str:
    """Lowercase ASCII text with punctuation replaced by spaces."""
    if not text:
        return ""
    flat = unidecode(text).lower().replace("&", " and ").replace("'", "")
    flat = _NON_WORD_PATTERN.sub(" ", flat)
    return _WHITESPACE_PATTERN.sub(" ", flat).strip()


def count_phrase(flat_text: str, phrase: str) -> int:
    """Count whole-word occurrences of a flattened phrase."""
    if not phrase:
        return 0
    return len(re.findall(rf"\b{re.escape(phrase)}\b", flat_text))


def title_mentions(flat_text: str, title: str) -> int:
    """Count mentions of a title as written or as its canonical key."""
    return max(
        count_phrase(flat_text, flatten_text(title)),
        count_phrase(flat_text, normalize_title(title)),
    )


# =============================================================================
# SIGNAL CONTEXT
# =============================================================================


@dataclass
class SignalContext:
    """Inputs shared by every signal detector.

    Attributes:
        text: Flattened article text.
        show: Claimed show.
        review: Review record (URL, outlet, publish date) if available.
        catalog: Other known shows.
        preview_window_days: Grace period around the run.
    """

    text: str
    show: Show
    review: Review | None = None
    catalog: tuple[Show, ...] = ()
    preview_window_days: int = PREVIEW_WINDOW_DAYS
    wrong_show: str | None = field(default=None, init=False)

    @property
    def claimed_mentions(self) -> int:
        """Mentions of the claimed show's title."""
        return title_mentions(self.text, self.show.title)


SignalDetector = Callable[[SignalContext], str | None]


@dataclass(frozen=True)
class SignalSpec:
    """Declarative signal definition.

    Attributes:
        name: Signal name.
        polarity: Positive or negative.
        weight: Contribution to the score when it fires.
        detector: Returns a detail string when the signal fires, else None.
    """

    name: str
    polarity: Polarity
    weight: int
    detector: SignalDetector

    def evaluate(self, context: SignalContext) -> SignalHit | None:
        """Run the detector and wrap a hit."""
        detail = self.detector(context)
        if detail is None:
            return None
        return SignalHit(self.name, self.polarity, self.weight, detail)


# =============================================================================
# POSITIVE DETECTORS
# =============================================================================


def _detect_exact_title(ctx: SignalContext) -> str | None:
    if ctx.claimed_mentions:
        return f"title '{ctx.show.title}' mentioned"
    return None


def _detect_partial_title(ctx: SignalContext) -> str | None:
    words = [w for w in flatten_text(ctx.show.title).split() if len(w) > MIN_WORD_LENGTH]
    if len(words) < 2:
        return None
    partial = " ".join(words[:2])
    if count_phrase(ctx.text, partial):
        return f"partial title '{partial}' mentioned"
    return None


def _detect_venue(ctx: SignalContext) -> str | None:
    if not ctx.show.venue:
        return None
    core = _VENUE_SUFFIX_PATTERN.sub("", flatten_text(ctx.show.venue)).strip()
    if len(core) > MIN_NAME_LENGTH and count_phrase(ctx.text, core):
        return f"venue '{core}' mentioned"
    return None


def _detect_person(ctx: SignalContext) -> str | None:
    for person in ctx.show.people:
        parts = flatten_text(person).split()
        if not parts:
            continue
        surname = parts[-1]
        if len(surname) > MIN_NAME_LENGTH and count_phrase(ctx.text, surname):
            return f"person '{person}' mentioned"
    return None


def _show_year(show: Show) -> str | None:
    match = _YEAR_PATTERN.search(show.id)
    if match:
        return match.group(1)
    return str(show.year) if show.year else None


def _detect_year(ctx: SignalContext) -> str | None:
    year = _show_year(ctx.show)
    if year and count_phrase(ctx.text, year):
        return f"year {year} mentioned"
    return None


# =============================================================================
# NEGATIVE DETECTORS
# =============================================================================


def _detect_different_show(ctx: SignalContext) -> str | None:
    claimed_key = ctx.show.normalized_title
    claimed = ctx.claimed_mentions
    best: tuple[int, Show] | None = None

    for other in ctx.catalog:
        key = other.normalized_title
        if other.id == ctx.show.id or len(key) <= MIN_OTHER_TITLE_LENGTH:
            continue
        if key in claimed_key or claimed_key in key:
            continue
        mentions = title_mentions(ctx.text, other.title)
        if mentions and mentions >= claimed and (best is None or mentions > best[0]):
            best = (mentions, other)

    if best is None:
        return None
    ctx.wrong_show = best[1].title
    return f"mentions '{best[1].title}' {best[0]}x vs '{ctx.show.title}' {claimed}x"


def _detect_outlet_domain(ctx: SignalContext) -> str | None:
    if ctx.review is None or not ctx.review.url:
        return None
    claimed = ctx.review.normalized_outlet_id
    if claimed == UNKNOWN:
        return None
    domain = extract_domain(ctx.review.url)
    expected = outlet_for_domain(domain) if domain else None
    if expected is None or expected == claimed:
        return None
    return f"url domain {domain} belongs to {expected}, not {claimed}"


def _detect_publish_date(ctx: SignalContext) -> str | None:
    if ctx.review is None or ctx.review.publish_date is None:
        return None
    published = ctx.review.publish_date
    grace = timedelta(days=ctx.preview_window_days)

    start: date | None = ctx.show.run_start
    if start and published < start - grace:
        return f"published {published} before run start {start}"

    end = ctx.show.closing_date
    if end and published > end + grace:
        return f"published {published} after closing {end}"
    return None


# =============================================================================
# SIGNAL TABLE
# =============================================================================

SIGNALS: tuple[SignalSpec, ...] = (
    SignalSpec("exact_title", Polarity.POSITIVE, 40, _detect_exact_title),
    SignalSpec("partial_title", Polarity.POSITIVE, 20, _detect_partial_title),
    SignalSpec("venue", Polarity.POSITIVE, 15, _detect_venue),
    SignalSpec("person", Polarity.POSITIVE, 15, _detect_person),
    SignalSpec("year", Polarity.POSITIVE, 10, _detect_year),
    SignalSpec("different_show", Polarity.NEGATIVE, 40, _detect_different_show),
    SignalSpec("outlet_domain_mismatch", Polarity.NEGATIVE, 25, _detect_outlet_domain),
    SignalSpec("publish_date_window", Polarity.NEGATIVE, 25, _detect_publish_date),
)
"""Signals evaluated for every text, in reporting order."""


# =============================================================================
# VERIFIER
# =============================================================================


class ContentVerifier:
    """Evaluates the signal table and applies the verdict decision table.

    Attributes:
        signals: Signal table.
        preview_window_days: Grace period around the run.
        min_text_length: Shortest text worth verifying.
        quarantine_min_negative: Negative signals needed for quarantine.
    """

    def __init__(
        self,
        signals: Iterable[SignalSpec] = SIGNALS,
        preview_window_days: int = PREVIEW_WINDOW_DAYS,
        min_text_length: int = MIN_TEXT_LENGTH,
        quarantine_min_negative: int = QUARANTINE_MIN_NEGATIVE,
    ) -> None:
        """Initialize verifier thresholds and signal table."""
        self.signals = tuple(signals)
        self.preview_window_days = preview_window_days
        self.min_text_length = min_text_length
        self.quarantine_min_negative = quarantine_min_negative

    @classmethod
    def from_settings(cls, settings: Any) -> "ContentVerifier":
        """Build a verifier from the application Settings object."""
        return cls(
            preview_window_days=settings.verifier.preview_window_days,
            min_text_length=settings.verifier.min_text_length,
            quarantine_min_negative=settings.verifier.quarantine_min_negative,
        )

    def is_verifiable(self, text: str | None) -> bool:
        """Check that text is long enough to carry evidence."""
        return bool(text) and len(text.strip()) >= self.min_text_length

    def verify(
        self,
        text: str | None,
        show: Show,
        review: Review | None = None,
        catalog: Iterable[Show] = (),
    ) -> VerificationVerdict:
        """Classify whether text concerns the claimed show.

        Args:
            text: Article text.
            show: Claimed show.
            review: Review record for URL and date checks.
            catalog: Other known shows for wrong-show detection.

        Returns:
            VerificationVerdict.
        """
        context = SignalContext(
            text=flatten_text(text),
            show=show,
            review=review,
            catalog=tuple(catalog),
            preview_window_days=self.preview_window_days,
        )

        hits = [hit for spec in self.signals if (hit := spec.evaluate(context))]
        positives = tuple(h for h in hits if h.polarity is Polarity.POSITIVE)
        negatives = tuple(h for h in hits if h.polarity is Polarity.NEGATIVE)
        score = sum(h.weight for h in positives) - sum(h.weight for h in negatives)

        verdict = self._decide(positives, negatives)
        logger.debug(
            "Verified %s: %s (score=%d, signals=%s)",
            show.id,
            verdict,
            score,
            [h.name for h in hits],
        )
        return VerificationVerdict(
            verdict=verdict,
            score=score,
            positive_signals=positives,
            negative_signals=negatives,
            wrong_show_mentioned=context.wrong_show,
        )

    @staticmethod
    def _decide(positives: tuple[SignalHit, ...], negatives: tuple[SignalHit, ...]) -> Verdict:
        """Map signal counts to a verdict."""
        names = {hit.name for hit in (*positives, *negatives)}
        if len(negatives) >= 2 or "different_show" in names:
            return Verdict.CONFIDENT_MISMATCH
        if "exact_title" in names:
            return Verdict.CONFIDENT_MATCH
        if negatives:
            return Verdict.PROBABLE_MISMATCH
        if positives:
            return Verdict.PROBABLE_MATCH
        return Verdict.PROBABLE_MISMATCH


_default_verifier = ContentVerifier()


def verify_content(
    text: str | None,
    show: Show,
    review: Review | None = None,
    catalog: Iterable[Show] = (),
) -> VerificationVerdict:
    """Verify text against a show with default thresholds."""
    return _default_verifier.verify(text, show, review=review, catalog=catalog)


# =============================================================================
# QUARANTINE
# =============================================================================


def quarantine(
    review: Review,
    verdict: VerificationVerdict,
    min_negative: int = QUARANTINE_MIN_NEGATIVE,
) -> Review:
    """Move mismatched text aside when the verdict warrants it.

    The text is kept under ``wrongFullText`` with the triggering signals
    and score; the content tier falls back to excerpts when any exist.

    Args:
        review: Review to annotate.
        verdict: Verification result for its text.
        min_negative: Negative signals required.

    Returns:
        New quarantined Review, or the input unchanged when not eligible.
    """
    if not verdict.should_quarantine(min_negative) or not review.full_text:
        return review

    logger.info(
        "Quarantining %s/%s: %s",
        review.show_id,
        review.normalized_outlet_id,
        verdict.mismatch_note,
    )
    return review.model_copy(
        update={
            "wrong_full_text": review.full_text,
            "full_text": None,
            "content_mismatch_note": verdict.mismatch_note,
            "content_mismatch_score": verdict.score,
            "content_tier": TIER_EXCERPT if review.excerpts else TIER_NEEDS_RESCRAPE,
        }
    )


def restore(review: Review) -> Review:
    """Undo a quarantine, putting the text back in place.

    Args:
        review: Possibly quarantined review.

    Returns:
        New restored Review, or the input unchanged when not quarantined.
    """
    if not review.is_quarantined:
        return review

    logger.info("Restoring quarantined text for %s/%s", review.show_id, review.normalized_outlet_id)
    return review.model_copy(
        update={
            "full_text": review.wrong_full_text,
            "wrong_full_text": None,
            "content_mismatch_note": None,
            "content_mismatch_score": None,
            "content_tier": None,
        }
    )
