"""Audience buzz score calculator.

Blends up to three audience sources into one combined score:
Reddit discourse gets a fixed 20% when it is present alongside another
source; Show Score and Mezzanine split the rest in proportion to their
sample sizes. A single source stands alone at 100%.
"""

import copy
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from src.etl.aggregation.schemas import BuzzSources, SourceScore

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS - SOURCE WEIGHTS
# =============================================================================

SOURCE_SHOW_SCORE = "showScore"
SOURCE_MEZZANINE = "mezzanine"
SOURCE_REDDIT = "reddit"

SOURCE_FIELDS = {
    SOURCE_SHOW_SCORE: "show_score",
    SOURCE_MEZZANINE: "mezzanine",
    SOURCE_REDDIT: "reddit",
}
"""Payload key -> BuzzSources attribute, in reporting order."""

DISCOURSE_SOURCE = SOURCE_REDDIT
"""Source with a fixed weight."""

DISCOURSE_WEIGHT = 0.20
"""Fixed share of the discourse source when blended (20%)."""

MIN_SAMPLE_SIZE = 1
"""Missing or zero sample sizes count as one observation."""


# =============================================================================
# DESIGNATIONS
# =============================================================================


class Designation(StrEnum):
    """Tier label for a combined score, best first."""

    LOVING = "Loving"
    LIKING = "Liking"
    SHRUGGING = "Shrugging"
    LOATHING = "Loathing"


@dataclass(frozen=True)
class DesignationBand:
    """Lowest score that earns a designation.

    Attributes:
        designation: Tier label.
        min_score: Inclusive lower bound.
    """

    designation: Designation
    min_score: int


DEFAULT_BANDS: tuple[DesignationBand, ...] = (
    DesignationBand(Designation.LOVING, 88),
    DesignationBand(Designation.LIKING, 78),
    DesignationBand(Designation.SHRUGGING, 68),
    DesignationBand(Designation.LOATHING, 0),
)


def build_bands(loving_min: int, liking_min: int, shrugging_min: int) -> tuple[DesignationBand, ...]:
    """Build designation bands from thresholds.

    Args:
        loving_min: Lowest Loving score.
        liking_min: Lowest Liking score.
        shrugging_min: Lowest Shrugging score.

    Returns:
        Bands sorted from best to worst.

    Raises:
        ValueError: If thresholds are not strictly decreasing.
    """
    if not loving_min > liking_min > shrugging_min > 0:
        raise ValueError("Designation thresholds must be strictly decreasing and positive")
    return (
        DesignationBand(Designation.LOVING, loving_min),
        DesignationBand(Designation.LIKING, liking_min),
        DesignationBand(Designation.SHRUGGING, shrugging_min),
        DesignationBand(Designation.LOATHING, 0),
    )


def designation_for(
    score: float | None,
    bands: Iterable[DesignationBand] = DEFAULT_BANDS,
) -> Designation | None:
    """Return the designation for a combined score.

    Args:
        score: Combined score (None when no source has data).
        bands: Bands to apply, in any order.

    Returns:
        Highest band whose minimum the score reaches, None for no score.
    """
    if score is None:
        return None
    ordered = sorted(bands, key=lambda band: band.min_score, reverse=True)
    for band in ordered:
        if score >= band.min_score:
            return band.designation
    return ordered[-1].designation


# =============================================================================
# COMBINED SCORE
# =============================================================================


@dataclass(frozen=True)
class CombinedScore:
    """Blended score and the weight each source received.

    Attributes:
        score: Rounded combined score (None when no source has data).
        weights: Source key -> integer percent, summing to 100.
    """

    score: int | None
    weights: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class AggregatedScore:
    """Combined score with its designation.

    Attributes:
        combined_score: Rounded combined score.
        weights: Source key -> integer percent.
        designation: Tier label.
    """

    combined_score: int | None
    weights: dict[str, int]
    designation: Designation | None


def _parse_source(key: str, raw: Any) -> SourceScore | None:
    """Validate one raw source payload; invalid payloads count as absent."""
    if raw is None:
        return None
    try:
        return SourceScore.model_validate(raw)
    except ValidationError as e:
        logger.warning("Ignoring invalid %s source %r: %s", key, raw, e.errors()[0]["msg"])
        return None


def _present_sources(sources: BuzzSources | Mapping[str, Any]) -> dict[str, SourceScore]:
    """Return sources that carry a score, keyed by payload key."""
    present: dict[str, SourceScore] = {}
    for key, attr in SOURCE_FIELDS.items():
        if isinstance(sources, BuzzSources):
            source = getattr(sources, attr)
        else:
            source = _parse_source(key, sources.get(key, sources.get(attr)))
        if source is not None and source.is_present:
            present[key] = source
    return present


def _fractions(present: Mapping[str, SourceScore], discourse_weight: float) -> dict[str, float]:
    """Compute exact weight fractions for present sources."""
    if len(present) == 1:
        return {key: 1.0 for key in present}

    fractions: dict[str, float] = {}
    remaining = 1.0
    if DISCOURSE_SOURCE in present:
        fractions[DISCOURSE_SOURCE] = discourse_weight
        remaining -= discourse_weight

    counted = {
        key: max(source.sample_size or 0, MIN_SAMPLE_SIZE)
        for key, source in present.items()
        if key != DISCOURSE_SOURCE
    }
    total = sum(counted.values())
    for key, count in counted.items():
        fractions[key] = remaining * count / total
    return fractions


def percent_weights(fractions: Mapping[str, float]) -> dict[str, int]:
    """Round fractions to integer percents that sum to exactly 100.

    Largest-remainder rounding: floor every share, then hand the missing
    points to the largest remainders (ties in source order).

    Args:
        fractions: Source key -> fraction, summing to 1.

    Returns:
        Source key -> integer percent.
    """
    if not fractions:
        return {}
    raw = {key: value * 100 for key, value in fractions.items()}
    floors = {key: math.floor(value + 1e-9) for key, value in raw.items()}
    missing = 100 - sum(floors.values())
    by_remainder = sorted(raw, key=lambda key: raw[key] - floors[key], reverse=True)
    for key in by_remainder[:missing]:
        floors[key] += 1
    return floors


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_combined_score(
    sources: BuzzSources | Mapping[str, Any] | None,
    discourse_weight: float = DISCOURSE_WEIGHT,
) -> CombinedScore:
    """Blend audience sources into one score.

    Absent sources are excluded from both the weighted sum and the
    weights; they are never treated as zero. A raw source payload that
    fails validation is logged and treated as absent.

    Args:
        sources: BuzzSources or a raw ``{"showScore": {...}, ...}`` mapping.
        discourse_weight: Fixed share of the discourse source.

    Returns:
        CombinedScore (score None when no source has data).
    """
    if sources is not None and not isinstance(sources, BuzzSources | Mapping):
        logger.warning("Ignoring invalid sources payload %r", sources)
        sources = None
    present = _present_sources(sources or {})
    if not present:
        return CombinedScore(score=None)

    fractions = _fractions(present, discourse_weight)
    weighted = sum(present[key].score * fraction for key, fraction in fractions.items())
    return CombinedScore(score=_round_half_up(weighted), weights=percent_weights(fractions))


# =============================================================================
# BUZZ STATISTICS
# =============================================================================


@dataclass
class BuzzStats:
    """Statistics for a buzz recalculation.

    Attributes:
        total_shows: Shows in the payload.
        scored: Shows with at least one source.
        no_data: Shows without any source score.
        invalid: Shows skipped because their payload failed validation.
        changed: Shows whose combined score changed.
        by_designation: Scored shows per designation.
    """

    total_shows: int = 0
    scored: int = 0
    no_data: int = 0
    invalid: int = 0
    changed: int = 0
    by_designation: dict[str, int] = field(default_factory=dict)

    def log_summary(self) -> None:
        """Log recalculation statistics summary."""
        logger.info(
            "Buzz recalculation: %d shows, %d scored, %d without data, %d invalid, %d changed %s",
            self.total_shows,
            self.scored,
            self.no_data,
            self.invalid,
            self.changed,
            self.by_designation,
        )


def _validate_entry(entry: Any) -> BuzzSources:
    """Validate one show entry of an audience buzz payload.

    Raises:
        ValidationError: If the entry is not an object or a source is invalid.
    """
    sources = entry.get("sources") if isinstance(entry, Mapping) else entry
    return BuzzSources.model_validate(sources or {})


# =============================================================================
# BUZZ SCORE CALCULATOR
# =============================================================================


class BuzzScoreCalculator:
    """Recomputes combined scores and designations for an audience buzz payload.

    Attributes:
        discourse_weight: Fixed share of the discourse source.
        bands: Designation bands.
        stats: Statistics of the last recalculation.
    """

    def __init__(
        self,
        discourse_weight: float = DISCOURSE_WEIGHT,
        bands: Iterable[DesignationBand] = DEFAULT_BANDS,
    ) -> None:
        """Initialize calculator."""
        self.discourse_weight = discourse_weight
        self.bands = tuple(sorted(bands, key=lambda band: band.min_score, reverse=True))
        self.stats = BuzzStats()

    @classmethod
    def from_settings(cls, settings: Any) -> "BuzzScoreCalculator":
        """Build a calculator from the application Settings object."""
        buzz = settings.buzz
        return cls(
            discourse_weight=buzz.discourse_weight,
            bands=build_bands(buzz.loving_min, buzz.liking_min, buzz.shrugging_min),
        )

    def calculate(self, sources: BuzzSources | Mapping[str, Any] | None) -> AggregatedScore:
        """Compute score, weights and designation for one show.

        Args:
            sources: Per-source scores.

        Returns:
            AggregatedScore.
        """
        combined = calculate_combined_score(sources, self.discourse_weight)
        return AggregatedScore(
            combined_score=combined.score,
            weights=combined.weights,
            designation=designation_for(combined.score, self.bands),
        )

    def recalculate(self, buzz_data: Mapping[str, Any]) -> dict[str, Any]:
        """Recompute every show in an audience buzz payload.

        Shows without any score keep their previous values, as do shows
        whose entry or sources fail validation (logged and counted as
        invalid). The input is not modified.

        Args:
            buzz_data: ``{"_meta": {...}, "shows": {show_id: {...}}}``.

        Returns:
            Updated copy of the payload.
        """
        self.stats = BuzzStats()
        updated = copy.deepcopy(dict(buzz_data))
        shows: dict[str, dict[str, Any]] = updated.setdefault("shows", {})

        for show_id, entry in shows.items():
            self.stats.total_shows += 1
            try:
                sources = _validate_entry(entry)
            except ValidationError as e:
                self.stats.invalid += 1
                logger.warning("Keeping previous score for %s: %s", show_id, e)
                continue
            result = self.calculate(sources)

            if result.combined_score is None:
                self.stats.no_data += 1
                continue

            self.stats.scored += 1
            previous = entry.get("combinedScore")
            entry["combinedScore"] = result.combined_score
            entry["designation"] = str(result.designation)
            entry["weights"] = result.weights
            key = str(result.designation)
            self.stats.by_designation[key] = self.stats.by_designation.get(key, 0) + 1

            if previous != result.combined_score:
                self.stats.changed += 1
                logger.info(
                    "%s: %s -> %d (%s)",
                    entry.get("title", show_id),
                    previous,
                    result.combined_score,
                    ", ".join(f"{k} {v}%" for k, v in result.weights.items()),
                )

        updated["_meta"] = {**updated.get("_meta", {}), **self._meta()}
        self.stats.log_summary()
        return updated

    def _meta(self) -> dict[str, Any]:
        """Build the payload metadata block."""
        thresholds: dict[str, str] = {}
        upper = 100
        for band in self.bands:
            thresholds[str(band.designation)] = f"{band.min_score}-{upper}"
            upper = band.min_score - 1
        share = round(self.discourse_weight * 100)
        return {
            "lastUpdated": datetime.now(UTC).date().isoformat(),
            "designationThresholds": thresholds,
            "notes": (
                f"Dynamic weighting: Reddit fixed {share}%, Show Score & Mezzanine "
                f"split remaining {100 - share}% by sample size"
            ),
        }
