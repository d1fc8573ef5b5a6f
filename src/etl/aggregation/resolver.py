"""Critic name resolution: exact, alias and bounded edit-distance matching.

Exact and alias matches are trusted and may be merged automatically.
Levenshtein matches catch scraper typos ("Johnny Oleksinki") but can also
pair two different people with similar names, so they are only ever
reported for human confirmation and promotion into the alias table.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from itertools import combinations
from pathlib import Path
from typing import Any

from rapidfuzz.distance import Levenshtein
from unidecode import unidecode

from src.etl.normalization import UNKNOWN, normalize_critic

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

MAX_EDIT_DISTANCE = 2
"""Maximum edit distance accepted as a typo."""

MIN_FUZZY_LENGTH = 5
"""Both names must be strictly longer than this for fuzzy matching."""


# =============================================================================
# MATCH TYPES
# =============================================================================


class MatchType(StrEnum):
    """How two names were found to denote the same entity, by priority."""

    EXACT = "exact"
    ALIAS = "alias"
    LEVENSHTEIN = "levenshtein"
    NONE = "none"


TRUSTED_MATCH_TYPES = frozenset({MatchType.EXACT, MatchType.ALIAS})
"""Match types that may drive an automatic merge."""


@dataclass(frozen=True)
class AliasMatch:
    """Result of resolving two raw names.

    Attributes:
        match_type: Strongest rule that matched.
        distance: Edit distance (only for levenshtein matches).
    """

    match_type: MatchType
    distance: int | None = None

    @property
    def is_match(self) -> bool:
        """Whether any rule matched."""
        return self.match_type is not MatchType.NONE

    @property
    def auto_merge(self) -> bool:
        """Whether the match is trusted without human review."""
        return self.match_type in TRUSTED_MATCH_TYPES


_NO_MATCH = AliasMatch(MatchType.NONE)


# =============================================================================
# RESOLVER
# =============================================================================


class AliasResolver:
    """Resolves whether two raw identifier strings are the same person.

    Attributes:
        max_distance: Maximum edit distance for a levenshtein match.
        min_length: Minimum (exclusive) name length for fuzzy matching.
    """

    def __init__(
        self,
        max_distance: int = MAX_EDIT_DISTANCE,
        min_length: int = MIN_FUZZY_LENGTH,
    ) -> None:
        """Initialize resolver thresholds.

        Args:
            max_distance: Maximum edit distance for a levenshtein match.
            min_length: Both names must be longer than this.
        """
        self.max_distance = max_distance
        self.min_length = min_length

    def resolve(self, a: str | None, b: str | None) -> AliasMatch:
        """Classify two raw names.

        Args:
            a: First raw name.
            b: Second raw name.

        Returns:
            AliasMatch with the highest-priority matching rule.
        """
        if not a or not b:
            return _NO_MATCH

        left = self._clean(a)
        right = self._clean(b)
        if not left or not right:
            return _NO_MATCH

        if left == right:
            return AliasMatch(MatchType.EXACT)

        if self._same_canonical(a, b):
            return AliasMatch(MatchType.ALIAS)

        if len(left) > self.min_length and len(right) > self.min_length:
            distance = Levenshtein.distance(left, right, score_cutoff=self.max_distance)
            if distance <= self.max_distance:
                return AliasMatch(MatchType.LEVENSHTEIN, distance=distance)

        return _NO_MATCH

    @staticmethod
    def _clean(name: str) -> str:
        """Case-fold and collapse whitespace."""
        return " ".join(unidecode(name).lower().split())

    @staticmethod
    def _same_canonical(a: str, b: str) -> bool:
        """Check whether both names normalize to the same known slug."""
        left = normalize_critic(a)
        return left != UNKNOWN and left == normalize_critic(b)


_default_resolver = AliasResolver()


def resolve_alias(a: str | None, b: str | None) -> AliasMatch:
    """Classify two raw critic names with the default thresholds.

    Args:
        a: First raw name.
        b: Second raw name.

    Returns:
        AliasMatch (exact, alias, levenshtein or none).
    """
    return _default_resolver.resolve(a, b)


# =============================================================================
# LEVENSHTEIN AUDIT
# =============================================================================


@dataclass(frozen=True)
class CriticPair:
    """Two critic names within one show that matched fuzzily.

    Attributes:
        show_id: Show both reviews belong to.
        name_a: First raw name.
        name_b: Second raw name.
        match_type: Resolver verdict.
        distance: Edit distance for levenshtein pairs.
    """

    show_id: str
    name_a: str
    name_b: str
    match_type: MatchType
    distance: int | None = None


def find_critic_pairs(
    show_id: str,
    names: list[str],
    resolver: AliasResolver | None = None,
) -> list[CriticPair]:
    """Classify every pair of distinct critic names for one show.

    Args:
        show_id: Show the names were collected from.
        names: Raw critic names (duplicates ignored).
        resolver: Resolver to use (default thresholds if None).

    Returns:
        Matching pairs only, in input order.
    """
    active = resolver or _default_resolver
    unique = list(dict.fromkeys(n for n in names if n))
    pairs: list[CriticPair] = []

    for name_a, name_b in combinations(unique, 2):
        match = active.resolve(name_a, name_b)
        if match.is_match:
            pairs.append(
                CriticPair(
                    show_id=show_id,
                    name_a=name_a,
                    name_b=name_b,
                    match_type=match.match_type,
                    distance=match.distance,
                )
            )

    return pairs


@dataclass
class LevenshteinAuditLog:
    """Collects levenshtein-only critic matches for human confirmation.

    Confirmed pairs are promoted into the critic alias table by hand;
    nothing here merges records.

    Attributes:
        pairs: Pending pairs in discovery order.
    """

    pairs: list[CriticPair] = field(default_factory=list)

    def record(self, pair: CriticPair) -> None:
        """Add a pair if it was matched by edit distance."""
        if pair.match_type is not MatchType.LEVENSHTEIN:
            return
        self.pairs.append(pair)
        logger.info(
            "Levenshtein critic match pending review [%s]: '%s' ~ '%s' (distance=%s)",
            pair.show_id,
            pair.name_a,
            pair.name_b,
            pair.distance,
        )

    def extend(self, pairs: list[CriticPair]) -> None:
        """Record several pairs."""
        for pair in pairs:
            self.record(pair)

    def __len__(self) -> int:
        return len(self.pairs)

    def to_dict(self) -> dict[str, Any]:
        """Build the JSON export structure."""
        by_show: dict[str, int] = {}
        for pair in self.pairs:
            by_show[pair.show_id] = by_show.get(pair.show_id, 0) + 1
        return {
            "generated_at": datetime.now(UTC).isoformat(),
            "count": len(self.pairs),
            "by_show": by_show,
            "pairs": [asdict(pair) for pair in self.pairs],
        }

    def export_json(self, output_path: Path) -> Path:
        """Write pending pairs to a JSON file.

        Args:
            output_path: Target file.

        Returns:
            Path written.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False, default=str)
        logger.info("Exported %d levenshtein pairs to %s", len(self.pairs), output_path)
        return output_path
