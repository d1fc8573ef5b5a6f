"""Versioned, immutable alias tables.

Alias tables are curated JSON resources shipped in ``data/``. Each file
holds a ``version`` and an ``entries`` mapping from a canonical key to its
known variants. Tables are loaded once per process and never mutated;
promoting a confirmed typo means editing the JSON and bumping its version.
"""

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from functools import cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DATA_DIR = Path(__file__).parent / "data"
"""Directory holding the curated alias resources."""

OUTLETS_TABLE = "outlets"
CRITICS_TABLE = "critics"
TITLES_TABLE = "titles"


# =============================================================================
# ALIAS TABLE
# =============================================================================


@dataclass(frozen=True)
class AliasTable:
    """Many-to-one mapping from raw variants to canonical keys.

    Attributes:
        name: Table name (file stem).
        version: Curated version number from the resource.
        canonical: Canonical key -> frozenset of variants.
        index: Variant -> canonical key (reverse lookup).
    """

    name: str
    version: int
    canonical: Mapping[str, frozenset[str]]
    index: Mapping[str, str] = field(repr=False)

    @classmethod
    def build(
        cls,
        name: str,
        version: int,
        entries: Mapping[str, Iterable[str]],
        key_func: Callable[[str], str] | None = None,
    ) -> "AliasTable":
        """Build a table and its reverse index.

        The canonical key always resolves to itself. When a variant is
        listed under two canonical keys the first one wins and a warning
        is logged, so lookups stay deterministic.

        Args:
            name: Table name.
            version: Resource version.
            entries: Canonical key -> variants.
            key_func: Optional transform applied to variants before indexing.

        Returns:
            Immutable AliasTable.
        """
        transform = key_func or (lambda value: value)
        canonical: dict[str, frozenset[str]] = {}
        index: dict[str, str] = {}

        for key, variants in entries.items():
            keys = {transform(v) for v in variants} | {key}
            canonical[key] = frozenset(k for k in keys if k)
            for variant in canonical[key]:
                owner = index.setdefault(variant, key)
                if owner != key:
                    logger.warning(
                        "Alias table '%s': variant '%s' claimed by '%s' and '%s'",
                        name,
                        variant,
                        owner,
                        key,
                    )

        return cls(
            name=name,
            version=version,
            canonical=MappingProxyType(canonical),
            index=MappingProxyType(index),
        )

    def lookup(self, variant: str) -> str | None:
        """Return canonical key for a variant, or None if unknown."""
        return self.index.get(variant)

    def __contains__(self, key: object) -> bool:
        return key in self.canonical

    def __len__(self) -> int:
        return len(self.canonical)


# =============================================================================
# OUTLET REGISTRY
# =============================================================================


@dataclass(frozen=True)
class OutletRecord:
    """Static outlet metadata.

    Attributes:
        outlet_id: Canonical outlet identifier.
        display_name: Human readable name.
        domains: Web domains the outlet publishes on.
    """

    outlet_id: str
    display_name: str
    domains: tuple[str, ...] = ()


@dataclass(frozen=True)
class OutletRegistry:
    """Outlet alias table plus display names and domain index.

    Attributes:
        aliases: Free-text variant table.
        records: Outlet id -> metadata.
        by_domain: Registered domain -> outlet id.
    """

    aliases: AliasTable
    records: Mapping[str, OutletRecord]
    by_domain: Mapping[str, str]

    @property
    def version(self) -> int:
        """Resource version."""
        return self.aliases.version


# =============================================================================
# LOADING
# =============================================================================


def _read_resource(name: str) -> dict[str, Any]:
    """Read a JSON alias resource.

    Args:
        name: Resource stem (without .json).

    Returns:
        Parsed resource.
    """
    path = DATA_DIR / f"{name}.json"
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    logger.debug("Loaded alias resource %s (version %s)", path.name, data.get("version"))
    return data


@cache
def load_alias_table(name: str) -> AliasTable:
    """Load a plain canonical -> variants table once per process.

    Args:
        name: Resource stem (critics, titles).

    Returns:
        Cached AliasTable.
    """
    data = _read_resource(name)
    return AliasTable.build(name, int(data["version"]), data["entries"])


@cache
def load_title_table(key_func: Callable[[str], str]) -> AliasTable:
    """Load the show title table with variants passed through key_func.

    Variants are stored in a readable form; normalizing them at load time
    keeps the JSON editable by hand.

    Args:
        key_func: Title normalizer (without alias resolution).

    Returns:
        Cached AliasTable.
    """
    data = _read_resource(TITLES_TABLE)
    entries = {key_func(key): variants for key, variants in data["entries"].items()}
    return AliasTable.build(TITLES_TABLE, int(data["version"]), entries, key_func)


@cache
def load_outlet_registry() -> OutletRegistry:
    """Load outlet aliases, display names and domains once per process.

    Returns:
        Cached OutletRegistry.
    """
    data = _read_resource(OUTLETS_TABLE)
    entries: dict[str, dict[str, Any]] = data["entries"]

    aliases = AliasTable.build(
        OUTLETS_TABLE,
        int(data["version"]),
        {outlet_id: entry.get("variants", []) for outlet_id, entry in entries.items()},
    )

    records: dict[str, OutletRecord] = {}
    by_domain: dict[str, str] = {}
    for outlet_id, entry in entries.items():
        domains = tuple(d.lower() for d in entry.get("domains", []))
        records[outlet_id] = OutletRecord(
            outlet_id=outlet_id,
            display_name=entry.get("display_name", outlet_id),
            domains=domains,
        )
        for domain in domains:
            by_domain.setdefault(domain, outlet_id)

    return OutletRegistry(
        aliases=aliases,
        records=MappingProxyType(records),
        by_domain=MappingProxyType(by_domain),
    )
