"""URL discovery cache for cross-show collision checks.

The same article URL filed under two different shows means one of the
copies is wrong. The cache remembers which show(s) each URL was seen
under. It is an explicit object: the batch driver loads it before a run,
passes it to whatever records URLs, and saves it afterwards.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

DEFAULT_CACHE_FILENAME = "url-cache.json"


# =============================================================================
# URL CANONICALIZATION
# =============================================================================


def canonical_url(url: str | None) -> str:
    """Reduce a URL to a comparison key.

    Drops scheme, ``www.``, query string, fragment and trailing slash;
    lowercases the host.

    Args:
        url: Article URL.

    Returns:
        Key such as ``nytimes.com/2024/04/21/theater/cabaret-review.html``,
        empty string for blank input.
    """
    if not url or not url.strip():
        return ""
    value = url.strip()
    if "://" not in value:
        value = f"http://{value}"
    try:
        parts = urlsplit(value)
    except ValueError:
        return url.strip()
    host = (parts.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return f"{host}{parts.path.rstrip('/')}"


# =============================================================================
# CACHE
# =============================================================================


@dataclass(frozen=True)
class UrlEntry:
    """One sighting of a URL.

    Attributes:
        show_id: Show the review file belongs to.
        file: Review file name.
    """

    show_id: str
    file: str


class UrlDiscoveryCache:
    """Mapping of canonical URL to the review files that reference it.

    Attributes:
        path: JSON file the cache is loaded from and saved to.
    """

    def __init__(self, path: Path | None = None) -> None:
        """Initialize an empty cache.

        Args:
            path: Backing JSON file (None keeps the cache in memory only).
        """
        self.path = path
        self._entries: dict[str, list[UrlEntry]] = {}

    @classmethod
    def load(cls, path: Path) -> "UrlDiscoveryCache":
        """Load a cache from disk; a missing file gives an empty cache.

        Args:
            path: Backing JSON file.

        Returns:
            Loaded cache.
        """
        cache = cls(path)
        if not path.exists():
            logger.debug("No URL cache at %s, starting empty", path)
            return cache

        payload = cls._read_json(path)
        data = payload.get("data") if isinstance(payload, dict) else None
        for url, entries in (data if isinstance(data, dict) else {}).items():
            for entry in entries if isinstance(entries, list) else [entries]:
                try:
                    item = UrlEntry(entry["showId"], entry["file"])
                except (KeyError, TypeError):
                    logger.warning("Skipping malformed URL cache entry for %s: %r", url, entry)
                    continue
                cache._entries.setdefault(url, []).append(item)
        logger.debug("URL cache loaded: %d urls from %s", len(cache), path.name)
        return cache

    def save(self, path: Path | None = None) -> Path:
        """Write the cache to disk.

        Args:
            path: Target file (defaults to the path it was loaded from).

        Returns:
            Path written.

        Raises:
            ValueError: If the cache has no backing path.
        """
        target = path or self.path
        if target is None:
            raise ValueError("URL cache has no backing path")

        target.parent.mkdir(parents=True, exist_ok=True)
        self._write_json(target, self._build_payload())
        logger.debug("URL cache saved: %d urls to %s", len(self), target.name)
        return target

    def record(self, url: str | None, show_id: str, file: str) -> list[UrlEntry]:
        """Register a URL sighting.

        Args:
            url: Article URL.
            show_id: Show the file belongs to.
            file: Review file name.

        Returns:
            Earlier sightings of the same URL under other shows.
        """
        key = canonical_url(url)
        if not key:
            return []

        entries = self._entries.setdefault(key, [])
        entry = UrlEntry(show_id, file)
        if entry not in entries:
            entries.append(entry)
        return [e for e in entries if e.show_id != show_id]

    def shows_for(self, url: str | None) -> list[str]:
        """Return show ids a URL was seen under, in first-seen order."""
        entries = self._entries.get(canonical_url(url), [])
        return list(dict.fromkeys(e.show_id for e in entries))

    def collisions(self) -> dict[str, list[UrlEntry]]:
        """Return URLs referenced by more than one show."""
        return {
            url: list(entries)
            for url, entries in self._entries.items()
            if len({e.show_id for e in entries}) > 1
        }

    def forget_show(self, show_id: str) -> None:
        """Drop every sighting for a show before it is re-scanned."""
        for url in list(self._entries):
            remaining = [e for e in self._entries[url] if e.show_id != show_id]
            if remaining:
                self._entries[url] = remaining
            else:
                del self._entries[url]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and canonical_url(url) in self._entries

    def _build_payload(self) -> dict[str, Any]:
        """Wrap entries with a timestamp."""
        return {
            "timestamp": datetime.now().isoformat(),
            "data": {
                url: [{"showId": e.show_id, "file": e.file} for e in entries]
                for url, entries in sorted(self._entries.items())
            },
        }

    @staticmethod
    def _write_json(path: Path, data: dict[str, Any]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)

    @staticmethod
    def _read_json(path: Path) -> dict[str, Any]:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
