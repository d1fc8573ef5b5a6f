"""Canonical keys for show titles, critic names and outlets.

All functions are pure and never raise on unexpected input: anything that
cannot be mapped through an alias table degrades to a slug of the input,
and blank input maps to ``UNKNOWN``. Callers detect unmapped entities with
``is_known_outlet`` / ``is_known_critic``.
"""

import re
from urllib.parse import urlsplit

from unidecode import unidecode

from src.etl.normalization.aliases import (
    CRITICS_TABLE,
    AliasTable,
    OutletRegistry,
    load_alias_table,
    load_outlet_registry,
    load_title_table,
)

# =============================================================================
# CONSTANTS
# =============================================================================

UNKNOWN = "unknown"
"""Canonical key for blank or unusable identifiers."""

MIN_CRITIC_LENGTH = 2
"""Critic names shorter than this are treated as missing."""

_MAX_TITLE_PASSES = 10

# Title reduction patterns, applied in order on a lowercased ASCII title
_SUBTITLE_PATTERN = re.compile(r"\s*(?::|\s[-–—]\s).*$")
_TRAILING_PAREN_PATTERN = re.compile(r"\s*\([^()]*\)\s*$")
_SUFFIX_PATTERN = re.compile(r"\s+(?:on broadway|the musical|a new musical|a musical)$")
_ARTICLE_PATTERN = re.compile(r"^(?:the|a|an)\s+")
_POSSESSIVE_PREFIX_PATTERN = re.compile(r"^(?:disney'?s?|roald dahl'?s?)\s+")
_APOSTROPHE_PATTERN = re.compile(r"['`]")
_PUNCTUATION_PATTERN = re.compile(r"[^\w\s]|_")
_WHITESPACE_PATTERN = re.compile(r"\s+")

# URL handling
_ARCHIVE_PATTERN = re.compile(
    r"^(?:https?://)?(?:web\.)?archive\.org/web/\d+[a-z_]*/(?P<inner>.+)$",
    re.IGNORECASE,
)
_BARE_DOMAIN_PATTERN = re.compile(r"^[a-z0-9-]+(?:\.[a-z0-9-]+)*\.[a-z]{2,}(?:/.*)?$")
_SECOND_LEVEL_LABELS = frozenset({"co", "com", "org", "net", "ac", "gov"})


# =============================================================================
# TEXT HELPERS
# =============================================================================


def _fold(text: str) -> str:
    """Transliterate to ASCII, lowercase and collapse whitespace."""
    folded = unidecode(text).lower()
    return _WHITESPACE_PATTERN.sub(" ", folded).strip()


def slugify(text: str | None) -> str:
    """Create a hyphenated ASCII slug.

    Args:
        text: Raw text.

    Returns:
        Lowercase slug, empty string for blank input.
    """
    if not text:
        return ""
    slug = _fold(text)
    slug = _APOSTROPHE_PATTERN.sub("", slug)
    slug = slug.replace("&", "and")
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def show_slug(title: str | None) -> str:
    """Build the URL slug for a show title."""
    return slugify(title)


# =============================================================================
# TITLES
# =============================================================================


def _reduce_title_once(title: str) -> str:
    """Apply one pass of title reduction rules."""
    reduced = _SUBTITLE_PATTERN.sub("", title)
    reduced = _TRAILING_PAREN_PATTERN.sub("", reduced)
    reduced = _SUFFIX_PATTERN.sub("", reduced.strip())
    reduced = _ARTICLE_PATTERN.sub("", reduced)
    reduced = _POSSESSIVE_PREFIX_PATTERN.sub("", reduced)
    reduced = reduced.replace("&", " and ")
    reduced = _APOSTROPHE_PATTERN.sub("", reduced)
    reduced = _PUNCTUATION_PATTERN.sub(" ", reduced)
    return _WHITESPACE_PATTERN.sub(" ", reduced).strip()


def base_title(title: str | None) -> str:
    """Reduce a title to its comparison form without alias resolution.

    Rules are re-applied until the result stops changing, so stripping
    one suffix can expose an article or another suffix.

    Args:
        title: Raw show title.

    Returns:
        Reduced lowercase title.
    """
    if not title:
        return ""
    current = _fold(title)
    for _ in range(_MAX_TITLE_PASSES):
        reduced = _reduce_title_once(current)
        if reduced == current:
            break
        current = reduced
    return current


def _title_table() -> AliasTable:
    return load_title_table(base_title)


def normalize_title(title: str | None) -> str:
    """Map a show title to its canonical comparison key.

    Strips subtitles after ``:`` or a spaced dash, trailing parentheticals,
    production suffixes ("on Broadway", "The Musical", "A New Musical"),
    leading articles and punctuation, then resolves curated title aliases
    (``les mis`` -> ``les miserables``). Idempotent.

    Args:
        title: Raw show title.

    Returns:
        Canonical lowercase key (empty for blank input).
    """
    base = base_title(title)
    canonical = _title_table().lookup(base)
    return canonical if canonical is not None else base


# =============================================================================
# CRITICS
# =============================================================================


def _critic_table() -> AliasTable:
    return load_alias_table(CRITICS_TABLE)


def normalize_critic(name: str | None) -> str:
    """Map a critic byline to a canonical slug.

    Args:
        name: Raw critic name.

    Returns:
        Canonical slug from the alias table, else a slug of the name,
        ``UNKNOWN`` for blank or single-character names.
    """
    if not name:
        return UNKNOWN

    cleaned = _fold(name)
    if len(cleaned) < MIN_CRITIC_LENGTH:
        return UNKNOWN

    table = _critic_table()
    undotted = _WHITESPACE_PATTERN.sub(" ", cleaned.replace(".", " ")).strip()
    slug = slugify(cleaned)

    for candidate in (cleaned, undotted, slug):
        canonical = table.lookup(candidate)
        if canonical is not None:
            return canonical

    return slug or UNKNOWN


def is_known_critic(name: str | None) -> bool:
    """Check whether a critic resolves through the curated alias table."""
    return normalize_critic(name) in _critic_table()


# =============================================================================
# OUTLETS
# =============================================================================


def _registry() -> OutletRegistry:
    return load_outlet_registry()


def _looks_like_url(value: str) -> bool:
    """Detect URLs and bare domains (``variety.com/2024/...``)."""
    if "://" in value or value.startswith("www."):
        return True
    return " " not in value and bool(_BARE_DOMAIN_PATTERN.match(value))


def extract_domain(url: str | None) -> str:
    """Extract the host from a URL, unwrapping archive.org snapshots.

    Args:
        url: Absolute URL, scheme-less URL or bare domain.

    Returns:
        Lowercase host without ``www.``, empty string when unparseable.
    """
    if not url:
        return ""

    value = url.strip()
    archived = _ARCHIVE_PATTERN.match(value)
    while archived:
        value = archived.group("inner")
        archived = _ARCHIVE_PATTERN.match(value)

    if "://" not in value:
        value = f"http://{value}"

    try:
        host = urlsplit(value).hostname or ""
    except ValueError:
        return ""

    host = host.lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def outlet_for_domain(domain: str) -> str | None:
    """Resolve a host to an outlet id, stripping subdomains.

    ``features.nytimes.com`` is tried as-is, then ``nytimes.com``.

    Args:
        domain: Lowercase host.

    Returns:
        Outlet id or None when unregistered.
    """
    by_domain = _registry().by_domain
    labels = domain.split(".")
    while len(labels) >= 2:
        outlet_id = by_domain.get(".".join(labels))
        if outlet_id is not None:
            return outlet_id
        labels = labels[1:]
    return None


def _domain_label(domain: str) -> str:
    """Return the registrable label of a host (``someblog`` for blog.someblog.co.uk)."""
    labels = [label for label in domain.split(".") if label]
    if len(labels) >= 3 and labels[-2] in _SECOND_LEVEL_LABELS and len(labels[-1]) == 2:
        return labels[-3]
    if len(labels) >= 2:
        return labels[-2]
    return labels[0] if labels else ""


def normalize_outlet(name_or_url: str | None) -> str:
    """Map an outlet name, URL or domain to a canonical outlet id.

    Args:
        name_or_url: Free-text outlet name ("The New York Times"), URL or
            domain ("https://www.nytimes.com/2024/...").

    Returns:
        Canonical outlet id; a slug of the input for unknown outlets;
        ``UNKNOWN`` for blank input.
    """
    if not name_or_url or not name_or_url.strip():
        return UNKNOWN

    value = _fold(name_or_url)

    if _looks_like_url(value):
        domain = extract_domain(value)
        outlet_id = outlet_for_domain(domain)
        if outlet_id is not None:
            return outlet_id
        if domain:
            return slugify(_domain_label(domain)) or UNKNOWN

    aliases = _registry().aliases
    without_article = re.sub(r"^the\s+", "", value)
    for candidate in (value, without_article, f"the {without_article}"):
        outlet_id = aliases.lookup(candidate)
        if outlet_id is not None:
            return outlet_id

    return slugify(value) or UNKNOWN


def is_known_outlet(name_or_url: str | None) -> bool:
    """Check whether an outlet resolves through the static registry."""
    return normalize_outlet(name_or_url) in _registry().records


def outlet_display_name(outlet_id: str) -> str:
    """Return the display name for an outlet id (the id itself if unknown)."""
    record = _registry().records.get(outlet_id)
    return record.display_name if record else outlet_id


def outlet_domains(outlet_id: str) -> tuple[str, ...]:
    """Return registered web domains for an outlet id."""
    record = _registry().records.get(outlet_id)
    return record.domains if record else ()


# =============================================================================
# REVIEW KEYS
# =============================================================================


def review_key(outlet: str | None, critic: str | None) -> str:
    """Build the outlet|critic key used to match the same review across sources."""
    return f"{normalize_outlet(outlet)}|{normalize_critic(critic)}"


def review_filename(outlet: str | None, critic: str | None) -> str:
    """Build the standard review file name ``{outlet}--{critic}.json``."""
    return f"{normalize_outlet(outlet)}--{normalize_critic(critic)}.json"
