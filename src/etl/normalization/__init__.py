"""Entity normalization: canonical keys for titles, critics and outlets.

Example:
    >>> from src.etl.normalization import normalize_title, normalize_outlet
    >>> normalize_title("Sweeney Todd: The Demon Barber of Fleet Street")
    'sweeney todd'
    >>> normalize_outlet("https://www.nytimes.com/2024/04/25/theater/review.html")
    'nytimes'
"""

from src.etl.normalization.aliases import (
    AliasTable,
    OutletRecord,
    OutletRegistry,
    load_alias_table,
    load_outlet_registry,
)
from src.etl.normalization.normalizer import (
    UNKNOWN,
    base_title,
    extract_domain,
    is_known_critic,
    is_known_outlet,
    normalize_critic,
    normalize_outlet,
    normalize_title,
    outlet_display_name,
    outlet_domains,
    outlet_for_domain,
    review_filename,
    review_key,
    show_slug,
    slugify,
)

__all__ = [
    # Normalizers
    "normalize_title",
    "normalize_critic",
    "normalize_outlet",
    "base_title",
    "slugify",
    "show_slug",
    # Outlets
    "extract_domain",
    "outlet_for_domain",
    "outlet_display_name",
    "outlet_domains",
    "is_known_outlet",
    "is_known_critic",
    # Review keys
    "review_key",
    "review_filename",
    "UNKNOWN",
    # Alias tables
    "AliasTable",
    "OutletRecord",
    "OutletRegistry",
    "load_alias_table",
    "load_outlet_registry",
]
