"""ETL utilities package: logging and the URL discovery cache."""

from src.etl.utils.logger import setup_logger
from src.etl.utils.url_cache import UrlDiscoveryCache, UrlEntry, canonical_url

__all__ = ["UrlDiscoveryCache", "UrlEntry", "canonical_url", "setup_logger"]
