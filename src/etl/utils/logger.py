"""Batch driver logging configuration with file and console handlers.

Library modules log through ``logging.getLogger(__name__)``; drivers call
``setup_logger("src")`` once so every ``src.*`` logger propagates to the
same console and dated log file.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.settings import settings

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOG_DATE_FORMAT = "%H:%M:%S"
_LOGGERS_CACHE: dict[str, logging.Logger] = {}


def setup_logger(
    name: str,
    level: int | str | None = None,
    log_dir: Path | None = None,
) -> logging.Logger:
    """Configure and return a logger with file and console handlers.

    Args:
        name: Logger name (e.g., 'src' or 'src.audit').
        level: Logging level (default from LOG_LEVEL).
        log_dir: Directory for log files (default from LOG_DIR).

    Returns:
        Configured logger instance.
    """
    if name in _LOGGERS_CACHE:
        return _LOGGERS_CACHE[name]

    resolved_level = _resolve_level(level)

    logger = logging.getLogger(name)
    logger.setLevel(resolved_level)
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(_LOG_FORMAT, _LOG_DATE_FORMAT)

    console_handler = _create_console_handler(formatter, resolved_level)
    logger.addHandler(console_handler)

    file_handler = _create_file_handler(name, formatter, resolved_level, log_dir)
    if file_handler:
        logger.addHandler(file_handler)

    _LOGGERS_CACHE[name] = logger
    return logger


def reset_loggers() -> None:
    """Close handlers of configured loggers and forget them."""
    for logger in _LOGGERS_CACHE.values():
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
    _LOGGERS_CACHE.clear()


def _resolve_level(level: int | str | None) -> int:
    """Convert a level name or None to a logging constant.

    Args:
        level: Level number, name, or None for the configured level.

    Returns:
        Logging level number.
    """
    if level is None:
        level = settings.logging.level
    if isinstance(level, str):
        return logging.getLevelName(level.upper())
    return level


def _create_console_handler(
    formatter: logging.Formatter,
    level: int,
) -> logging.StreamHandler:
    """Create console stream handler.

    Args:
        formatter: Log formatter.
        level: Logging level.

    Returns:
        Configured StreamHandler.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _create_file_handler(
    name: str,
    formatter: logging.Formatter,
    level: int,
    log_dir: Path | None,
) -> logging.FileHandler | None:
    """Create file handler with a dated filename.

    Args:
        name: Logger name for filename.
        formatter: Log formatter.
        level: Logging level.
        log_dir: Directory for log files.

    Returns:
        Configured FileHandler or None on failure.
    """
    try:
        log_path = _get_log_file_path(name, log_dir)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(formatter)
        return handler
    except OSError as e:
        print(f"Warning: Could not create log file: {e}", file=sys.stderr)
        return None


def _get_log_file_path(name: str, log_dir: Path | None) -> Path:
    """Build log file path with date suffix.

    Args:
        name: Logger name.
        log_dir: Base directory for logs.

    Returns:
        Full path to log file.
    """
    if log_dir is None:
        log_dir = settings.paths.logs_dir

    log_dir.mkdir(parents=True, exist_ok=True)

    safe_name = name.replace(".", "_").replace("/", "_")
    date_suffix = datetime.now().strftime("%Y%m%d")
    filename = f"{safe_name}_{date_suffix}.log"

    return log_dir / filename
