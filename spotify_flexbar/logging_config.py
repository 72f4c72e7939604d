"""Structured logging configuration for the Spotify FlexBar plugin.

This module configures JSON structured logging to file and human-readable console logging.
Logs are written to logs/plugin.log with 10MB rotation and 5 backups.

The plugin also exposes the FlexBar log levels (OFF, ERROR, WARN, INFO, DEBUG)
which the user picks in the plugin configuration. They are applied to the
plugin's own logger tree only, so third-party loggers keep their levels.
"""

import logging
import sys
from collections.abc import Mapping
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

PLUGIN_LOGGER_NAME = "spotify_flexbar"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "PIL")

# FlexBar level names -> stdlib levels. OFF sits above CRITICAL so nothing passes.
LOG_LEVELS: dict[str, int] = {
    "OFF": logging.CRITICAL + 10,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_current_level_name = DEFAULT_LOG_LEVEL


def _json_file_handler(log_file: Path) -> logging.Handler:
    handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(module)s %(lineno)d",
            timestamp=True,
        )
    )
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S"))
    return handler


def setup_logging(log_level: str = DEFAULT_LOG_LEVEL, log_dir: Path | None = None) -> logging.Logger:
    """Install the JSON file handler and the console handler on the root logger.

    The root logger passes everything; the plugin level is applied to the
    ``spotify_flexbar`` logger tree only.

    Args:
        log_level: Plugin log level (OFF, ERROR, WARN/WARNING, INFO, DEBUG)
        log_dir: Directory for ``plugin.log``, defaults to ``logs/`` next to the package

    Returns:
        The root logger
    """
    log_dir = log_dir or Path(__file__).resolve().parent.parent / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.addHandler(_json_file_handler(log_dir / "plugin.log"))
    root_logger.addHandler(_console_handler())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    set_log_level(log_level)
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with structured logging support.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance configured for structured logging
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **extra_fields: Any,
) -> None:
    """Log a message with additional structured context fields.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        **extra_fields: Additional fields to include in JSON log (e.g., key_id, track_id)
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra_fields)


def _normalize_level_name(level_name: str) -> str | None:
    name = level_name.strip().upper()
    if name == "WARNING":
        name = "WARN"
    elif name == "CRITICAL":
        name = "ERROR"
    return name if name in LOG_LEVELS else None


def get_log_level() -> str:
    """Return the name of the currently applied plugin log level."""
    return _current_level_name


def set_log_level(level_name: str) -> bool:
    """Apply a plugin log level to the plugin's logger tree.

    Args:
        level_name: One of OFF, ERROR, WARN, INFO, DEBUG (case-insensitive)

    Returns:
        True if the level was valid and applied, False otherwise
    """
    global _current_level_name

    logger = logging.getLogger(PLUGIN_LOGGER_NAME)
    normalized = _normalize_level_name(level_name) if isinstance(level_name, str) else None
    if normalized is None:
        log_with_context(
            logger,
            "warning",
            "Invalid log level requested",
            requested_level=str(level_name),
            current_level=_current_level_name,
            event_type="log_level_invalid",
        )
        return False

    previous = _current_level_name
    _current_level_name = normalized
    logger.setLevel(LOG_LEVELS[normalized])

    if previous != normalized:
        log_with_context(
            logger,
            "info",
            "Log level updated",
            previous_level=previous,
            new_level=normalized,
            event_type="log_level_changed",
        )
    return True


def update_log_level_from_config(config: Mapping[str, Any] | None) -> str:
    """Read ``logLevel`` from the host's plugin config and apply it.

    Missing or invalid values fall back to INFO.

    Args:
        config: Plugin configuration as delivered by the host

    Returns:
        The level name in effect afterwards
    """
    requested = (config or {}).get("logLevel")
    if isinstance(requested, str) and _normalize_level_name(requested) is not None:
        set_log_level(requested)
    else:
        if requested is not None:
            log_with_context(
                logging.getLogger(PLUGIN_LOGGER_NAME),
                "warning",
                "Invalid logLevel in plugin config, using default",
                requested_level=str(requested),
                default_level=DEFAULT_LOG_LEVEL,
                event_type="log_level_config_invalid",
            )
        set_log_level(DEFAULT_LOG_LEVEL)
    return _current_level_name
