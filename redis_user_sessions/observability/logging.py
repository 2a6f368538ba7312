"""
Structured Logging Module

This module configures structlog for the session layer and exposes
get_logger() for the rest of the package.

Pattern: Structured logging for observability
Pattern: Singleton configuration (configure once at startup)
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

import structlog
from structlog.types import EventDict, Processor


_configured: bool = False


# =============================================================================
# Custom Processors
# =============================================================================


def add_timestamp(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO 8601 timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def rename_level(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename log_level to level for cleaner output."""
    if "log_level" in event_dict:
        event_dict["level"] = event_dict.pop("log_level")
    return event_dict


# =============================================================================
# Singleton Configuration
# =============================================================================


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    json_output: bool = True,
    force: bool = False,
) -> None:
    """
    Configure structlog for the application.

    This should be called once at startup. Subsequent calls are no-ops
    unless force=True.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream (default: sys.stdout)
        json_output: Render JSON lines; console renderer when False
        force: Force reconfiguration (for testing only)

    Example:
        >>> configure_logging(level="DEBUG")
        >>> logger = get_logger(__name__)
    """
    global _configured

    if _configured and not force:
        return

    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        add_timestamp,
        rename_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """
    Reset logging configuration state.

    WARNING: This should only be used in tests.
    """
    global _configured
    _configured = False


def configure_logging_from_settings() -> None:
    """
    Configure logging from Settings unless logging is already configured.

    Leaves an existing structlog configuration, including one made by the
    host application, untouched.
    """
    if _configured or structlog.is_configured():
        return

    from redis_user_sessions.core.config import get_settings

    settings = get_settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)


# =============================================================================
# Logger Factory
# =============================================================================


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger bound to `name`.

    The logger is resolved against the structlog configuration current at
    each call, so module-level loggers follow a later configure_logging().

    Args:
        name: Logger name (typically module name)

    Returns:
        Lazy structlog logger

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("session created", session_id="abc")
    """
    return structlog.get_logger(logger=name)


def _level_to_int(level: str) -> int:
    """Convert level string to logging int."""
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level.upper(), logging.INFO)
