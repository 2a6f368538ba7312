"""
Observability Package

This package provides observability infrastructure including:
- Structured JSON logging (structlog)
- Prometheus metrics (prometheus_client)
"""

from redis_user_sessions.observability.logging import (
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    reset_logging,
)
from redis_user_sessions.observability.metrics import (
    generate_metrics,
    record_background_task,
    record_pruned_entries,
    track_operation,
)

__all__ = [
    # Logging
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "reset_logging",
    # Metrics
    "generate_metrics",
    "record_background_task",
    "record_pruned_entries",
    "track_operation",
]
