"""
Prometheus Metrics Module

This module provides Prometheus metrics for session operations and for the
background TTL resync / lazy prune tasks.

Metric names share the redis_user_sessions_ prefix. Labels are limited to
operation and task names so cardinality stays bounded; session and user ids
are never used as label values.
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

# =============================================================================
# Operation Metrics
# =============================================================================

OPERATIONS_TOTAL = Counter(
    name="redis_user_sessions_operations_total",
    documentation="Total number of session operations",
    labelnames=["operation", "outcome"],
)

OPERATION_DURATION_SECONDS = Histogram(
    name="redis_user_sessions_operation_duration_seconds",
    documentation="Session operation duration in seconds",
    labelnames=["operation"],
    buckets=(0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# =============================================================================
# Background Task Metrics
# =============================================================================

BACKGROUND_TASKS_TOTAL = Counter(
    name="redis_user_sessions_background_tasks_total",
    documentation="Total number of background tasks by outcome",
    labelnames=["task", "outcome"],
)

PRUNED_ENTRIES_TOTAL = Counter(
    name="redis_user_sessions_pruned_entries_total",
    documentation="Total number of stale user index entries removed",
)


# =============================================================================
# Recording Helpers
# =============================================================================


@contextmanager
def track_operation(operation: str) -> Generator[None, None, None]:
    """
    Record count, outcome and duration of a session operation.

    The outcome label is the exception class name when the block raises,
    "success" otherwise. Exceptions are always re-raised.

    Args:
        operation: Operation name (e.g., "create", "read")
    """
    start = time.perf_counter()
    outcome = "success"
    try:
        yield
    except Exception as e:
        outcome = type(e).__name__
        raise
    finally:
        OPERATIONS_TOTAL.labels(operation=operation, outcome=outcome).inc()
        OPERATION_DURATION_SECONDS.labels(operation=operation).observe(
            time.perf_counter() - start
        )


def record_background_task(task: str, outcome: str) -> None:
    """
    Record a finished background task.

    Args:
        task: Task name (e.g., "resync_ttl", "prune_expired")
        outcome: "success", "failure" or "cancelled"
    """
    BACKGROUND_TASKS_TOTAL.labels(task=task, outcome=outcome).inc()


def record_pruned_entries(count: int) -> None:
    """Record stale index entries removed by a prune pass."""
    if count > 0:
        PRUNED_ENTRIES_TOTAL.inc(count)


def generate_metrics() -> str:
    """
    Generate Prometheus metrics output.

    Returns:
        Metrics in Prometheus text exposition format
    """
    return generate_latest(REGISTRY).decode("utf-8")
