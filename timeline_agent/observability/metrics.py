"""
Prometheus metrics exporters for the Timeline Agent connectors.

This module defines and exports Prometheus metrics for monitoring:
- Items emitted and records skipped per source
- Listing call outcomes
- Content download attempts
- Rate limiter waits and listing task durations
"""

import time
from functools import wraps
from typing import Callable

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)


# Create a custom registry for this application
metrics_registry = CollectorRegistry()


# ============================================================================
# Ingestion Metrics
# ============================================================================

items_emitted_counter = Counter(
    "timeline_items_emitted_total",
    "Total number of normalized items placed on the output stream",
    ["source"],
    registry=metrics_registry,
)

normalization_errors_counter = Counter(
    "timeline_normalization_errors_total",
    "Total number of raw records skipped because they failed normalization",
    ["source"],
    registry=metrics_registry,
)

listing_requests_counter = Counter(
    "timeline_listing_requests_total",
    "Total number of listing page requests",
    ["source", "status"],  # status: success, failure
    registry=metrics_registry,
)

listing_task_duration = Histogram(
    "timeline_listing_task_duration_seconds",
    "Duration of a listing task in seconds",
    ["source"],
    buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 300, 900, 3600],
    registry=metrics_registry,
)

# ============================================================================
# Content Metrics
# ============================================================================

content_fetch_attempts_counter = Counter(
    "timeline_content_fetch_attempts_total",
    "Total number of content download attempts",
    ["outcome"],  # outcome: success, transport_error, bad_status, unavailable
    registry=metrics_registry,
)

# ============================================================================
# Rate Limiting Metrics
# ============================================================================

rate_limit_wait_seconds = Histogram(
    "timeline_rate_limit_wait_seconds",
    "Time spent waiting for a rate limiter permit",
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30, 60],
    registry=metrics_registry,
)

# ============================================================================
# Application Info
# ============================================================================

app_info = Info(
    "timeline_agent",
    "Application information",
    registry=metrics_registry,
)

app_info.info({
    "name": "Timeline Agent",
    "version": "1.0.0",
})


# ============================================================================
# Decorator Functions for Auto-Instrumentation
# ============================================================================

def track_listing_task(func: Callable):
    """
    Decorator recording the duration of a listing task.

    The decorated coroutine's first argument must expose a ``name``
    attribute, which is used as the ``source`` label.

    Example:
        @track_listing_task
        async def _drain(self, source, stream, window):
            ...
    """
    @wraps(func)
    async def wrapper(self, source, *args, **kwargs):
        start_time = time.time()
        try:
            return await func(self, source, *args, **kwargs)
        finally:
            duration = time.time() - start_time
            listing_task_duration.labels(source=source.name).observe(duration)

    return wrapper


# ============================================================================
# Metrics Endpoint Handler
# ============================================================================

def get_metrics() -> bytes:
    """
    Get Prometheus metrics in text format.

    Returns:
        Metrics data in Prometheus text format
    """
    return generate_latest(metrics_registry)


# ============================================================================
# Helper Functions
# ============================================================================

def record_item_emitted(source: str, count: int = 1):
    """
    Record items placed on the output stream.

    Args:
        source: Listing task name
        count: Number of items
    """
    items_emitted_counter.labels(source=source).inc(count)


def record_normalization_error(source: str):
    """Record a raw record skipped by a listing task."""
    normalization_errors_counter.labels(source=source).inc()
