"""
Observability module for metrics and logging.

This module provides observability for the Timeline Agent connectors:
- Prometheus metrics exporters
- Structured logging with per-task context
"""

from timeline_agent.observability.metrics import (
    metrics_registry,
    items_emitted_counter,
    normalization_errors_counter,
    listing_requests_counter,
    listing_task_duration,
    content_fetch_attempts_counter,
    rate_limit_wait_seconds,
    get_metrics,
)

from timeline_agent.observability.logging import (
    setup_logging,
    setup_logging_from_env,
    log_context,
    add_log_context,
    clear_log_context,
)

__all__ = [
    # Metrics
    "metrics_registry",
    "items_emitted_counter",
    "normalization_errors_counter",
    "listing_requests_counter",
    "listing_task_duration",
    "content_fetch_attempts_counter",
    "rate_limit_wait_seconds",
    "get_metrics",
    # Logging
    "setup_logging",
    "setup_logging_from_env",
    "log_context",
    "add_log_context",
    "clear_log_context",
]
