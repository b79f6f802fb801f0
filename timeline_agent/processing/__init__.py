"""
Processing module for Timeline Agent connectors.

Main Components:
- MetadataNormalizer: Maps raw provider records onto CommonItem
- ContentFetcher: Lazily downloads binary content behind a FileRef

Usage:
    >>> from timeline_agent.processing import MetadataNormalizer
    >>> normalizer = MetadataNormalizer("google_calendar")
    >>> item = normalizer.normalize(raw_event)
"""

from timeline_agent.processing.normalizer import (
    MetadataNormalizer,
    parse_duration,
    parse_timestamp,
)
from timeline_agent.processing.content_fetcher import (
    ContentFetcher,
    ContentStream,
    build_download_url,
    is_ready,
)

__all__ = [
    "MetadataNormalizer",
    "parse_duration",
    "parse_timestamp",
    "ContentFetcher",
    "ContentStream",
    "build_download_url",
    "is_ready",
]
