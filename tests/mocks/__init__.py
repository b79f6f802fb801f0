"""
Mock implementations for testing.

These mocks replace the network, the clock and whole listing tasks so
each layer can be tested on its own.
"""

from tests.mocks.ingestion import (
    FakeClock,
    RecordingRateLimiter,
    FakeRecordApi,
    StaticItemSource,
    CountingItemStream,
)
from tests.mocks.network import (
    FakeStreamReader,
    FakeResponse,
    FakeSession,
)

__all__ = [
    "FakeClock",
    "RecordingRateLimiter",
    "FakeRecordApi",
    "StaticItemSource",
    "CountingItemStream",
    "FakeStreamReader",
    "FakeResponse",
    "FakeSession",
]
