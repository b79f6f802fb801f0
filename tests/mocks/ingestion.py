"""
Mock ingestion implementations for testing.

These mocks stand in for the clock, the rate limiter, the remote
listing call and whole item sources, so listing and pipeline behavior
can be tested without a network or real time passing.
"""

import asyncio
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Sequence, Union

from timeline_agent.ingestion.base import NormalizationError
from timeline_agent.ingestion.interfaces import BaseItemSource, BaseRateLimiter
from timeline_agent.ingestion.stream import ItemStream
from timeline_agent.types import CommonItem, ListingWindow, RecordPage


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        # Still a suspension point, like the real sleep
        await asyncio.sleep(0)


class RecordingRateLimiter(BaseRateLimiter):
    """Rate limiter that never waits and counts permits."""

    def __init__(self):
        self.permits = 0

    async def acquire(self) -> float:
        self.permits += 1
        return 0.0

    def available_tokens(self) -> float:
        return float("inf")


class FakeRecordApi:
    """
    Scripted listing call.

    Each call returns (or raises) the next scripted page; every call's
    arguments are recorded in ``calls``.
    """

    def __init__(self, pages: Sequence[Union[RecordPage, Exception]]):
        self.pages = list(pages)
        self.calls: List[Dict] = []

    async def list_page(
        self,
        collection_id: str,
        time_min: datetime,
        time_max: Optional[datetime],
        page_size: int,
        page_token: Optional[str] = None,
    ) -> RecordPage:
        self.calls.append(
            {
                "collection_id": collection_id,
                "time_min": time_min,
                "time_max": time_max,
                "page_size": page_size,
                "page_token": page_token,
            }
        )
        page = self.pages.pop(0)
        if isinstance(page, Exception):
            raise page
        return page


class StaticItemSource(BaseItemSource):
    """
    Item source yielding a fixed list of items.

    Optionally waits on ``gate`` before yielding, raises ``error`` after
    the last item, and reports skipped records. When cancelled, it waits
    on ``cleanup_gate`` (if given) before finishing.
    """

    def __init__(
        self,
        name: str,
        items: Sequence[CommonItem] = (),
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
        skipped: int = 0,
        cleanup_gate: Optional[asyncio.Event] = None,
    ):
        self.name = name
        self.items = list(items)
        self.error = error
        self.gate = gate
        self.skipped = [NormalizationError("bad record") for _ in range(skipped)]
        self.cleanup_gate = cleanup_gate

        self.started = asyncio.Event()
        self.cleaning_up = asyncio.Event()
        self.finished = False
        self.cancelled = False

    async def list(self, window: ListingWindow) -> AsyncIterator[CommonItem]:
        self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
            for item in self.items:
                yield item
            if self.error is not None:
                raise self.error
        except asyncio.CancelledError:
            self.cancelled = True
            if self.cleanup_gate is not None:
                self.cleaning_up.set()
                await self.cleanup_gate.wait()
            raise
        finally:
            self.finished = True


class CountingItemStream(ItemStream):
    """ItemStream that counts close() calls."""

    def __init__(self, maxsize: int = 100):
        super().__init__(maxsize=maxsize)
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        super().close()
