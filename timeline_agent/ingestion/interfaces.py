"""
Ingestion layer interface contracts.

This module defines Protocol classes for rate limiting, remote listing
calls and item sources, plus the abstract base classes implementations
inherit from.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncIterator, Optional, Protocol

from timeline_agent.types import CommonItem, ListingWindow, RecordPage


class RateLimiter(Protocol):
    """Interface for bounding outbound requests."""

    async def acquire(self) -> float:
        """
        Wait until a request may be made.

        Returns:
            Seconds spent waiting for a permit
        """
        ...


class RecordApi(Protocol):
    """Interface for the remote "list records" call."""

    async def list_page(
        self,
        collection_id: str,
        time_min: datetime,
        time_max: Optional[datetime],
        page_size: int,
        page_token: Optional[str] = None,
    ) -> RecordPage:
        """
        Fetch one page of non-deleted, single records ordered by start time.

        Args:
            collection_id: Remote collection (e.g. calendar) to list
            time_min: Lower time bound
            time_max: Optional upper time bound
            page_size: Maximum records in the page
            page_token: Continuation token from the previous page

        Returns:
            Page of raw records plus the next continuation token, if any
        """
        ...


class ItemSource(Protocol):
    """Interface for one logical sub-source listed by a single task."""

    name: str

    def list(self, window: ListingWindow) -> AsyncIterator[CommonItem]:
        """
        Lazily list normalized items inside the window.

        Args:
            window: Time bounds of the pass

        Returns:
            Async iterator of items in provider order
        """
        ...


# ============================================================================
# Abstract Base Classes
# ============================================================================


class BaseRateLimiter(ABC):
    """Abstract base class for rate limiter implementations."""

    @abstractmethod
    async def acquire(self) -> float:
        pass

    @abstractmethod
    def available_tokens(self) -> float:
        pass


class BaseItemSource(ABC):
    """Abstract base class for item sources."""

    name: str

    @abstractmethod
    def list(self, window: ListingWindow) -> AsyncIterator[CommonItem]:
        pass
