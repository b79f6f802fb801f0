"""
Paginated listing of remote records.

A PaginatedLister walks one remote collection page by page, taking a
rate limiter permit before every call, and yields each record normalized
into a CommonItem. Records that fail normalization are skipped and
recorded; listing errors end the pass.
"""

import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, List, Optional, Set

from timeline_agent.ingestion.base import MalformedResponseError, NormalizationError
from timeline_agent.ingestion.interfaces import BaseItemSource, BaseRateLimiter, RecordApi
from timeline_agent.observability.logging import log_context
from timeline_agent.observability.metrics import (
    listing_requests_counter,
    record_normalization_error,
)
from timeline_agent.processing.normalizer import MetadataNormalizer
from timeline_agent.types import CommonItem, ListingWindow

logger = logging.getLogger(__name__)

# Upper bound on records requested per listing call
MAX_PAGE_SIZE = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaginatedLister(BaseItemSource):
    """
    Lists one collection of a remote source.

    Attributes:
        name: Task name used in logs, metrics and aggregated errors
        skipped: Normalization errors of records skipped so far
        pages_fetched: Number of listing calls made so far
    """

    def __init__(
        self,
        name: str,
        api: RecordApi,
        collection_id: str,
        normalizer: MetadataNormalizer,
        rate_limiter: BaseRateLimiter,
        page_size: int = MAX_PAGE_SIZE,
        now: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the lister.

        Args:
            name: Task name, e.g. "google_calendar/primary"
            api: Remote listing call
            collection_id: Remote collection to list (e.g. a calendar id)
            normalizer: Maps raw records onto CommonItem
            rate_limiter: Limiter shared by all listers of the connector
            page_size: Records per call, capped at MAX_PAGE_SIZE
            now: Clock used when the window has no start
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")

        self.name = name
        self.api = api
        self.collection_id = collection_id
        self.normalizer = normalizer
        self.rate_limiter = rate_limiter
        self.page_size = min(page_size, MAX_PAGE_SIZE)
        self._now = now

        self.skipped: List[NormalizationError] = []
        self.pages_fetched = 0

    async def list(self, window: ListingWindow) -> AsyncIterator[CommonItem]:
        """
        Yield items inside the window in the provider's order.

        Without a window start only current and future records are listed.

        Args:
            window: Time bounds of the pass

        Yields:
            Normalized items, ascending by start time

        Raises:
            TransportError: If a listing call fails
            MalformedResponseError: If the provider repeats a continuation token
        """
        time_min = window.start or self._now()
        page_token: Optional[str] = None
        seen_tokens: Set[str] = set()

        with log_context(source=self.name, collection_id=self.collection_id):
            while True:
                await self.rate_limiter.acquire()

                try:
                    page = await self.api.list_page(
                        self.collection_id,
                        time_min=time_min,
                        time_max=window.end,
                        page_size=self.page_size,
                        page_token=page_token,
                    )
                except Exception:
                    listing_requests_counter.labels(source=self.name, status="failure").inc()
                    raise

                listing_requests_counter.labels(source=self.name, status="success").inc()
                self.pages_fetched += 1
                logger.debug(
                    f"Fetched page {self.pages_fetched} with {len(page.items)} records"
                )

                for raw in page.items:
                    try:
                        item = self.normalizer.normalize(raw)
                    except NormalizationError as e:
                        self.skipped.append(e)
                        record_normalization_error(self.name)
                        logger.warning(f"Skipping record: {e}")
                        continue
                    yield item

                page_token = page.next_page_token
                if not page_token:
                    break
                if page_token in seen_tokens:
                    raise MalformedResponseError(
                        f"continuation token repeated after page {self.pages_fetched}"
                    )
                seen_tokens.add(page_token)

        logger.info(
            f"Listing of {self.name} finished: {self.pages_fetched} pages, "
            f"{len(self.skipped)} records skipped"
        )
