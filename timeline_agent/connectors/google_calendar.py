"""
Google Calendar connector.

Lists upcoming, non-deleted events of one or more calendars, expanding
recurring events into single instances, and streams them as CommonItems.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import quote

import aiohttp
import httpx

from timeline_agent.config import ConnectorSettings, load_connector_settings
from timeline_agent.ingestion.base import (
    Connector,
    MalformedResponseError,
    SourceRegistry,
)
from timeline_agent.ingestion.interfaces import BaseRateLimiter
from timeline_agent.ingestion.lister import PaginatedLister
from timeline_agent.ingestion.pipeline import IngestionPipeline
from timeline_agent.ingestion.rate_limiter import TokenBucketRateLimiter
from timeline_agent.ingestion.stream import ItemStream
from timeline_agent.ingestion.transport import AuthenticatedTransport
from timeline_agent.observability.logging import log_context
from timeline_agent.processing.content_fetcher import ContentFetcher
from timeline_agent.processing.normalizer import MetadataNormalizer
from timeline_agent.types import (
    CommonItem,
    DataSource,
    IngestionSummary,
    ListOptions,
    RateLimitConfig,
    RecordPage,
)

logger = logging.getLogger(__name__)

DATA_SOURCE = DataSource(
    id="google_calendar",
    name="Google Calendar",
    oauth_provider="google",
    scopes=("https://www.googleapis.com/auth/calendar.readonly",),
    rate_limit=RateLimitConfig(
        requests_per_hour=10000 / 24,
        burst_size=3,
    ),
)

DEFAULT_CALENDAR_IDS = ("primary",)


def format_rfc3339(value: datetime) -> str:
    """Format a datetime for the API; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class GoogleCalendarApi:
    """The events.list call of the Calendar v3 API."""

    def __init__(self, transport: AuthenticatedTransport, base_url: str):
        self.transport = transport
        self.base_url = base_url.rstrip("/")

    async def list_page(
        self,
        collection_id: str,
        time_min: datetime,
        time_max: Optional[datetime],
        page_size: int,
        page_token: Optional[str] = None,
    ) -> RecordPage:
        url = f"{self.base_url}/calendars/{quote(collection_id, safe='')}/events"
        params = {
            "showDeleted": "false",
            "singleEvents": "true",
            "timeMin": format_rfc3339(time_min),
            "maxResults": page_size,
            "orderBy": "startTime",
        }
        if time_max is not None:
            params["timeMax"] = format_rfc3339(time_max)
        if page_token:
            params["pageToken"] = page_token

        data = await self.transport.get_json(url, params=params)

        items = data.get("items", [])
        next_page_token = data.get("nextPageToken")
        if not isinstance(items, list):
            raise MalformedResponseError(
                f"'items' in events response is a {type(items).__name__}, expected a list"
            )
        if next_page_token is not None and not isinstance(next_page_token, str):
            raise MalformedResponseError("'nextPageToken' in events response is not a string")

        return RecordPage(items=items, next_page_token=next_page_token or None)


class GoogleCalendarConnector(Connector):
    """
    Connector for Google Calendar.

    One listing task runs per calendar id; all of them share the
    connector's rate limiter and output stream.

    Example:
        connector = GoogleCalendarConnector(client, calendar_ids=["primary"])
        stream = connector.create_stream()
        task = asyncio.create_task(connector.list_items(stream, ListOptions()))
        async for item in stream:
            ...
        summary = await task
    """

    data_source = DATA_SOURCE

    def __init__(
        self,
        client: httpx.AsyncClient,
        calendar_ids: Iterable[str] = DEFAULT_CALENDAR_IDS,
        settings: Optional[ConnectorSettings] = None,
        rate_limiter: Optional[BaseRateLimiter] = None,
    ):
        """
        Initialize the connector.

        Args:
            client: Pre-authenticated HTTP client supplied by the host
            calendar_ids: Calendars to list, one listing task each
            settings: Connector settings (loaded from the environment if None)
            rate_limiter: Limiter shared by all listing tasks (built from
                the declared rate limit if None)
        """
        super().__init__()

        self.calendar_ids = list(dict.fromkeys(calendar_ids))
        if not self.calendar_ids:
            raise ValueError("at least one calendar id is required")

        self.settings = settings or load_connector_settings()
        self.api = GoogleCalendarApi(
            AuthenticatedTransport(client), self.settings.api_base_url
        )
        self.normalizer = MetadataNormalizer(self.data_source.id)
        self.rate_limiter = rate_limiter or TokenBucketRateLimiter.from_config(
            self.data_source.rate_limit
        )

    def create_listers(self) -> List[PaginatedLister]:
        """Build a fresh lister per calendar; listers are single-pass."""
        return [
            PaginatedLister(
                name=f"{self.data_source.id}/{calendar_id}",
                api=self.api,
                collection_id=calendar_id,
                normalizer=self.normalizer,
                rate_limiter=self.rate_limiter,
                page_size=self.settings.page_size,
            )
            for calendar_id in self.calendar_ids
        ]

    def create_stream(self) -> ItemStream[CommonItem]:
        return ItemStream(maxsize=self.settings.stream_buffer_size)

    async def list_items(
        self, stream: ItemStream, options: ListOptions
    ) -> IngestionSummary:
        pipeline = IngestionPipeline(self.data_source.id, self.create_listers())

        with log_context(source_id=self.data_source.id):
            return await pipeline.run(stream, options)

    def content_fetcher(
        self, session: Optional[aiohttp.ClientSession] = None
    ) -> ContentFetcher:
        """
        Build a content fetcher configured from the connector settings.

        Args:
            session: aiohttp session to reuse (the fetcher owns one if None)
        """
        return ContentFetcher(
            session=session,
            max_attempts=self.settings.fetch_max_attempts,
            transport_retry_delay=self.settings.fetch_transport_retry_delay,
            status_retry_delay=self.settings.fetch_status_retry_delay,
            timeout_seconds=self.settings.fetch_timeout_seconds,
            body_snippet_limit=self.settings.body_snippet_limit,
        )


def register(registry: SourceRegistry) -> None:
    """Register the Google Calendar source with a host registry."""
    registry.register(DATA_SOURCE, GoogleCalendarConnector)
    logger.info(f"Registered data source: {DATA_SOURCE.id}")
