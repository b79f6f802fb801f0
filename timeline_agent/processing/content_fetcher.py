"""
Content fetcher for out-of-band binary payloads.

Items reference their binary content through a FileRef; the bytes are
only downloaded when a consumer asks for them. Downloads are retried a
bounded number of times with a delay between attempts.
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

import aiohttp

from timeline_agent.ingestion.base import ContentFetchError
from timeline_agent.observability.metrics import content_fetch_attempts_counter
from timeline_agent.types import FileRef, MediaKind

logger = logging.getLogger(__name__)

# Processing status the provider reports once a payload can be downloaded
READY_STATUS = "READY"

# URL suffixes selecting the full-resolution download with metadata kept
_DOWNLOAD_SUFFIXES = {
    MediaKind.PHOTO: "=d",
    MediaKind.VIDEO: "=dv",
}


def build_download_url(file_ref: FileRef) -> str:
    """Append the media-kind specific download suffix to the base URL."""
    return file_ref.url + _DOWNLOAD_SUFFIXES.get(file_ref.media_kind, "")


def is_ready(file_ref: FileRef) -> bool:
    """Whether the provider has finished processing the payload."""
    if file_ref.processing_status is None:
        return True
    return file_ref.processing_status.upper() == READY_STATUS


class ContentStream:
    """
    Readable byte stream over a successful download.

    The caller owns the stream and must close it, preferably with
    ``async with``.
    """

    def __init__(self, response: aiohttp.ClientResponse, file_ref: FileRef):
        self._response = response
        self.file_ref = file_ref
        self.url = str(response.url)
        self.mime_type = response.headers.get("Content-Type") or file_ref.mime_type
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def read(self, n: int = -1) -> bytes:
        """Read up to n bytes, or everything that is left when n is -1."""
        return await self._response.content.read(n)

    async def iter_chunks(self, chunk_size: int = 64 * 1024) -> AsyncIterator[bytes]:
        async for chunk in self._response.content.iter_chunked(chunk_size):
            yield chunk

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._response.release()

    async def __aenter__(self) -> "ContentStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ContentFetcher:
    """
    Downloads binary content referenced by FileRefs.

    Each fetch makes up to ``max_attempts`` GET requests. A transport
    failure waits ``transport_retry_delay`` before the next attempt, a
    non-200 response waits ``status_retry_delay``. Waiting goes through
    an awaitable sleep, so cancelling the calling task interrupts it.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        max_attempts: int = 5,
        transport_retry_delay: float = 30.0,
        status_retry_delay: float = 15.0,
        timeout_seconds: float = 300.0,
        body_snippet_limit: int = 256 * 1024,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the content fetcher.

        Args:
            session: aiohttp session to use (one is created and owned if None)
            max_attempts: Maximum download attempts per fetch
            transport_retry_delay: Seconds to wait after a transport failure
            status_retry_delay: Seconds to wait after a non-200 response
            timeout_seconds: Connect timeout and idle read timeout of a
                download; a slow but steady stream is never cut off
            body_snippet_limit: Bytes of an error body quoted in errors
            sleep: Awaitable sleep (injectable for tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._session = session
        self._owns_session = session is None
        self.max_attempts = max_attempts
        self.transport_retry_delay = transport_retry_delay
        self.status_retry_delay = status_retry_delay
        self.timeout_seconds = timeout_seconds
        self.body_snippet_limit = body_snippet_limit
        self._sleep = sleep

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def fetch(self, file_ref: FileRef) -> Optional[ContentStream]:
        """
        Download the content behind a FileRef.

        Args:
            file_ref: Reference taken from a CommonItem

        Returns:
            Open stream positioned at the start of the content, or None if
            the provider has not finished processing the payload

        Raises:
            ContentFetchError: The last error seen once all attempts failed
        """
        if not is_ready(file_ref):
            logger.info(
                f"Skipping file because it is not ready "
                f"(status={file_ref.processing_status} filename={file_ref.filename})"
            )
            content_fetch_attempts_counter.labels(outcome="unavailable").inc()
            return None

        url = build_download_url(file_ref)
        session = self._get_session()
        last_error: Optional[ContentFetchError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await session.get(url, timeout=self._client_timeout())
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = ContentFetchError(
                    f"getting item contents: {e.__class__.__name__}: {e}",
                    url=url,
                    attempts=attempt,
                )
                last_error.__cause__ = e
                content_fetch_attempts_counter.labels(outcome="transport_error").inc()
                logger.error(
                    f"{url}: {last_error} - retrying... "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                await self._backoff(attempt, self.transport_retry_delay)
                continue

            if response.status != 200:
                last_error = await self._bad_status_error(response, url, attempt)
                content_fetch_attempts_counter.labels(outcome="bad_status").inc()
                logger.error(
                    f"{url}: Bad response: {last_error} - waiting and retrying... "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                await self._backoff(attempt, self.status_retry_delay)
                continue

            content_fetch_attempts_counter.labels(outcome="success").inc()
            return ContentStream(response, file_ref)

        raise last_error

    def _client_timeout(self) -> aiohttp.ClientTimeout:
        # No total cap: it would also bound the caller reading the stream
        return aiohttp.ClientTimeout(
            total=None,
            sock_connect=self.timeout_seconds,
            sock_read=self.timeout_seconds,
        )

    async def _backoff(self, attempt: int, delay: float) -> None:
        # No point waiting once the last attempt has failed
        if attempt < self.max_attempts and delay > 0:
            await self._sleep(delay)

    async def _read_snippet(self, response: aiohttp.ClientResponse) -> bytes:
        # read(n) returns what is buffered, which may be less than n
        body = bytearray()
        while len(body) < self.body_snippet_limit:
            chunk = await response.content.read(self.body_snippet_limit - len(body))
            if not chunk:
                break
            body.extend(chunk)
        return bytes(body)

    async def _bad_status_error(
        self, response: aiohttp.ClientResponse, url: str, attempt: int
    ) -> ContentFetchError:
        try:
            body = await self._read_snippet(response)
            message = (
                f"HTTP {response.status}: {response.reason}: "
                f">>> {body.decode('utf-8', errors='replace')} <<<"
            )
        except (aiohttp.ClientError, asyncio.TimeoutError):
            message = f"HTTP {response.status}: {response.reason}"
        finally:
            response.release()

        return ContentFetchError(
            message, url=url, attempts=attempt, status_code=response.status
        )

    async def close(self) -> None:
        """Close the session if this fetcher created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "ContentFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
