"""
Bounded output stream connecting listing tasks to the host.

Many listing tasks may send onto one stream concurrently; a single
consumer drains it. Sending suspends while the buffer is full, so a slow
consumer throttles the producers instead of letting items pile up.
Closing is a one-time event that consumers observe as the end of
iteration once every buffered item has been received.
"""

import asyncio
import logging
from typing import AsyncIterator, Generic, TypeVar

from timeline_agent.ingestion.base import StreamClosedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class ItemStream(Generic[T]):
    """
    Closable multi-producer, single-consumer async stream.

    Example:
        stream = ItemStream(maxsize=100)
        task = asyncio.create_task(connector.list_items(stream, options))
        async for item in stream:
            store(item)
        await task
    """

    def __init__(self, maxsize: int = 100):
        """
        Initialize the stream.

        Args:
            maxsize: Maximum number of buffered items before send() suspends
        """
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")

        self.maxsize = maxsize
        self._queue: asyncio.Queue = asyncio.Queue()
        self._slots = asyncio.Semaphore(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        """Number of items buffered and not yet received."""
        # A closed stream always holds exactly one close marker
        return self._queue.qsize() - (1 if self._closed else 0)

    async def send(self, item: T) -> None:
        """
        Place an item on the stream, waiting for buffer space.

        Raises:
            StreamClosedError: If the stream has been closed
        """
        if self._closed:
            raise StreamClosedError("send on closed stream")

        await self._slots.acquire()
        if self._closed:
            self._slots.release()
            raise StreamClosedError("send on closed stream")

        self._queue.put_nowait(item)

    def close(self) -> None:
        """
        Close the stream. Buffered items remain receivable.

        Raises:
            StreamClosedError: If the stream is already closed
        """
        if self._closed:
            raise StreamClosedError("stream already closed")

        self._closed = True
        # The close marker bypasses the buffer bound so close never blocks
        self._queue.put_nowait(_CLOSED)
        logger.debug("Item stream closed")

    async def receive(self) -> T:
        """
        Receive the next item.

        Raises:
            StreamClosedError: If the stream is closed and drained
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any later receive()
            self._queue.put_nowait(_CLOSED)
            raise StreamClosedError("stream closed")

        self._slots.release()
        return item

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.receive()
        except StreamClosedError:
            raise StopAsyncIteration
