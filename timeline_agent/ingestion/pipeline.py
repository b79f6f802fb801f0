"""
Ingestion pipeline orchestrating concurrent listing tasks.

The pipeline runs one asyncio task per item source, forwards every item
onto a shared ItemStream as it arrives, waits for all tasks to finish,
aggregates their errors and closes the stream exactly once.
"""

import asyncio
import logging
import time
from contextlib import aclosing
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Sequence

from timeline_agent.ingestion.base import AggregateIngestionError, ConfigurationError
from timeline_agent.ingestion.interfaces import BaseItemSource
from timeline_agent.ingestion.stream import ItemStream
from timeline_agent.observability.metrics import record_item_emitted, track_listing_task
from timeline_agent.types import (
    IngestionSummary,
    ListingWindow,
    ListOptions,
    ProcessingStatus,
)

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Lifecycle state of an ingestion pipeline."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


class IngestionPipeline:
    """
    Runs item sources concurrently onto one output stream.

    A pipeline instance runs once: IDLE -> RUNNING -> DRAINING -> CLOSED.

    Example:
        pipeline = IngestionPipeline("google_calendar", [lister])
        summary = await pipeline.run(stream, ListOptions())
    """

    def __init__(self, source_id: str, sources: Sequence[BaseItemSource]):
        """
        Initialize the pipeline.

        Args:
            source_id: Id of the data source being ingested
            sources: One item source per logical sub-source
        """
        if not sources:
            raise ValueError("pipeline needs at least one item source")

        names = [source.name for source in sources]
        if len(set(names)) != len(names):
            raise ValueError(f"item source names must be unique: {names}")

        self.source_id = source_id
        self.sources = list(sources)
        self.state = PipelineState.IDLE
        self._emitted: Dict[str, int] = {source.name: 0 for source in self.sources}

    async def run(self, stream: ItemStream, options: ListOptions) -> IngestionSummary:
        """
        List every source onto the stream.

        The stream is closed exactly once, after every listing task has
        terminated, whatever the outcome.

        Args:
            stream: Output stream; closed by this call
            options: Invocation options from the host

        Returns:
            Summary of the run

        Raises:
            ConfigurationError: If file import is requested
            AggregateIngestionError: If one or more listing tasks failed
            asyncio.CancelledError: If the calling task is cancelled
            TimeoutError: If options.timeout_seconds elapses
        """
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"pipeline already ran (state={self.state.value})")

        started_at = datetime.now(timezone.utc)
        start_time = time.time()

        try:
            if options.file_import_path:
                raise ConfigurationError("importing data from a file is not supported")

            self.state = PipelineState.RUNNING
            logger.info(f"Starting {len(self.sources)} listing task(s) for {self.source_id}")

            async with asyncio.timeout(options.timeout_seconds):
                errors = await self._run_tasks(stream, options.window)
        finally:
            self.state = PipelineState.DRAINING
            stream.close()
            self.state = PipelineState.CLOSED

        summary = IngestionSummary(
            source_id=self.source_id,
            status=ProcessingStatus.FAILED if errors else ProcessingStatus.COMPLETED,
            items_emitted=sum(self._emitted.values()),
            items_skipped=sum(len(getattr(s, "skipped", ())) for s in self.sources),
            errors=[f"{name}: {error}" for name, error in errors.items()],
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            duration_seconds=time.time() - start_time,
        )

        if errors:
            logger.error(
                f"Ingestion of {self.source_id} failed: {len(errors)} of "
                f"{len(self.sources)} listing task(s) errored after "
                f"{summary.items_emitted} items"
            )
            raise AggregateIngestionError(errors)

        logger.info(
            f"Ingestion of {self.source_id} completed: {summary.items_emitted} items, "
            f"{summary.items_skipped} skipped in {summary.duration_seconds:.2f}s"
        )
        return summary

    async def _run_tasks(
        self, stream: ItemStream, window: ListingWindow
    ) -> Dict[str, BaseException]:
        tasks: List[asyncio.Task] = [
            asyncio.create_task(self._drain(source, stream, window), name=source.name)
            for source in self.sources
        ]

        try:
            # Not fail-fast: every task runs to completion before we report
            await asyncio.wait(tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await self._wait_all(tasks)
            logger.warning(
                f"Ingestion of {self.source_id} {ProcessingStatus.CANCELLED.value} "
                f"after {sum(self._emitted.values())} items"
            )
            raise

        errors: Dict[str, BaseException] = {}
        for source, task in zip(self.sources, tasks):
            error = task.exception() if not task.cancelled() else asyncio.CancelledError()
            if error is not None:
                logger.error(
                    f"[{self.source_id}] A listing task errored: {source.name}: {error}",
                    exc_info=error,
                )
                errors[source.name] = error
        return errors

    @staticmethod
    async def _wait_all(tasks: List[asyncio.Task]) -> None:
        # The stream must outlive every producer, even if we are cancelled again
        pending = set(tasks)
        while pending:
            try:
                _, pending = await asyncio.wait(pending)
            except asyncio.CancelledError:
                pending = {task for task in pending if not task.done()}

    @track_listing_task
    async def _drain(
        self, source: BaseItemSource, stream: ItemStream, window: ListingWindow
    ) -> None:
        async with aclosing(source.list(window)) as items:
            async for item in items:
                await stream.send(item)
                self._emitted[source.name] += 1
                record_item_emitted(source.name)
