"""
Unit tests for the ingestion pipeline.

Tests cover:
- Fan-in of several listing tasks onto one stream
- Error aggregation across tasks
- Exactly-once stream close on success, failure, cancellation and timeout
- Rejection of unsupported invocation modes
"""

import asyncio
import pytest

from timeline_agent.ingestion.base import (
    AggregateIngestionError,
    ConfigurationError,
    TransportError,
)
from timeline_agent.ingestion.pipeline import IngestionPipeline, PipelineState
from timeline_agent.types import ListOptions, ProcessingStatus
from tests.fixtures import create_sample_items
from tests.mocks import CountingItemStream, StaticItemSource


async def run_and_consume(pipeline, stream, options=None):
    """Run a pipeline while draining its stream; return (items, task)."""
    task = asyncio.create_task(pipeline.run(stream, options or ListOptions()))
    items = [item async for item in stream]
    await asyncio.wait([task])
    return items, task


# ============================================================================
# Success Tests
# ============================================================================


@pytest.mark.asyncio
async def test_all_items_are_streamed():
    """Test that items from every source reach the stream."""
    sources = [
        StaticItemSource("a", create_sample_items(3, prefix="a")),
        StaticItemSource("b", create_sample_items(2, prefix="b"), skipped=1),
    ]
    pipeline = IngestionPipeline("test", sources)
    stream = CountingItemStream()

    items, task = await run_and_consume(pipeline, stream)
    summary = task.result()

    assert sorted(item.id for item in items) == ["a-0", "a-1", "a-2", "b-0", "b-1"]
    assert summary.status == ProcessingStatus.COMPLETED
    assert summary.items_emitted == 5
    assert summary.items_skipped == 1
    assert summary.errors == []
    assert stream.close_calls == 1
    assert pipeline.state == PipelineState.CLOSED


@pytest.mark.asyncio
async def test_per_source_order_is_preserved():
    """Test that each source's items keep their relative order."""
    sources = [
        StaticItemSource("a", create_sample_items(5, prefix="a")),
        StaticItemSource("b", create_sample_items(5, prefix="b")),
    ]
    stream = CountingItemStream(maxsize=1)

    items, _ = await run_and_consume(IngestionPipeline("test", sources), stream)

    for prefix in ("a", "b"):
        ids = [item.id for item in items if item.id.startswith(prefix)]
        assert ids == [f"{prefix}-{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_stream_stays_open_until_every_task_finishes():
    """Test that a finished task does not close the stream for the others."""
    gate = asyncio.Event()
    fast = StaticItemSource("fast", create_sample_items(2, prefix="fast"))
    slow = StaticItemSource("slow", create_sample_items(1, prefix="slow"), gate=gate)
    stream = CountingItemStream()

    task = asyncio.create_task(IngestionPipeline("test", [fast, slow]).run(stream, ListOptions()))
    received = [await stream.receive(), await stream.receive()]
    await asyncio.sleep(0.01)

    assert fast.finished
    assert not stream.closed

    gate.set()
    received.extend([item async for item in stream])
    await task

    assert len(received) == 3
    assert stream.close_calls == 1


# ============================================================================
# Error Aggregation Tests
# ============================================================================


@pytest.mark.asyncio
async def test_failed_task_does_not_stop_others():
    """Test that one task's failure is reported after all items are delivered."""
    sources = [
        StaticItemSource("a", create_sample_items(3, prefix="a"), error=TransportError("boom")),
        StaticItemSource("b", create_sample_items(2, prefix="b")),
    ]
    stream = CountingItemStream()

    items, task = await run_and_consume(IngestionPipeline("test", sources), stream)

    assert len(items) == 5
    error = task.exception()
    assert isinstance(error, AggregateIngestionError)
    assert str(error) == "one or more errors: a: boom"
    assert set(error.errors) == {"a"}
    assert stream.close_calls == 1


@pytest.mark.asyncio
async def test_all_failures_are_aggregated():
    """Test that every failing task appears in the aggregated error."""
    sources = [
        StaticItemSource("a", error=TransportError("first")),
        StaticItemSource("b", error=TransportError("second")),
    ]
    stream = CountingItemStream()

    _, task = await run_and_consume(IngestionPipeline("test", sources), stream)

    error = task.exception()
    assert isinstance(error, AggregateIngestionError)
    assert str(error) == "one or more errors: a: first, b: second"
    assert stream.close_calls == 1


# ============================================================================
# Configuration Tests
# ============================================================================


@pytest.mark.asyncio
async def test_file_import_is_rejected_before_listing():
    """Test that file import fails up front and still closes the stream."""
    source = StaticItemSource("a", create_sample_items(1))
    pipeline = IngestionPipeline("test", [source])
    stream = CountingItemStream()

    with pytest.raises(ConfigurationError):
        await pipeline.run(stream, ListOptions(file_import_path="/tmp/export.zip"))

    assert not source.started.is_set()
    assert stream.close_calls == 1
    assert pipeline.state == PipelineState.CLOSED


@pytest.mark.asyncio
async def test_pipeline_runs_once():
    """Test that a pipeline cannot be reused."""
    pipeline = IngestionPipeline("test", [StaticItemSource("a")])
    await pipeline.run(CountingItemStream(), ListOptions())

    with pytest.raises(RuntimeError):
        await pipeline.run(CountingItemStream(), ListOptions())


def test_invalid_sources():
    """Test that a pipeline needs distinct, non-empty sources."""
    with pytest.raises(ValueError):
        IngestionPipeline("test", [])
    with pytest.raises(ValueError):
        IngestionPipeline("test", [StaticItemSource("a"), StaticItemSource("a")])


# ============================================================================
# Cancellation Tests
# ============================================================================


@pytest.mark.asyncio
async def test_cancellation_stops_tasks_and_closes_stream(caplog):
    """Test that cancelling the caller unwinds every task before closing."""
    blocked = StaticItemSource("blocked", create_sample_items(1), gate=asyncio.Event())
    stream = CountingItemStream()
    pipeline = IngestionPipeline("test", [blocked])

    task = asyncio.create_task(pipeline.run(stream, ListOptions()))
    await asyncio.wait_for(blocked.started.wait(), timeout=1)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert blocked.cancelled
    assert blocked.finished
    assert stream.close_calls == 1
    assert [item async for item in stream] == []
    assert "Ingestion of test cancelled after 0 items" in caplog.text


@pytest.mark.asyncio
async def test_repeated_cancellation_still_waits_for_tasks():
    """Test that a second cancel during unwinding does not close the stream early."""
    cleanup_gate = asyncio.Event()
    slow = StaticItemSource("slow", gate=asyncio.Event(), cleanup_gate=cleanup_gate)
    stream = CountingItemStream()
    pipeline = IngestionPipeline("test", [slow])

    task = asyncio.create_task(pipeline.run(stream, ListOptions()))
    await asyncio.wait_for(slow.started.wait(), timeout=1)
    task.cancel()
    await asyncio.wait_for(slow.cleaning_up.wait(), timeout=1)

    task.cancel()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert not task.done()
    assert stream.close_calls == 0

    cleanup_gate.set()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert slow.finished
    assert stream.close_calls == 1
    assert pipeline.state is PipelineState.CLOSED


@pytest.mark.asyncio
async def test_timeout_unwinds_like_cancellation():
    """Test that exceeding the deadline raises TimeoutError after unwinding."""
    blocked = StaticItemSource("blocked", gate=asyncio.Event())
    stream = CountingItemStream()

    with pytest.raises(TimeoutError):
        await IngestionPipeline("test", [blocked]).run(
            stream, ListOptions(timeout_seconds=0.05)
        )

    assert blocked.cancelled
    assert stream.close_calls == 1
