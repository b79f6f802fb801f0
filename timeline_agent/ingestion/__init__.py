"""
Ingestion layer for the Timeline Agent connectors.

This package provides the listing side of a connector: the connector
base class and source registry, rate limiting, the authenticated
transport, the output stream and the pipeline that fans listing tasks
into it.

PaginatedLister lives in ``timeline_agent.ingestion.lister`` and is not
re-exported here, since it depends on the processing layer.
"""

# Base classes, registry and errors
from timeline_agent.ingestion.base import (
    Connector,
    ConnectorFactory,
    SourceRegistry,
    IngestionError,
    ConfigurationError,
    TransportError,
    AuthenticationError,
    MalformedResponseError,
    NormalizationError,
    ContentFetchError,
    StreamClosedError,
    AggregateIngestionError,
)

# Interface contracts (Protocols)
from timeline_agent.ingestion.interfaces import (
    RateLimiter,
    RecordApi,
    ItemSource,
)

# Concrete implementations
from timeline_agent.ingestion.rate_limiter import TokenBucketRateLimiter
from timeline_agent.ingestion.transport import AuthenticatedTransport
from timeline_agent.ingestion.stream import ItemStream
from timeline_agent.ingestion.pipeline import IngestionPipeline, PipelineState

__all__ = [
    # Base classes
    "Connector",
    "ConnectorFactory",
    "SourceRegistry",
    # Errors
    "IngestionError",
    "ConfigurationError",
    "TransportError",
    "AuthenticationError",
    "MalformedResponseError",
    "NormalizationError",
    "ContentFetchError",
    "StreamClosedError",
    "AggregateIngestionError",
    # Interface contracts
    "RateLimiter",
    "RecordApi",
    "ItemSource",
    # Implementations
    "TokenBucketRateLimiter",
    "AuthenticatedTransport",
    "ItemStream",
    "IngestionPipeline",
    "PipelineState",
]
