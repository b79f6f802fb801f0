"""
Base classes for data source connectors.

This module defines the abstract interface every connector implements,
the registry the host uses to look connectors up, and the exception
hierarchy shared by the ingestion and processing layers.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Dict, List, Mapping, Optional

import httpx

from timeline_agent.types import DataSource, IngestionSummary, ListOptions

if TYPE_CHECKING:
    from timeline_agent.ingestion.stream import ItemStream


# ============================================================================
# Exceptions
# ============================================================================


class IngestionError(Exception):
    """Base exception for everything raised by a connector."""

    pass


class ConfigurationError(IngestionError):
    """Raised when a connector is invoked in an unsupported mode."""

    pass


class TransportError(IngestionError):
    """Raised when a remote call fails at the network or HTTP level."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(TransportError):
    """Raised when the remote API rejects the supplied credentials."""

    pass


class MalformedResponseError(TransportError):
    """Raised when a listing response cannot be interpreted."""

    pass


class NormalizationError(IngestionError):
    """Raised when a raw record cannot be mapped to a CommonItem."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id

    def __str__(self) -> str:
        message = super().__str__()
        if self.record_id:
            return f"{message} (record_id={self.record_id})"
        return message


class ContentFetchError(IngestionError):
    """Raised when binary content could not be downloaded."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        attempts: int = 0,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.url = url
        self.attempts = attempts
        self.status_code = status_code


class StreamClosedError(IngestionError):
    """Raised when sending to, or closing, an already closed stream."""

    pass


class AggregateIngestionError(IngestionError):
    """
    Combined failure of one or more listing tasks.

    Attributes:
        errors: Mapping of listing task name to the exception it raised
    """

    def __init__(self, errors: Mapping[str, BaseException]):
        self.errors: Dict[str, BaseException] = dict(errors)
        joined = ", ".join(f"{name}: {error}" for name, error in self.errors.items())
        super().__init__(f"one or more errors: {joined}")


# ============================================================================
# Connector Interface
# ============================================================================


class Connector(ABC):
    """
    Abstract base class for data source connectors.

    A connector lists items from one remote source and streams them,
    normalized, onto an ItemStream owned by the host.
    """

    # Registration metadata (must be overridden by subclasses)
    data_source: DataSource

    def __init__(self):
        """Initialize the connector."""
        if not hasattr(self, "data_source"):
            raise NotImplementedError(
                f"{self.__class__.__name__} must define 'data_source' attribute"
            )

    @abstractmethod
    async def list_items(
        self, stream: "ItemStream", options: ListOptions
    ) -> IngestionSummary:
        """
        List items from the source onto the stream.

        The stream is closed exactly once when this call returns or raises.

        Args:
            stream: Output stream consumed by the host
            options: Time window and invocation options

        Returns:
            Summary of the run

        Raises:
            ConfigurationError: If the options request an unsupported mode
            AggregateIngestionError: If one or more listing tasks failed
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} ({self.data_source.id})>"


ConnectorFactory = Callable[[httpx.AsyncClient], Connector]


class SourceRegistry:
    """
    Registry of data sources known to the host.

    The host creates a registry and registers each connector explicitly
    at startup; nothing is registered as a side effect of importing a
    connector module.
    """

    def __init__(self):
        self._sources: Dict[str, DataSource] = {}
        self._factories: Dict[str, ConnectorFactory] = {}

    def register(self, data_source: DataSource, factory: ConnectorFactory) -> None:
        """
        Register a data source and the factory that builds its connector.

        Args:
            data_source: Declared metadata of the source
            factory: Callable building a connector from an authenticated client

        Raises:
            ValueError: If the source id is already registered
        """
        if data_source.id in self._sources:
            raise ValueError(f"Data source '{data_source.id}' is already registered")

        self._sources[data_source.id] = data_source
        self._factories[data_source.id] = factory

    def get(self, source_id: str) -> Optional[DataSource]:
        return self._sources.get(source_id)

    def get_source_ids(self) -> List[str]:
        return list(self._sources.keys())

    def create_connector(self, source_id: str, client: httpx.AsyncClient) -> Connector:
        """
        Build a connector for a registered source.

        Args:
            source_id: Id of the registered source
            client: Pre-authenticated HTTP client supplied by the host

        Returns:
            Connector instance

        Raises:
            KeyError: If the source is not registered
        """
        if source_id not in self._factories:
            raise KeyError(f"Data source '{source_id}' is not registered")
        return self._factories[source_id](client)

    def unregister(self, source_id: str) -> bool:
        if source_id in self._sources:
            del self._sources[source_id]
            del self._factories[source_id]
            return True
        return False

    def __len__(self) -> int:
        return len(self._sources)
