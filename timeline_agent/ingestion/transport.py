"""
Authenticated HTTP transport for listing calls.

The host hands the connector an ``httpx.AsyncClient`` that already carries
valid credentials (token acquisition and refresh happen outside the
connector). This module wraps that client and maps its failures onto the
connector's error taxonomy.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from timeline_agent.ingestion.base import (
    AuthenticationError,
    MalformedResponseError,
    TransportError,
)

logger = logging.getLogger(__name__)

# Bytes of an error response body quoted in exception messages
ERROR_BODY_LIMIT = 1024


class AuthenticatedTransport:
    """
    HTTP transport over a host-supplied, pre-authenticated client.

    The transport does not own the client and never closes it.
    """

    def __init__(self, client: httpx.AsyncClient, timeout: Optional[float] = 30.0):
        """
        Initialize the transport.

        Args:
            client: Authenticated client supplied by the host
            timeout: Per-request timeout in seconds (None for the client default)
        """
        self._client = client
        self.timeout = timeout

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Make an authenticated HTTP request.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Request URL
            **kwargs: Additional arguments for httpx

        Returns:
            HTTP response with a 2xx status

        Raises:
            AuthenticationError: If the API rejects the credentials
            TransportError: If the request fails or returns an error status
        """
        if self.timeout is not None:
            kwargs.setdefault("timeout", self.timeout)

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url}: {e.__class__.__name__}: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"HTTP {response.status_code}: credentials rejected by {url}",
                status_code=response.status_code,
            )

        if response.is_error:
            body = response.text[:ERROR_BODY_LIMIT]
            raise TransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}: >>> {body} <<<",
                status_code=response.status_code,
            )

        return response

    async def get_json(
        self, url: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        GET a URL and decode a JSON object body.

        Raises:
            MalformedResponseError: If the body is not a JSON object
        """
        response = await self.request("GET", url, params=params)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"response from {url} is not valid JSON: {e}",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"response from {url} is a {type(data).__name__}, expected an object",
                status_code=response.status_code,
            )

        return data
