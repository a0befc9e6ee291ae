"""HTTP clients for the collector and the storefront cart.

This module provides:
- CollectorClient: posts session reports and parses the collector answer
- CartClient: reads the current cart contents
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from sessionagent.core.config import AgentConfig
from sessionagent.core.types import CartSnapshot, SessionPayload, SyncResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SyncTransportError(APIError):
    """Session report could not be delivered or its answer read."""


class CartFetchError(APIError):
    """Cart contents could not be fetched."""


def _client_kwargs(timeout: float | None) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"headers": {"Accept": "application/json"}}
    if timeout is not None:
        kwargs["timeout"] = timeout
    return kwargs


class CollectorClient:
    """HTTP client for the session collector."""

    def __init__(
        self,
        config: AgentConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the collector client.

        Args:
            config: Agent configuration.
            client: Optional pre-built httpx client (shared or for tests).
        """
        self._url = config.collector_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(**_client_kwargs(config.timeout))

    async def aclose(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> CollectorClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def send(self, payload: SessionPayload) -> SyncResponse:
        """Send a session report.

        Args:
            payload: The session payload.

        Returns:
            The parsed collector answer.

        Raises:
            SyncTransportError: On network failure, HTTP error status or
                an undecodable body.
        """
        try:
            response = await self._client.post(self._url, json=payload.to_dict())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SyncTransportError(f"Collector unreachable: {e}") from e

        if response.status_code >= 400:
            raise SyncTransportError(
                f"Collector returned HTTP {response.status_code}",
                response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise SyncTransportError(
                "Collector returned invalid JSON", response.status_code
            ) from e

        return SyncResponse.from_dict(data)


class CartClient:
    """HTTP client for the storefront cart endpoint (read-only)."""

    def __init__(
        self,
        cart_url: str,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = cart_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(**_client_kwargs(timeout))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> CartClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def fetch_cart(self) -> CartSnapshot:
        """Fetch the current cart contents.

        Raises:
            CartFetchError: If the cart cannot be read.
        """
        try:
            response = await self._client.get(self._url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise CartFetchError(f"Cart unreachable: {e}") from e

        if response.status_code >= 400:
            raise CartFetchError(
                f"Cart returned HTTP {response.status_code}", response.status_code
            )
        try:
            data = response.json()
            if not isinstance(data, dict):
                raise CartFetchError("Cart response is not an object", response.status_code)
            return CartSnapshot.from_dict(data)
        except (ValueError, TypeError) as e:
            raise CartFetchError(
                f"Malformed cart response: {e}", response.status_code
            ) from e
