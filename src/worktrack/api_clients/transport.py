"""HTTP transport for the worktrack API clients.

Sends one fully built ``APIRequest`` over ``httpx.AsyncClient`` and returns the
status, headers and body bytes. Transport-level failures are classified into
``TransientNetworkError`` subclasses; HTTP error statuses are returned as-is
and left to the response decoder.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from .network_error_handler import NetworkErrorHandler
from .request_builder import APIRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawResponse:
    """Undecoded HTTP response."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class HttpxTransport:
    """Executes requests on a pooled ``httpx.AsyncClient``."""

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the transport.

        Args:
            timeout: Per-attempt timeout in seconds
            client: Externally owned client; it is never closed here
            transport: Low-level httpx transport (tests pass ``httpx.MockTransport``)
        """
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self._error_handler = NetworkErrorHandler()

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._client is None or self._client.is_closed:
            timeouts = httpx.Timeout(
                self.timeout, connect=min(10.0, self.timeout), pool=5.0
            )
            limits = httpx.Limits(
                max_connections=10,
                max_keepalive_connections=5,
                keepalive_expiry=30.0,
            )
            self._client = httpx.AsyncClient(
                timeout=timeouts,
                limits=limits,
                transport=self._transport,
                follow_redirects=True,
                verify=True,
            )
            self._owns_client = True
        return self._client

    async def send(self, request: APIRequest) -> RawResponse:
        """Send a request and return the raw response.

        Raises:
            TransientNetworkError: On connection, DNS or timeout failures
        """
        logger.debug(f"{request.method} {request.url}")
        try:
            response = await self.client.request(
                request.method,
                request.full_url,
                headers=dict(request.headers),
                content=request.body,
            )
        except httpx.TransportError as e:
            error = self._error_handler.classify_network_error(e)
            self._error_handler.attach_guidance(error)
            logger.debug(f"{request.method} {request.url} failed: {type(error).__name__}")
            raise error from e

        logger.debug(f"{request.method} {request.url} -> {response.status_code}")
        return RawResponse(
            status_code=response.status_code,
            headers=dict(response.headers.items()),
            body=response.content,
        )

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
