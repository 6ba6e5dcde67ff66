"""Base API client shared by the tracker and LLM clients.

Composes request building, authentication, transport, response decoding and
the retry policy into a single ``request`` call, and provides page-based
traversal of list endpoints.
"""

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Type

import httpx

from .auth import AuthStrategy, BearerTokenAuth
from .errors import APIClientError, RequestBuildError
from .pagination import Page, PageRequest, PaginationWalker
from .request_builder import APIRequest, QueryParams, RequestBuilder
from .response_decoder import ApiResponse, ResponseDecoder
from .retry_policy import RetryPolicy
from .transport import HttpxTransport

if TYPE_CHECKING:
    from ..config import ClientConfig

logger = logging.getLogger(__name__)


class BaseAPIClient:
    """Base API client with authentication, retries and typed decoding."""

    page_param = "page"
    per_page_param = "perPage"

    def __init__(
        self,
        config: "ClientConfig",
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_policy: Optional[RetryPolicy] = None,
        auth: Optional[AuthStrategy] = None,
    ):
        """Initialize the client.

        Args:
            config: Validated client configuration
            http_client: Externally owned ``httpx.AsyncClient`` to reuse; it is
                not closed by ``close()``
            transport: Low-level httpx transport for the internally created client
            retry_policy: Retry policy, defaults to one built from ``config.retry``
            auth: Authentication strategy, defaults to token auth from the credentials
        """
        self.config = config
        self.auth = auth or BearerTokenAuth(config.credentials)
        self.builder = RequestBuilder(
            base_url=config.base_url,
            api_version=config.api_version,
            language=config.language.value,
        )
        self.decoder = ResponseDecoder()
        self.retry_policy = retry_policy or RetryPolicy(config.retry)
        self._transport = HttpxTransport(
            timeout=config.timeout, client=http_client, transport=transport
        )

    def build_request(
        self,
        method: str,
        path: str,
        params: Optional[QueryParams] = None,
        body: Any = None,
        retry_safe: Optional[bool] = None,
    ) -> APIRequest:
        """Build and authenticate a request without sending it."""
        request = self.builder.build(method, path, params, body, retry_safe)
        return self.auth.apply(request)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[QueryParams] = None,
        body: Any = None,
        expected_type: Any = None,
        retry_safe: Optional[bool] = None,
        cancel_event: Optional[asyncio.Event] = None,
        deadline: Optional[float] = None,
        check: Optional[Callable[[ApiResponse], None]] = None,
    ) -> ApiResponse:
        """Send a request with retries and decode the response.

        Args:
            method: HTTP method
            path: Resource path relative to the versioned base URL
            params: Query parameters
            body: JSON body
            expected_type: Type the response body is validated against
            retry_safe: Whether a POST may be repeated; None uses the method default
            cancel_event: Event that aborts the call when set
            deadline: Time budget in seconds for all attempts
            check: Called with each decoded response inside the attempt; an
                error it raises is handled by the retry policy

        Returns:
            ApiResponse with the decoded data and the number of attempts

        Raises:
            ConfigurationError: If the request cannot be built
            AuthenticationError: If the credentials are rejected
            RateLimitError: If rate limiting outlasts the retry budget
            ApiError: If the server returns another error status
            DecodeError: If the response body has an unexpected shape
            TransientNetworkError: If the network keeps failing
            OperationCancelledError: If cancelled or out of time
        """
        method = method.upper()

        async def attempt() -> ApiResponse:
            request = self.build_request(method, path, params, body, retry_safe)
            raw = await self._transport.send(request)
            response = self.decoder.decode(raw, expected_type, method)
            if check is not None:
                check(response)
            return response

        try:
            result = await self.retry_policy.call(
                attempt,
                method=method,
                retry_safe=retry_safe,
                cancel_event=cancel_event,
                deadline=deadline,
            )
        except APIClientError:
            raise
        except Exception as e:
            raise APIClientError(f"Unexpected error during {method} {path}: {e}") from e

        if result.attempts > 1:
            logger.debug(f"{method} {path} completed after {result.attempts} attempts")
        return replace(result.value, attempts=result.attempts)

    async def get(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("PATCH", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("DELETE", path, **kwargs)

    async def fetch_page(
        self,
        method: str,
        path: str,
        item_type: Type[Any],
        page_request: PageRequest,
        params: Optional[dict] = None,
        body: Any = None,
        retry_safe: Optional[bool] = None,
    ) -> Page:
        """Fetch one page of a list endpoint.

        Returns:
            Page with the decoded items and any totals the server reported

        Raises:
            RequestBuildError: If ``params`` already carries a paging parameter
        """
        query = dict(params or {})
        clashing = [
            name
            for name in (self.page_param, self.per_page_param)
            if query.get(name) is not None
        ]
        if clashing:
            raise RequestBuildError(
                "Paging parameters are set from the page request, not params: "
                + ", ".join(clashing)
            )
        query[self.page_param] = page_request.page
        query[self.per_page_param] = page_request.per_page

        response = await self.request(
            method,
            path,
            params=query,
            body=body,
            expected_type=List[item_type],  # type: ignore[valid-type]
            retry_safe=retry_safe,
        )
        return Page(
            items=tuple(response.data),
            page=page_request.page,
            per_page=page_request.per_page,
            meta=response.pagination,
        )

    def iter_pages(
        self,
        method: str,
        path: str,
        item_type: Type[Any],
        per_page: int = 50,
        max_pages: Optional[int] = None,
        params: Optional[dict] = None,
        body: Any = None,
        retry_safe: Optional[bool] = None,
    ) -> PaginationWalker:
        """Walker that lazily fetches every page of a list endpoint."""

        async def fetch(page_request: PageRequest) -> Page:
            return await self.fetch_page(
                method,
                path,
                item_type,
                page_request,
                params=params,
                body=body,
                retry_safe=retry_safe,
            )

        return PaginationWalker(
            fetch, start=PageRequest(page=1, per_page=per_page), max_pages=max_pages
        )

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        await self._transport.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
