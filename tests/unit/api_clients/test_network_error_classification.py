"""Unit tests for transport failure classification and the httpx transport."""

import httpx
import pytest

from worktrack.api_clients.errors import (
    AuthenticationError,
    DNSResolutionError,
    NetworkConnectionError,
    NetworkTimeoutError,
    RateLimitError,
    TransientNetworkError,
)
from worktrack.api_clients.network_error_handler import (
    NetworkErrorHandler,
    UserGuidanceProvider,
)
from worktrack.api_clients.request_builder import RequestBuilder
from worktrack.api_clients.transport import HttpxTransport


@pytest.fixture
def handler():
    return NetworkErrorHandler()


class TestNetworkErrorHandler:
    def test_read_timeout(self, handler):
        error = handler.classify_network_error(httpx.ReadTimeout("read timed out"))

        assert isinstance(error, NetworkTimeoutError)
        assert error.is_retryable
        assert "Request timed out" in str(error)

    def test_connect_timeout(self, handler):
        error = handler.classify_network_error(httpx.ConnectTimeout("connect timed out"))

        assert isinstance(error, NetworkTimeoutError)
        assert "Connection timed out" in str(error)

    def test_dns_failure(self, handler):
        error = handler.classify_network_error(
            httpx.ConnectError("[Errno -2] Name or service not known")
        )

        assert isinstance(error, DNSResolutionError)

    def test_connection_refused(self, handler):
        error = handler.classify_network_error(
            httpx.ConnectError("[Errno 111] Connection refused")
        )

        assert isinstance(error, NetworkConnectionError)
        assert not isinstance(error, DNSResolutionError)

    def test_other_transport_errors(self, handler):
        error = handler.classify_network_error(httpx.RemoteProtocolError("bad frame"))

        assert isinstance(error, NetworkConnectionError)
        assert isinstance(error, TransientNetworkError)

    def test_guidance_is_attached(self, handler):
        error = handler.classify_network_error(httpx.ReadTimeout("read timed out"))
        handler.attach_guidance(error)

        assert "Network Timeout Error" in error.user_guidance


class TestUserGuidanceProvider:
    def test_rate_limit_guidance_mentions_wait(self):
        guidance = UserGuidanceProvider().get_guidance(
            RateLimitError("limited", retry_after=5)
        )

        assert "Wait 5 seconds" in guidance.format_for_console()

    def test_authentication_guidance(self):
        guidance = UserGuidanceProvider().get_guidance(AuthenticationError("no"))

        assert guidance.error_type == "Authentication Error"

    def test_no_guidance_for_unrelated_errors(self):
        assert UserGuidanceProvider().get_guidance(ValueError("x")) is None


class TestHttpxTransport:
    @pytest.fixture
    def request_to_send(self):
        return RequestBuilder("https://tracker.test", "v3").build(
            "POST", "issues/", params={"page": 1}, body={"summary": "x"}
        )

    @pytest.mark.asyncio
    async def test_sends_method_url_headers_and_body(self, request_to_send):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"ok": True}, headers={"X-Total-Count": "1"})

        transport = HttpxTransport(transport=httpx.MockTransport(handler))
        raw = await transport.send(request_to_send)
        await transport.close()

        assert raw.status_code == 201
        assert raw.header("x-total-count") == "1"
        assert seen[0].method == "POST"
        assert str(seen[0].url) == "https://tracker.test/v3/issues/?page=1"
        assert seen[0].headers["Content-Type"] == "application/json"
        assert seen[0].content == b'{"summary":"x"}'

    @pytest.mark.asyncio
    async def test_error_statuses_are_returned_not_raised(self, request_to_send):
        transport = HttpxTransport(
            transport=httpx.MockTransport(lambda r: httpx.Response(500, text="boom"))
        )

        raw = await transport.send(request_to_send)

        assert raw.status_code == 500
        assert raw.text == "boom"

    @pytest.mark.asyncio
    async def test_transport_failures_are_classified(self, request_to_send):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        transport = HttpxTransport(transport=httpx.MockTransport(handler))

        with pytest.raises(NetworkConnectionError) as exc_info:
            await transport.send(request_to_send)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_external_client_is_not_closed(self, request_to_send):
        external = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(204))
        )
        transport = HttpxTransport(client=external)

        await transport.send(request_to_send)
        await transport.close()

        assert not external.is_closed
        await external.aclose()
