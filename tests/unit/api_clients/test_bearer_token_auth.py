"""Unit tests for token authentication."""

import logging

import pytest

from worktrack.api_clients.auth import BearerTokenAuth, mask_token
from worktrack.api_clients.request_builder import RequestBuilder
from worktrack.config import Credentials


@pytest.fixture
def request_without_auth():
    return RequestBuilder("https://tracker.test", "v3").build("GET", "issues/TREK-1")


class TestBearerTokenAuth:
    def test_authorization_header_uses_scheme_and_token(self, request_without_auth):
        auth = BearerTokenAuth(Credentials(token="secret-token", auth_scheme="OAuth"))

        request = auth.apply(request_without_auth)

        assert request.header("Authorization") == "OAuth secret-token"

    def test_bearer_is_default_scheme(self, request_without_auth):
        auth = BearerTokenAuth(Credentials(token="secret-token"))

        assert auth.apply(request_without_auth).header("Authorization") == (
            "Bearer secret-token"
        )

    def test_optional_headers_follow_credentials(self, request_without_auth):
        credentials = Credentials(
            token="secret-token",
            org_id="12345",
            site_url="https://worktrack.test",
            app_name="worktrack",
        )

        request = BearerTokenAuth(credentials).apply(request_without_auth)

        assert request.header("X-Org-ID") == "12345"
        assert request.header("HTTP-Referer") == "https://worktrack.test"
        assert request.header("X-Title") == "worktrack"

    def test_optional_headers_absent_without_values(self, request_without_auth):
        request = BearerTokenAuth(Credentials(token="secret-token")).apply(
            request_without_auth
        )

        assert request.header("X-Org-ID") is None
        assert request.header("HTTP-Referer") is None
        assert request.header("X-Title") is None

    def test_apply_is_pure(self, request_without_auth):
        auth = BearerTokenAuth(Credentials(token="secret-token", org_id="1"))

        assert auth.apply(request_without_auth) == auth.apply(request_without_auth)
        assert request_without_auth.header("Authorization") is None

    def test_apply_replaces_existing_authorization(self, request_without_auth):
        pre_authed = request_without_auth.with_header("authorization", "Basic abc")

        request = BearerTokenAuth(Credentials(token="secret-token")).apply(pre_authed)

        values = [v for k, v in request.headers if k.lower() == "authorization"]
        assert values == ["Bearer secret-token"]


class TestTokenMasking:
    def test_describe_does_not_contain_token(self):
        token = "y0_very-long-oauth-token-value-1234"
        auth = BearerTokenAuth(Credentials(token=token, auth_scheme="OAuth", org_id="7"))

        description = auth.describe()

        assert token not in description
        assert description.startswith("OAuth [REDACTED]")
        assert "org=7" in description
        assert token not in repr(auth)

    def test_short_tokens_are_fully_masked(self):
        assert mask_token("abc") == "[REDACTED]"

    def test_credentials_repr_hides_token(self):
        credentials = Credentials(token="secret-token")

        assert "secret-token" not in repr(credentials)
        assert "secret-token" not in str(credentials)

    def test_token_never_logged(self, request_without_auth, caplog):
        token = "y0_logged-token-must-not-appear-42"
        caplog.set_level(logging.DEBUG)
        auth = BearerTokenAuth(Credentials(token=token))

        auth.apply(request_without_auth)
        logging.getLogger("worktrack.test").info(f"Using auth {auth.describe()}")

        assert token not in caplog.text
