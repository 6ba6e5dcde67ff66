"""Unit tests for response decoding and error classification."""

import json
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import List, Optional

import pytest

from worktrack.api_clients.errors import (
    ApiError,
    AuthenticationError,
    DecodeError,
    NotFoundError,
    RateLimitError,
)
from worktrack.api_clients.response_decoder import (
    ResponseDecoder,
    extract_error_message,
    parse_retry_after,
)
from worktrack.api_clients.tracker_models import Issue
from worktrack.api_clients.transport import RawResponse


def raw(status, payload=None, headers=None, body=None):
    if body is None:
        body = b"" if payload is None else json.dumps(payload).encode("utf-8")
    return RawResponse(status_code=status, headers=headers or {}, body=body)


@pytest.fixture
def decoder():
    return ResponseDecoder()


class TestSuccessfulResponses:
    def test_decodes_into_expected_type(self, decoder):
        response = decoder.decode(
            raw(200, {"key": "TREK-1", "summary": "Test", "votes": 2}), Issue
        )

        assert isinstance(response.data, Issue)
        assert response.data.key == "TREK-1"
        assert response.data.votes == 2
        assert response.status_code == 200
        assert response.pagination is None

    def test_decodes_list_with_pagination_headers(self, decoder):
        response = decoder.decode(
            raw(
                200,
                [{"key": "A-1", "summary": "a"}, {"key": "A-2", "summary": "b"}],
                headers={"x-total-pages": "3", "X-Total-Count": "5"},
            ),
            List[Issue],
        )

        assert [i.key for i in response.data] == ["A-1", "A-2"]
        assert response.pagination.total_pages == 3
        assert response.pagination.total_count == 5

    def test_empty_body_decodes_to_none_without_expected_type(self, decoder):
        assert decoder.decode(raw(204)).data is None

    def test_empty_body_allowed_by_optional_type(self, decoder):
        assert decoder.decode(raw(200), Optional[Issue]).data is None

    def test_empty_body_for_required_type_is_decode_error(self, decoder):
        with pytest.raises(DecodeError):
            decoder.decode(raw(200), Issue)

    def test_shape_mismatch_is_decode_error(self, decoder):
        with pytest.raises(DecodeError) as exc_info:
            decoder.decode(raw(200, {"summary": "no key"}), Issue, "GET")

        assert "key" in str(exc_info.value)
        assert exc_info.value.status_code == 200

    def test_invalid_json_is_decode_error(self, decoder):
        with pytest.raises(DecodeError) as exc_info:
            decoder.decode(raw(200, body=b"<html>oops</html>"), Issue)

        assert exc_info.value.body_preview.startswith("<html>")


class TestErrorClassification:
    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses(self, decoder, status):
        with pytest.raises(AuthenticationError) as exc_info:
            decoder.decode(raw(status, {"errorMessages": ["No access"]}))

        assert exc_info.value.status_code == status
        assert "No access" in str(exc_info.value)

    def test_not_found_is_api_error(self, decoder):
        with pytest.raises(NotFoundError) as exc_info:
            decoder.decode(raw(404, {"errorMessages": ["Issue does not exist."]}))

        assert isinstance(exc_info.value, ApiError)
        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Issue does not exist."

    def test_server_error_keeps_status_and_message(self, decoder):
        with pytest.raises(ApiError) as exc_info:
            decoder.decode(raw(503, {"error": {"message": "Upstream down"}}))

        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == "API error 503: Upstream down"

    def test_rate_limit_reads_retry_after_seconds(self, decoder):
        with pytest.raises(RateLimitError) as exc_info:
            decoder.decode(raw(429, {"message": "slow down"}, {"Retry-After": "5"}))

        assert exc_info.value.retry_after == 5.0
        assert exc_info.value.is_retryable

    def test_rate_limit_reads_retry_after_from_body(self, decoder):
        with pytest.raises(RateLimitError) as exc_info:
            decoder.decode(raw(429, {"error": {"message": "limit", "retryAfter": 7}}))

        assert exc_info.value.retry_after == 7.0

    def test_rate_limit_without_hint(self, decoder):
        with pytest.raises(RateLimitError) as exc_info:
            decoder.decode(raw(429))

        assert exc_info.value.retry_after is None

    @pytest.mark.parametrize("value", ["nan", "inf", "-inf", "1e9", "-5", "0x10"])
    def test_non_numeric_retry_after_header_is_ignored(self, decoder, value):
        error = decoder.classify_error(raw(429, headers={"Retry-After": value}))

        assert isinstance(error, RateLimitError)
        assert error.retry_after is None

    def test_non_finite_retry_after_in_body_is_ignored(self, decoder):
        error = decoder.classify_error(raw(429, body=b'{"retry_after": NaN}'))

        assert error.retry_after is None


class TestHelpers:
    def test_retry_after_http_date(self):
        when = datetime.now(timezone.utc) + timedelta(seconds=30)

        seconds = parse_retry_after(format_datetime(when, usegmt=True))

        assert 25 <= seconds <= 31

    def test_retry_after_in_the_past_is_zero(self):
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0

    def test_retry_after_garbage_is_none(self):
        assert parse_retry_after("soon") is None

    @pytest.mark.parametrize(
        "payload,text,expected",
        [
            ({"errors": {"summary": "required"}}, "", "summary: required"),
            ({"detail": "Bad input"}, "", "Bad input"),
            (None, "plain text failure", "plain text failure"),
            (None, "", "HTTP 500"),
        ],
    )
    def test_error_message_extraction(self, payload, text, expected):
        assert extract_error_message(payload, text, 500) == expected
