"""Decoding of raw HTTP responses into typed values or classified errors."""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from functools import lru_cache
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from .errors import (
    ApiError,
    AuthenticationError,
    DecodeError,
    NotFoundError,
    RateLimitError,
)
from .pagination import PaginationMeta
from .transport import RawResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_MESSAGE_LENGTH = 500
BODY_PREVIEW_LENGTH = 200


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """A decoded successful response."""

    data: T
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    pagination: Optional[PaginationMeta] = None
    attempts: int = 1


@lru_cache(maxsize=256)
def _type_adapter(expected_type: Any) -> TypeAdapter:
    return TypeAdapter(expected_type)


_DELTA_SECONDS = re.compile(r"^\d+(?:\.\d+)?$")


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a ``Retry-After`` header given in seconds or as an HTTP date."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if _DELTA_SECONDS.match(value):
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Unparseable Retry-After header: {value!r}")
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


def _parse_int_header(raw: RawResponse, name: str) -> Optional[int]:
    value = raw.header(name)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.debug(f"Ignoring non-integer {name} header: {value!r}")
        return None


def parse_pagination(raw: RawResponse) -> Optional[PaginationMeta]:
    total_pages = _parse_int_header(raw, "X-Total-Pages")
    total_count = _parse_int_header(raw, "X-Total-Count")
    if total_pages is None and total_count is None:
        return None
    return PaginationMeta(total_pages=total_pages, total_count=total_count)


class ResponseDecoder:
    """Turns ``RawResponse`` objects into ``ApiResponse`` values or raises."""

    def decode(
        self,
        raw: RawResponse,
        expected_type: Any = None,
        method: str = "GET",
    ) -> ApiResponse:
        """Decode a raw response.

        Args:
            raw: Response returned by the transport
            expected_type: Type the JSON body is validated against; None keeps
                the parsed JSON as-is
            method: Request method, used in error messages

        Returns:
            ApiResponse with the decoded data and pagination metadata

        Raises:
            AuthenticationError: For 401 and 403 responses
            RateLimitError: For 429 responses
            NotFoundError: For 404 responses
            ApiError: For any other non-2xx response
            DecodeError: When a 2xx body does not match ``expected_type``
        """
        if not 200 <= raw.status_code < 300:
            raise self.classify_error(raw, method)

        data = self._decode_body(raw, expected_type, method)
        return ApiResponse(
            data=data,
            status_code=raw.status_code,
            headers=dict(raw.headers),
            pagination=parse_pagination(raw),
        )

    def _decode_body(self, raw: RawResponse, expected_type: Any, method: str) -> Any:
        preview = raw.text[:BODY_PREVIEW_LENGTH]
        payload = None

        if raw.body.strip():
            try:
                payload = json.loads(raw.body)
            except ValueError as e:
                raise DecodeError(
                    f"Invalid JSON in {method} response: {e}",
                    status_code=raw.status_code,
                    body_preview=preview,
                )

        if expected_type is None:
            return payload

        try:
            return _type_adapter(expected_type).validate_python(payload)
        except ValidationError as e:
            detail = "empty body" if payload is None else _summarize(e)
            raise DecodeError(
                f"Unexpected {method} response shape: {detail}",
                status_code=raw.status_code,
                body_preview=preview,
            )

    def classify_error(self, raw: RawResponse, method: str = "GET") -> Exception:
        """Map an error status to the matching exception (returned, not raised)."""
        status = raw.status_code
        payload = self._try_json(raw)
        message = extract_error_message(payload, raw.text, status)

        if status in (401, 403):
            return AuthenticationError(
                f"Authentication failed ({status}): {message}", status_code=status
            )
        if status == 429:
            retry_after = parse_retry_after(raw.header("Retry-After"))
            if retry_after is None:
                retry_after = _body_retry_after(payload)
            logger.warning(
                f"Rate limited on {method} (retry after: {retry_after if retry_after is not None else 'unknown'})"
            )
            return RateLimitError(
                f"Rate limit exceeded: {message}", retry_after=retry_after
            )
        if status == 404:
            return NotFoundError(message, status)
        return ApiError(message, status)

    @staticmethod
    def _try_json(raw: RawResponse) -> Any:
        if not raw.body.strip():
            return None
        try:
            return json.loads(raw.body)
        except ValueError:
            return None


def extract_error_message(payload: Any, text: str, status_code: int) -> str:
    """Pick the most specific error message a server returned."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error

        error_messages = payload.get("errorMessages")
        if isinstance(error_messages, list) and error_messages:
            return "; ".join(str(m) for m in error_messages)

        errors = payload.get("errors")
        if isinstance(errors, dict) and errors:
            return "; ".join(f"{key}: {value}" for key, value in errors.items())
        if isinstance(errors, list) and errors:
            return "; ".join(str(e) for e in errors)

        for key in ("message", "detail"):
            if payload.get(key):
                return str(payload[key])

    text = text.strip()
    if text:
        return text[:MAX_MESSAGE_LENGTH]
    return f"HTTP {status_code}"


def _body_retry_after(payload: Any) -> Optional[float]:
    if not isinstance(payload, dict):
        return None
    candidates = [payload]
    if isinstance(payload.get("error"), dict):
        candidates.append(payload["error"])
    for candidate in candidates:
        for key in ("retry_after", "retryAfter"):
            value = candidate.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                if math.isfinite(value):
                    return max(float(value), 0.0)
                continue
            if isinstance(value, str):
                parsed = parse_retry_after(value)
                if parsed is not None:
                    return parsed
    return None


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors()[:3]:
        location = ".".join(str(p) for p in item.get("loc", ())) or "<root>"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)
