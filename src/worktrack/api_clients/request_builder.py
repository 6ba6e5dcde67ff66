"""Request construction for the worktrack API clients.

Turns a method, a resource path, query parameters and a body into an immutable
``APIRequest``. Credentials are not applied here; ``AuthStrategy.apply`` adds
them to the built request.
"""

import json
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote, urlencode

from pydantic import BaseModel

from .errors import RequestBuildError

logger = logging.getLogger(__name__)

QueryParams = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


@dataclass(frozen=True)
class APIRequest:
    """A fully specified, immutable HTTP request."""

    method: str
    url: str
    query: Tuple[Tuple[str, str], ...] = ()
    headers: Tuple[Tuple[str, str], ...] = ()
    body: Optional[bytes] = None
    retry_safe: Optional[bool] = None

    @property
    def full_url(self) -> str:
        """URL with the percent-encoded query string."""
        if not self.query:
            return self.url
        return f"{self.url}?{urlencode(self.query, quote_via=quote, safe=',')}"

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    def with_header(self, name: str, value: str) -> "APIRequest":
        """Return a copy with ``name`` set to ``value``, replacing any existing value."""
        lowered = name.lower()
        headers = tuple(h for h in self.headers if h[0].lower() != lowered)
        return replace(self, headers=headers + ((name, value),))


def render_query_value(value: Any) -> str:
    """Render a single query value the way the APIs expect it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return render_query_value(value.value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(render_query_value(v) for v in value)
    return str(value)


def to_jsonable(value: Any) -> Any:
    """Convert models, enums and dates into plain JSON-compatible values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def encode_json_body(body: Any) -> bytes:
    """Serialize a body deterministically as escaped ASCII JSON.

    Raises:
        RequestBuildError: If the body cannot be represented as JSON
    """
    try:
        text = json.dumps(
            to_jsonable(body),
            ensure_ascii=True,
            separators=(",", ":"),
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise RequestBuildError(f"Request body is not JSON serializable: {e}")
    return text.encode("ascii")


class RequestBuilder:
    """Builds ``APIRequest`` objects against one base URL and API version."""

    def __init__(
        self,
        base_url: str,
        api_version: Optional[str] = None,
        language: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version.strip("/") if api_version else None
        self.language = language

    def build_url(self, path: str) -> str:
        """Join base URL, version segment and resource path.

        Raises:
            RequestBuildError: If the path is malformed or repeats the version
        """
        if "?" in path or "#" in path:
            raise RequestBuildError(
                f"Path must not contain a query or fragment: {path!r}"
            )
        if "://" in path:
            raise RequestBuildError(f"Path must be relative to the base URL: {path!r}")

        relative = path.lstrip("/")
        if self.api_version:
            first_segment = relative.split("/", 1)[0]
            if first_segment == self.api_version:
                raise RequestBuildError(
                    f"Path {path!r} already contains the API version segment"
                )
            return f"{self.base_url}/{self.api_version}/{relative}"
        return f"{self.base_url}/{relative}"

    def build_query(self, params: Optional[QueryParams]) -> Tuple[Tuple[str, str], ...]:
        if params is None:
            return ()
        items = params.items() if isinstance(params, Mapping) else params

        rendered: List[Tuple[str, str]] = []
        seen = set()
        for key, value in items:
            if value is None:
                continue
            if key in seen:
                raise RequestBuildError(f"Duplicate query parameter: {key}")
            seen.add(key)
            rendered.append((key, render_query_value(value)))
        return tuple(rendered)

    def build(
        self,
        method: str,
        path: str,
        params: Optional[QueryParams] = None,
        body: Any = None,
        retry_safe: Optional[bool] = None,
    ) -> APIRequest:
        """Build a request.

        Args:
            method: HTTP method
            path: Resource path relative to the versioned base URL
            params: Query parameters; ``None`` values are dropped
            body: JSON body (dict, list or pydantic model), or None
            retry_safe: Explicit retry opt-in/opt-out for this request

        Returns:
            The immutable request, without credentials

        Raises:
            RequestBuildError: If the path, query or body is invalid
        """
        headers: List[Tuple[str, str]] = [("Accept", "application/json")]
        if self.language:
            headers.append(("Accept-Language", self.language))

        encoded_body = None
        if body is not None:
            encoded_body = encode_json_body(body)
            headers.append(("Content-Type", "application/json"))

        return APIRequest(
            method=method.upper(),
            url=self.build_url(path),
            query=self.build_query(params),
            headers=tuple(headers),
            body=encoded_body,
            retry_safe=retry_safe,
        )
