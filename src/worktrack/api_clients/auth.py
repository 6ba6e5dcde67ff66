"""Authentication strategies for the worktrack API clients."""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from .request_builder import APIRequest

if TYPE_CHECKING:
    from ..config import Credentials

logger = logging.getLogger(__name__)

REDACTION_MARKER = "[REDACTED]"


def mask_token(token: str) -> str:
    """Masked form of a token that is safe to show in diagnostics."""
    if len(token) < 16:
        return REDACTION_MARKER
    return f"{REDACTION_MARKER}...{token[-4:]}"


class AuthStrategy(ABC):
    """Adds credentials to an already built request."""

    @abstractmethod
    def apply(self, request: APIRequest) -> APIRequest:
        """Return a copy of ``request`` carrying the credentials."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable description with secrets masked."""


class BearerTokenAuth(AuthStrategy):
    """Token authentication via the ``Authorization`` header.

    The scheme comes from the credentials: ``Bearer`` for the LLM API and
    ``OAuth`` for the tracker. Optional organisation and attribution headers
    are added when the credentials carry them.
    """

    def __init__(self, credentials: "Credentials"):
        self._credentials = credentials

    @property
    def scheme(self) -> str:
        return self._credentials.auth_scheme

    def apply(self, request: APIRequest) -> APIRequest:
        creds = self._credentials
        token = creds.token.get_secret_value()
        authed = request.with_header("Authorization", f"{creds.auth_scheme} {token}")

        if creds.org_id:
            authed = authed.with_header("X-Org-ID", creds.org_id)
        if creds.site_url:
            authed = authed.with_header("HTTP-Referer", creds.site_url)
        if creds.app_name:
            authed = authed.with_header("X-Title", creds.app_name)
        return authed

    def describe(self) -> str:
        masked = mask_token(self._credentials.token.get_secret_value())
        parts = [f"{self.scheme} {masked}"]
        if self._credentials.org_id:
            parts.append(f"org={self._credentials.org_id}")
        return ", ".join(parts)

    def __repr__(self) -> str:
        return f"BearerTokenAuth({self.describe()})"
