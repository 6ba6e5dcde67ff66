"""Network Error Handler for the worktrack API clients.

Classifies transport-level httpx failures into the transient network error
kinds the retry policy understands, and provides troubleshooting guidance the
CLI can show next to the error.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Type

import httpx

from .errors import (
    AuthenticationError,
    DNSResolutionError,
    NetworkConnectionError,
    NetworkTimeoutError,
    RateLimitError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)


@dataclass
class UserGuidance:
    """User guidance information for client errors."""

    error_type: str
    troubleshooting_steps: List[str]
    additional_notes: List[str] = field(default_factory=list)

    def format_for_console(self) -> str:
        """Format guidance for rich console output."""
        content = [f"[bold red]Error Type:[/bold red] {self.error_type}", ""]
        content.append("[bold yellow]Troubleshooting Steps:[/bold yellow]")

        for i, step in enumerate(self.troubleshooting_steps, 1):
            content.append(f"{i}. {step}")

        if self.additional_notes:
            content.append("")
            content.append("[bold blue]Additional Notes:[/bold blue]")
            for note in self.additional_notes:
                content.append(f"• {note}")

        return "\n".join(content)


class UserGuidanceProvider:
    """Provides user guidance for different error scenarios."""

    def __init__(self) -> None:
        self._guidance_mapping: Dict[Type[Exception], Callable[..., UserGuidance]] = {
            NetworkConnectionError: self._get_connection_error_guidance,
            DNSResolutionError: self._get_dns_resolution_guidance,
            NetworkTimeoutError: self._get_timeout_guidance,
            RateLimitError: self._get_rate_limit_guidance,
            AuthenticationError: self._get_authentication_guidance,
        }

    def get_guidance(self, error: Exception) -> Optional[UserGuidance]:
        """Get user guidance for a specific error, or None if there is none."""
        for error_type, guidance_func in self._guidance_mapping.items():
            if isinstance(error, error_type):
                return guidance_func(error)
        return None

    def _get_connection_error_guidance(
        self, error: NetworkConnectionError
    ) -> UserGuidance:
        return UserGuidance(
            error_type="Network Connection Error",
            troubleshooting_steps=[
                "Check that the API base URL is correct",
                "Verify network connectivity to the server",
                "Check proxy and firewall settings",
            ],
            additional_notes=["This error typically means the server is unreachable"],
        )

    def _get_dns_resolution_guidance(self, error: DNSResolutionError) -> UserGuidance:
        return UserGuidance(
            error_type="DNS Resolution Error",
            troubleshooting_steps=[
                "Check your internet connection",
                "Verify the server hostname in the base URL",
                "Check your DNS server settings",
            ],
            additional_notes=["DNS resolution issues are often temporary"],
        )

    def _get_timeout_guidance(self, error: NetworkTimeoutError) -> UserGuidance:
        return UserGuidance(
            error_type="Network Timeout Error",
            troubleshooting_steps=[
                "Try again - this may be a temporary issue",
                "Check if the server is under heavy load",
                "Increase the client timeout if the problem persists",
            ],
        )

    def _get_rate_limit_guidance(self, error: RateLimitError) -> UserGuidance:
        wait = (
            f"Wait {error.retry_after:g} seconds before trying again"
            if error.retry_after is not None
            else "Wait a minute before trying again"
        )
        return UserGuidance(
            error_type="Rate Limit Error",
            troubleshooting_steps=[
                "You are sending requests too quickly",
                wait,
                "Reduce the frequency of your requests",
            ],
            additional_notes=["This error is temporary and resolves after waiting"],
        )

    def _get_authentication_guidance(self, error: AuthenticationError) -> UserGuidance:
        return UserGuidance(
            error_type="Authentication Error",
            troubleshooting_steps=[
                "Check that the token environment variable holds a valid token",
                "Check that the organization ID matches the token",
                "Obtain a new token if the current one has expired",
            ],
        )


class NetworkErrorHandler:
    """Classifies transport failures into transient network errors."""

    def __init__(self) -> None:
        self.guidance_provider = UserGuidanceProvider()
        self._dns_error_patterns = [
            r"name.*resolution.*failed",
            r"name.*or.*service.*not.*known",
            r"nodename.*nor.*servname.*provided",
            r"temporary.*failure.*in.*name.*resolution",
            r"getaddrinfo.*failed",
        ]

    def classify_network_error(self, error: Exception) -> TransientNetworkError:
        """Classify an httpx transport exception.

        Args:
            error: The original httpx exception

        Returns:
            The transient network error that describes the failure
        """
        error_message = str(error).lower()

        if isinstance(error, httpx.TimeoutException):
            return self._timeout_error(error_message)
        if isinstance(error, httpx.ConnectError):
            return self._connect_error(error)
        if isinstance(error, httpx.TransportError):
            return NetworkConnectionError(f"Network error: {error}")

        return NetworkConnectionError(f"Unknown network error: {error}")

    def _connect_error(self, error: httpx.ConnectError) -> TransientNetworkError:
        error_message = str(error).lower()
        if any(
            re.search(pattern, error_message) for pattern in self._dns_error_patterns
        ):
            return DNSResolutionError(
                "Cannot resolve server address. Check your internet connection and base URL."
            )
        return NetworkConnectionError(f"Connection failed: {error}")

    def _timeout_error(self, error_message: str) -> NetworkTimeoutError:
        if "connect" in error_message:
            return NetworkTimeoutError(
                "Connection timed out. Check your network connection or try again later."
            )
        return NetworkTimeoutError(
            "Request timed out. Check your network connection or try again later."
        )

    def attach_guidance(self, error: Exception) -> None:
        """Store console guidance on errors that carry a ``user_guidance`` slot."""
        guidance = self.guidance_provider.get_guidance(error)
        if guidance is not None and isinstance(error, TransientNetworkError):
            error.user_guidance = guidance.format_for_console()
