"""Exception hierarchy shared by the tracker and LLM clients.

Every failure a client call can produce is an ``APIClientError`` subclass, so
callers can catch one base type and still dispatch on the concrete kind.
"""

from typing import Optional


class APIClientError(Exception):
    """Base exception for API client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.attempts: Optional[int] = None
        self.is_retryable: bool = False

    def __str__(self) -> str:
        if self.attempts and self.attempts > 1:
            return f"{self.message} (after {self.attempts} attempts)"
        return self.message


class ConfigurationError(APIClientError):
    """Raised for invalid or missing configuration, never sent to the server."""

    pass


class RequestBuildError(ConfigurationError):
    """Raised when a request cannot be constructed (bad path or body)."""

    pass


class FieldUpdateError(ConfigurationError):
    """Raised when a patch carries conflicting updates for one field."""

    pass


class AuthenticationError(APIClientError):
    """Exception raised when the server rejects the credentials (401/403)."""

    pass


class RateLimitError(APIClientError):
    """Exception raised for rate limiting errors (429 responses)."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        status_code: Optional[int] = 429,
    ):
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after
        self.is_retryable = True


class ApiError(APIClientError):
    """Exception raised for any other 4xx/5xx response."""

    def __init__(self, message: str, status_code: int):
        super().__init__(f"API error {status_code}: {message}", status_code)
        self.detail = message


class NotFoundError(ApiError):
    """Exception raised when the requested resource does not exist (404)."""

    pass


class DecodeError(APIClientError):
    """Exception raised when a successful response has an unexpected shape."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body_preview: str = "",
    ):
        super().__init__(message, status_code)
        self.body_preview = body_preview


class TransientNetworkError(APIClientError):
    """Base class for failures that may succeed when retried unchanged."""

    def __init__(self, message: str, user_guidance: Optional[str] = None):
        super().__init__(message)
        self.user_guidance = user_guidance or ""
        self.is_retryable = True


class NetworkConnectionError(TransientNetworkError):
    """Exception raised for connection-related network failures."""

    pass


class NetworkTimeoutError(TransientNetworkError):
    """Exception raised for timeout-related network failures."""

    pass


class DNSResolutionError(TransientNetworkError):
    """Exception raised for DNS resolution failures."""

    pass


class OperationCancelledError(APIClientError):
    """Raised when a call is aborted by a cancel signal or its deadline."""

    pass


class LLMRequestError(APIClientError):
    """Raised for malformed completion requests or responses without content."""

    pass
