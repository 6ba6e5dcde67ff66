"""API Client Abstractions for the issue tracker and LLM services.

All HTTP functionality is contained within dedicated API client classes built
on ``BaseAPIClient``.
"""

from .auth import AuthStrategy, BearerTokenAuth
from .base_client import BaseAPIClient
from .errors import (
    APIClientError,
    ApiError,
    AuthenticationError,
    ConfigurationError,
    DecodeError,
    DNSResolutionError,
    FieldUpdateError,
    LLMRequestError,
    NetworkConnectionError,
    NetworkTimeoutError,
    NotFoundError,
    OperationCancelledError,
    RateLimitError,
    RequestBuildError,
    TransientNetworkError,
)
from .field_updates import (
    Add,
    Clear,
    FieldUpdate,
    IssuePatch,
    Remove,
    Replace,
    Set,
    encode_field_updates,
)
from .llm_client import LLMClient
from .llm_models import (
    ChatCompletionResponse,
    CompletionOptions,
    Message,
    Role,
    Usage,
)
from .pagination import Page, PageRequest, PaginationMeta, PaginationWalker
from .request_builder import APIRequest, RequestBuilder
from .response_decoder import ApiResponse, ResponseDecoder
from .retry_policy import RetryConfig, RetryPolicy, RetryResult
from .tracker_client import TrackerAPIClient
from .tracker_models import (
    ExpandField,
    Issue,
    IssueCreate,
    Queue,
    QueueCreate,
    SearchParams,
    SearchRequest,
)

__all__ = [
    # Clients
    "BaseAPIClient",
    "TrackerAPIClient",
    "LLMClient",
    # Errors
    "APIClientError",
    "ApiError",
    "AuthenticationError",
    "ConfigurationError",
    "DecodeError",
    "DNSResolutionError",
    "FieldUpdateError",
    "LLMRequestError",
    "NetworkConnectionError",
    "NetworkTimeoutError",
    "NotFoundError",
    "OperationCancelledError",
    "RateLimitError",
    "RequestBuildError",
    "TransientNetworkError",
    # Request pipeline
    "APIRequest",
    "RequestBuilder",
    "AuthStrategy",
    "BearerTokenAuth",
    "ApiResponse",
    "ResponseDecoder",
    "RetryConfig",
    "RetryPolicy",
    "RetryResult",
    # Pagination
    "Page",
    "PageRequest",
    "PaginationMeta",
    "PaginationWalker",
    # Field updates
    "FieldUpdate",
    "Add",
    "Remove",
    "Set",
    "Replace",
    "Clear",
    "IssuePatch",
    "encode_field_updates",
    # Tracker models
    "ExpandField",
    "Issue",
    "IssueCreate",
    "Queue",
    "QueueCreate",
    "SearchParams",
    "SearchRequest",
    # LLM models
    "ChatCompletionResponse",
    "CompletionOptions",
    "Message",
    "Role",
    "Usage",
]
