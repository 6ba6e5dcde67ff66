"""
Shared pytest fixtures for worktrack tests.

Provides client configurations, a recording sleep for retry tests and helpers
for building ``httpx.MockTransport`` handlers.
"""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from worktrack.api_clients.retry_policy import RetryConfig, RetryPolicy
from worktrack.config import LLMConfig, TrackerConfig

TRACKER_TOKEN = "y0_tracker-oauth-token-0123456789"
LLM_TOKEN = "sk-or-v1-llm-bearer-token-abcdef0123"


class RecordingSleep:
    """Async stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def json_response(
    status_code: int = 200,
    payload: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Response:
    content = b"" if payload is None else json.dumps(payload).encode("utf-8")
    all_headers = {"Content-Type": "application/json"}
    all_headers.update(headers or {})
    return httpx.Response(status_code, content=content, headers=all_headers)


@pytest.fixture
def tracker_token() -> str:
    return TRACKER_TOKEN


@pytest.fixture
def llm_token() -> str:
    return LLM_TOKEN


@pytest.fixture
def tracker_config() -> TrackerConfig:
    """Tracker configuration pointing at a test host."""
    return TrackerConfig.with_token(
        TRACKER_TOKEN, org_id="12345", base_url="https://tracker.test"
    )


@pytest.fixture
def llm_config() -> LLMConfig:
    """LLM configuration pointing at a test host."""
    return LLMConfig.with_token(
        LLM_TOKEN,
        model="openai/gpt-4o-mini",
        base_url="https://llm.test/api/v1",
        site_url="https://worktrack.test",
        app_name="worktrack-tests",
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_retry_policy(recording_sleep: RecordingSleep) -> RetryPolicy:
    """Retry policy without jitter that records delays instead of sleeping."""
    return RetryPolicy(
        RetryConfig(max_retries=3, initial_delay=1.0, jitter_enabled=False),
        sleep=recording_sleep,
    )


@pytest.fixture
def make_json_response() -> Callable[..., httpx.Response]:
    return json_response


@pytest.fixture
def request_log() -> List[httpx.Request]:
    """Requests seen by a mock transport, in order."""
    return []
