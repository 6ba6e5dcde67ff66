"""LLM completion API client.

Sends chat completion requests to an OpenAI-compatible endpoint (OpenRouter by
default) and returns typed responses with token usage.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from .base_client import BaseAPIClient
from .errors import AuthenticationError, LLMRequestError, RateLimitError
from .llm_models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    CompletionOptions,
    ErrorResponse,
    Message,
)
from .response_decoder import ApiResponse

if TYPE_CHECKING:
    from ..config import LLMConfig

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "chat/completions"


class LLMClient(BaseAPIClient):
    """API client for chat completions."""

    def __init__(self, config: "LLMConfig", **kwargs: Any):
        super().__init__(config, **kwargs)
        self._model = config.model

    @property
    def model(self) -> str:
        return self._model

    async def chat_completion(
        self,
        messages: Sequence[Message],
        options: Optional[CompletionOptions] = None,
        model: Optional[str] = None,
        retry_safe: Optional[bool] = None,
        cancel_event: Optional[asyncio.Event] = None,
        deadline: Optional[float] = None,
    ) -> ChatCompletionResponse:
        """Request a chat completion.

        Args:
            messages: Ordered conversation; must not be empty
            options: Sampling options
            model: Model override for this request
            retry_safe: Pass True to repeat the request after a rate limit or a
                transient failure; by default a completion is sent once
            cancel_event: Event that aborts the call when set
            deadline: Time budget in seconds for all attempts

        Returns:
            The completion response, including token usage

        Raises:
            LLMRequestError: If no messages are given or the provider reports an error
            ConfigurationError: If the request fails validation
        """
        messages = list(messages)
        if not messages:
            raise LLMRequestError("At least one message is required")
        if any(m.content is None for m in messages):
            raise LLMRequestError("Every message must have content")

        request = ChatCompletionRequest(
            model=model or self._model,
            messages=messages,
            options=options or CompletionOptions(),
        )
        logger.debug(
            f"Requesting completion from {request.model} with {len(messages)} messages"
        )

        response = await self.post(
            COMPLETIONS_PATH,
            body=request.to_body(),
            expected_type=Union[ChatCompletionResponse, ErrorResponse],
            retry_safe=retry_safe,
            cancel_event=cancel_event,
            deadline=deadline,
            check=self._check_envelope,
        )

        data: ChatCompletionResponse = response.data
        if data.usage is not None:
            logger.info(
                f"Completion {data.id} from {data.model}: "
                f"{data.usage.prompt_tokens} prompt + "
                f"{data.usage.completion_tokens} completion tokens"
            )
        return data

    async def complete(
        self, prompt: str, options: Optional[CompletionOptions] = None, **kwargs: Any
    ) -> str:
        """Send a single user prompt and return the reply text."""
        kwargs.setdefault("retry_safe", True)
        response = await self.chat_completion(
            [Message.user(prompt)], options=options, **kwargs
        )
        return self._require_content(response)

    async def complete_with_system(
        self,
        system_prompt: str,
        user_prompt: str,
        options: Optional[CompletionOptions] = None,
        **kwargs: Any,
    ) -> str:
        """Send a system prompt and a user prompt and return the reply text."""
        kwargs.setdefault("retry_safe", True)
        response = await self.chat_completion(
            [Message.system(system_prompt), Message.user(user_prompt)],
            options=options,
            **kwargs,
        )
        return self._require_content(response)

    @staticmethod
    def _require_content(response: ChatCompletionResponse) -> str:
        content = response.content
        if not content:
            raise LLMRequestError(f"Completion {response.id} contained no content")
        return content

    @classmethod
    def _check_envelope(cls, response: ApiResponse) -> None:
        # Runs inside each attempt so a rate-limit envelope is retried like a 429
        if isinstance(response.data, ErrorResponse):
            raise cls._provider_error(response.data)

    @staticmethod
    def _provider_error(error: ErrorResponse) -> Exception:
        detail = error.error
        code = detail.code
        if code in (401, 403, "401", "403"):
            return AuthenticationError(
                f"Authentication failed: {detail.message}", status_code=int(code)
            )
        if code in (429, "429"):
            return RateLimitError(f"Rate limit exceeded: {detail.message}")
        return LLMRequestError(f"Provider error: {detail.message}")
