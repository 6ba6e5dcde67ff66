"""Pydantic models for the OpenAI-compatible chat completion API."""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .validation import ValidatedModel


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One role-tagged chat message."""

    model_config = ConfigDict(extra="ignore")

    role: Role
    content: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)


class CompletionOptions(ValidatedModel):
    """Sampling options for a completion request.

    Every option is optional; unset options are omitted from the request so
    the provider's defaults apply.
    """

    model_config = ConfigDict(frozen=True)

    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(None, gt=0, description="Completion length limit")
    top_p: Optional[float] = Field(None, ge=0.0, le=1.0)
    frequency_penalty: Optional[float] = Field(None, ge=-2.0, le=2.0)
    presence_penalty: Optional[float] = Field(None, ge=-2.0, le=2.0)
    stop: Optional[List[str]] = None

    @field_validator("stop", mode="before")
    @classmethod
    def normalize_stop(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v


class ChatCompletionRequest(ValidatedModel):
    """Body of ``POST /chat/completions``."""

    model: str = Field(..., min_length=1)
    messages: List[Message] = Field(..., min_length=1)
    options: CompletionOptions = Field(default_factory=CompletionOptions)

    def to_body(self) -> Dict[str, Any]:
        """Flatten the options next to ``model`` and ``messages``."""
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                m.model_dump(mode="json", exclude_none=True) for m in self.messages
            ],
        }
        body.update(self.options.model_dump(mode="json", exclude_none=True))
        return body


class Choice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    message: Message
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    """Token accounting reported by the provider."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    model: str
    choices: List[Choice]
    usage: Optional[Usage] = None
    created: Optional[int] = None

    @property
    def content(self) -> Optional[str]:
        """Text of the first choice, or None when there is none."""
        if not self.choices:
            return None
        return self.choices[0].message.content


class ErrorDetail(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: str
    error_type: Optional[str] = Field(None, alias="type")
    code: Optional[Union[str, int]] = None


class ErrorResponse(BaseModel):
    """Error envelope returned by the completion API."""

    model_config = ConfigDict(extra="ignore")

    error: ErrorDetail
