"""Pydantic base model whose validation failures surface as ConfigurationError."""

from typing import Any

from pydantic import BaseModel, ValidationError

from .errors import ConfigurationError


def format_validation_error(error: ValidationError) -> str:
    """Summarize a pydantic error by location and message, without input values."""
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or error.title
        parts.append(f"{location}: {item.get('msg')}")
    return f"Invalid {error.title}: " + "; ".join(parts)


class ValidatedModel(BaseModel):
    """Base for caller-constructed models (configuration and request bodies)."""

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(format_validation_error(e)) from None
