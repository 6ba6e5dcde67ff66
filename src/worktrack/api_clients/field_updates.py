"""Partial-update encoding for tracker issue fields.

Array fields of an issue can be patched with an operation instead of a full
value. Each operation encodes to the JSON fragment the tracker expects::

    Add(["a"])             -> {"add": ["a"]}
    Remove(["a"])          -> {"remove": ["a"]}
    Set(["a"])             -> {"set": ["a"]}
    Replace([("a", "b")])  -> {"replace": [{"target": "a", "replacement": "b"}]}
    Clear()                -> null

Anything that is not a ``FieldUpdate`` is a plain scalar value and is sent as is.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

from .errors import FieldUpdateError


class FieldUpdate(ABC):
    """Base class of the field update operations."""

    @abstractmethod
    def encode(self) -> Any:
        """JSON fragment sent for the field."""


def _as_tuple(values: Any) -> Tuple[Any, ...]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        return (values,)
    return tuple(values)


@dataclass(frozen=True)
class Add(FieldUpdate):
    values: Tuple[Any, ...]

    def __init__(self, values: Any):
        object.__setattr__(self, "values", _as_tuple(values))

    def encode(self) -> Any:
        return {"add": list(self.values)}


@dataclass(frozen=True)
class Remove(FieldUpdate):
    values: Tuple[Any, ...]

    def __init__(self, values: Any):
        object.__setattr__(self, "values", _as_tuple(values))

    def encode(self) -> Any:
        return {"remove": list(self.values)}


@dataclass(frozen=True)
class Set(FieldUpdate):
    values: Tuple[Any, ...]

    def __init__(self, values: Any):
        object.__setattr__(self, "values", _as_tuple(values))

    def encode(self) -> Any:
        return {"set": list(self.values)}


@dataclass(frozen=True)
class Replace(FieldUpdate):
    pairs: Tuple[Tuple[Any, Any], ...]

    def __init__(self, pairs: Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]]]):
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        object.__setattr__(self, "pairs", tuple((t, r) for t, r in items))

    def encode(self) -> Any:
        return {
            "replace": [
                {"target": target, "replacement": replacement}
                for target, replacement in self.pairs
            ]
        }


@dataclass(frozen=True)
class Clear(FieldUpdate):
    def encode(self) -> Any:
        return None


def encode_value(update: Any) -> Any:
    """Encode one field value; scalars pass through unchanged."""
    if isinstance(update, FieldUpdate):
        return update.encode()
    return update


def encode_field_updates(
    updates: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]
) -> Dict[str, Any]:
    """Encode a set of field updates into a PATCH body.

    Args:
        updates: Mapping or ``(field, update)`` pairs, in the order to send

    Returns:
        Ordered dict ready to be serialized as the request body

    Raises:
        FieldUpdateError: If a field is updated more than once
    """
    items = updates.items() if isinstance(updates, Mapping) else updates
    body: Dict[str, Any] = {}
    for field_name, update in items:
        if field_name in body:
            raise FieldUpdateError(f"Conflicting updates for field '{field_name}'")
        body[field_name] = encode_value(update)
    return body


class IssuePatch:
    """Chained builder for an issue PATCH body.

    Example:
        patch = IssuePatch().add("followers", ["user1"]).value("summary", "New")
    """

    def __init__(self) -> None:
        self._updates: Dict[str, Any] = {}

    def _put(self, field_name: str, update: Any) -> "IssuePatch":
        if field_name in self._updates:
            raise FieldUpdateError(f"Conflicting updates for field '{field_name}'")
        self._updates[field_name] = update
        return self

    def add(self, field_name: str, values: Any) -> "IssuePatch":
        return self._put(field_name, Add(values))

    def remove(self, field_name: str, values: Any) -> "IssuePatch":
        return self._put(field_name, Remove(values))

    def set(self, field_name: str, values: Any) -> "IssuePatch":
        return self._put(field_name, Set(values))

    def replace(self, field_name: str, pairs: Any) -> "IssuePatch":
        return self._put(field_name, Replace(pairs))

    def clear(self, field_name: str) -> "IssuePatch":
        return self._put(field_name, Clear())

    def value(self, field_name: str, value: Any) -> "IssuePatch":
        """Set a scalar field to ``value``."""
        return self._put(field_name, value)

    @property
    def updates(self) -> Dict[str, Any]:
        return dict(self._updates)

    @property
    def is_idempotent(self) -> bool:
        """False when repeating the patch could apply an Add or Remove twice."""
        return not any(isinstance(u, (Add, Remove)) for u in self._updates.values())

    def to_body(self) -> Dict[str, Any]:
        return encode_field_updates(self._updates)

    def __len__(self) -> int:
        return len(self._updates)

    def __bool__(self) -> bool:
        return bool(self._updates)
