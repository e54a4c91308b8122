"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by ``__post_init__``
methods in sibling model modules, and by the models' ``to_dict()`` to turn
frozen payloads back into plain JSON values.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any


def validate_str_no_null(value: Any, name: str) -> None:
    """Raise if *value* is not a ``str`` or contains null bytes."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if "\x00" in value:
        raise ValueError(f"{name} contains null bytes")


def validate_str_not_empty(value: Any, name: str) -> None:
    """Raise if *value* is not a non-empty ``str`` without null bytes."""
    validate_str_no_null(value, name)
    if not value:
        raise ValueError(f"{name} must not be empty")


def validate_optional_str(value: Any, name: str) -> None:
    """Like ``validate_str_no_null`` but accepts ``None``."""
    if value is not None:
        validate_str_no_null(value, name)


def validate_bool(value: Any, name: str) -> None:
    """Raise ``TypeError`` unless *value* is exactly a ``bool``."""
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be a bool, got {type(value).__name__}")


def deep_freeze(obj: Any) -> Any:
    """Recursively make a parsed JSON value immutable.

    Objects become ``MappingProxyType`` and arrays become tuples; scalars
    are returned unchanged.
    """
    if isinstance(obj, Mapping):
        return MappingProxyType({k: deep_freeze(v) for k, v in obj.items()})
    if isinstance(obj, list | tuple):
        return tuple(deep_freeze(item) for item in obj)
    return obj


def thaw(obj: Any) -> Any:
    """Inverse of [deep_freeze][instances_api.models._validation.deep_freeze].

    Returns plain ``dict``/``list`` values suitable for ``json.dumps``.
    """
    if isinstance(obj, Mapping):
        return {k: thaw(v) for k, v in obj.items()}
    if isinstance(obj, list | tuple):
        return [thaw(item) for item in obj]
    return obj
