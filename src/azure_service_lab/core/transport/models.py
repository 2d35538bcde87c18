# -*- coding: utf-8 -*-

"""
Typed request/response models.

Request and response bodies are plain dataclasses deriving from ``Model``.
Each field declares its wire name and whether it is dropped from the JSON
body when unset, so partial-update semantics on the server side are explicit
at the model level:

    @dataclass
    class SearchField(Model):
        name: str = wire("name")
        key: bool = wire("key", omit_empty=True, default=False)
"""

import types
from dataclasses import MISSING, field, fields, is_dataclass
from enum import Enum
from typing import Any, Union, get_args, get_origin, get_type_hints

from .errors import DecodeError


def wire(name=None, *, omit_empty=False, default=MISSING, default_factory=MISSING):
    """
    Declare a model field together with its serialization policy.

    Args:
        name (str): JSON key. Defaults to the attribute name.
        omit_empty (bool): Drop the key when the value is None, False, 0,
            an empty string or an empty collection.
        default: Default value. Leave unset for required fields.
        default_factory: Factory for mutable defaults.
    """
    metadata = {"wire": name, "omit_empty": omit_empty}
    return field(default=default, default_factory=default_factory, metadata=metadata)


def _is_empty(value) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    if isinstance(value, (str, bytes, list, tuple, dict, set)):
        return len(value) == 0
    return False


def to_wire(value):
    """Recursively convert models, enums and containers to JSON-ready values."""
    if isinstance(value, Model):
        return value.to_wire()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    if isinstance(value, dict):
        return {k: to_wire(v) for k, v in value.items()}
    return value


def _decode(tp, value):
    if value is None:
        return None
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        candidates = [a for a in get_args(tp) if a is not type(None)]
        if len(candidates) == 1:
            return _decode(candidates[0], value)
        return value
    if origin in (list, tuple):
        if not isinstance(value, list):
            raise TypeError(f"expected a list, got {type(value).__name__}")
        args = get_args(tp)
        item_tp = args[0] if args else Any
        items = [_decode(item_tp, v) for v in value]
        return tuple(items) if origin is tuple else items
    if isinstance(tp, type) and issubclass(tp, Model):
        return tp.from_wire(value)
    if isinstance(tp, type) and issubclass(tp, Enum):
        return tp(value)
    return value


class Model:
    """Mixin for dataclass bodies exchanged with Azure endpoints."""

    def to_wire(self) -> dict:
        body = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.metadata.get("omit_empty") and _is_empty(value):
                continue
            body[f.metadata.get("wire") or f.name] = to_wire(value)
        return body

    @classmethod
    def from_wire(cls, data):
        if not is_dataclass(cls):
            raise TypeError(f"{cls.__name__} is not a dataclass")
        if not isinstance(data, dict):
            raise DecodeError(f"{cls.__name__}: expected a JSON object, got {type(data).__name__}")

        hints = get_type_hints(cls)
        kwargs = {}
        for f in fields(cls):
            key = f.metadata.get("wire") or f.name
            if key not in data:
                if f.default is MISSING and f.default_factory is MISSING:
                    raise DecodeError(f"{cls.__name__}: missing required key '{key}'")
                continue
            try:
                kwargs[f.name] = _decode(hints.get(f.name, Any), data[key])
            except (TypeError, ValueError) as e:
                raise DecodeError(f"{cls.__name__}.{f.name}: {e}") from e
        return cls(**kwargs)
