"""
Resolution domain models.

SecretValue is the tagged variant for values fetched from an untyped
store. Result and ResolutionError carry aggregated outcomes through the
tree walk without raising.
"""

from __future__ import annotations

import json
import math
from decimal import Decimal
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ValueKind(Enum):
    """Semantic type of a secret value."""

    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    NULL = "null"
    STRUCTURED = "structured"


@dataclass(frozen=True)
class SecretValue:
    """A value fetched from a secret backend, tagged with its semantic type."""

    kind: ValueKind
    raw: Any

    @classmethod
    def of(cls, raw: Any) -> SecretValue:
        # bool is a subclass of int, check it first
        if isinstance(raw, bool):
            return cls(ValueKind.BOOL, raw)
        if isinstance(raw, (int, float)):
            return cls(ValueKind.NUMBER, raw)
        if isinstance(raw, str):
            return cls(ValueKind.STRING, raw)
        if raw is None:
            return cls(ValueKind.NULL, None)
        if isinstance(raw, (dict, list, tuple)):
            return cls(ValueKind.STRUCTURED, raw)
        # dates and other YAML scalars keep their object, render via str()
        return cls(ValueKind.STRING, raw)

    @property
    def native(self) -> Any:
        return self.raw

    def as_text(self) -> str:
        """Render the value as text; total over every kind."""
        if self.kind == ValueKind.BOOL:
            return "true" if self.raw else "false"
        if self.kind == ValueKind.NULL:
            return ""
        if self.kind == ValueKind.STRUCTURED:
            return json.dumps(self.raw, separators=(",", ":"), default=str)
        if isinstance(self.raw, float):
            return _format_float(self.raw)
        return str(self.raw)


@dataclass(frozen=True)
class Placeholder:
    """
    A parsed placeholder marker.

    ``source_path`` is None for bare ``<key>`` markers, which resolve
    against the document's default source path.
    """

    raw: str
    key: str
    source_path: str | None = None
    version: str | None = None

    @property
    def is_explicit(self) -> bool:
        return self.source_path is not None


class ErrorCause(Enum):
    """Why a single field could not be resolved."""

    KEY_NOT_FOUND = "key_not_found"
    FETCH_FAILED = "fetch_failed"
    COERCION_FAILED = "coercion_failed"
    MALFORMED_MARKER = "malformed_marker"


@dataclass(frozen=True)
class ResolutionError:
    """One failed field, reported after the full traversal."""

    field_path: str
    placeholder: str
    cause: ErrorCause
    message: str

    def __str__(self) -> str:
        return f"{self.field_path}: {self.placeholder}: {self.message}"


@dataclass
class Result(Generic[T]):
    """A value plus every resolution error produced while computing it."""

    value: T
    errors: list[ResolutionError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def failure(cls, value: T, error: ResolutionError) -> Result[T]:
        return cls(value, [error])


def _format_float(value: float) -> str:
    """Plain decimal notation, never an exponent (1e21 -> 1000000000000000000000)."""
    if not math.isfinite(value):
        return str(value)
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")
