"""
Value coercions applied to resolved leaves.

Each function is total over ValueKind: it either returns a value of the
target representation or raises CoercionError.
"""

from typing import Any

from vaultfill.resolution.domain.models import SecretValue, ValueKind
from vaultfill.shared.domain.exceptions import CoercionError


def preserve_native(value: SecretValue) -> Any:
    """Keep the value's own type (a boolean stays a boolean)."""
    return value.native


def to_text(value: SecretValue) -> str:
    """Render as text: numbers in decimal, booleans as true/false, structures as JSON."""
    if value.kind == ValueKind.NULL:
        raise CoercionError(value.kind.value, "text")
    if value.kind == ValueKind.STRING and isinstance(value.raw, str):
        return value.raw
    return value.as_text()


def to_bytes(value: SecretValue) -> bytes:
    """UTF-8 bytes of the text form."""
    if value.kind == ValueKind.NULL:
        raise CoercionError(value.kind.value, "bytes")
    return to_text(value).encode("utf-8")
