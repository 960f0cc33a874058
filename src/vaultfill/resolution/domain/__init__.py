"""Resolution domain: value model, placeholder resolver and tree walker."""

from .models import ErrorCause, Placeholder, ResolutionError, Result, SecretValue, ValueKind
from .placeholder import SecretIndex, parse_marker, resolve_leaf, resolve_scalar
from .walker import scan_placeholders, walk

__all__ = [
    "ErrorCause",
    "Placeholder",
    "ResolutionError",
    "Result",
    "SecretValue",
    "ValueKind",
    "SecretIndex",
    "parse_marker",
    "resolve_leaf",
    "resolve_scalar",
    "scan_placeholders",
    "walk",
]
