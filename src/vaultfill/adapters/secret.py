"""
Secret adapter.

Secret ``data`` holds bytes, so every resolved value there is encoded
regardless of its native type (``true`` becomes ``b"true"``) and written
base64-encoded on output. ``stringData`` keeps text and ``metadata`` keeps
native values.
"""

from typing import Any

from .base import ResourceAdapter, SubstitutionScope
from .coercion import preserve_native, to_bytes, to_text
from .schemas import SecretManifest


class SecretAdapter(ResourceAdapter):
    """Kubernetes Secret."""

    kind = "Secret"
    schema = SecretManifest

    def scopes(self, document: dict[str, Any]) -> list[SubstitutionScope]:
        candidates = [
            SubstitutionScope("metadata", preserve_native),
            SubstitutionScope("data", to_bytes),
            SubstitutionScope("stringData", to_text),
        ]
        # a bare `data:` line parses as null and has nothing to substitute
        return [scope for scope in candidates if document.get(scope.key) is not None]
