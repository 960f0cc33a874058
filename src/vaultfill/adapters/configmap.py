"""ConfigMap adapter: ``data`` is text only, ``binaryData`` is bytes."""

from typing import Any

from .base import ResourceAdapter, SubstitutionScope
from .coercion import preserve_native, to_bytes, to_text
from .schemas import ConfigMapManifest


class ConfigMapAdapter(ResourceAdapter):
    """Kubernetes ConfigMap."""

    kind = "ConfigMap"
    schema = ConfigMapManifest

    def scopes(self, document: dict[str, Any]) -> list[SubstitutionScope]:
        candidates = [
            SubstitutionScope("metadata", preserve_native),
            SubstitutionScope("data", to_text),
            SubstitutionScope("binaryData", to_bytes),
        ]
        # a bare `data:` line parses as null and has nothing to substitute
        return [scope for scope in candidates if document.get(scope.key) is not None]
