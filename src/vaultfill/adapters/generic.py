"""
Generic adapter for every kind without a dedicated adapter.

Deployments, Services, Ingresses, Jobs, CronJobs and custom resources are
substituted everywhere except ``apiVersion`` and ``kind``, keeping native
value types. Output is the resolved document itself, key order and
explicit nulls included; the schema only checks the resource envelope.
"""

from typing import Any

from .base import ResourceAdapter, SubstitutionScope
from .coercion import preserve_native
from .schemas import GenericManifest

_ENVELOPE_KEYS = ("apiVersion", "kind")


class GenericAdapter(ResourceAdapter):
    """Any Kubernetes resource kind."""

    kind = "Generic"
    schema = GenericManifest

    def scopes(self, document: dict[str, Any]) -> list[SubstitutionScope]:
        return [
            SubstitutionScope(key, preserve_native)
            for key in document
            if key not in _ENVELOPE_KEYS
        ]

    def serialize(self, document: dict[str, Any]) -> dict[str, Any]:
        self.validate(document)
        return document
