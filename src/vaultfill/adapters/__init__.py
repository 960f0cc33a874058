"""Resource adapters: per-kind substitution scope, coercion and serialization."""

from .base import ResourceAdapter, SubstitutionScope
from .configmap import ConfigMapAdapter
from .generic import GenericAdapter
from .registry import AdapterRegistry
from .secret import SecretAdapter

__all__ = [
    "AdapterRegistry",
    "ConfigMapAdapter",
    "GenericAdapter",
    "ResourceAdapter",
    "SecretAdapter",
    "SubstitutionScope",
]
