"""Secret backends: the only network-facing contract of the resolution core."""

from .base import SecretBackend
from .ibm import IBMSecretsManagerBackend
from .registry import BackendRegistry
from .session import BackendSession
from .vault import VaultBackend

__all__ = [
    "BackendRegistry",
    "BackendSession",
    "IBMSecretsManagerBackend",
    "SecretBackend",
    "VaultBackend",
]
