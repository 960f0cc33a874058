"""
Backend Registry for secret backends.

Registry-based factory keyed by BackendType (AVP_TYPE).
"""

from __future__ import annotations

from collections.abc import Callable

import httpx

from vaultfill.shared.domain.exceptions import ConfigurationError
from vaultfill.shared.infrastructure.config import BackendType, Settings

from .base import SecretBackend
from .ibm import IBMSecretsManagerBackend
from .session import BackendSession
from .vault import VaultBackend

BackendFactory = Callable[..., SecretBackend]


class BackendRegistry:
    """Registry-based factory for secret backends."""

    _backends: dict[BackendType, BackendFactory] = {}

    @classmethod
    def register(cls, backend_type: BackendType, factory: BackendFactory) -> None:
        """
        Register a backend factory.

        Example:
            BackendRegistry.register(BackendType.VAULT, VaultBackend)
        """
        cls._backends[backend_type] = factory

    @classmethod
    def create(
        cls,
        settings: Settings,
        session: BackendSession | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> SecretBackend:
        """
        Create the backend selected by ``settings.avp_type``.

        The session starts from VAULT_TOKEN when none is given, so an
        existing token is probed before any login traffic.

        Raises:
            ConfigurationError: If the backend is unknown or misconfigured
        """
        backend_type = settings.avp_type
        if backend_type not in cls._backends:
            available = [b.value for b in cls.available()]
            raise ConfigurationError(f"No backend registered for: {backend_type.value}. Available: {available}")

        settings.validate_backend()

        if session is None:
            session = BackendSession(token=settings.vault_token if backend_type == BackendType.VAULT else None)
        return cls._backends[backend_type](settings, session=session, client=client)

    @classmethod
    def available(cls) -> list[BackendType]:
        return list(cls._backends.keys())


BackendRegistry.register(BackendType.VAULT, VaultBackend)
BackendRegistry.register(BackendType.IBM_SECRETS_MANAGER, IBMSecretsManagerBackend)
