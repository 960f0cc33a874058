"""
Base Secret Backend Interface

All backend implementations (HashiCorp Vault, IBM Secrets Manager, ...)
inherit from SecretBackend. The resolution core only depends on
``ensure_authenticated`` and ``fetch_secret_data``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from vaultfill.backends.session import BackendSession
from vaultfill.shared.domain.exceptions import FetchError, FetchFailure
from vaultfill.shared.infrastructure.config import BackendType, Settings
from vaultfill.shared.infrastructure.logging import get_logger
from vaultfill.shared.infrastructure.resilience import (
    CallPolicy,
    OperationTimeoutError,
    RetryExhausted,
    call_with_policy,
)

logger = get_logger(__name__)

# rate limited, sealed/standby node, failing gateway
TRANSIENT_STATUSES = frozenset({429, 502, 503, 504})


class SecretBackend(ABC):
    """
    Interface for secret backends.

    A backend owns its HTTP client unless one is injected, and uses the
    BackendSession it is given; it never keeps process-wide state.
    """

    backend_type: BackendType

    def __init__(
        self,
        settings: Settings,
        session: BackendSession | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        self.session = session or BackendSession()
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    @abstractmethod
    async def is_authenticated(self) -> bool:
        """
        Probe whether the current session is usable.

        Returns:
            True if the session is valid, False otherwise

        Note:
            Should NOT raise exceptions - return False on any error
        """
        pass

    @abstractmethod
    async def authenticate(self) -> None:
        """
        Establish a new session.

        Raises:
            AuthError: If the backend refused the credentials or was unreachable
        """
        pass

    @abstractmethod
    async def fetch_secret_data(self, path: str, version: str | None = None) -> dict[str, Any]:
        """
        Fetch every field stored at ``path``.

        Args:
            path: Source path in the backend
            version: Optional secret version

        Returns:
            Flat mapping of field name to value

        Raises:
            FetchError: With the underlying cause (not found, permission, network, timeout)
        """
        pass

    async def ensure_authenticated(self) -> None:
        """Reuse a still-valid session; authenticate only when it is absent or invalid."""
        if await self.is_authenticated():
            logger.debug("session_reused", backend=self.backend_type.value)
            return
        logger.info("session_login", backend=self.backend_type.value)
        await self.authenticate()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> SecretBackend:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.aclose()
        return False

    async def _send(self, method: str, url: str, operation: str, **kwargs: Any) -> httpx.Response:
        """
        One HTTP exchange bounded by the fetch timeout, retried on transport
        errors and transient statuses.

        Returns:
            The last response, which may still carry a transient status

        Raises:
            httpx.TransportError: When every attempt failed at the transport level
            OperationTimeoutError: When every attempt timed out
        """
        policy = CallPolicy.from_settings(self.settings, retry_on=(httpx.TransportError,))
        try:
            return await call_with_policy(
                lambda: self._client.request(method, url, **kwargs),
                policy,
                operation,
                retry_result=lambda response: response.status_code in TRANSIENT_STATUSES,
            )
        except RetryExhausted as e:
            raise e.last_error from e

    async def _fetch(self, method: str, url: str, path: str, **kwargs: Any) -> Any:
        """
        Issue a fetch request and return its decoded JSON body.

        Raises:
            FetchError: For every failure, classified by cause
        """
        try:
            response = await self._send(method, url, f"fetch:{path}", **kwargs)
        except OperationTimeoutError as e:
            raise FetchError(path, FetchFailure.TIMEOUT, str(e)) from e
        except httpx.TransportError as e:
            raise FetchError(path, FetchFailure.NETWORK, str(e)) from e

        raise_for_fetch_status(response, path)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(path, FetchFailure.INVALID_RESPONSE, "response is not JSON") from e


def raise_for_fetch_status(response: httpx.Response, path: str) -> None:
    """Translate an HTTP error status into a FetchError."""
    status = response.status_code
    if status < 400:
        return
    if status == 404:
        raise FetchError(path, FetchFailure.NOT_FOUND)
    if status in (401, 403):
        raise FetchError(path, FetchFailure.PERMISSION_DENIED, f"HTTP {status}")
    raise FetchError(path, FetchFailure.INVALID_RESPONSE, f"HTTP {status}")
