"""Shared test fixtures for the vaultfill test suite."""

import asyncio
from typing import Any

import pytest

from vaultfill.backends.base import SecretBackend
from vaultfill.shared.domain.exceptions import AuthError, FetchError, FetchFailure
from vaultfill.shared.infrastructure.config import BackendType, Settings


class InMemoryBackend(SecretBackend):
    """Secret backend serving fixed data; records every call."""

    backend_type = BackendType.VAULT

    def __init__(
        self,
        secrets: dict[str, dict[str, Any]] | None = None,
        versions: dict[tuple[str, str], dict[str, Any]] | None = None,
        failures: dict[str, FetchFailure | Exception] | None = None,
        authenticated: bool = True,
        login_fails: bool = False,
    ):
        super().__init__(Settings(vault_addr="http://vault.test", vault_token="test-token"))
        self.secrets = secrets or {}
        self.versions = versions or {}
        self.failures = failures or {}
        self.authenticated = authenticated
        self.login_fails = login_fails
        self.fetch_calls: list[tuple[str, str | None]] = []
        self.logins = 0

    async def is_authenticated(self) -> bool:
        return self.authenticated

    async def authenticate(self) -> None:
        self.logins += 1
        if self.login_fails:
            raise AuthError("login refused")
        self.authenticated = True

    async def fetch_secret_data(self, path: str, version: str | None = None) -> dict[str, Any]:
        self.fetch_calls.append((path, version))
        # yield so concurrent callers overlap
        await asyncio.sleep(0)
        if path in self.failures:
            failure = self.failures[path]
            if isinstance(failure, Exception):
                raise failure
            raise FetchError(path, failure)
        if version is not None and (path, version) in self.versions:
            return dict(self.versions[(path, version)])
        if path not in self.secrets:
            raise FetchError(path, FetchFailure.NOT_FOUND)
        return dict(self.secrets[path])


@pytest.fixture
def app_secrets():
    """Secret data stored at the default test path."""
    return {
        "username": "admin",
        "password": "s3cr3t",
        "enabled": True,
        "port": 5432,
        "replicas": 3,
        "empty": None,
        "db": '{"hosts": ["db-0.internal", "db-1.internal"], "name": "orders"}',
    }


@pytest.fixture
def make_backend(app_secrets):
    """Factory for InMemoryBackend, preloaded with ``secret/data/app``."""

    def _make(**kwargs) -> InMemoryBackend:
        secrets = kwargs.pop("secrets", None)
        if secrets is None:
            secrets = {"secret/data/app": app_secrets}
        return InMemoryBackend(secrets=secrets, **kwargs)

    return _make


@pytest.fixture
def secret_template():
    """A Secret template using the default source path annotation."""
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {
            "name": "db-credentials",
            "annotations": {"avp.kubernetes.io/path": "secret/data/app"},
        },
        "type": "Opaque",
        "data": {
            "username": "<username>",
            "password": "<password>",
        },
    }


@pytest.fixture
def deployment_template():
    """A Deployment template; generic kinds keep native value types."""
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": "orders",
            "annotations": {"avp.kubernetes.io/path": "secret/data/app"},
        },
        "spec": {
            "replicas": "<replicas>",
            "template": {
                "spec": {
                    "containers": [
                        {
                            "name": "orders",
                            "image": "orders:1.4.2",
                            "env": [
                                {"name": "DB_DSN", "value": "db-<username>-<password>"},
                                {"name": "FEATURE_ENABLED", "value": "<enabled>"},
                            ],
                        }
                    ]
                }
            },
        },
    }
