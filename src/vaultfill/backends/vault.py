"""
HashiCorp Vault backend.

Auth methods: token, approle, github, kubernetes.
Reads the KV secrets engine (v1 or v2). For KV v2 the source path includes
the ``data/`` segment, e.g. ``secret/data/my-app``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx

from vaultfill.shared.domain.exceptions import AuthError, FetchError, FetchFailure
from vaultfill.shared.infrastructure.config import AuthType, BackendType
from vaultfill.shared.infrastructure.logging import get_logger
from vaultfill.shared.infrastructure.resilience import OperationTimeoutError

from .base import SecretBackend

logger = get_logger(__name__)


class VaultBackend(SecretBackend):
    """HashiCorp Vault over its HTTP API."""

    backend_type = BackendType.VAULT

    @property
    def base_url(self) -> str:
        return (self.settings.vault_addr or "").rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {"X-Vault-Token": self.session.token or ""}

    async def is_authenticated(self) -> bool:
        if not self.session.has_token or self.session.is_expired():
            return False
        try:
            response = await self._send(
                "GET",
                f"{self.base_url}/v1/auth/token/lookup-self",
                "token_lookup",
                headers=self._headers(),
            )
        except (httpx.TransportError, OperationTimeoutError) as e:
            logger.warning("token_lookup_failed", error=str(e))
            return False
        return response.status_code == 200

    async def authenticate(self) -> None:
        auth_type = self.settings.avp_auth_type

        if auth_type == AuthType.TOKEN:
            # nothing to exchange; the probe already rejected the token
            raise AuthError("VAULT_TOKEN is missing, invalid or expired", {"auth_type": auth_type.value})

        if auth_type == AuthType.APPROLE:
            mount, payload = "auth/approle", {
                "role_id": self.settings.avp_role_id,
                "secret_id": self.settings.avp_secret_id,
            }
        elif auth_type == AuthType.GITHUB:
            mount, payload = "auth/github", {"token": self.settings.avp_github_token}
        else:
            mount, payload = self.settings.avp_k8s_mount_path.strip("/"), {
                "role": self.settings.avp_k8s_role,
                "jwt": self._read_service_account_token(),
            }

        try:
            response = await self._send("POST", f"{self.base_url}/v1/{mount}/login", "vault_login", json=payload)
        except (httpx.TransportError, OperationTimeoutError) as e:
            raise AuthError(f"could not reach Vault at {self.base_url}: {e}", {"auth_type": auth_type.value}) from e

        if response.status_code != 200:
            raise AuthError(
                f"Vault {auth_type.value} login failed with HTTP {response.status_code}",
                {"auth_type": auth_type.value, "status": response.status_code},
            )

        try:
            auth = response.json()["auth"]
            token = auth["client_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError("Vault login response has no client token", {"auth_type": auth_type.value}) from e

        self.session.update(token, auth.get("lease_duration") or None)
        logger.info("vault_login_succeeded", auth_type=auth_type.value)

    def _read_service_account_token(self) -> str:
        token_path = Path(self.settings.avp_k8s_token_path)
        try:
            return token_path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise AuthError(f"could not read service account token at {token_path}: {e}") from e

    async def fetch_secret_data(self, path: str, version: str | None = None) -> dict[str, Any]:
        params = {}
        if version is not None:
            if self.settings.avp_kv_version != 2:
                raise FetchError(path, FetchFailure.INVALID_PATH, "versions require KV v2")
            params["version"] = version

        body = await self._fetch(
            "GET",
            f"{self.base_url}/v1/{path.strip('/')}",
            path,
            headers=self._headers(),
            params=params,
        )

        data = body.get("data") if isinstance(body, dict) else None
        if self.settings.avp_kv_version == 2 and isinstance(data, dict):
            data = data.get("data")
        if not isinstance(data, dict):
            raise FetchError(path, FetchFailure.INVALID_RESPONSE, "no secret data in response")

        logger.debug("secret_fetched", backend=self.backend_type.value, path=path, keys=len(data))
        return data
