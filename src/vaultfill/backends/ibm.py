"""
IBM Cloud Secrets Manager backend.

Authenticates with an IAM API key. A source path names a secret group:

    ibmcloud/<secret_type>/groups/<group_id>

and resolves to every secret of that type in the group, keyed by secret
name. For ``arbitrary`` secrets the value is the payload; for other types
it is the secret's ``secret_data`` mapping.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from vaultfill.shared.domain.exceptions import AuthError, FetchError, FetchFailure
from vaultfill.shared.infrastructure.config import BackendType
from vaultfill.shared.infrastructure.logging import get_logger
from vaultfill.shared.infrastructure.resilience import OperationTimeoutError

from .base import SecretBackend

logger = get_logger(__name__)

IAM_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"


def parse_group_path(path: str) -> tuple[str, str]:
    """
    Split ``ibmcloud/<secret_type>/groups/<group_id>``.

    Raises:
        FetchError: If the path does not have that shape
    """
    parts = path.strip("/").split("/")
    if len(parts) != 4 or parts[0] != "ibmcloud" or parts[2] != "groups" or not parts[1] or not parts[3]:
        raise FetchError(path, FetchFailure.INVALID_PATH, "expected ibmcloud/<secret_type>/groups/<group_id>")
    return parts[1], parts[3]


class IBMSecretsManagerBackend(SecretBackend):
    """IBM Cloud Secrets Manager (v1 API)."""

    backend_type = BackendType.IBM_SECRETS_MANAGER

    @property
    def base_url(self) -> str:
        return (self.settings.avp_ibm_instance_url or "").rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.session.token or ''}", "Accept": "application/json"}

    async def is_authenticated(self) -> bool:
        # IAM tokens are opaque; trust the expiry IAM handed out
        return self.session.has_token and not self.session.is_expired()

    async def authenticate(self) -> None:
        iam_url = self.settings.ibm_iam_url.rstrip("/")
        try:
            response = await self._send(
                "POST",
                f"{iam_url}/identity/token",
                "iam_login",
                data={"grant_type": IAM_GRANT_TYPE, "apikey": self.settings.avp_ibm_api_key or ""},
                headers={"Accept": "application/json"},
            )
        except (httpx.TransportError, OperationTimeoutError) as e:
            raise AuthError(f"could not reach IBM Cloud IAM at {iam_url}: {e}") from e

        if response.status_code != 200:
            raise AuthError(f"IBM Cloud IAM login failed with HTTP {response.status_code}", {"status": response.status_code})

        try:
            body = response.json()
            token = body["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError("IBM Cloud IAM response has no access token") from e

        self.session.update(token, body.get("expires_in"))
        logger.info("iam_login_succeeded")

    async def fetch_secret_data(self, path: str, version: str | None = None) -> dict[str, Any]:
        secret_type, group_id = parse_group_path(path)

        listing = await self._fetch(
            "GET",
            f"{self.base_url}/api/v1/secrets/{secret_type}",
            path,
            headers=self._headers(),
            params={"groups": group_id},
        )
        resources = listing.get("resources") if isinstance(listing, dict) else None
        if not isinstance(resources, list):
            raise FetchError(path, FetchFailure.INVALID_RESPONSE, "secret listing has no resources")

        async def _one(resource: dict[str, Any]) -> tuple[str, Any]:
            url = f"{self.base_url}/api/v1/secrets/{secret_type}/{resource['id']}"
            if version is not None:
                url = f"{url}/versions/{version}"
            body = await self._fetch("GET", url, path, headers=self._headers())
            try:
                secret_data = body["resources"][0]["secret_data"]
            except (KeyError, IndexError, TypeError) as e:
                raise FetchError(path, FetchFailure.INVALID_RESPONSE, f"secret '{resource['name']}' has no data") from e
            if isinstance(secret_data, dict) and "payload" in secret_data:
                return resource["name"], secret_data["payload"]
            return resource["name"], secret_data

        pairs = await asyncio.gather(*(_one(r) for r in resources if "id" in r and "name" in r))
        data = dict(pairs)

        logger.debug("secret_fetched", backend=self.backend_type.value, path=path, keys=len(data))
        return data
