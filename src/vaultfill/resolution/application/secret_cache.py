"""
Per-run secret cache.

Memoizes backend responses by (source path, version). Concurrent callers
for the same key share one in-flight fetch, and failures are cached too,
so every key costs exactly one backend call per run. Cached data is
exposed read-only.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from vaultfill.backends.base import SecretBackend
from vaultfill.shared.domain.exceptions import AuthError, FetchError, FetchFailure
from vaultfill.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

CacheKey = tuple[str, "str | None"]


class SecretCache:
    """
    Source path -> secret data, shared by every document of one run.

    Must be used from a single event loop; entries are asyncio tasks, so a
    lookup never blocks other paths while a fetch is in flight.
    """

    def __init__(self, backend: SecretBackend):
        self._backend = backend
        self._entries: dict[CacheKey, asyncio.Task] = {}
        self.fetch_count = 0

    async def get_or_fetch(self, path: str, version: str | None = None) -> Mapping[str, Any]:
        """
        Return the secret data at ``path``, fetching it on first use.

        Raises:
            FetchError: The (cached) failure for this path
        """
        key = (path, version)
        task = self._entries.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(path, version))
            self._entries[key] = task
        # shield: a cancelled waiter must not cancel the fetch other documents await
        return await asyncio.shield(task)

    async def _load(self, path: str, version: str | None) -> Mapping[str, Any]:
        self.fetch_count += 1
        logger.debug("secret_cache_miss", path=path, version=version)
        try:
            data = dict(await self._backend.fetch_secret_data(path, version))
        except (FetchError, AuthError) as e:
            logger.warning("secret_fetch_failed", path=path, error=str(e))
            raise
        except Exception as e:
            # anything else stays local to the documents that reference this path
            logger.warning("secret_fetch_failed", path=path, error=str(e), error_type=type(e).__name__)
            raise FetchError(path, FetchFailure.INVALID_RESPONSE, f"{type(e).__name__}: {e}") from e
        return MappingProxyType(data)

    def cached_paths(self) -> list[CacheKey]:
        return list(self._entries.keys())
