"""
Manifest orchestrator.

Resolves each template document end to end:

1. pick the resource adapter for the document's kind
2. scan the adapter's scopes for placeholders
3. prefetch the default source path and every explicit ``path:`` source
4. walk the scopes, collecting every resolution error
5. serialize only when no error was collected

Documents of a batch are independent. A failing document produces no
output and never stops the others.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from vaultfill.adapters.base import ResourceAdapter
from vaultfill.adapters.registry import AdapterRegistry
from vaultfill.backends.base import SecretBackend
from vaultfill.resolution.domain.models import Placeholder, ResolutionError
from vaultfill.resolution.domain.placeholder import SecretIndex
from vaultfill.resolution.domain.walker import scan_placeholders
from vaultfill.shared.domain.exceptions import ConfigurationError, FetchError, VaultfillError
from vaultfill.shared.infrastructure.logging import get_logger
from vaultfill.shared.infrastructure.resilience import ParallelBatchExecutor

from .secret_cache import SecretCache

logger = get_logger(__name__)

PATH_ANNOTATIONS = ("avp.kubernetes.io/path", "avp_path")
IGNORE_ANNOTATIONS = ("avp.kubernetes.io/ignore", "avp_ignore")


@dataclass
class DocumentResult:
    """Outcome of resolving one document."""

    index: int
    kind: str | None = None
    name: str | None = None
    output: dict[str, Any] | None = None
    errors: list[ResolutionError] = field(default_factory=list)
    fatal: VaultfillError | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors and self.fatal is None

    def failures(self) -> list[tuple[str, str]]:
        """Ordered (field path, cause) pairs; a fatal error is reported against the whole document."""
        pairs = [(error.field_path, error.message) for error in self.errors]
        if self.fatal is not None:
            pairs.append(("<document>", str(self.fatal)))
        return pairs


def _annotations(document: Mapping[str, Any]) -> Mapping[str, Any]:
    metadata = document.get("metadata")
    if not isinstance(metadata, Mapping):
        return {}
    annotations = metadata.get("annotations")
    return annotations if isinstance(annotations, Mapping) else {}


def is_ignored(document: Mapping[str, Any]) -> bool:
    """True when the document opts out of substitution."""
    annotations = _annotations(document)
    for key in IGNORE_ANNOTATIONS:
        value = annotations.get(key)
        if value is True or (isinstance(value, str) and value.strip().lower() == "true"):
            return True
    return False


class ManifestOrchestrator:
    """
    Drives backend, cache, adapters and walker for a batch of documents.

    One orchestrator is one run: its SecretCache lives exactly as long.
    """

    def __init__(
        self,
        backend: SecretBackend,
        path_prefix: str | None = None,
        max_concurrency: int = 8,
        cache: SecretCache | None = None,
    ):
        self._backend = backend
        self._path_prefix = path_prefix.rstrip("/") if path_prefix else None
        self._max_concurrency = max_concurrency
        self.cache = cache or SecretCache(backend)

    def source_path_for(self, document: Mapping[str, Any]) -> str:
        """
        Default source path of a document.

        The path annotation wins; otherwise ``<prefix>/<kind in lowercase>``.

        Raises:
            ConfigurationError: If neither an annotation nor a prefix is available
        """
        annotations = _annotations(document)
        for key in PATH_ANNOTATIONS:
            value = annotations.get(key)
            if isinstance(value, str) and value.strip("/ "):
                return value.strip("/ ")

        kind = document.get("kind")
        if self._path_prefix and isinstance(kind, str) and kind:
            return f"{self._path_prefix}/{kind.lower()}"

        raise ConfigurationError(
            "document uses <key> placeholders but has no source path: "
            f"set AVP_PATH_PREFIX or the '{PATH_ANNOTATIONS[0]}' annotation",
            {"kind": kind},
        )

    async def resolve_batch(self, documents: Iterable[Any]) -> list[DocumentResult]:
        """
        Resolve every document, in parallel, returning results in input order.

        Raises:
            AuthError: If no backend session could be established
        """
        await self._backend.ensure_authenticated()

        items = list(enumerate(documents))
        executor = ParallelBatchExecutor(concurrency_limit=self._max_concurrency, return_exceptions=False)
        results = await executor.execute_batch(
            items,
            lambda item: self.resolve_document(item[1], item[0]),
            batch_name="documents",
        )

        failed = sum(1 for r in results if not r.ok)
        logger.info(
            "batch_resolved",
            documents=len(results),
            failed=failed,
            fetches=self.cache.fetch_count,
        )
        return results

    async def resolve_document(self, document: Any, index: int = 0) -> DocumentResult:
        """
        Resolve one document. Never raises for domain failures; they are
        reported on the returned DocumentResult.
        """
        if not document:
            return DocumentResult(index=index, skipped=True)
        if not isinstance(document, dict):
            return DocumentResult(
                index=index,
                fatal=ConfigurationError(f"document {index} is not a mapping"),
            )

        kind = document.get("kind") if isinstance(document.get("kind"), str) else None
        metadata = document.get("metadata") if isinstance(document.get("metadata"), dict) else {}
        name = metadata.get("name") if isinstance(metadata.get("name"), str) else None
        result = DocumentResult(index=index, kind=kind, name=name)
        log = logger.bind(index=index, kind=kind, name=name)

        adapter = AdapterRegistry.for_kind(kind)
        try:
            if is_ignored(document):
                log.info("document_ignored")
                result.output = copy.deepcopy(document)
                return result

            secrets = await self._prefetch(document, adapter)
            substituted = adapter.substitute(document, secrets)
            if not substituted.ok:
                result.errors = substituted.errors
                log.warning("document_failed", errors=len(substituted.errors))
                return result

            result.output = adapter.serialize(substituted.value)
            log.info("document_resolved")
        except VaultfillError as e:
            result.fatal = e
            log.warning("document_failed", error=str(e), error_type=type(e).__name__)
        return result

    async def _prefetch(self, document: dict[str, Any], adapter: ResourceAdapter) -> SecretIndex:
        placeholders: list[Placeholder] = []
        for scope in adapter.scopes(document):
            placeholders.extend(scan_placeholders(document[scope.key]))

        default_path = None
        if any(not p.is_explicit for p in placeholders):
            default_path = self.source_path_for(document)

        explicit_keys = list(dict.fromkeys((p.source_path, p.version) for p in placeholders if p.is_explicit))
        fetches = [self.cache.get_or_fetch(path, version) for path, version in explicit_keys]
        if default_path is not None:
            fetches.append(self.cache.get_or_fetch(default_path))

        outcomes = await asyncio.gather(*fetches, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(outcome, FetchError):
                raise outcome

        default_data = None
        if default_path is not None:
            default_data = outcomes.pop()
            if isinstance(default_data, FetchError):
                raise default_data

        return SecretIndex(
            default_data=default_data,
            default_path=default_path,
            explicit=dict(zip(explicit_keys, outcomes)),
        )
