"""
Base Resource Adapter Interface

A resource adapter is the kind-specific policy layer: it says which
top-level subtrees of a document are substituted, which coercion applies
to each of them, and how the resolved document is validated and
serialized.
"""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from vaultfill.resolution.domain.models import Result
from vaultfill.resolution.domain.placeholder import Coercion, Lookup, resolve_leaf
from vaultfill.resolution.domain.walker import walk
from vaultfill.shared.domain.exceptions import SerializationError


@dataclass(frozen=True)
class SubstitutionScope:
    """A top-level key whose subtree is substituted with ``coerce``."""

    key: str
    coerce: Coercion


class ResourceAdapter(ABC):
    """
    Interface for resource kinds.

    Subclasses declare ``kind`` and ``schema`` and implement ``scopes``.
    """

    kind: str = "base"
    schema: type[BaseModel]

    @abstractmethod
    def scopes(self, document: dict[str, Any]) -> list[SubstitutionScope]:
        """
        Subtrees eligible for substitution, in the order they are walked.

        Args:
            document: The template document

        Returns:
            Scopes for keys that are present in the document
        """
        pass

    def substitute(self, document: dict[str, Any], lookup: Lookup) -> Result[dict[str, Any]]:
        """
        Resolve every placeholder inside the adapter's scopes.

        The input document is not modified; untouched top-level keys are
        carried over as-is.
        """
        resolved = dict(document)
        errors = []
        for scope in self.scopes(document):
            leaf_fn = functools.partial(_resolve_with, lookup=lookup, coerce=scope.coerce)
            result = walk(document[scope.key], leaf_fn, scope.key)
            resolved[scope.key] = result.value
            errors.extend(result.errors)
        return Result(resolved, errors)

    def validate(self, document: dict[str, Any]) -> BaseModel:
        """
        Check the document against the kind's schema.

        Raises:
            SerializationError: If the document does not conform
        """
        try:
            return self.schema.model_validate(document)
        except ValidationError as e:
            kind = document.get("kind") if isinstance(document.get("kind"), str) else self.kind
            raise SerializationError(kind, _format_validation_error(e)) from e

    def serialize(self, document: dict[str, Any]) -> dict[str, Any]:
        """
        Validate and convert the resolved document into plain data for YAML.

        Raises:
            SerializationError: If the document does not conform
        """
        model = self.validate(document)
        return model.model_dump(by_alias=True, exclude_none=True)


def _resolve_with(value: Any, path: str, *, lookup: Lookup, coerce: Coercion) -> Result[Any]:
    return resolve_leaf(value, path, lookup, coerce)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)
