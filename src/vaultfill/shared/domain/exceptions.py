"""
Domain exceptions for vaultfill.

All application errors inherit from VaultfillError.

Run-fatal errors (AuthError, ConfigurationError) stop the whole batch.
FetchError and SerializationError are fatal for a single document.
KeyNotFoundError and CoercionError are local to one field; the resolver
turns them into ResolutionError records instead of letting them escape.
"""

from __future__ import annotations

from enum import Enum


class VaultfillError(Exception):
    """Base class for all vaultfill exceptions."""

    def __init__(self, message: str, context: dict = None):
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(VaultfillError):
    """Raised when configuration is invalid, incomplete or ambiguous."""

    pass


class AuthError(VaultfillError):
    """Raised when a backend session could not be established."""

    pass


class FetchFailure(Enum):
    """Why a source path could not be retrieved."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    NETWORK = "network"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"
    INVALID_PATH = "invalid_path"


class FetchError(VaultfillError):
    """Raised when a source path could not be retrieved from the backend."""

    def __init__(self, path: str, reason: FetchFailure, detail: str = ""):
        self.path = path
        self.reason = reason
        self.detail = detail
        message = f"could not fetch secrets at '{path}' ({reason.value})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, {"path": path, "reason": reason.value})


class KeyNotFoundError(VaultfillError):
    """Raised when a placeholder references a key absent from the secret data."""

    def __init__(self, key: str, path: str | None = None):
        self.key = key
        self.path = path
        where = f" at '{path}'" if path else ""
        super().__init__(f"key '{key}' not found in secret data{where}", {"key": key, "path": path})


class CoercionError(VaultfillError):
    """Raised when a resolved value cannot be represented as the target type."""

    def __init__(self, value_kind: str, target: str, detail: str = ""):
        self.value_kind = value_kind
        self.target = target
        message = f"cannot coerce {value_kind} value to {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, {"value_kind": value_kind, "target": target})


class MalformedPlaceholderError(VaultfillError):
    """Raised when a marker body does not follow the placeholder grammar."""

    def __init__(self, marker: str, detail: str):
        self.marker = marker
        super().__init__(f"malformed placeholder '{marker}': {detail}", {"marker": marker})


class SerializationError(VaultfillError):
    """Raised when a substituted document no longer fits its kind's schema."""

    def __init__(self, kind: str, details: str):
        self.kind = kind
        self.details = details
        super().__init__(f"could not convert resolved template into {kind}: {details}", {"kind": kind})
