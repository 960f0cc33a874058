"""
Backend session.

Explicit session state handed to a backend at construction time. The
session lives for one run; an external login step (or the backend's own
``authenticate``) refreshes it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class BackendSession:
    """Bearer token plus optional expiry (epoch seconds)."""

    token: str | None = None
    expires_at: float | None = None

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    def is_expired(self, now: float | None = None, leeway: float = 30.0) -> bool:
        """A session without expiry never expires locally; the backend decides."""
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return current + leeway >= self.expires_at

    def update(self, token: str, ttl_seconds: float | None = None) -> None:
        self.token = token
        self.expires_at = time.time() + ttl_seconds if ttl_seconds else None

    def clear(self) -> None:
        self.token = None
        self.expires_at = None
