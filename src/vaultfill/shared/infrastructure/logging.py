"""
Structured logging configuration using structlog.

Logs always go to stderr so rendered manifests on stdout stay clean.
Secret values are never passed to the logger; the redactor is a second
line for tokens that leak through exception messages.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

from vaultfill.shared.infrastructure.config import Settings

_REDACTION_PATTERNS = {
    r"(token|password|secret_id|secret|api[_-]?key)['\"]?\s*[:=]\s*['\"]?([^'\"\s,}]+)": r"\1=[REDACTED]",
    r"Bearer\s+\S+": "Bearer [TOKEN_REDACTED]",
    r"\bhv[sb]\.[A-Za-z0-9_-]+": "[VAULT_TOKEN_REDACTED]",
}


def _redact_string(text: str) -> str:
    for pattern, replacement in _REDACTION_PATTERNS.items():
        text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
    return text


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        return _redact_string(value)
    if isinstance(value, dict):
        return {k: _redact_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact_value(v) for v in value]
    return value


def privacy_redactor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Redact credentials from log events.

    Redacts:
    - token/password/secret/api key assignments
    - Bearer authorization headers
    - Vault service and batch tokens
    """
    return {k: _redact_value(v) for k, v in event_dict.items()}


def configure_logging(settings: Settings | None = None, stream: Any = None) -> None:
    """
    Configure structlog for the application.

    Sets up:
    - Pretty console output for development
    - JSON output for production
    - Log level from settings
    """
    settings = settings or Settings()

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.log_redaction_enabled:
        shared_processors.append(privacy_redactor)

    if settings.is_development:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=False),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=getattr(logging, settings.log_level, logging.WARNING),
        force=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("secret_fetched", path="secret/data/app", keys=3)
    """
    return structlog.get_logger(name)
