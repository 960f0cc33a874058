"""
Placeholder resolver.

Finds ``<...>`` markers inside a string scalar, looks every referenced key
up in fetched secret data, and substitutes the values.

Marker grammar:
    <key>                       key in the document's default source path
    <path:some/path#key>        key in an explicit source path
    <path:some/path#key#3>      same, pinned to secret version 3

``key`` may walk into structured values with dots and brackets
(``db.hosts[0]``). A literal key containing dots always wins.

A scalar that is exactly one marker resolves to the native value; markers
embedded in literal text always produce a string.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from typing import Any

from vaultfill.resolution.domain.models import (
    ErrorCause,
    Placeholder,
    ResolutionError,
    Result,
    SecretValue,
    ValueKind,
)
from vaultfill.shared.domain.exceptions import (
    CoercionError,
    FetchError,
    KeyNotFoundError,
    MalformedPlaceholderError,
)

MARKER_PATTERN = re.compile(r"<([^<>\s]+?)>")
PATH_PREFIX = "path:"

_KEY_PATTERN = re.compile(r"^[\w\-.\[\]]+$")
_SEGMENT_PATTERN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")

Lookup = Callable[[Placeholder], SecretValue]
Coercion = Callable[[SecretValue], Any]

_CAUSES: dict[type[Exception], ErrorCause] = {
    KeyNotFoundError: ErrorCause.KEY_NOT_FOUND,
    FetchError: ErrorCause.FETCH_FAILED,
    CoercionError: ErrorCause.COERCION_FAILED,
    MalformedPlaceholderError: ErrorCause.MALFORMED_MARKER,
}


def find_markers(text: str) -> list[re.Match[str]]:
    """Return every marker match in ``text``, left to right."""
    return list(MARKER_PATTERN.finditer(text))


def parse_marker(body: str) -> Placeholder:
    """
    Parse the text between ``<`` and ``>``.

    Raises:
        MalformedPlaceholderError: If the body does not follow the grammar
    """
    raw = f"<{body}>"

    if body.startswith(PATH_PREFIX):
        parts = body[len(PATH_PREFIX):].split("#")
        if len(parts) not in (2, 3) or not all(parts):
            raise MalformedPlaceholderError(raw, "expected <path:SOURCE#KEY> or <path:SOURCE#KEY#VERSION>")
        source_path, key = parts[0].strip("/"), parts[1]
        if not source_path:
            raise MalformedPlaceholderError(raw, "empty source path")
        if not _KEY_PATTERN.match(key):
            raise MalformedPlaceholderError(raw, f"invalid key '{key}'")
        version = parts[2] if len(parts) == 3 else None
        return Placeholder(raw=raw, key=key, source_path=source_path, version=version)

    if not _KEY_PATTERN.match(body):
        raise MalformedPlaceholderError(raw, f"invalid key '{body}'")
    return Placeholder(raw=raw, key=body)


def split_key_path(key: str) -> list[str | int] | None:
    """
    Split ``db.hosts[0]`` into ``["db", "hosts", 0]``.

    Returns None when ``key`` is not a well-formed sub-path.
    """
    tokens: list[str | int] = []
    pos = 0
    while pos < len(key):
        if key[pos] == ".":
            if not tokens or pos + 1 == len(key) or key[pos + 1] in ".[":
                return None
            pos += 1
            continue
        match = _SEGMENT_PATTERN.match(key, pos)
        if match is None:
            return None
        name, index = match.groups()
        tokens.append(int(index) if index is not None else name)
        pos = match.end()
    return tokens or None


def _decode_structured(value: Any) -> Any:
    if isinstance(value, str) and value[:1] in ("{", "["):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def lookup_key(data: Mapping[str, Any], key: str, path: str | None = None) -> Any:
    """
    Look ``key`` up in ``data``, walking into structured values if needed.

    String values holding a JSON object or array are decoded on the way.

    Raises:
        KeyNotFoundError: If the key (or any step of its sub-path) is absent
    """
    if key in data:
        return data[key]

    tokens = split_key_path(key)
    if tokens is None or len(tokens) == 1:
        raise KeyNotFoundError(key, path)

    current: Any = data
    for token in tokens:
        current = _decode_structured(current)
        if isinstance(token, int):
            if not isinstance(current, list) or token >= len(current):
                raise KeyNotFoundError(key, path)
        elif not isinstance(current, Mapping) or token not in current:
            raise KeyNotFoundError(key, path)
        current = current[token]
    return current


def resolve_scalar(text: str, field_path: str, lookup: Lookup, coerce: Coercion) -> Result[Any]:
    """
    Resolve every marker in ``text``.

    Text without markers is only passed through ``coerce``.

    Args:
        text: Raw template scalar
        field_path: Location of the scalar, used in error reports
        lookup: Returns the SecretValue for a placeholder, raising
            KeyNotFoundError or FetchError
        coerce: Adapter coercion applied to the resolved value

    Returns:
        Result holding the substituted value, or the untouched text plus
        exactly one ResolutionError
    """
    matches = find_markers(text)
    current = matches[0].group(0) if matches else text
    try:
        if not matches:
            return Result(coerce(SecretValue(ValueKind.STRING, text)))

        if len(matches) == 1 and matches[0].span() == (0, len(text)):
            return Result(coerce(lookup(parse_marker(matches[0].group(1)))))

        pieces: list[str] = []
        last = 0
        for match in matches:
            current = match.group(0)
            value = lookup(parse_marker(match.group(1)))
            pieces.append(text[last:match.start()])
            pieces.append(value.as_text())
            last = match.end()
        pieces.append(text[last:])

        current = text
        return Result(coerce(SecretValue(ValueKind.STRING, "".join(pieces))))
    except (KeyNotFoundError, FetchError, CoercionError, MalformedPlaceholderError) as e:
        return Result.failure(
            text,
            ResolutionError(
                field_path=field_path,
                placeholder=current,
                cause=_CAUSES[type(e)],
                message=str(e),
            ),
        )


def resolve_leaf(value: Any, field_path: str, lookup: Lookup, coerce: Coercion) -> Result[Any]:
    """
    Resolve any scalar leaf.

    Strings go through marker substitution. Other scalars carry no markers
    but still pass through the coercion, so a literal ``port: 5432`` under
    a text-only subtree becomes ``"5432"``. Bytes are already encoded and
    are left alone.
    """
    if isinstance(value, str):
        return resolve_scalar(value, field_path, lookup, coerce)
    if isinstance(value, bytes):
        return Result(value)
    try:
        return Result(coerce(SecretValue.of(value)))
    except CoercionError as e:
        return Result.failure(
            value,
            ResolutionError(
                field_path=field_path,
                placeholder=repr(value),
                cause=ErrorCause.COERCION_FAILED,
                message=str(e),
            ),
        )


class SecretIndex:
    """
    Read-only view over all secret data prefetched for one document.

    Callable as a resolver ``Lookup``. Explicit source paths that failed to
    fetch are stored as their FetchError and re-raised per placeholder.
    """

    def __init__(
        self,
        default_data: Mapping[str, Any] | None = None,
        default_path: str | None = None,
        explicit: Mapping[tuple[str, str | None], Mapping[str, Any] | FetchError] | None = None,
    ):
        self._default_data = default_data
        self._default_path = default_path
        self._explicit = dict(explicit or {})

    def __call__(self, placeholder: Placeholder) -> SecretValue:
        if placeholder.is_explicit:
            entry = self._explicit.get((placeholder.source_path, placeholder.version))
            if entry is None:
                raise KeyNotFoundError(placeholder.key, placeholder.source_path)
            if isinstance(entry, FetchError):
                raise entry
            return SecretValue.of(lookup_key(entry, placeholder.key, placeholder.source_path))

        if self._default_data is None:
            raise KeyNotFoundError(placeholder.key, self._default_path)
        return SecretValue.of(lookup_key(self._default_data, placeholder.key, self._default_path))
