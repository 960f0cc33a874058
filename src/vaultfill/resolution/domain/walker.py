"""
Tree walker.

Visits every node of a template document, hands scalar leaves to a leaf
function and rebuilds the tree from the results. Traversal never stops
early: errors from every subtree are merged in document order.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from vaultfill.resolution.domain.models import Placeholder, Result
from vaultfill.resolution.domain.placeholder import find_markers, parse_marker
from vaultfill.shared.domain.exceptions import MalformedPlaceholderError

LeafFn = Callable[[Any, str], Result[Any]]


def child_path(parent: str, key: Any) -> str:
    """Build ``spec.containers[0].env`` style field paths."""
    if isinstance(key, int):
        return f"{parent}[{key}]"
    return f"{parent}.{key}" if parent else str(key)


def walk(node: Any, leaf_fn: LeafFn, path: str = "") -> Result[Any]:
    """
    Rebuild ``node`` with every leaf replaced by ``leaf_fn(leaf, path)``.

    Maps keep their keys and order, sequences keep their order. Every
    scalar (string or not) is a leaf; the leaf function decides what a
    non-string scalar becomes.
    """
    if isinstance(node, dict):
        rebuilt: dict[Any, Any] = {}
        errors = []
        for key, value in node.items():
            result = walk(value, leaf_fn, child_path(path, key))
            rebuilt[key] = result.value
            errors.extend(result.errors)
        return Result(rebuilt, errors)

    if isinstance(node, list):
        items: list[Any] = []
        errors = []
        for index, value in enumerate(node):
            result = walk(value, leaf_fn, child_path(path, index))
            items.append(result.value)
            errors.extend(result.errors)
        return Result(items, errors)

    return leaf_fn(node, path)


def scan_placeholders(node: Any) -> list[Placeholder]:
    """
    Collect every well-formed placeholder in ``node``.

    Malformed markers are skipped here; the resolver reports them with
    their field path during the walk.
    """
    found: list[Placeholder] = []

    def _visit(value: Any) -> None:
        if isinstance(value, dict):
            for child in value.values():
                _visit(child)
        elif isinstance(value, list):
            for child in value:
                _visit(child)
        elif isinstance(value, str):
            for match in find_markers(value):
                try:
                    found.append(parse_marker(match.group(1)))
                except MalformedPlaceholderError:
                    continue

    _visit(node)
    return found
