"""
Manifest file I/O for the CLI.

Finds YAML/JSON files, parses them into documents (multi-document YAML
supported) and renders resolved documents back to YAML.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from pathlib import Path
from typing import IO, Any

import yaml

from vaultfill.shared.domain.exceptions import ConfigurationError

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")
STDIN_PATH = "-"


def list_manifest_files(path: str | Path) -> list[Path]:
    """
    Files to process for ``path``.

    A file is returned as-is; a directory yields its YAML/JSON files,
    sorted by name, without recursing.

    Raises:
        ConfigurationError: If the path does not exist or holds no manifests
    """
    root = Path(path)
    if root.is_file():
        return [root]
    if not root.is_dir():
        raise ConfigurationError(f"path not found: {root}", {"path": str(root)})

    files = sorted(p for p in root.iterdir() if p.is_file() and p.suffix.lower() in MANIFEST_SUFFIXES)
    if not files:
        raise ConfigurationError(f"no YAML files were found in {root}", {"path": str(root)})
    return files


def parse_documents(text: str, source: str = "<stdin>") -> list[Any]:
    """
    Parse every document of a YAML (or JSON) stream.

    Raises:
        ConfigurationError: If the text is not valid YAML
    """
    try:
        return list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"could not parse {source}: {e}", {"source": source}) from e


def read_documents(path: str | Path, stdin: IO[str] | None = None) -> list[Any]:
    """Read every document under ``path`` (or stdin for ``-``), in file order."""
    if str(path) == STDIN_PATH:
        return parse_documents((stdin or sys.stdin).read())

    documents: list[Any] = []
    for file in list_manifest_files(path):
        try:
            text = file.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"could not read {file}: {e}", {"path": str(file)}) from e
        documents.extend(parse_documents(text, str(file)))
    return documents


def render_documents(documents: Iterable[dict[str, Any]]) -> str:
    """Render documents as YAML, each one followed by a ``---`` separator."""
    return "".join(
        f"{yaml.safe_dump(document, default_flow_style=False, sort_keys=False)}---\n"
        for document in documents
    )
