"""
Generate Command - render manifests with secret values substituted

Reads templates, resolves every <placeholder> against the configured
backend and prints the resolved manifests to stdout, separated by ``---``.
Failures are reported on stderr; successful documents are still printed.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from vaultfill.backends.registry import BackendRegistry
from vaultfill.cli.manifests import read_documents, render_documents
from vaultfill.resolution.application.orchestrator import DocumentResult, ManifestOrchestrator
from vaultfill.shared.domain.exceptions import AuthError, ConfigurationError
from vaultfill.shared.infrastructure.config import Settings, load_settings
from vaultfill.shared.infrastructure.logging import configure_logging, get_logger

err_console = Console(stderr=True)
logger = get_logger(__name__)

EXIT_DOCUMENT_FAILED = 1
EXIT_RUN_FAILED = 2


async def run_generate(documents: list[Any], settings: Settings) -> list[DocumentResult]:
    """
    Resolve ``documents`` with the backend selected by ``settings``.

    Raises:
        ConfigurationError: If the backend is unknown or misconfigured
        AuthError: If no backend session could be established
    """
    backend = BackendRegistry.create(settings)
    async with backend:
        orchestrator = ManifestOrchestrator(
            backend,
            path_prefix=settings.avp_path_prefix,
            max_concurrency=settings.max_concurrency,
        )
        return await orchestrator.resolve_batch(documents)


def _describe(result: DocumentResult) -> str:
    kind = result.kind or "document"
    name = f"/{result.name}" if result.name else ""
    return f"{kind}{name} (#{result.index})"


def print_failures(results: list[DocumentResult]) -> None:
    """Render every failed document as a table on stderr."""
    for result in results:
        if result.ok:
            continue
        table = Table(title=f"[red]Could not resolve {_describe(result)}[/red]", show_lines=False)
        table.add_column("Field", style="cyan")
        table.add_column("Placeholder", style="yellow")
        table.add_column("Cause")
        for error in result.errors:
            table.add_row(error.field_path, error.placeholder, error.message)
        if result.fatal is not None:
            table.add_row("<document>", "", str(result.fatal))
        err_console.print(table)


def generate(
    path: str = typer.Argument(..., help="Manifest file, directory of manifests, or - for stdin"),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config-path",
        "-c",
        help="Path to a file containing backend configuration (YAML, JSON, envfile) to use",
    ),
):
    """Generate manifests from templates with secret values"""
    try:
        settings = load_settings(config_path)
        configure_logging(settings)
        documents = read_documents(path)
        logger.info("generate_started", path=str(path), documents=len(documents), backend=settings.avp_type.value)
        results = asyncio.run(run_generate(documents, settings))
    except (ConfigurationError, AuthError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(EXIT_RUN_FAILED)

    resolved = [r.output for r in results if r.ok and r.output is not None]
    typer.echo(render_documents(resolved), nl=False)

    failed = [r for r in results if not r.ok]
    if failed:
        print_failures(failed)
        err_console.print(f"[red]{len(failed)} of {len(results)} document(s) could not be resolved[/red]")
        raise typer.Exit(EXIT_DOCUMENT_FAILED)
