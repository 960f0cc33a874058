"""
vaultfill CLI
Main entry point for the command-line interface

Usage:
    vaultfill generate <path>                 # Resolve manifests and print them
    vaultfill generate <path> -c config.yaml  # Same, with a backend config file
    vaultfill version                         # Show version information
"""

import typer
from rich.console import Console
from rich.panel import Panel

from vaultfill import __version__
from vaultfill.cli.commands import generate

app = typer.Typer(
    name="vaultfill",
    help="vaultfill - substitute <placeholders> in Kubernetes manifests with secret backend values",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

app.command(name="generate")(generate.generate)


@app.command()
def version():
    """Show vaultfill version information"""
    console.print(Panel.fit(
        "[bold cyan]vaultfill[/bold cyan]\n"
        f"[dim]Version:[/dim] {__version__}\n"
        "[dim]Backends:[/dim] vault, ibmsecretsmanager\n",
        title="About vaultfill",
        border_style="cyan"
    ))


def main():
    """Main entry point"""
    app()


if __name__ == "__main__":
    main()
