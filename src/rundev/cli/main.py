"""rundev command line interface.

Usage:
    rundev                  Run the dev pipeline for the current project
    rundev dev --script start
    rundev resolve --json   Show the versions package.json asks for
    rundev installed        List provisioned Node.js and package managers
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from rundev import __version__
from rundev.config import RundevConfig, load_config
from rundev.core.constants import PACKAGE_JSON
from rundev.core.paths import locate_project_root
from rundev.errors import ConfigValidationError, ManifestInvalidError, RootNotFoundError
from rundev.manifest import parse_manifest
from rundev.orchestrator import create_orchestrator
from rundev.resolver import resolve_versions
from rundev.runtime.home import get_config_path, get_registry_path, get_rundev_home
from rundev.runtime.registry import load_registry

console = Console()

app = typer.Typer(
    name="rundev",
    help="Provision Node.js, install dependencies and keep the dev server running.",
    add_completion=False,
    invoke_without_command=True,
)


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=console, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("rundev")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False


def _load_config_or_exit() -> RundevConfig:
    try:
        return load_config(get_config_path())
    except ConfigValidationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _project_root_or_exit(cwd: Optional[Path]) -> Path:
    try:
        return locate_project_root(cwd or Path.cwd(), PACKAGE_JSON)
    except RootNotFoundError as e:
        console.print(f"[red]project root not found:[/red] {e}")
        raise typer.Exit(1)


def run_dev(
    cwd: Optional[Path] = None,
    script: Optional[str] = None,
    wait_for_exit: Optional[bool] = None,
    verbose: bool = False,
) -> None:
    """Run the reactive pipeline until interrupted."""
    _configure_logging(verbose)
    config = _load_config_or_exit().with_overrides(
        dev_script=script,
        wait_for_exit=wait_for_exit,
    )
    project_root = _project_root_or_exit(cwd)
    orchestrator = create_orchestrator(project_root, config)

    try:
        asyncio.run(orchestrator.run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")
        raise typer.Exit(130)


@app.callback()
def callback(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show the rundev version and exit"),
) -> None:
    """Run the dev pipeline when no subcommand is given."""
    if version:
        console.print(f"rundev {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        run_dev()


@app.command()
def dev(
    cwd: Optional[Path] = typer.Option(
        None,
        "--cwd",
        help="Directory to start the package.json search from (default: current directory)",
    ),
    script: Optional[str] = typer.Option(
        None,
        "--script",
        "-s",
        help="package.json script to run after install (default: dev)",
    ),
    wait_for_exit: Optional[bool] = typer.Option(
        None,
        "--wait-for-exit/--no-wait-for-exit",
        help="Wait for a superseded process to exit before restarting",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Provision, install and run the dev server, restarting on changes.

    \b
    EXAMPLES:
      Run the "dev" script of the nearest package.json:
        rundev dev

      Run "start" instead:
        rundev dev --script start
    """
    run_dev(cwd=cwd, script=script, wait_for_exit=wait_for_exit, verbose=verbose)


@app.command()
def resolve(
    cwd: Optional[Path] = typer.Option(None, "--cwd", help="Directory to start the search from"),
    json_output: bool = typer.Option(False, "--json", help="Emit JSON result"),
) -> None:
    """Show the Node.js and package manager versions package.json requires."""
    project_root = _project_root_or_exit(cwd)
    manifest_path = project_root / PACKAGE_JSON

    try:
        manifest = parse_manifest(manifest_path.read_text(encoding="utf-8"))
    except OSError as e:
        console.print(f"[red]Error:[/red] cannot read {manifest_path}: {e}")
        raise typer.Exit(1)
    except ManifestInvalidError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    decision = resolve_versions(manifest)
    if decision is None:
        console.print("[red]Error:[/red] node version in package.json engines.node cannot be parsed")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(decision.to_dict(), indent=2))
        return

    console.print(f"[bold cyan]Project Root:[/bold cyan] {project_root}")
    console.print(f"[bold cyan]Node.js:[/bold cyan] {decision.runtime_version}")
    console.print(f"[bold cyan]Package manager:[/bold cyan] {decision.package_manager.describe()}")


@app.command()
def installed() -> None:
    """List Node.js versions and package managers provisioned by rundev."""
    home = get_rundev_home()
    registry = load_registry(get_registry_path(home))

    table = Table(title=f"[bold]Provisioned in {home}[/bold]", header_style="bold cyan")
    table.add_column("Component", style="cyan")
    table.add_column("Versions", style="green")

    table.add_row("node", ", ".join(registry.node_versions) or "-")
    for name, versions in sorted(registry.package_managers.items()):
        table.add_row(name, ", ".join(versions) or "-")

    console.print(table)


def main() -> None:
    app()


__all__ = ["app", "main", "run_dev", "dev", "resolve", "installed"]
