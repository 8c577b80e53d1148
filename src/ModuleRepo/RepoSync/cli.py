# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.cli",
#   "purpose": "Typer CLI for one-shot registry syncs and update checks",
#   "sections": [
#     {"id": "cli-context", "name": "CliContext", "anchor": "class-cli-context", "kind": "class"},
#     {"id": "sync", "name": "sync", "anchor": "function-sync", "kind": "command"},
#     {"id": "latest", "name": "latest", "anchor": "function-latest", "kind": "command"},
#     {"id": "check", "name": "check", "anchor": "function-check", "kind": "command"},
#     {"id": "releases", "name": "releases", "anchor": "function-releases", "kind": "command"}
#   ]
# }
# === /NAVMAP ===

"""Command line front-end for the registry sync engine.

Each command builds a fresh :class:`RepoLoader`, runs the syncs it needs to
completion, prints the outcome and exits.

Example:
    $ modulerepo sync
    $ modulerepo check com.example.module 99 1.1.0
    $ modulerepo --config settings.yaml releases com.example.module
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from ModuleRepo import __version__

from .errors import RepoSyncError
from .listeners import CallbackListener
from .loader import RepoLoader
from .logging_utils import setup_logging
from .models import ModuleDescriptor
from .settings import RepoSyncSettings, load_settings

_console = Console()


class CliContext:
    """Shared state for a single CLI invocation."""

    def __init__(self, config: Optional[Path] = None, log_level: Optional[str] = None) -> None:
        overrides = {"log_level": log_level} if log_level else None
        try:
            self.settings: RepoSyncSettings = load_settings(config, overrides=overrides)
        except RepoSyncError as e:
            _console.print(f"[red]Error loading settings: {e}[/red]")
            raise typer.Exit(2) from e
        self.console = _console
        setup_logging(level=self.settings.log_level, log_dir=self.settings.resolved_log_dir())


app = typer.Typer(
    name="modulerepo",
    help="Sync with the online module registry and check for module updates",
    no_args_is_help=True,
)

_context: Optional[CliContext] = None


def get_context() -> CliContext:
    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


def _build_loader(settings: RepoSyncSettings) -> RepoLoader:
    return RepoLoader(settings)


class _SyncOutcome:
    """Collects listener callbacks for one blocking sync."""

    def __init__(self) -> None:
        self.errors: List[BaseException] = []
        self.modules: List[ModuleDescriptor] = []
        self.listener = CallbackListener(
            on_module_releases_loaded=self.modules.append,
            on_failure=self.errors.append,
        )


def _sync_catalog(loader: RepoLoader, outcome: _SyncOutcome) -> None:
    future = loader.trigger_catalog_sync()
    if future is not None:
        future.result()
    if outcome.errors:
        get_context().console.print(f"[red]Sync failed: {outcome.errors[-1]}[/red]")
        raise typer.Exit(1)
    if not loader.is_catalog_loaded():
        get_context().console.print("[red]Registry returned no usable catalog[/red]")
        raise typer.Exit(1)


def _run(identifier: Optional[str] = None, *, releases: bool = False):
    ctx = get_context()
    loader = _build_loader(ctx.settings)
    outcome = _SyncOutcome()
    loader.subscribe(outcome.listener)
    try:
        _sync_catalog(loader, outcome)
        if releases and identifier is not None:
            loader.trigger_module_sync(identifier).result()
            if outcome.errors:
                ctx.console.print(f"[red]Release fetch failed: {outcome.errors[-1]}[/red]")
                raise typer.Exit(1)
    finally:
        loader.unsubscribe(outcome.listener)
        loader.close()
    return loader, outcome


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"modulerepo {__version__}")
        raise typer.Exit(0)


@app.callback(invoke_without_command=False)
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="MODREPO_CONFIG",
        help="Path to settings file (YAML or JSON)",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_print_version,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Module registry client."""
    global _context

    _context = CliContext(config=config, log_level=log_level)


@app.command()
def sync() -> None:
    """Fetch the module catalog once and report what was loaded."""

    loader, _ = _run()
    modules = loader.get_all_modules()
    indexed = sum(1 for m in modules if loader.get_latest_version(m.name) is not None)
    get_context().console.print(
        f"[green]Loaded {len(modules)} modules ({indexed} with a parsable latest release)[/green]"
    )


@app.command()
def latest(identifier: str = typer.Argument(..., help="Module identifier")) -> None:
    """Print the latest release published for a module."""

    loader, _ = _run()
    release = loader.get_latest_version(identifier)
    console = get_context().console
    if release is None:
        console.print(f"No release information for {identifier}")
        raise typer.Exit(1)
    console.print(f"{identifier}: {release.name} (code {release.code})")


@app.command()
def check(
    identifier: str = typer.Argument(..., help="Module identifier"),
    version_code: int = typer.Argument(..., help="Installed version code"),
    version_name: str = typer.Argument(..., help="Installed version name"),
) -> None:
    """Report whether an installed module has a newer release."""

    loader, _ = _run()
    update = loader.check_update(identifier, version_code, version_name)
    console = get_context().console
    if update is None:
        console.print(f"{identifier} is up to date")
    else:
        console.print(f"Update available for {identifier}: {update.name} (code {update.code})")


@app.command()
def releases(identifier: str = typer.Argument(..., help="Module identifier")) -> None:
    """Fetch and summarise the release history of a module."""

    _, outcome = _run(identifier, releases=True)
    descriptor = outcome.modules[-1]
    count = len(descriptor.releases or [])
    get_context().console.print(f"{identifier}: {count} releases")
