"""
Site commands
start, stop, wp and exec against the site for the current directory
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .. import __version__
from ..core.config import get_app_dir, load_settings
from ..core.errors import KanaError
from ..core.models import SiteDescriptor
from ..core.site import SiteOrchestrator, create_orchestrator
from ..utils.display import console, create_progress_context, show_site_summary
from ..utils.logger import log_exception


def _load_site(ctx: typer.Context, overrides: Optional[Dict[str, Any]] = None) -> SiteDescriptor:
    """Descriptor for the site selected by --name or the working directory"""
    options = ctx.obj or {}
    try:
        return load_settings(
            Path.cwd(),
            name=options.get("name"),
            overrides=overrides,
            app_dir=get_app_dir(),
        )
    except KanaError as e:
        log_exception(e, "Could not load site settings")
        raise typer.Exit(1)


def _orchestrator(site: SiteDescriptor) -> SiteOrchestrator:
    return create_orchestrator(get_app_dir(), site.update_interval)


def start(
    ctx: typer.Context,
    plugin: bool = typer.Option(False, "--plugin", help="Mount the current directory as a plugin"),
    theme: bool = typer.Option(False, "--theme", help="Mount the current directory as a theme"),
    php: Optional[str] = typer.Option(None, "--php", help="PHP version of the WordPress image"),
    sqlite: bool = typer.Option(False, "--sqlite", help="Use SQLite instead of MariaDB"),
):
    """▶ Start the site"""
    if plugin and theme:
        console.print("[red]❌ Use either --plugin or --theme, not both[/red]")
        raise typer.Exit(1)

    overrides: Dict[str, Any] = {"php": php}
    if plugin:
        overrides["type"] = "plugin"
    elif theme:
        overrides["type"] = "theme"
    if sqlite:
        overrides["database"] = "sqlite"

    site = _load_site(ctx, overrides)
    orchestrator = _orchestrator(site)

    with create_progress_context() as progress:
        task = progress.add_task(f"🚀 Starting {site.name}...", total=None)
        try:
            orchestrator.start(site)
        except KanaError as e:
            progress.stop()
            log_exception(e, f"Failed to start {site.name}")
            raise typer.Exit(1)
        progress.update(task, description=f"[green]✅ {site.name} started[/green]")

    console.print(f"[green]✓ Site started: {site.name}[/green]")
    show_site_summary(site)


def stop(ctx: typer.Context):
    """⏹ Stop the site and remove its containers"""
    site = _load_site(ctx)
    orchestrator = _orchestrator(site)

    with create_progress_context() as progress:
        progress.add_task(f"🛑 Stopping {site.name}...", total=None)
        try:
            orchestrator.stop(site)
        except KanaError as e:
            progress.stop()
            log_exception(e, f"Failed to stop {site.name}")
            raise typer.Exit(1)

    console.print(f"[green]✓ Site stopped: {site.name}[/green]")


def _has_terminal() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def wp(ctx: typer.Context):
    """🧰 Run a wp-cli command against the site

    When run from a terminal, wp-cli gets the terminal so prompts and
    `wp shell` work.
    """
    site = _load_site(ctx)
    orchestrator = _orchestrator(site)

    try:
        code, output = orchestrator.run_command(site, list(ctx.args), interactive=_has_terminal())
    except KanaError as e:
        log_exception(e, "wp-cli command failed to run")
        raise typer.Exit(1)

    if output:
        console.print(output, end="", markup=False, highlight=False)
    if code != 0:
        raise typer.Exit(code)


def exec(
    ctx: typer.Context,
    command: str = typer.Argument(..., help="Shell command to run in the WordPress container"),
    root: bool = typer.Option(False, "--root", help="Run as root"),
):
    """💻 Run a shell command in the WordPress container"""
    site = _load_site(ctx)
    orchestrator = _orchestrator(site)

    try:
        result = orchestrator.exec(site, ["sh", "-c", command], as_root=root)
    except KanaError as e:
        log_exception(e, f"Could not run command in {site.name}")
        raise typer.Exit(1)

    if result.output:
        console.print(result.output, end="", markup=False, highlight=False)
    if result.exit_code != 0:
        raise typer.Exit(result.exit_code)


def version():
    """ℹ️ Show version"""
    console.print(f"kana {__version__}")
