#!/usr/bin/env python3
"""
Kana CLI - Main Entry Point
"""

from typing import Optional

import typer

from .commands import site
from .utils.display import show_banner, show_quick_help
from .utils.logger import setup_logging

# Main app
app = typer.Typer(
    name="kana",
    help="🐳 Kana - WordPress development environments for sites, plugins and themes",
    add_completion=True,
    no_args_is_help=False
)

# Register site commands
app.command(name="start")(site.start)
app.command(name="stop")(site.stop)
app.command(
    name="wp",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(site.wp)
app.command(name="exec")(site.exec)
app.command(name="version")(site.version)


@app.callback(invoke_without_command=True)
def callback(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(
        None, "--name", "-n",
        help="Specify a name for the site, used to override using the current folder"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Display debugging information"),
):
    """
    Kana

    Run WordPress in Docker for the site, plugin or theme in the current directory.
    """
    setup_logging(verbose)
    ctx.obj = {"name": name}

    if ctx.invoked_subcommand is None:
        show_banner()
        show_quick_help()


def main():
    app()


if __name__ == "__main__":
    main()
