"""
Display utilities for CLI
Handles tables, spinners, and formatted output
"""

from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn
from typing import Dict

from ..core.models import SiteDescriptor

console = Console()


def show_banner():
    """Show CLI banner"""
    console.print("""
╔══════════════════════════════════════════╗
║   🐳  Kana                               ║
║   Local WordPress development on Docker  ║
╚══════════════════════════════════════════╝
""")


def show_quick_help():
    """Show quick command reference"""
    console.print("""
[cyan]Quick Commands:[/cyan]
  kana start                   Start the site for this directory
  kana start --plugin          Start with this directory mounted as a plugin
  kana stop                    Stop the site
  kana wp <args>               Run a wp-cli command against the site
  kana exec <command>          Run a shell command in the WordPress container
  kana --help                  Full help
""")


def create_progress_context():
    """Create a progress context manager"""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True
    )


def show_site_summary(site: SiteDescriptor):
    """Show where a freshly started site can be reached"""
    info: Dict[str, str] = {
        "Site": site.name,
        "Type": site.artifact_type,
        "URL": f"[link={site.url}]{site.url}[/link]",
        "PHP": site.php,
        "Database": site.database,
    }
    if site.phpmyadmin:
        info["phpMyAdmin"] = site.url.replace("://", "://phpmyadmin-", 1)
    if site.mailpit:
        info["Mailpit"] = site.url.replace("://", "://mailpit-", 1)

    show_info_table(info, f"Site: {site.name}")


def show_info_table(data: Dict[str, str], title: str = "Information"):
    """Show information in a table format"""
    table = Table(show_header=False, box=None)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    for key, value in data.items():
        table.add_row(key, value)

    console.print(f"\n[cyan bold]{title}[/cyan bold]\n")
    console.print(table)
