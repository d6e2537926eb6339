"""
Logging utilities for the CLI and the container layer
"""

import logging
import traceback
from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

# Global debug flag
_DEBUG_MODE = False

def set_debug_mode(debug: bool):
    """Enable or disable debug mode globally"""
    global _DEBUG_MODE
    _DEBUG_MODE = debug

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(logging.INFO)


def setup_logging(debug: bool = False):
    """Setup logging configuration"""
    set_debug_mode(debug)

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console,
                rich_tracebacks=True,
                tracebacks_show_locals=debug,
                show_time=debug,
                show_path=debug
            )
        ],
        force=True
    )

    # Set levels for noisy third-party libraries
    logging.getLogger("docker").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

def get_module_logger(module_name: str) -> logging.Logger:
    """
    Get a logger for a specific module with a consistent naming convention.

    Args:
        module_name: Module name (e.g., 'engine', 'images', 'site')

    Returns:
        logging.Logger: Logger named kana.<module_name>
    """
    return logging.getLogger(f"kana.{module_name}")

def log_exception(e: Exception, context: str = ""):
    """Log an exception with context and stack trace in debug mode"""
    error_msg = str(e)
    error_type = type(e).__name__

    if context:
        console.print(f"[red]❌ {context}[/red]")

    console.print(f"[red]Error: {error_type}: {error_msg}[/red]")

    cause = e.__cause__
    if cause is not None:
        console.print(f"[dim]Caused by {type(cause).__name__}: {cause}[/dim]")

    if _DEBUG_MODE:
        console.print("[dim]Stack trace:[/dim]")
        console.print("[dim]" + "".join(traceback.format_tb(e.__traceback__)) + "[/dim]")
    else:
        console.print("[yellow]💡 Tip: Run with --verbose for a detailed stack trace[/yellow]")
