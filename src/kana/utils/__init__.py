"""
Kana Utils Package
Logging, display and container naming utilities
"""

from .logger import (
    console as error_console,
    setup_logging,
    set_debug_mode,
    get_module_logger,
    log_exception
)
from .container_names import (
    NETWORK_NAME,
    container_name,
    site_container_names
)
from .display import (
    console,
    show_banner,
    show_quick_help,
    create_progress_context,
    show_site_summary,
    show_info_table
)

__all__ = [
    # Logging
    'error_console',
    'setup_logging',
    'set_debug_mode',
    'get_module_logger',
    'log_exception',

    # Naming
    'NETWORK_NAME',
    'container_name',
    'site_container_names',

    # Display
    'console',
    'show_banner',
    'show_quick_help',
    'create_progress_context',
    'show_site_summary',
    'show_info_table'
]
