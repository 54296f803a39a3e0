"""UI layer -- Rich console output and logging setup."""

from .dashboard import (
    ProgressDisplay,
    console,
    print_config,
    print_final_results,
    print_header,
    print_routes,
    setup_logging,
)

__all__ = [
    "ProgressDisplay",
    "console",
    "print_config",
    "print_final_results",
    "print_header",
    "print_routes",
    "setup_logging",
]
