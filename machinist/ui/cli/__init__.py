"""CLI module for machinist."""

from .commands import (
    run_compose_command,
    run_diff_command,
    run_list_command,
    run_list_profiles_command,
    run_list_scanners_command,
    run_restore_command,
    run_scan_command,
    run_snapshot_command,
    run_validate_command,
)
from .formatters import (
    Colors,
    JsonFormatter,
    OutputFormatter,
    ProgressWriter,
    TextFormatter,
    get_formatter,
)

__all__ = [
    # Formatters
    "Colors",
    "OutputFormatter",
    "TextFormatter",
    "JsonFormatter",
    "ProgressWriter",
    "get_formatter",
    # Commands
    "run_snapshot_command",
    "run_scan_command",
    "run_list_command",
    "run_list_scanners_command",
    "run_list_profiles_command",
    "run_compose_command",
    "run_restore_command",
    "run_validate_command",
    "run_diff_command",
]
