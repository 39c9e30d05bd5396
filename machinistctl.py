#!/usr/bin/env python3
"""machinist - Developer Machine Snapshot & Restore.

Command-line entry point; subcommands live in machinist.ui.cli.commands.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from machinist import __version__
from machinist.core.config import Config, load_config, save_config
from machinist.core.errors import MachinistError
from machinist.core.logging_config import get_logger, setup_logging
from machinist.ui.cli.commands import (
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


def create_argument_parser() -> argparse.ArgumentParser:
    """Build the parser for the machinist command and its subcommands."""
    parser = argparse.ArgumentParser(
        prog="machinist",
        description="Snapshot, compose and restore developer machine setups",
        epilog="Manifests are TOML; restore scripts are safe to re-run.",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Settings file (default: config.json in $MACHINIST_HOME or ~/.machinist)",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="More log output (-v info, -vv debug)",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress console logging and progress",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Snapshot command
    snapshot_parser = subparsers.add_parser("snapshot", help="Scan environment and write a manifest")
    snapshot_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Manifest file to write",
    )
    snapshot_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the manifest instead of writing it",
    )
    snapshot_parser.add_argument(
        "--bundle", "-b",
        nargs="?",
        const="",
        metavar="DIR",
        help="Write a restore bundle (manifest, install script, captured files); "
        "defaults to a new directory under the snapshots directory",
    )

    # Scan command
    scan_parser = subparsers.add_parser("scan", help="Run a single scanner")
    scan_parser.add_argument("scanner", help="Scanner name (see list-scanners)")
    scan_parser.add_argument(
        "--json",
        action="store_true",
        help="Print JSON instead of text",
    )

    # List commands
    list_parser = subparsers.add_parser("list", help="List available scanners and profiles")
    list_parser.add_argument("--json", action="store_true", help="Print JSON instead of text")

    list_scanners_parser = subparsers.add_parser("list-scanners", help="List available scanners")
    list_scanners_parser.add_argument("--json", action="store_true", help="Print JSON instead of text")

    list_profiles_parser = subparsers.add_parser("list-profiles", help="List built-in profiles")
    list_profiles_parser.add_argument("--json", action="store_true", help="Print JSON instead of text")

    # Compose command
    compose_parser = subparsers.add_parser("compose", help="Compose a manifest from a profile")
    compose_parser.add_argument(
        "--from",
        dest="profile",
        help="Profile to start from (name or profile://name)",
    )
    compose_parser.add_argument(
        "--add",
        help="Comma-separated Homebrew formulae to add",
    )
    compose_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Manifest file to write ('-' for stdout)",
    )

    # Restore command
    restore_parser = subparsers.add_parser("restore", help="Restore a machine from a manifest")
    restore_parser.add_argument("manifest", type=Path, help="Manifest file")
    restore_parser.add_argument(
        "--only",
        help="Comma-separated stages to restore (exclusive with --skip)",
    )
    restore_parser.add_argument(
        "--skip",
        help="Comma-separated stages to leave out (exclusive with --only)",
    )
    restore_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the stages and manifest without running anything",
    )
    restore_parser.add_argument(
        "--script",
        type=Path,
        help="Write the restore script to this file instead of running it",
    )
    restore_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Do not ask for confirmation",
    )
    restore_parser.add_argument("--json", action="store_true", help="Print JSON instead of text")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Check that a manifest decodes")
    validate_parser.add_argument("manifest", type=Path, help="Manifest file")
    validate_parser.add_argument("--json", action="store_true", help="Print JSON instead of text")

    # Diff command
    diff_parser = subparsers.add_parser("diff", help="Compare two manifests")
    diff_parser.add_argument("manifest_a", type=Path, help="First manifest")
    diff_parser.add_argument("manifest_b", type=Path, help="Second manifest")
    diff_parser.add_argument("--json", action="store_true", help="Print JSON instead of text")

    # Config command
    config_parser = subparsers.add_parser("config", help="Write or print machinist settings")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Write the current settings to the settings file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Print the effective settings as JSON",
    )

    return parser


def get_log_level(verbose: int) -> int:
    """Map the -v count onto a logging level."""
    if verbose >= 2:
        return logging.DEBUG
    elif verbose >= 1:
        return logging.INFO
    return logging.WARNING


def run_config(args: argparse.Namespace, config: Config) -> int:
    """Handle `machinist config`."""
    if args.init:
        path = save_config(config, args.config)
        print(f"Configuration saved to {path}")
        return 0

    if args.show:
        print(json.dumps(config.to_dict(), indent=2))
        return 0

    print("Nothing to do: pass --init or --show")
    return 1


COMMANDS = {
    "snapshot": run_snapshot_command,
    "scan": run_scan_command,
    "list": run_list_command,
    "list-scanners": run_list_scanners_command,
    "list-profiles": run_list_profiles_command,
    "compose": run_compose_command,
    "restore": run_restore_command,
    "validate": run_validate_command,
    "diff": run_diff_command,
    "config": run_config,
}


def main(argv: list[str] | None = None) -> int:
    """Parse argv, set up config and logging, and dispatch; returns the exit status."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)

        # Logs go under the home directory
        config.ensure_directories()
        setup_logging(
            config.logs_dir,
            log_level=get_log_level(args.verbose),
            console_output=not args.quiet,
        )

        return COMMANDS[args.command](args, config)

    except (MachinistError, OSError, json.JSONDecodeError) as e:
        get_logger("main").debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
