"""CLI command implementations.

This module provides the command handlers for all CLI commands.
Each handler takes the parsed arguments and the loaded configuration
and returns a process exit code. Primary output goes to stdout;
warnings and progress go to stderr.
"""

import argparse
import logging
import sys
from pathlib import Path

from machinist import __version__
from machinist.actions.bundle import default_bundle_dir, prepare_bundle_dir
from machinist.actions.executor import RestoreExecutor
from machinist.actions.planner import build_restore_plan, format_dry_run, parse_stage_list
from machinist.actions.script import generate_restore_script
from machinist.core.config import Config
from machinist.core.diff import diff_snapshots
from machinist.core.errors import ConfigurationError
from machinist.core.manifest import (
    marshal_manifest,
    read_manifest,
    validate_manifest,
    write_manifest,
)
from machinist.core.orchestrator import ProbeRegistry, create_default_registry
from machinist.core.profiles import ProfileStore, compose, create_profile_store
from machinist.discovery.base import ScanContext

from .formatters import ProgressWriter, get_formatter

logger = logging.getLogger("machinist.ui.cli")


def create_registry(config: Config) -> ProbeRegistry:
    """Composition root for the probe registry used by commands."""
    return create_default_registry(config, version=__version__)


def create_store(config: Config) -> ProfileStore:
    """Composition root for the profile store used by commands."""
    return create_profile_store(config.profiles_dir)


def _formatter(args: argparse.Namespace, config: Config):
    return get_formatter(
        as_json=getattr(args, "json", False),
        use_colors=config.output.use_colors,
        verbose=getattr(args, "verbose", 0) > 0,
    )


def _warn(message: str) -> None:
    print(f"warning: {message}", file=sys.stderr)


def run_snapshot_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the snapshot command.

    Scans the machine with every registered probe and writes the
    manifest. With --dry-run the manifest is printed instead; with
    --bundle a restore bundle (manifest, install script and captured
    files) is written, by default under the snapshots directory.

    Args:
        args: Command-line arguments
        config: Configuration object

    Returns:
        Exit code
    """
    registry = create_registry(config)
    ctx = ScanContext(command_timeout=config.scan.command_timeout_seconds)
    progress = None if getattr(args, "quiet", False) else ProgressWriter(sys.stderr)

    if args.dry_run:
        print("Dry-run mode: scanning environment")
        print(f"Registered scanners: {len(registry)}")
        for probe in registry.list():
            print(f"  - {probe.get_name()} ({probe.get_category()})")
        print()

    try:
        snapshot, errors = registry.scan_all_with_progress(ctx, progress)
    except KeyboardInterrupt:
        ctx.cancel()
        print("Cancelled.", file=sys.stderr)
        return 130

    for error in errors:
        _warn(str(error))

    if args.dry_run:
        print(f"Sections found: {snapshot.section_count()}")
        print(f"Estimated restore stages: {snapshot.section_count()}")
        print()
        print(marshal_manifest(snapshot), end="")
        return 0

    if args.bundle is not None:
        if args.bundle:
            bundle_dir = Path(args.bundle)
        else:
            bundle_dir = default_bundle_dir(config.snapshots_dir, snapshot.meta.source_hostname)
        bundle = prepare_bundle_dir(snapshot, bundle_dir, script_name=config.restore.script_name)
        for source in bundle.missing:
            _warn(f"captured file vanished before bundling: {source}")
        print(f"Bundle written to {bundle.bundle_dir} ({len(bundle.copied)} files captured)")
        print(f"Restore with: machinist restore {bundle.manifest_path}")
        return 0

    output = args.output or Path(config.output.manifest_name)
    write_manifest(snapshot, output)
    print(f"Snapshot written to {output}")
    return 0


def run_scan_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the scan command for a single probe.

    Args:
        args: Command-line arguments
        config: Configuration object

    Returns:
        Exit code
    """
    registry = create_registry(config)
    ctx = ScanContext(command_timeout=config.scan.command_timeout_seconds)
    result = registry.scan_one(args.scanner, ctx)
    print(_formatter(args, config).format_probe_result(result))
    return 0


def run_list_scanners_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the list-scanners command."""
    registry = create_registry(config)
    print(_formatter(args, config).format_probe_list(registry.list()))
    return 0


def run_list_profiles_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the list-profiles command."""
    store = create_store(config)
    print(_formatter(args, config).format_profile_list(store.list()))
    return 0


def run_list_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the list command: scanners followed by profiles."""
    formatter = _formatter(args, config)
    registry = create_registry(config)
    store = create_store(config)

    print(formatter.format_probe_list(registry.list()))
    print()
    print(formatter.format_profile_list(store.list()))
    return 0


def run_compose_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the compose command.

    Builds a manifest from a profile, optionally adding Homebrew formulae.

    Args:
        args: Command-line arguments
        config: Configuration object

    Returns:
        Exit code
    """
    store = create_store(config)

    if not args.profile:
        print("Error: --from is required", file=sys.stderr)
        print(f"Available profiles: {', '.join(store.list())}", file=sys.stderr)
        return 1

    snapshot = compose(args.profile, parse_stage_list(args.add), store=store)

    output = args.output or Path(config.output.composed_name)
    if str(output) == "-":
        print(marshal_manifest(snapshot), end="")
        return 0

    write_manifest(snapshot, output)
    print(f"Composed manifest written to {output}")
    return 0


def run_restore_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the restore command.

    Args:
        args: Command-line arguments
        config: Configuration object

    Returns:
        Exit code
    """
    only = parse_stage_list(args.only)
    skip = parse_stage_list(args.skip)
    if only and skip:
        raise ConfigurationError("--only and --skip are mutually exclusive")

    snapshot = read_manifest(args.manifest)
    plan = build_restore_plan(snapshot, only=only, skip=skip)

    if args.dry_run:
        print(format_dry_run(plan), end="")
        return 0

    if args.script:
        args.script.write_text(generate_restore_script(plan), encoding="utf-8")
        args.script.chmod(0o755)
        print(f"Restore script written to {args.script} ({plan.stage_count} stages)")
        return 0

    if plan.is_empty:
        print("Nothing to restore.")
        return 0

    print(f"About to restore {plan.stage_count} stages from {args.manifest}:")
    for stage in plan.stages:
        print(f"  {stage.label}")

    if config.restore.require_confirmation and not args.yes:
        response = input("\nProceed? [y/N] ").strip().lower()
        if response != "y":
            print("Cancelled.")
            return 0

    executor = RestoreExecutor(shell=config.restore.shell, script_name=config.restore.script_name)
    result = executor.execute(plan, workdir=Path(args.manifest).resolve().parent)
    print(_formatter(args, config).format_restore_result(result))
    return 0 if result.success else 1


def run_validate_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the validate command."""
    result = validate_manifest(Path(args.manifest).read_bytes())
    print(_formatter(args, config).format_validation(str(args.manifest), result))
    return 0 if result.valid else 1


def run_diff_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the diff command."""
    a = read_manifest(args.manifest_a)
    b = read_manifest(args.manifest_b)
    print(_formatter(args, config).format_diff(diff_snapshots(a, b)))
    return 0
