"""Restore planning, script generation and execution."""

from .bundle import BundleResult, prepare_bundle_dir, snapshot_config_files
from .executor import RestoreExecutor, RestoreResult, create_restore_executor
from .planner import (
    RestorePlan,
    Stage,
    build_restore_plan,
    enumerate_stages,
    filter_stages,
    format_dry_run,
    parse_stage_list,
)
from .script import generate_restore_script

__all__ = [
    # Planner
    "Stage",
    "RestorePlan",
    "enumerate_stages",
    "filter_stages",
    "parse_stage_list",
    "build_restore_plan",
    "format_dry_run",
    # Script
    "generate_restore_script",
    # Executor
    "RestoreExecutor",
    "RestoreResult",
    "create_restore_executor",
    # Bundle
    "BundleResult",
    "prepare_bundle_dir",
    "snapshot_config_files",
]
