"""Core module - orchestration, data model, and infrastructure."""

from .config import Config, load_config
from .diff import SnapshotDiff, diff_snapshots
from .errors import (
    ConfigurationError,
    DuplicateNameError,
    MachinistError,
    NotFoundError,
    ParseError,
    ProbeError,
    ScanCancelledError,
)
from .logging_config import setup_logging
from .manifest import (
    ValidationResult,
    marshal_manifest,
    read_manifest,
    unmarshal_manifest,
    validate_manifest,
    write_manifest,
)
from .models import Meta, Sensitivity
from .orchestrator import ProbeRegistry, ProgressEvent, create_default_registry
from .profiles import ProfileStore, compose, create_profile_store, merge
from .sections import SECTION_KEYS, SECTION_TABLE, MergeStrategy, SectionSpec
from .snapshot import Snapshot, new_snapshot

__all__ = [
    # Models
    "Meta",
    "Sensitivity",
    "Snapshot",
    "new_snapshot",
    "SECTION_TABLE",
    "SECTION_KEYS",
    "SectionSpec",
    "MergeStrategy",
    # Errors
    "MachinistError",
    "DuplicateNameError",
    "NotFoundError",
    "ProbeError",
    "ScanCancelledError",
    "ParseError",
    "ConfigurationError",
    # Config
    "Config",
    "load_config",
    "setup_logging",
    # Manifest
    "ValidationResult",
    "marshal_manifest",
    "unmarshal_manifest",
    "write_manifest",
    "read_manifest",
    "validate_manifest",
    # Registry
    "ProbeRegistry",
    "ProgressEvent",
    "create_default_registry",
    # Profiles
    "ProfileStore",
    "create_profile_store",
    "merge",
    "compose",
    # Diff
    "SnapshotDiff",
    "diff_snapshots",
]
