"""Restore bundles - a directory that carries a snapshot to a new machine.

Layout:
    manifest.toml     the snapshot
    install.command   restore script generated for every populated section
    configs/...       captured files, each at its ConfigFile.bundle_path

The restore script reads captured files from its own directory, so the
bundle can be copied anywhere and run as is.
"""

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath

from machinist.core.errors import BundleError
from machinist.core.manifest import write_manifest
from machinist.core.models import ConfigFile
from machinist.core.snapshot import Snapshot

from .planner import build_restore_plan
from .script import collect_config_files, generate_restore_script

logger = logging.getLogger("machinist.actions.bundle")

MANIFEST_NAME = "manifest.toml"
DEFAULT_SCRIPT_NAME = "install.command"


@dataclass
class BundleResult:
    """What prepare_bundle_dir wrote.

    Attributes:
        bundle_dir: The bundle directory
        manifest_path: Manifest inside the bundle
        script_path: Pre-generated restore script
        copied: Bundle paths of the captured files that were copied
        missing: Sources that no longer exist and were left out
    """

    bundle_dir: Path
    manifest_path: Path
    script_path: Path
    copied: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def snapshot_config_files(snapshot: Snapshot) -> list[ConfigFile]:
    """Every captured file of every populated section, in section table order."""
    files: list[ConfigFile] = []
    for key in snapshot.populated_keys():
        files.extend(collect_config_files(snapshot.get(key)))
    return files


def default_bundle_dir(parent: Path, hostname: str) -> Path:
    """Timestamped bundle directory name, e.g. <parent>/workstation_20250101_120000."""
    safe_name = "".join(c for c in hostname if c.isalnum() or c in "-_") or "machine"
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return parent / f"{safe_name}_{timestamp}"


def _source_path(home: Path, source: str) -> Path:
    if source.startswith("~/"):
        source = source[2:]
    path = Path(source)
    return path if path.is_absolute() else home / path


def _bundle_target(bundle_dir: Path, bundle_path: str) -> Path:
    relative = PurePosixPath(bundle_path)
    if not bundle_path or relative.is_absolute() or ".." in relative.parts:
        raise BundleError(f"bundle path must stay inside the bundle: {bundle_path!r}")
    return bundle_dir.joinpath(*relative.parts)


def prepare_bundle_dir(
    snapshot: Snapshot,
    bundle_dir: Path,
    home: Path | None = None,
    script_name: str = DEFAULT_SCRIPT_NAME,
) -> BundleResult:
    """Write manifest, restore script and captured files into a bundle directory.

    Files whose source disappeared since the scan are skipped with a warning;
    the restore script reports them as missing when it runs.

    Args:
        snapshot: Snapshot to bundle
        bundle_dir: Target directory, created if needed
        home: Directory that relative ConfigFile sources live under
        script_name: File name of the restore script

    Raises:
        BundleError: If a bundle path would land outside the bundle.
        OSError: If a file cannot be written or copied.
    """
    home = home or Path.home()
    bundle_dir.mkdir(parents=True, exist_ok=True)

    manifest_path = bundle_dir / MANIFEST_NAME
    write_manifest(snapshot, manifest_path)

    script_path = bundle_dir / script_name
    script_path.write_text(generate_restore_script(build_restore_plan(snapshot)), encoding="utf-8")
    script_path.chmod(0o755)

    result = BundleResult(bundle_dir=bundle_dir, manifest_path=manifest_path, script_path=script_path)
    for config_file in snapshot_config_files(snapshot):
        if not config_file.source or not config_file.bundle_path:
            continue
        target = _bundle_target(bundle_dir, config_file.bundle_path)
        source = _source_path(home, config_file.source)
        if not source.is_file():
            logger.warning(f"Captured file no longer exists, not bundled: {source}")
            result.missing.append(config_file.source)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        result.copied.append(config_file.bundle_path)

    logger.info(f"Bundle written to {bundle_dir}: {len(result.copied)} files, {len(result.missing)} missing")
    return result
