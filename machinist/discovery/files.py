"""Filesystem helpers shared by probes."""

import hashlib
from pathlib import Path

from machinist.core.models import ConfigFile

CHUNK_SIZE = 64 * 1024


def content_hash(path: Path) -> str:
    """Return the SHA-256 of a file as "sha256:<hex>".

    Raises:
        OSError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return f"sha256:{digest.hexdigest()}"


def capture_config_file(
    home: Path,
    relative: str,
    bundle_dir: str,
    sensitive: bool = False,
) -> ConfigFile | None:
    """Describe a config file under home, or None if it is missing or unreadable.

    Args:
        home: Home directory the relative path is resolved against
        relative: Path relative to home, e.g. ".zshrc"
        bundle_dir: Bundle directory for the copy, e.g. "configs/shell"
        sensitive: Whether the file may contain private data
    """
    path = home / relative
    if not path.is_file():
        return None
    try:
        digest = content_hash(path)
    except OSError:
        return None
    return ConfigFile(
        source=relative,
        bundle_path=f"{bundle_dir}/{Path(relative).name}",
        content_hash=digest,
        sensitive=sensitive,
    )
