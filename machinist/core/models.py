"""Core data models for machinist.

This module defines the snapshot metadata block and the small value
records that sections are built from. Records carry no references to
other sections; they are plain values that round-trip through the
manifest.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Sensitivity(Enum):
    """Security classification of data collected by a probe.

    Levels:
        PUBLIC: No security concerns (package lists, editor extensions)
        SENSITIVE: May contain private info (.npmrc, cloud CLI config)
        SECRET: Credentials, keys or tokens (SSH keys, .env files)
    """

    PUBLIC = "public"
    SENSITIVE = "sensitive"
    SECRET = "secret"


@dataclass
class Meta:
    """Metadata about a snapshot: when, where, and how it was created.

    Attributes:
        created_at: When the scan started
        source_hostname: Hostname of the scanned machine
        source_os_version: OS name/version string of the scanned machine
        source_arch: CPU architecture as reported by `uname -m`
        machinist_version: Version of the tool that produced the snapshot
        scan_duration_secs: Measured duration of the full scan
    """

    created_at: datetime = field(default_factory=lambda: datetime.now().astimezone())
    source_hostname: str = ""
    source_os_version: str = ""
    source_arch: str = ""
    machinist_version: str = ""
    scan_duration_secs: float = 0.0


# ---------------------------------------------------------------------------
# Value records
# ---------------------------------------------------------------------------


@dataclass
class Package:
    """A software package with an optional version."""

    name: str = ""
    version: str = ""


@dataclass
class ServiceEntry:
    """A background service managed by a package manager."""

    name: str = ""
    status: str = ""


@dataclass
class ConfigFile:
    """A configuration file captured into the bundle.

    Attributes:
        source: Path of the file, relative to the home directory
        bundle_path: Path of the copy inside the bundle
        content_hash: SHA-256 of the captured content
        encrypted: Whether the bundled copy is encrypted
        sensitive: Whether the file may contain private data
    """

    source: str = ""
    bundle_path: str = ""
    content_hash: str = ""
    encrypted: bool = False
    sensitive: bool = False


@dataclass
class Repository:
    """A git repository to be cloned during restore."""

    path: str = ""
    remote: str = ""
    branch: str = ""
    shallow: bool = False


@dataclass
class HostEntry:
    """A custom /etc/hosts entry."""

    ip: str = ""
    hostnames: list[str] = field(default_factory=list)


@dataclass
class MacDefault:
    """A single `defaults write` entry."""

    domain: str = ""
    key: str = ""
    value: str = ""
    value_type: str = ""


@dataclass
class InstalledApp:
    """An application installed from the App Store or another source."""

    name: str = ""
    source: str = ""
    bundle_id: str = ""
    id: int = 0


@dataclass
class Font:
    """A user-installed font."""

    name: str = ""
    bundle_path: str = ""


@dataclass
class EnvFile:
    """An environment file (typically encrypted)."""

    source: str = ""
    bundle_path: str = ""


@dataclass
class JetBrainsIDE:
    """A JetBrains IDE installation with its settings export."""

    name: str = ""
    settings_export: str = ""


@dataclass
class AsdfPlugin:
    """An asdf/mise plugin with its installed versions."""

    name: str = ""
    versions: list[str] = field(default_factory=list)


@dataclass
class DNSConfig:
    """DNS servers configured for one network interface."""

    interface: str = ""
    servers: list[str] = field(default_factory=list)


# macOS preference records


@dataclass
class DockConfig:
    autohide: bool = False
    tilesize: int = 0
    orientation: str = ""
    minimize_effect: str = ""


@dataclass
class FinderConfig:
    show_hidden: bool = False
    show_path_bar: bool = False
    show_status_bar: bool = False
    default_view: str = ""


@dataclass
class KeyboardConfig:
    key_repeat: int = 0
    initial_key_repeat: int = 0


@dataclass
class TrackpadConfig:
    tap_to_click: bool = False
    tracking_speed: float = 0.0


@dataclass
class HotCorners:
    top_left: str = ""
    top_right: str = ""
    bottom_left: str = ""
    bottom_right: str = ""


@dataclass
class MissionControlConfig:
    hot_corners: HotCorners | None = None


@dataclass
class SpotlightConfig:
    excluded_paths: list[str] = field(default_factory=list)


@dataclass
class ScreenshotsConfig:
    path: str = ""
    format: str = ""
    disable_shadow: bool = False


@dataclass
class MenuBarConfig:
    clock_format: str = ""
    show_battery_percentage: bool = False
