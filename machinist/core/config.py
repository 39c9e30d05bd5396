"""Configuration management for machinist.

Settings live in a JSON file (config.json) inside the machinist home
directory, which is $MACHINIST_HOME when set and ~/.machinist otherwise.
A missing file means defaults; keys missing from the file keep their
default values.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

HOME_ENV_VAR = "MACHINIST_HOME"
DEFAULT_HOME = "~/.machinist"
CONFIG_FILE_NAME = "config.json"

# Data directories, relative to the home directory unless configured absolute
DATA_DIRS = {
    "profiles_dir": "profiles",
    "snapshots_dir": "snapshots",
    "logs_dir": "logs",
}

DEFAULT_GIT_SEARCH_PATHS = ["~/Code", "~/Projects", "~/Developer", "~/work"]


def default_config_dir() -> Path:
    """Machinist home directory, honouring $MACHINIST_HOME."""
    return Path(os.environ.get(HOME_ENV_VAR, DEFAULT_HOME)).expanduser()


@dataclass
class ScanConfig:
    """Which probes run and how long their commands may take."""

    disabled_probes: list[str] = field(default_factory=list)
    git_search_paths: list[str] = field(default_factory=lambda: list(DEFAULT_GIT_SEARCH_PATHS))
    command_timeout_seconds: int = 60


@dataclass
class RestoreConfig:
    """How restore scripts are confirmed and run."""

    require_confirmation: bool = True
    shell: str = "bash"
    script_name: str = "install.command"  # Bundle script; restore runs it when present


@dataclass
class OutputConfig:
    """Default file names and terminal styling."""

    manifest_name: str = "machinist-snapshot.toml"
    composed_name: str = "composed-manifest.toml"
    use_colors: bool = True


# JSON key -> settings group
SETTINGS_GROUPS: dict[str, type] = {
    "scan": ScanConfig,
    "restore": RestoreConfig,
    "output": OutputConfig,
}


def _group_from_dict(cls: type, data: dict[str, Any]) -> Any:
    known = {f.name for f in fields(cls)}
    return cls(**{key: value for key, value in data.items() if key in known})


@dataclass
class Config:
    """Main configuration container for machinist.

    Attributes:
        config_dir: Machinist home directory
        profiles_dir: User profile presets (*.toml)
        snapshots_dir: Default parent of `snapshot --bundle` directories
        logs_dir: main.log, scan.log and restore.log
        scan: Probe settings
        restore: Restore settings
        output: Output settings
    """

    config_dir: Path = field(default_factory=default_config_dir)
    profiles_dir: Path = Path(DATA_DIRS["profiles_dir"])
    snapshots_dir: Path = Path(DATA_DIRS["snapshots_dir"])
    logs_dir: Path = Path(DATA_DIRS["logs_dir"])

    scan: ScanConfig = field(default_factory=ScanConfig)
    restore: RestoreConfig = field(default_factory=RestoreConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def __post_init__(self) -> None:
        self.config_dir = Path(self.config_dir)
        for name in DATA_DIRS:
            path = Path(getattr(self, name))
            if not path.is_absolute():
                path = self.config_dir / path
            setattr(self, name, path)

    @property
    def config_file(self) -> Path:
        """Default location of the JSON settings file."""
        return self.config_dir / CONFIG_FILE_NAME

    def ensure_directories(self) -> None:
        """Create the home directory and every data directory."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        for name in DATA_DIRS:
            getattr(self, name).mkdir(parents=True, exist_ok=True)

    def git_search_paths(self) -> list[Path]:
        """Git repository search paths with ~ expanded."""
        return [Path(p).expanduser() for p in self.scan.git_search_paths]

    def to_dict(self) -> dict[str, Any]:
        """Plain dictionary written to config.json."""
        data: dict[str, Any] = {"config_dir": str(self.config_dir)}
        for name in DATA_DIRS:
            data[name] = str(getattr(self, name))
        for key in SETTINGS_GROUPS:
            data[key] = asdict(getattr(self, key))
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Build a configuration from a config.json dictionary.

        Unknown keys are ignored so older binaries can read newer files.
        """
        kwargs: dict[str, Any] = {}
        if "config_dir" in data:
            kwargs["config_dir"] = Path(data["config_dir"]).expanduser()
        for name in DATA_DIRS:
            if name in data:
                kwargs[name] = Path(data[name]).expanduser()
        for key, group in SETTINGS_GROUPS.items():
            if key in data:
                kwargs[key] = _group_from_dict(group, data[key])
        return cls(**kwargs)


def load_config(config_path: Path | None = None) -> Config:
    """Read config.json, falling back to defaults when it does not exist.

    Args:
        config_path: Settings file (default: config.json in the home directory).

    Raises:
        json.JSONDecodeError: If the file is not valid JSON.
        OSError: If the file exists but cannot be read.
    """
    path = config_path or default_config_dir() / CONFIG_FILE_NAME
    if not path.exists():
        return Config()

    with open(path, encoding="utf-8") as f:
        return Config.from_dict(json.load(f))


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """Write the configuration as JSON and return the path written."""
    path = config_path or config.config_file
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path


def get_default_config() -> Config:
    return Config()
