"""Pytest configuration and shared fixtures."""

import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def sample_meta():
    """Create snapshot metadata for testing."""
    from machinist.core.models import Meta

    return Meta(
        created_at=datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc),
        source_hostname="workstation",
        source_os_version="macOS-15.3-arm64",
        source_arch="arm64",
        machinist_version="0.1.0",
        scan_duration_secs=1.5,
    )


@pytest.fixture
def sample_snapshot(sample_meta):
    """Create a snapshot with Homebrew, shell, git repos and crontab."""
    from machinist.core.models import ConfigFile, Package, Repository, ServiceEntry
    from machinist.core.sections import (
        CrontabSection,
        GitReposSection,
        HomebrewSection,
        ShellSection,
    )
    from machinist.core.snapshot import Snapshot

    snapshot = Snapshot(meta=sample_meta)
    snapshot.set(
        "homebrew",
        HomebrewSection(
            taps=["homebrew/core"],
            formulae=[Package(name="git", version="2.44.0"), Package(name="ripgrep")],
            casks=[Package(name="iterm2")],
            services=[
                ServiceEntry(name="postgresql@16", status="started"),
                ServiceEntry(name="redis", status="none"),
            ],
        ),
    )
    snapshot.set(
        "shell",
        ShellSection(
            default_shell="/bin/zsh",
            framework="oh-my-zsh",
            prompt="starship",
            config_files=[
                ConfigFile(
                    source=".zshrc",
                    bundle_path="configs/shell/.zshrc",
                    content_hash="sha256:abc123",
                )
            ],
        ),
    )
    snapshot.set(
        "git_repos",
        GitReposSection(
            search_paths=["~/Code"],
            repositories=[
                Repository(
                    path="Code/machinist",
                    remote="git@github.com:example/machinist.git",
                    branch="main",
                )
            ],
        ),
    )
    snapshot.set("crontab", CrontabSection(entries=["0 3 * * * /usr/local/bin/backup"]))
    return snapshot


@pytest.fixture
def temp_config(tmp_path):
    """Create a Config rooted in a temporary directory."""
    from machinist.core.config import Config

    config = Config(config_dir=tmp_path / "machinist")
    config.output.use_colors = False
    return config
