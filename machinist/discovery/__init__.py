"""Probes for scanning a developer machine."""

from .base import BaseProbe, ProbeResult, ScanContext
from .command import CommandError, CommandRunner
from .crontab import CrontabProbe
from .git_repos import GitReposProbe
from .homebrew import HomebrewProbe
from .shell import ShellProbe

__all__ = [
    "BaseProbe",
    "ProbeResult",
    "ScanContext",
    "CommandRunner",
    "CommandError",
    # Probes
    "HomebrewProbe",
    "ShellProbe",
    "GitReposProbe",
    "CrontabProbe",
]
