"""Git repositories probe - clones found under the configured search paths."""

import logging
import os
from pathlib import Path

from machinist.core.models import Repository
from machinist.core.sections import GitReposSection

from .base import BaseProbe, ProbeResult, ScanContext
from .command import CommandError, CommandRunner

logger = logging.getLogger("machinist.discovery.git_repos")


class GitReposProbe(BaseProbe):
    """Probe for git working copies.

    Walks each search path and records every directory that contains a
    .git directory, with its origin remote and current branch. Nested
    repositories are not descended into.
    """

    def __init__(self, search_paths: list[Path], runner: CommandRunner | None = None) -> None:
        self.search_paths = [Path(p) for p in search_paths]
        self.runner = runner or CommandRunner()

    def get_name(self) -> str:
        return "git-repos"

    def get_description(self) -> str:
        return "Scans for Git repositories in specified paths"

    def get_category(self) -> str:
        return "git"

    def get_section_key(self) -> str:
        return "git_repos"

    def scan(self, ctx: ScanContext) -> ProbeResult:
        if not self.runner.is_installed("git") or not self.search_paths:
            return self.result(None)

        section = GitReposSection(search_paths=[str(p) for p in self.search_paths])
        for root in self.search_paths:
            if ctx.cancelled:
                break
            section.repositories.extend(self._find_repos(root))

        logger.debug(f"Found {len(section.repositories)} repositories")
        return self.result(section)

    def _find_repos(self, root: Path) -> list[Repository]:
        repos = []
        if not root.is_dir():
            return repos

        for dirpath, dirnames, _ in os.walk(root):
            if ".git" in dirnames:
                repos.append(self._build_repo(Path(dirpath)))
                dirnames.clear()
                continue
            dirnames.sort()
        return repos

    def _build_repo(self, path: Path) -> Repository:
        repo = Repository(path=str(path))
        try:
            repo.remote = self.runner.run("git", "-C", str(path), "remote", "get-url", "origin")
        except CommandError as e:
            logger.debug(f"No origin remote for {path}: {e}")
        try:
            repo.branch = self.runner.run("git", "-C", str(path), "branch", "--show-current")
        except CommandError as e:
            logger.debug(f"No current branch for {path}: {e}")
        return repo
