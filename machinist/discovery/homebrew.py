"""Homebrew probe - taps, formulae, casks and services.

Uses the brew CLI:
    brew list --formula --versions
    brew list --cask
    brew tap
    brew services list
"""

import logging

from machinist.core.models import Package, ServiceEntry
from machinist.core.sections import HomebrewSection

from .base import BaseProbe, ProbeResult, ScanContext
from .command import CommandRunner

logger = logging.getLogger("machinist.discovery.homebrew")


def parse_formulae(lines: list[str]) -> list[Package]:
    """Parse `brew list --formula --versions` output ("name version...")."""
    packages = []
    for line in lines:
        name, _, version = line.strip().partition(" ")
        packages.append(Package(name=name, version=version.strip()))
    return packages


def parse_services(lines: list[str]) -> list[ServiceEntry]:
    """Parse `brew services list` output, skipping the header row."""
    services = []
    for index, line in enumerate(lines):
        if index == 0 and line.startswith("Name"):
            continue
        fields = line.split()
        if not fields:
            continue
        services.append(
            ServiceEntry(name=fields[0], status=fields[1] if len(fields) > 1 else "")
        )
    return services


class HomebrewProbe(BaseProbe):
    """Probe for Homebrew packages.

    When brew is not installed the probe returns no section, leaving
    the snapshot's homebrew section absent.
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    def get_name(self) -> str:
        return "homebrew"

    def get_description(self) -> str:
        return "Scans Homebrew packages, casks, taps, and services"

    def get_category(self) -> str:
        return "packages"

    def get_section_key(self) -> str:
        return "homebrew"

    def scan(self, ctx: ScanContext) -> ProbeResult:
        if not self.runner.is_installed("brew"):
            logger.info("brew not installed, skipping")
            return self.result(None)

        section = HomebrewSection(
            formulae=parse_formulae(self.runner.run_lines("brew", "list", "--formula", "--versions")),
            casks=[Package(name=n.strip()) for n in self.runner.run_lines("brew", "list", "--cask")],
            taps=[t.strip() for t in self.runner.run_lines("brew", "tap")],
            services=parse_services(self.runner.run_lines("brew", "services", "list")),
        )

        logger.debug(
            f"Found {len(section.formulae)} formulae, {len(section.casks)} casks, "
            f"{len(section.taps)} taps"
        )
        return self.result(section)
