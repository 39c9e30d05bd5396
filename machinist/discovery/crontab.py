"""Crontab probe - the user's cron entries."""

import logging

from machinist.core.sections import CrontabSection

from .base import BaseProbe, ProbeResult, ScanContext
from .command import CommandError, CommandRunner

logger = logging.getLogger("machinist.discovery.crontab")


def parse_crontab(output: str) -> list[str]:
    """Return non-empty, non-comment crontab lines."""
    entries = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        entries.append(line)
    return entries


class CrontabProbe(BaseProbe):
    """Probe for `crontab -l` entries.

    A user without a crontab makes `crontab -l` exit non-zero; that is
    reported as no section rather than an error.
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    def get_name(self) -> str:
        return "crontab"

    def get_description(self) -> str:
        return "Scans crontab entries"

    def get_category(self) -> str:
        return "system"

    def get_section_key(self) -> str:
        return "crontab"

    def is_available(self) -> bool:
        return self.runner.is_installed("crontab")

    def scan(self, ctx: ScanContext) -> ProbeResult:
        try:
            output = self.runner.run("crontab", "-l")
        except CommandError as e:
            logger.debug(f"No crontab: {e}")
            return self.result(None)

        entries = parse_crontab(output)
        if not entries:
            return self.result(None)
        return self.result(CrontabSection(entries=entries))
