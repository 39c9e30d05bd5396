"""External command execution for probes.

Probes never call subprocess directly; they go through a CommandRunner so
tests can substitute canned output.
"""

import logging
import shutil
import subprocess

from .base import DEFAULT_COMMAND_TIMEOUT

logger = logging.getLogger("machinist.discovery.command")


class CommandError(RuntimeError):
    """An external command failed or could not be started."""


def split_lines(output: str) -> list[str]:
    """Split command output into lines, dropping empty ones."""
    return [line for line in output.splitlines() if line.strip()]


class CommandRunner:
    """Runs external commands and returns their trimmed stdout.

    Example:
        runner = CommandRunner(timeout=30)
        if runner.is_installed("brew"):
            taps = runner.run_lines("brew", "tap")
    """

    def __init__(self, timeout: int = DEFAULT_COMMAND_TIMEOUT) -> None:
        self.timeout = timeout

    def run(self, name: str, *args: str) -> str:
        """Run a command and return its stdout with whitespace trimmed.

        Raises:
            CommandError: If the command is missing, times out or exits non-zero.
        """
        cmd = [name, *args]
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CommandError(f"{name}: command not found") from e
        except subprocess.TimeoutExpired as e:
            raise CommandError(f"{name}: timed out after {self.timeout}s") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            raise CommandError(f"{' '.join(cmd)}: exit status {result.returncode}: {stderr}")

        return result.stdout.strip()

    def run_lines(self, name: str, *args: str) -> list[str]:
        """Run a command and return its non-empty output lines."""
        return split_lines(self.run(name, *args))

    def is_installed(self, name: str) -> bool:
        """Check if a command is available on PATH."""
        return shutil.which(name) is not None
