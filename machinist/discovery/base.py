"""Base interface for probes.

All probes must inherit from BaseProbe and implement the required
methods for scanning one aspect of a developer machine.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from machinist.core.models import Sensitivity

DEFAULT_COMMAND_TIMEOUT = 60


@dataclass
class ScanContext:
    """Per-run state shared with every probe.

    Attributes:
        cancel_event: Set to request that scanning stop
        command_timeout: Timeout in seconds for external commands
    """

    cancel_event: threading.Event = field(default_factory=threading.Event)
    command_timeout: int = DEFAULT_COMMAND_TIMEOUT

    def cancel(self) -> None:
        """Request cancellation of the running scan."""
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        """Check whether cancellation was requested."""
        return self.cancel_event.is_set()


@dataclass
class ProbeResult:
    """Outcome of a single probe.

    Attributes:
        probe_name: Name of the probe that produced the result
        section_key: Manifest section the result fills
        section: Section value, or None when nothing applies
        duration: Scan duration in seconds
    """

    probe_name: str
    section_key: str
    section: Any = None
    duration: float = 0.0


class BaseProbe(ABC):
    """Abstract base class for all probes.

    A probe is authoritative for exactly one manifest section.

    Subclasses must implement:
        - get_name(): Return the probe identifier
        - get_section_key(): Return the section the probe fills
        - scan(ctx): Perform the scan

    Example:
        class CrontabProbe(BaseProbe):
            def get_name(self) -> str:
                return "crontab"

            def get_section_key(self) -> str:
                return "crontab"

            def scan(self, ctx: ScanContext) -> ProbeResult:
                return self.result(CrontabSection(entries=[...]))
    """

    @abstractmethod
    def get_name(self) -> str:
        """Return the probe identifier.

        Returns:
            A stable string identifier, e.g. "homebrew", "shell".
        """
        pass

    @abstractmethod
    def get_section_key(self) -> str:
        """Return the manifest section this probe fills."""
        pass

    @abstractmethod
    def scan(self, ctx: ScanContext) -> ProbeResult:
        """Scan the machine.

        Args:
            ctx: Scan context with cancellation and timeout.

        Returns:
            ProbeResult whose section is None when nothing applies.

        Raises:
            Exception: Any failure; the registry records it as a ProbeError.
        """
        pass

    def get_description(self) -> str:
        """Return a human-readable description of what this probe scans."""
        return f"Scans {self.get_section_key()} configuration"

    def get_category(self) -> str:
        """Return the category tag used for grouping in listings."""
        return "general"

    def get_sensitivity(self) -> Sensitivity:
        """Return how sensitive the captured data is."""
        return Sensitivity.PUBLIC

    def is_available(self) -> bool:
        """Check if this probe can run on the current system.

        Default implementation always returns True.
        """
        return True

    def result(self, section: Any) -> ProbeResult:
        """Build a ProbeResult for this probe."""
        return ProbeResult(
            probe_name=self.get_name(),
            section_key=self.get_section_key(),
            section=section,
        )
