"""Probe registry - coordinates all probes.

The registry is responsible for:
- Keeping probe names and section ownership unique
- Listing probes deterministically
- Running one or all probes sequentially
- Collecting per-probe failures without losing partial results
- Reporting progress to an optional observer
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .config import Config
from .errors import ConfigurationError, DuplicateNameError, NotFoundError, ProbeError, ScanCancelledError
from .logging_config import get_logger, log_scan_result
from .sections import is_section_key
from .snapshot import Snapshot, new_snapshot

if TYPE_CHECKING:
    from machinist.discovery.base import BaseProbe, ProbeResult, ScanContext


@dataclass
class ProgressEvent:
    """What happened during one scan step.

    Sent once before a probe runs (done=False) and once after (done=True).

    Attributes:
        name: Probe name
        index: Zero-based position in the sorted probe list
        total: Number of probes in the run
        done: Whether the probe has finished
        duration: Probe duration in seconds (after only)
        error: Failure, if the probe failed
    """

    name: str
    index: int
    total: int
    done: bool = False
    duration: float = 0.0
    error: ProbeError | None = None


ProgressCallback = Callable[[ProgressEvent], None]


def _default_context() -> "ScanContext":
    from machinist.discovery.base import ScanContext

    return ScanContext()


class ProbeRegistry:
    """Holds named probes and runs them into a Snapshot.

    Example:
        registry = ProbeRegistry()
        registry.register(HomebrewProbe())
        registry.register(ShellProbe())

        snapshot, errors = registry.scan_all()
        for error in errors:
            print(error)
    """

    def __init__(self, version: str = "") -> None:
        """Initialize an empty registry.

        Args:
            version: Tool version recorded in the snapshots produced.
        """
        self.version = version
        self._probes: dict[str, "BaseProbe"] = {}
        self._owners: dict[str, str] = {}  # section key -> probe name
        self.logger = get_logger("main")

    def register(self, probe: "BaseProbe") -> None:
        """Register a probe.

        Raises:
            DuplicateNameError: If the name is taken or another probe
                already fills the same section.
            ConfigurationError: If the probe declares an unknown section key.
        """
        name = probe.get_name()
        if name in self._probes:
            raise DuplicateNameError(name)

        section_key = probe.get_section_key()
        if not is_section_key(section_key):
            raise ConfigurationError(f"Probe {name} declares unknown section: {section_key}")
        owner = self._owners.get(section_key)
        if owner is not None:
            raise DuplicateNameError(
                name, f"section '{section_key}' is already provided by probe '{owner}'"
            )

        self._probes[name] = probe
        self._owners[section_key] = name
        self.logger.debug(f"Registered probe: {name} -> {section_key}")

    def get(self, name: str) -> "BaseProbe":
        """Get a probe by name.

        Raises:
            NotFoundError: If no probe has that name.
        """
        probe = self._probes.get(name)
        if probe is None:
            raise NotFoundError("probe", name, sorted(self._probes))
        return probe

    def names(self) -> list[str]:
        """Sorted names of all registered probes."""
        return sorted(self._probes)

    def __len__(self) -> int:
        return len(self._probes)

    def _run(self, probe: "BaseProbe", ctx: "ScanContext") -> "ProbeResult":
        name = probe.get_name()
        start = time.perf_counter()
        try:
            result = probe.scan(ctx)
        except ProbeError:
            raise
        except Exception as e:
            duration = time.perf_counter() - start
            log_scan_result(name, probe.get_section_key(), duration * 1000, str(e))
            raise ProbeError(name, str(e)) from e

        duration = time.perf_counter() - start
        if result.section_key != probe.get_section_key():
            error = ProbeError(
                name,
                f"returned section '{result.section_key}', "
                f"expected '{probe.get_section_key()}'",
            )
            log_scan_result(name, probe.get_section_key(), duration * 1000, str(error))
            raise error

        result.duration = duration
        log_scan_result(name, result.section_key, duration * 1000)
        return result

    def scan_one(self, name: str, ctx: "ScanContext | None" = None) -> "ProbeResult":
        """Run a single probe by name.

        Raises:
            NotFoundError: If no probe has that name.
            ProbeError: If the probe failed; the cause is chained.
        """
        probe = self.get(name)
        return self._run(probe, ctx or _default_context())

    def scan_all(self, ctx: "ScanContext | None" = None) -> tuple[Snapshot, list[ProbeError]]:
        """Run every probe and aggregate the results.

        Returns:
            The best-effort snapshot and the list of per-probe errors.
        """
        return self.scan_all_with_progress(ctx, None)

    def scan_all_with_progress(
        self,
        ctx: "ScanContext | None",
        on_progress: ProgressCallback | None,
    ) -> tuple[Snapshot, list[ProbeError]]:
        """Run every probe sequentially, in name order.

        A failing probe is recorded and the run continues. Once the
        context is cancelled no further probes are started; each skipped
        probe is recorded as a ScanCancelledError.

        Args:
            ctx: Scan context (a fresh one if None)
            on_progress: Called before and after each probe

        Returns:
            The best-effort snapshot and the list of per-probe errors.
        """
        ctx = ctx or _default_context()
        start = time.perf_counter()
        snapshot = new_snapshot(self.version)
        errors: list[ProbeError] = []

        probes = self.list()
        total = len(probes)
        self.logger.info(f"Starting scan with {total} probes")

        for index, probe in enumerate(probes):
            name = probe.get_name()

            if ctx.cancelled:
                errors.append(ScanCancelledError(name))
                continue

            if on_progress:
                on_progress(ProgressEvent(name=name, index=index, total=total))

            probe_start = time.perf_counter()
            error: ProbeError | None = None
            try:
                result = self._run(probe, ctx)
                self._apply(snapshot, result)
            except ProbeError as e:
                self.logger.warning(str(e))
                error = e
                errors.append(e)

            if on_progress:
                on_progress(
                    ProgressEvent(
                        name=name,
                        index=index,
                        total=total,
                        done=True,
                        duration=time.perf_counter() - probe_start,
                        error=error,
                    )
                )

        snapshot.meta.scan_duration_secs = time.perf_counter() - start
        self.logger.info(
            f"Scan complete: {snapshot.section_count()} sections, {len(errors)} errors "
            f"in {snapshot.meta.scan_duration_secs:.2f}s"
        )
        return snapshot, errors

    @staticmethod
    def _apply(snapshot: Snapshot, result: "ProbeResult") -> None:
        """Assign a result's section onto the snapshot; None leaves it untouched."""
        if result.section is None:
            return
        try:
            snapshot.set(result.section_key, result.section)
        except TypeError as e:
            raise ProbeError(result.probe_name, str(e)) from e

    # Last in the class body: the name shadows the builtin list
    def list(self) -> list["BaseProbe"]:
        """All registered probes sorted by name."""
        return [self._probes[name] for name in sorted(self._probes)]


def create_default_registry(config: Config | None = None, version: str = "") -> ProbeRegistry:
    """Build the registry with all bundled probes.

    Probes that are unavailable on this system or disabled in the
    configuration are left out.

    Args:
        config: Application configuration (defaults if None).
        version: Tool version recorded in snapshots.
    """
    from machinist.discovery import (
        CommandRunner,
        CrontabProbe,
        GitReposProbe,
        HomebrewProbe,
        ShellProbe,
    )

    config = config or Config()
    logger = get_logger("main")
    runner = CommandRunner(timeout=config.scan.command_timeout_seconds)

    probes: list[Any] = [
        HomebrewProbe(runner),
        ShellProbe(),
        GitReposProbe(config.git_search_paths(), runner),
        CrontabProbe(runner),
    ]

    registry = ProbeRegistry(version=version)
    disabled = set(config.scan.disabled_probes)
    for probe in probes:
        name = probe.get_name()
        if name in disabled:
            logger.debug(f"Probe disabled by configuration: {name}")
            continue
        if not probe.is_available():
            logger.warning(f"Probe not available: {name}")
            continue
        registry.register(probe)

    logger.info(f"Registered {len(registry)} probes")
    return registry
