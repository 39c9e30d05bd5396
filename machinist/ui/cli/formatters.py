"""Rendering of machinist command results.

Text output is for people (optionally colored); JSON output is for
scripts and always goes to stdout uncolored.
"""

import json
import sys
from abc import ABC, abstractmethod
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, TextIO

from machinist.actions.executor import RestoreResult
from machinist.core.diff import SnapshotDiff
from machinist.core.errors import ProbeError
from machinist.core.manifest import ValidationResult, snapshot_to_dict
from machinist.core.orchestrator import ProgressEvent
from machinist.core.sections import get_section_spec
from machinist.core.snapshot import Snapshot
from machinist.discovery.base import BaseProbe, ProbeResult


class Colors:
    """Terminal escape sequences used by the text output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    SUCCESS = "\033[92m"
    FAILURE = "\033[91m"
    WARNING = "\033[93m"
    INFO = "\033[94m"

    @classmethod
    def is_supported(cls, stream: TextIO | None = None) -> bool:
        """True when the stream (stdout by default) is a terminal."""
        stream = stream or sys.stdout
        return hasattr(stream, "isatty") and stream.isatty()


def colorize(text: str, color: str, force: bool = False) -> str:
    """Wrap text in an escape sequence when the terminal supports it.

    Args:
        text: Text to wrap
        color: One of the Colors codes
        force: Skip the terminal check
    """
    if not (force or Colors.is_supported()):
        return text
    return color + text + Colors.RESET


def short_error(error: Exception) -> str:
    """Error message without the "probe <name>: " prefix."""
    if isinstance(error, ProbeError):
        return error.message
    return str(error)


class _ColorMixin:
    use_colors: bool = False

    def _colorize(self, text: str, color: str) -> str:
        return colorize(text, color, force=True) if self.use_colors else text


class OutputFormatter(ABC):
    """Interface shared by the text and JSON renderers."""

    @abstractmethod
    def format_probe_list(self, probes: list[BaseProbe]) -> str:
        """Format the registered probes."""
        pass

    @abstractmethod
    def format_profile_list(self, names: list[str]) -> str:
        """Format the available profile names."""
        pass

    @abstractmethod
    def format_probe_result(self, result: ProbeResult) -> str:
        """Format the result of a single probe."""
        pass

    @abstractmethod
    def format_validation(self, path: str, result: ValidationResult) -> str:
        """Format a manifest validation report."""
        pass

    @abstractmethod
    def format_diff(self, diff: SnapshotDiff) -> str:
        """Format a snapshot comparison."""
        pass

    @abstractmethod
    def format_restore_result(self, result: RestoreResult) -> str:
        """Format the outcome of a restore."""
        pass


class TextFormatter(_ColorMixin, OutputFormatter):
    """Human-readable output.

    Args:
        use_colors: Color the output when stdout is a terminal
        verbose: Include probe metadata and unchanged sections
    """

    def __init__(self, use_colors: bool = True, verbose: bool = False):
        self.use_colors = use_colors and Colors.is_supported()
        self.verbose = verbose

    def format_probe_list(self, probes: list[BaseProbe]) -> str:
        if not probes:
            return "No probes registered."

        lines = [self._colorize("Scanners:", Colors.BOLD)]
        for probe in probes:
            lines.append(f"  {probe.get_name():<20} {probe.get_description()}")
            if self.verbose:
                lines.append(
                    self._colorize(
                        f"  {'':<20} category={probe.get_category()} "
                        f"section={probe.get_section_key()} "
                        f"sensitivity={probe.get_sensitivity().value}",
                        Colors.DIM,
                    )
                )
        return "\n".join(lines)

    def format_profile_list(self, names: list[str]) -> str:
        lines = [self._colorize("Profiles:", Colors.BOLD)]
        if not names:
            lines.append("  (none)")
        lines.extend(f"  {name}" for name in names)
        return "\n".join(lines)

    def format_probe_result(self, result: ProbeResult) -> str:
        title = get_section_spec(result.section_key).display_name
        header = self._colorize(f"{result.probe_name} -> [{result.section_key}] {title}", Colors.BOLD)
        lines = [header, f"  Duration: {result.duration:.2f}s"]

        if result.section is None:
            lines.append("  Nothing found")
            return "\n".join(lines)

        snapshot = Snapshot()
        snapshot.set(result.section_key, result.section)
        data = snapshot_to_dict(snapshot).get(result.section_key, {})
        if not data:
            lines.append("  Section present, empty")
        for key, value in data.items():
            count = f"{len(value)} entries" if isinstance(value, list) else value
            lines.append(f"  {key}: {count}")
        return "\n".join(lines)

    def format_validation(self, path: str, result: ValidationResult) -> str:
        if not result.valid:
            mark = self._colorize("✗", Colors.FAILURE)
            return f"{mark} {path}: invalid manifest\n  {result.error}"

        mark = self._colorize("✓", Colors.SUCCESS)
        lines = [f"{mark} {path}: valid manifest with {len(result.sections)} sections"]
        lines.extend(f"  - {key}" for key in result.sections)
        return "\n".join(lines)

    def format_diff(self, diff: SnapshotDiff) -> str:
        if diff.is_empty:
            return "Snapshots populate the same sections and packages."

        lines: list[str] = []
        groups = [
            ("Only in A", diff.only_in_a, "-", Colors.FAILURE),
            ("Only in B", diff.only_in_b, "+", Colors.SUCCESS),
        ]
        for title, keys, sign, color in groups:
            if keys:
                lines.append(self._colorize(f"{title}:", Colors.BOLD))
                lines.extend(self._colorize(f"  {sign} {key}", color) for key in keys)

        if self.verbose and diff.in_both:
            lines.append(self._colorize("In both:", Colors.BOLD))
            lines.extend(f"    {key}" for key in diff.in_both)

        packages = [
            ("Homebrew packages only in A", diff.homebrew_only_in_a, "-", Colors.FAILURE),
            ("Homebrew packages only in B", diff.homebrew_only_in_b, "+", Colors.SUCCESS),
        ]
        for title, names, sign, color in packages:
            if names:
                lines.append(self._colorize(f"{title}:", Colors.BOLD))
                lines.extend(self._colorize(f"  {sign} {name}", color) for name in names)

        return "\n".join(lines)

    def format_restore_result(self, result: RestoreResult) -> str:
        if result.success:
            return self._colorize("✓ Restore completed", Colors.SUCCESS)
        return self._colorize(
            f"✗ Restore finished with failures (exit {result.return_code}); see the restore log",
            Colors.FAILURE,
        )


class JsonFormatter(OutputFormatter):
    """Machine-readable output; enums, datetimes and dataclasses are converted."""

    def __init__(self, indent: int = 2, compact: bool = False):
        self.indent = None if compact else indent

    @staticmethod
    def _default(obj: Any) -> Any:
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, datetime):
            return obj.isoformat()
        if is_dataclass(obj):
            return asdict(obj)
        return str(obj)

    def _dumps(self, data: Any) -> str:
        return json.dumps(data, indent=self.indent, default=self._default)

    def format_probe_list(self, probes: list[BaseProbe]) -> str:
        data = {
            "count": len(probes),
            "scanners": [
                {
                    "name": p.get_name(),
                    "description": p.get_description(),
                    "category": p.get_category(),
                    "section": p.get_section_key(),
                    "sensitivity": p.get_sensitivity(),
                }
                for p in probes
            ],
        }
        return self._dumps(data)

    def format_profile_list(self, names: list[str]) -> str:
        return self._dumps({"count": len(names), "profiles": names})

    def format_probe_result(self, result: ProbeResult) -> str:
        section = None
        if result.section is not None:
            snapshot = Snapshot()
            snapshot.set(result.section_key, result.section)
            section = snapshot_to_dict(snapshot)[result.section_key]
        data = {
            "scanner": result.probe_name,
            "section_key": result.section_key,
            "duration_secs": result.duration,
            "section": section,
        }
        return self._dumps(data)

    def format_validation(self, path: str, result: ValidationResult) -> str:
        data = {"path": path, **asdict(result)}
        return self._dumps(data)

    def format_diff(self, diff: SnapshotDiff) -> str:
        return self._dumps({**asdict(diff), "identical": diff.is_empty})

    def format_restore_result(self, result: RestoreResult) -> str:
        return self._dumps(
            {
                "success": result.success,
                "return_code": result.return_code,
            }
        )


class ProgressWriter(_ColorMixin):
    """Writes scan progress to a stream, one line per probe.

    Example:
        writer = ProgressWriter(sys.stderr)
        registry.scan_all_with_progress(ctx, writer)
    """

    def __init__(self, stream: TextIO | None = None, use_colors: bool = True):
        self.stream = stream or sys.stderr
        self.use_colors = use_colors and Colors.is_supported(self.stream)

    def __call__(self, event: ProgressEvent) -> None:
        if not event.done:
            counter = self._colorize(f"[{event.index + 1}/{event.total}]", Colors.DIM)
            name = self._colorize(event.name, Colors.INFO)
            self.stream.write(f"  {counter} Scanning {name}...")
            self.stream.flush()
            return

        duration = self._colorize(f"({event.duration:.1f}s)", Colors.DIM)
        if event.error is not None:
            mark = self._colorize("✗", Colors.FAILURE)
            reason = self._colorize(short_error(event.error), Colors.DIM)
            self.stream.write(f" {mark} {duration} {reason}\n")
        else:
            mark = self._colorize("✓", Colors.SUCCESS)
            self.stream.write(f" {mark} {duration}\n")
        self.stream.flush()


def get_formatter(as_json: bool = False, use_colors: bool = True, verbose: bool = False) -> OutputFormatter:
    """Get the formatter for the requested output mode."""
    if as_json:
        return JsonFormatter()
    return TextFormatter(use_colors=use_colors, verbose=verbose)
