"""Snapshot comparison.

Compares which sections two snapshots populate and, when both carry a
Homebrew section, which formulae and casks differ.
"""

from dataclasses import dataclass, field

from .snapshot import Snapshot


@dataclass
class SnapshotDiff:
    """Result of comparing snapshot A with snapshot B.

    Attributes:
        only_in_a: Section keys present only in A
        only_in_b: Section keys present only in B
        in_both: Section keys present in both
        homebrew_only_in_a: Homebrew package names only in A
        homebrew_only_in_b: Homebrew package names only in B
    """

    only_in_a: list[str] = field(default_factory=list)
    only_in_b: list[str] = field(default_factory=list)
    in_both: list[str] = field(default_factory=list)
    homebrew_only_in_a: list[str] = field(default_factory=list)
    homebrew_only_in_b: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when both snapshots populate the same sections and packages."""
        return not (
            self.only_in_a or self.only_in_b or self.homebrew_only_in_a or self.homebrew_only_in_b
        )


def _homebrew_names(snapshot: Snapshot) -> set[str]:
    homebrew = snapshot.get("homebrew")
    return {p.name for p in homebrew.formulae} | {p.name for p in homebrew.casks}


def diff_snapshots(a: Snapshot, b: Snapshot) -> SnapshotDiff:
    """Compare two snapshots section by section."""
    keys_a = set(a.populated_keys())
    keys_b = set(b.populated_keys())

    diff = SnapshotDiff(
        only_in_a=sorted(keys_a - keys_b),
        only_in_b=sorted(keys_b - keys_a),
        in_both=sorted(keys_a & keys_b),
    )

    if a.has("homebrew") and b.has("homebrew"):
        names_a = _homebrew_names(a)
        names_b = _homebrew_names(b)
        diff.homebrew_only_in_a = sorted(names_a - names_b)
        diff.homebrew_only_in_b = sorted(names_b - names_a)

    return diff
