"""Restore Planner - derives ordered, filterable restore stages.

A stage is one populated section of a snapshot. Stages are computed on
demand, in section table order, and can be narrowed with --only or
--skip before a restore script is generated.
"""

import logging
from dataclasses import dataclass, field

from machinist.core.errors import ConfigurationError
from machinist.core.manifest import marshal_manifest
from machinist.core.sections import SECTIONS_BY_KEY, get_section_spec
from machinist.core.snapshot import Snapshot

logger = logging.getLogger("machinist.actions.planner")


@dataclass
class Stage:
    """One numbered step of a restore.

    Attributes:
        key: Section key the stage restores
        title: Human-readable section name
        number: 1-based position in the plan
        total: Number of stages in the plan
    """

    key: str
    title: str
    number: int
    total: int

    @property
    def label(self) -> str:
        """Progress label, e.g. "[2/5] Shell Configuration"."""
        return f"[{self.number}/{self.total}] {self.title}"


@dataclass
class RestorePlan:
    """Snapshot plus the stages selected for restore.

    Attributes:
        snapshot: Snapshot to restore from
        stages: Selected stages in restore order
    """

    snapshot: Snapshot
    stages: list[Stage] = field(default_factory=list)

    @property
    def stage_count(self) -> int:
        """Number of selected stages."""
        return len(self.stages)

    @property
    def stage_keys(self) -> list[str]:
        """Section keys of the selected stages."""
        return [stage.key for stage in self.stages]

    @property
    def is_empty(self) -> bool:
        """True when nothing would be restored."""
        return not self.stages

    @property
    def is_complete(self) -> bool:
        """True when no populated section was filtered out."""
        return self.stage_keys == self.snapshot.populated_keys()


def enumerate_stages(snapshot: Snapshot) -> list[str]:
    """Stage names for every present section, in section table order."""
    return snapshot.populated_keys()


def parse_stage_list(value: str | None) -> list[str]:
    """Split a comma-separated stage list, dropping blanks.

    Example:
        parse_stage_list("homebrew, shell,,git")  # ["homebrew", "shell", "git"]
    """
    if not value:
        return []
    return [name.strip() for name in value.split(",") if name.strip()]


def _warn_unknown(names: list[str], option: str) -> None:
    for name in names:
        if name not in SECTIONS_BY_KEY:
            logger.warning(f"Ignoring unknown stage in {option}: {name}")


def filter_stages(
    stages: list[str],
    only: list[str] | None = None,
    skip: list[str] | None = None,
) -> list[str]:
    """Apply --only / --skip to an enumerated stage list.

    Args:
        stages: Stage names in restore order
        only: Keep just these stages (order follows stages)
        skip: Drop these stages

    Returns:
        Filtered stage names, enumeration order preserved.

    Raises:
        ConfigurationError: If both only and skip are given.
    """
    if only and skip:
        raise ConfigurationError("--only and --skip are mutually exclusive")

    if only:
        _warn_unknown(only, "--only")
        wanted = set(only)
        return [s for s in stages if s in wanted]

    if skip:
        _warn_unknown(skip, "--skip")
        unwanted = set(skip)
        return [s for s in stages if s not in unwanted]

    return list(stages)


def build_restore_plan(
    snapshot: Snapshot,
    only: list[str] | None = None,
    skip: list[str] | None = None,
) -> RestorePlan:
    """Create a restore plan for a snapshot.

    Raises:
        ConfigurationError: If both only and skip are given. Checked
            before any stage is enumerated.
    """
    if only and skip:
        raise ConfigurationError("--only and --skip are mutually exclusive")

    keys = filter_stages(enumerate_stages(snapshot), only, skip)
    total = len(keys)
    stages = [
        Stage(
            key=key,
            title=get_section_spec(key).display_name,
            number=index,
            total=total,
        )
        for index, key in enumerate(keys, start=1)
    ]

    logger.debug(f"Restore plan with {total} stages: {', '.join(keys)}")
    return RestorePlan(snapshot=snapshot, stages=stages)


def format_dry_run(plan: RestorePlan) -> str:
    """Render what a restore would do, without doing any of it.

    Lists the source host and architecture, the numbered stages and the
    full manifest text.
    """
    meta = plan.snapshot.meta
    lines = [
        "Dry run: no changes will be made",
        "",
        f"Source:       {meta.source_hostname or 'unknown'}",
        f"Architecture: {meta.source_arch or 'unknown'}",
        f"Stages:       {plan.stage_count}",
        "",
    ]

    if plan.is_empty:
        lines.append("  (nothing to restore)")
    for stage in plan.stages:
        lines.append(f"  {stage.label} ({stage.key})")

    lines.extend(["", "--- manifest ---", marshal_manifest(plan.snapshot).rstrip()])
    return "\n".join(lines) + "\n"
