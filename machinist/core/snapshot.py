"""Snapshot aggregate - Meta plus independently optional sections.

A Snapshot keeps its sections in a mapping keyed by manifest key. A key
that is absent means "never scanned / not applicable"; a key that is
present, even with empty contents, means "scanned, found nothing".
"""

import platform
import socket
from dataclasses import dataclass, field
from typing import Any

from .models import Meta
from .sections import SECTION_TABLE, get_section_spec


@dataclass
class Snapshot:
    """Complete picture of a machine's developer environment.

    Attributes:
        meta: Snapshot metadata, always present
        sections: Populated sections keyed by manifest key

    Example:
        snapshot = Snapshot()
        snapshot.set("shell", ShellSection(default_shell="/bin/zsh"))
        snapshot.populated_keys()  # ["shell"]
    """

    meta: Meta = field(default_factory=Meta)
    sections: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for key, section in list(self.sections.items()):
            self._check(key, section)

    @staticmethod
    def _check(key: str, section: Any) -> None:
        spec = get_section_spec(key)
        if not isinstance(section, spec.section_type):
            raise TypeError(
                f"Section '{key}' expects {spec.section_type.__name__}, "
                f"got {type(section).__name__}"
            )

    def get(self, key: str) -> Any | None:
        """Return the section stored under key, or None if absent.

        Raises:
            KeyError: If key is not a known section.
        """
        get_section_spec(key)
        return self.sections.get(key)

    def set(self, key: str, section: Any) -> None:
        """Store a section, replacing any previous value.

        Passing None removes the section.

        Raises:
            KeyError: If key is not a known section.
            TypeError: If section is not the type registered for key.
        """
        if section is None:
            self.remove(key)
            return
        self._check(key, section)
        self.sections[key] = section

    def remove(self, key: str) -> None:
        """Drop a section so that it reads as not scanned."""
        get_section_spec(key)
        self.sections.pop(key, None)

    def has(self, key: str) -> bool:
        """Check whether a section is present."""
        return key in self.sections

    def populated_keys(self) -> list[str]:
        """Keys of all present sections, in section table order."""
        return [spec.key for spec in SECTION_TABLE if spec.key in self.sections]

    def section_count(self) -> int:
        """Number of present sections (Meta excluded)."""
        return len(self.sections)


def new_snapshot(machinist_version: str = "") -> Snapshot:
    """Create an empty snapshot with Meta filled in from the current host.

    Args:
        machinist_version: Version of the tool producing the snapshot.

    Returns:
        Snapshot with populated Meta and no sections.
    """
    meta = Meta(
        source_hostname=socket.gethostname(),
        source_os_version=platform.platform(),
        source_arch=platform.machine(),
        machinist_version=machinist_version,
    )
    return Snapshot(meta=meta)
