"""Profile store and snapshot merge.

Profiles are complete snapshots stored as TOML presets. Built-in presets
ship inside the machinist.profiles package; an optional directory of user
presets can be layered on top (a user preset shadows a built-in of the
same name). Every get() decodes the preset afresh, so callers never share
mutable state.
"""

import copy
import dataclasses
import logging
from importlib import resources
from pathlib import Path
from typing import Any

from .errors import NotFoundError, ParseError
from .manifest import unmarshal_manifest
from .models import Package
from .sections import SECTION_TABLE, HomebrewSection, MergeStrategy
from .snapshot import Snapshot

logger = logging.getLogger("machinist.core.profiles")

PROFILE_SUFFIX = ".toml"
PROFILE_SCHEME = "profile://"
BUILTIN_PACKAGE = "machinist.profiles"


class ProfileStore:
    """Named, pre-built snapshots used as composition bases.

    Example:
        store = ProfileStore()
        store.list()                    # ["devops", "flutter-ios", ...]
        base = store.get("minimal")
        merged = merge(base, override)
    """

    def __init__(self, extra_dirs: list[Path] | None = None) -> None:
        """Initialize the profile store.

        Args:
            extra_dirs: Directories with additional *.toml presets.
        """
        self.extra_dirs = [Path(d) for d in (extra_dirs or [])]

    def _builtin_sources(self) -> dict[str, Any]:
        sources: dict[str, Any] = {}
        for entry in resources.files(BUILTIN_PACKAGE).iterdir():
            if entry.is_file() and entry.name.endswith(PROFILE_SUFFIX):
                sources[entry.name[: -len(PROFILE_SUFFIX)]] = entry
        return sources

    def _sources(self) -> dict[str, Any]:
        sources = self._builtin_sources()
        for directory in self.extra_dirs:
            if not directory.is_dir():
                continue
            for path in directory.glob(f"*{PROFILE_SUFFIX}"):
                sources[path.stem] = path
        return sources

    def list(self) -> list[str]:
        """Names of all available profiles, sorted."""
        return sorted(self._sources())

    def get(self, name: str) -> Snapshot:
        """Load the named profile.

        Args:
            name: Profile name, optionally prefixed with "profile://".

        Raises:
            NotFoundError: If no profile has that name.
            ParseError: If the preset is not a valid manifest.
        """
        name = name.removeprefix(PROFILE_SCHEME)
        sources = self._sources()
        source = sources.get(name)
        if source is None:
            raise NotFoundError("profile", name, sorted(sources))

        try:
            snapshot = unmarshal_manifest(source.read_bytes())
        except ParseError as e:
            raise ParseError(f"parsing profile '{name}': {e}") from e

        logger.debug(f"Loaded profile {name} with {snapshot.section_count()} sections")
        return snapshot


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def _identity(entry: Any, key: str | None) -> Any:
    return entry if key is None else getattr(entry, key)


def merge_unique(base: list[Any], extra: list[Any], key: str | None = None) -> list[Any]:
    """Concatenate two lists, keeping the first entry for each identity.

    Args:
        base: Entries kept in their original order
        extra: Entries appended when their identity is not yet present
        key: Attribute used as identity (None: the entry itself)
    """
    seen: set[Any] = set()
    result: list[Any] = []
    for entry in [*base, *extra]:
        identity = _identity(entry, key)
        if identity in seen:
            continue
        seen.add(identity)
        result.append(copy.deepcopy(entry))
    return result


def _merge_dedup_concat(base: Any, override: Any) -> Any:
    merged = copy.deepcopy(base)
    for f in dataclasses.fields(base):
        if "identity" not in f.metadata:
            continue
        setattr(
            merged,
            f.name,
            merge_unique(getattr(base, f.name), getattr(override, f.name), f.metadata["identity"]),
        )
    return merged


def merge(base: Snapshot, override: Snapshot) -> Snapshot:
    """Compose a base snapshot with an override snapshot.

    The inputs are not modified; the result shares no mutable state with
    them. Meta is taken from the base.

    Rules:
        - DEDUP_CONCAT sections (Homebrew): lists are concatenated, keeping
          base order and appending override entries whose identity (tap,
          package name, service name) is not already present.
        - REPLACE sections: a present override section replaces the base
          section wholesale; otherwise the base section is kept.
    """
    merged = Snapshot(meta=copy.deepcopy(base.meta))

    for spec in SECTION_TABLE:
        base_section = base.sections.get(spec.key)
        override_section = override.sections.get(spec.key)

        if override_section is None:
            result = base_section
        elif base_section is None or spec.merge_strategy is MergeStrategy.REPLACE:
            result = override_section
        else:
            result = _merge_dedup_concat(base_section, override_section)

        if result is not None:
            merged.sections[spec.key] = copy.deepcopy(result)

    return merged


def compose(
    profile: str,
    add_formulae: list[str] | None = None,
    store: ProfileStore | None = None,
) -> Snapshot:
    """Build a manifest from a profile plus extra Homebrew formulae.

    Args:
        profile: Profile name (or profile:// URI)
        add_formulae: Formula names to add to the profile's Homebrew list
        store: Profile store to load from (defaults to built-ins)

    Returns:
        Merged snapshot; formulae already in the profile are not duplicated.
    """
    store = store or ProfileStore()
    base = store.get(profile)

    names = [name.strip() for name in (add_formulae or []) if name.strip()]
    if not names:
        return base

    override = Snapshot()
    override.set("homebrew", HomebrewSection(formulae=[Package(name=n) for n in names]))
    return merge(base, override)


def create_profile_store(profiles_dir: Path | None = None) -> ProfileStore:
    """Create a profile store with an optional user presets directory."""
    return ProfileStore(extra_dirs=[profiles_dir] if profiles_dir else None)
