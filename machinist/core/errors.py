"""Error taxonomy for machinist.

All errors raised by the core derive from MachinistError so that the
command surface can report them uniformly. File-system failures are not
wrapped: OSError propagates unchanged from the manifest and profile layers.
"""


class MachinistError(Exception):
    """Base class for all machinist errors."""


class DuplicateNameError(MachinistError):
    """A probe with the same name (or section claim) is already registered."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"Probe already registered: {name}")


class NotFoundError(MachinistError):
    """An unknown probe or profile name was requested.

    Attributes:
        kind: What was looked up ("probe", "profile")
        name: The requested name
        available: Valid names, when practical to list them
    """

    def __init__(self, kind: str, name: str, available: list[str] | None = None) -> None:
        self.kind = kind
        self.name = name
        self.available = list(available or [])

        message = f"{kind.capitalize()} not found: {name}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class ProbeError(MachinistError):
    """A single probe failed during scanning.

    Collected into the error list of a scan, never fatal to the scan itself.
    The original exception, if any, is chained as __cause__.
    """

    def __init__(self, probe_name: str, message: str) -> None:
        self.probe_name = probe_name
        self.message = message
        super().__init__(f"probe {probe_name}: {message}")


class ScanCancelledError(ProbeError):
    """A probe was not run because the scan was cancelled."""

    def __init__(self, probe_name: str) -> None:
        super().__init__(probe_name, "scan cancelled before probe started")


class ParseError(MachinistError):
    """A manifest could not be decoded."""


class ConfigurationError(MachinistError):
    """Invalid combination of options, detected before any work starts."""


class BundleError(MachinistError):
    """A restore bundle could not be assembled from a snapshot."""
