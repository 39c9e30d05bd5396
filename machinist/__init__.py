"""machinist - snapshot, compose and restore developer machine setups."""

__version__ = "0.1.0"
