"""Logging configuration for machinist.

Everything logs below the "machinist" logger. setup_logging() attaches:
    - main.log: everything not routed elsewhere
    - scan.log: one line per probe run ("machinist.scan")
    - restore.log: restore outcomes ("machinist.restore")
    - a stderr console handler, since stdout carries command output

scan and restore records stay out of main.log when a logs directory is
configured. Without one, they propagate to the console like everything else.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "machinist"

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"

DEFAULT_LOG_LEVEL = logging.WARNING
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

# Child logger -> tag written in its dedicated file
DEDICATED_LOGS = {
    "scan": "SCAN",
    "restore": "RESTORE",
}


def _rotating_handler(path: Path, fmt: str, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


class MachinistLogger:
    """Process-wide owner of the machinist log handlers.

    A singleton, so repeated setup() calls replace handlers instead of
    stacking them.
    """

    _instance: Optional["MachinistLogger"] = None
    _ready: bool = False

    def __new__(cls) -> "MachinistLogger":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if self._ready:
            return
        self.logs_dir: Path | None = None
        self.level = DEFAULT_LOG_LEVEL
        self.loggers: dict[str, logging.Logger] = {}
        self._ready = True

    def setup(
        self,
        logs_dir: Path | None,
        log_level: int = DEFAULT_LOG_LEVEL,
        console_output: bool = True,
    ) -> None:
        """(Re)configure all machinist loggers.

        Args:
            logs_dir: Directory for the log files, or None for no files.
            log_level: Threshold for every handler.
            console_output: Also write records to stderr.
        """
        self.logs_dir = logs_dir
        self.level = log_level
        if logs_dir is not None:
            logs_dir.mkdir(parents=True, exist_ok=True)

        root = logging.getLogger(ROOT_LOGGER)
        root.setLevel(log_level)
        root.handlers.clear()
        if logs_dir is not None:
            root.addHandler(_rotating_handler(logs_dir / "main.log", FILE_FORMAT, log_level))
        if console_output:
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(log_level)
            console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
            root.addHandler(console)
        self.loggers["main"] = root

        for name, tag in DEDICATED_LOGS.items():
            self.loggers[name] = self._dedicated(name, tag)

    def _dedicated(self, name: str, tag: str) -> logging.Logger:
        logger = logging.getLogger(f"{ROOT_LOGGER}.{name}")
        logger.setLevel(self.level)
        logger.handlers.clear()
        logger.propagate = self.logs_dir is None
        if self.logs_dir is not None:
            fmt = f"%(asctime)s | %(levelname)-8s | {tag} | %(message)s"
            logger.addHandler(_rotating_handler(self.logs_dir / f"{name}.log", fmt, self.level))
        return logger

    def get_logger(self, name: str = "main") -> logging.Logger:
        """Return "main", "scan", "restore" or any other machinist child logger."""
        if name in self.loggers:
            return self.loggers[name]
        if name == "main":
            return logging.getLogger(ROOT_LOGGER)
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")


_manager = MachinistLogger()


def setup_logging(
    logs_dir: Path | None,
    log_level: int = DEFAULT_LOG_LEVEL,
    console_output: bool = True,
) -> None:
    """Configure logging once, at startup; see MachinistLogger.setup."""
    _manager.setup(logs_dir, log_level, console_output)


def get_logger(name: str = "main") -> logging.Logger:
    return _manager.get_logger(name)


def log_scan_result(
    probe_name: str,
    section_key: str,
    duration_ms: float,
    error: str | None = None,
) -> None:
    """Record one probe run in scan.log.

    Args:
        probe_name: Probe that ran.
        section_key: Section it fills.
        duration_ms: Wall time in milliseconds.
        error: Failure message, if the probe failed.
    """
    logger = get_logger("scan")
    if error:
        logger.error(f"{probe_name} | {section_key} | FAILED | {error}")
        return
    logger.info(f"{probe_name} | {section_key} | OK in {duration_ms:.1f}ms")


def log_restore_stage(stage_name: str, success: bool, details: str = "") -> None:
    """Record a restore outcome in restore.log."""
    parts = [stage_name, "SUCCESS" if success else "FAILED"]
    if details:
        parts.append(details)
    level = logging.INFO if success else logging.ERROR
    get_logger("restore").log(level, " | ".join(parts))
