"""Logging helpers for the packager command line."""
from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_LOG_FILE: Optional[Path] = None


def configure_logging(
    prefix: str = "abr-packager",
    *,
    level: int | str = logging.INFO,
    log_dir: Optional[Path] = None,
) -> Optional[Path]:
    """Configure root logging to stdout and, when *log_dir* is set, a log file."""

    global _LOG_FILE

    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    _LOG_FILE = None
    if log_dir is not None:
        log_directory = Path(log_dir).expanduser()
        log_directory.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        log_file = log_directory / f"{prefix}-{stamp}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        _LOG_FILE = log_file
        root.info("Logging to %s", log_file)
    return _LOG_FILE


def current_log_file() -> Optional[Path]:
    """Return the log file configured via ``configure_logging``, if any."""

    return _LOG_FILE


__all__ = ["configure_logging", "current_log_file"]
