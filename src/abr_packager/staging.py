"""Per-run staging directories."""
from __future__ import annotations

import logging
import secrets
import shutil
from pathlib import Path
from typing import Optional

from .config import DEFAULT_STAGING_DIR

LOGGER = logging.getLogger(__name__)


def new_job_id() -> str:
    """Return a short random identifier naming one packaging run."""

    return secrets.token_hex(4)


def prepare(job_id: str, staging_root: Optional[Path | str] = None) -> Path:
    """Create and return ``<staging_root>/<job_id>``."""

    root = Path(staging_root).expanduser() if staging_root else DEFAULT_STAGING_DIR
    job_dir = (root / job_id).resolve()
    job_dir.mkdir(parents=True, exist_ok=True)
    LOGGER.info("Prepared staging directory %s", job_dir)
    return job_dir


def cleanup(job_dir: Path) -> None:
    """Remove a staging directory; failures are logged, not raised."""

    if not job_dir.exists():
        return

    try:
        shutil.rmtree(job_dir)
    except OSError as exc:
        LOGGER.warning("Unable to remove staging directory %s: %s", job_dir, exc)
        return
    LOGGER.debug("Removed staging directory %s", job_dir)


__all__ = ["cleanup", "new_job_id", "prepare"]
