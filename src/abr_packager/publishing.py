"""Interfaces for publishing a finished package to its destination."""
from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError, UploadError
from .staging import cleanup
from .utils import create_s3_cmd_args, local_path, scheme_of

LOGGER = logging.getLogger(__name__)


class PackagePublisher(ABC):
    """Abstract interface for delivering the staging directory's contents."""

    @abstractmethod
    def publish(self, staging_dir: Path) -> str:
        """Deliver the package and return where it ended up."""


@dataclass(slots=True)
class LocalPublisher(PackagePublisher):
    """Move the package into a directory on the local filesystem."""

    target_dir: Path

    def __post_init__(self) -> None:
        self.target_dir = Path(self.target_dir).expanduser().resolve()

    def publish(self, staging_dir: Path) -> str:
        staging_dir = Path(staging_dir)
        try:
            self.target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise UploadError(f"Unable to create destination {self.target_dir}: {exc}") from exc
        moved = 0
        for entry in sorted(staging_dir.iterdir()):
            destination = self.target_dir / entry.name
            try:
                if destination.is_dir() and entry.is_dir():
                    shutil.copytree(entry, destination, dirs_exist_ok=True)
                    shutil.rmtree(entry)
                else:
                    shutil.move(str(entry), str(destination))
            except OSError as exc:
                raise UploadError(f"Failed to move {entry} to {destination}: {exc}") from exc
            moved += 1
        LOGGER.info("Moved %d item(s) from %s to %s", moved, staging_dir, self.target_dir)
        return str(self.target_dir)


@dataclass(slots=True)
class S3Publisher(PackagePublisher):
    """Upload the package with ``aws s3 cp --recursive``."""

    dest_url: str
    s3_endpoint_url: Optional[str] = None
    aws_binary: str = "aws"

    def command(self, staging_dir: Path) -> list[str]:
        return [
            self.aws_binary,
            *create_s3_cmd_args(
                ["cp", "--recursive", str(staging_dir), self.dest_url],
                self.s3_endpoint_url,
            ),
        ]

    def publish(self, staging_dir: Path) -> str:
        cmd = self.command(staging_dir)
        LOGGER.debug("Running %s", shlex.join(cmd))
        try:
            completed = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise UploadError(f"Upload failed: unable to run {self.aws_binary}: {exc}") from exc
        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            if stderr:
                LOGGER.error("%s", stderr)
                raise UploadError(f"Upload failed (exit code {completed.returncode}): {stderr}")
            raise UploadError(f"Upload failed (exit code {completed.returncode})")
        LOGGER.info("Uploaded package to %s", self.dest_url)
        cleanup(Path(staging_dir))
        return self.dest_url


def check_destination(dest: str) -> None:
    scheme = scheme_of(dest)
    if scheme not in {"", "file", "s3"}:
        raise ConfigurationError(f"Unsupported protocol for upload: {scheme}:")


def publisher_for(dest: str, *, s3_endpoint_url: Optional[str] = None) -> PackagePublisher:
    """Return the publisher matching the destination's scheme."""

    check_destination(dest)
    if scheme_of(dest) == "s3":
        return S3Publisher(dest_url=dest, s3_endpoint_url=s3_endpoint_url)
    return LocalPublisher(target_dir=local_path(dest))


__all__ = [
    "LocalPublisher",
    "PackagePublisher",
    "S3Publisher",
    "check_destination",
    "publisher_for",
]
