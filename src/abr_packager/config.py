"""Configuration objects for the ABR packager."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationError
from .utils import to_optional_int, to_optional_str


def _ensure_dotenv_loaded() -> None:
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)


_ensure_dotenv_loaded()

LOGGER = logging.getLogger(__name__)

KEY_PLACEHOLDER = "$KEY$"
DEFAULT_STAGING_DIR = Path("/tmp/data")
DEFAULT_PACKAGER_BINARY = "packager"
DEFAULT_DOWNLOAD_WORKERS = 4

ENV_PACKAGER_BINARY = "SHAKA_PACKAGER_EXECUTABLE"
ENV_S3_ENDPOINT_URL = "S3_ENDPOINT_URL"
ENV_STAGING_DIR = "STAGING_DIR"
ENV_SERVICE_ACCESS_TOKEN = "SERVICE_ACCESS_TOKEN"
ENV_DOWNLOAD_WORKERS = "ABR_PACKAGER_DOWNLOAD_WORKERS"
ENV_LOG_DIR = "ABR_PACKAGER_LOG_DIR"


class OutputFormat(str, Enum):
    """Container used for the generated segments."""

    MP4 = "mp4"
    TS = "ts"

    @property
    def segment_extension(self) -> str:
        return "m4s" if self is OutputFormat.MP4 else "ts"

    @property
    def uses_init_segment(self) -> bool:
        return self is OutputFormat.MP4


@dataclass(slots=True)
class PackageFormatOptions:
    """Settings that control which manifests and segment layout are produced.

    ``dash_only`` and ``hls_only`` each suppress the other format; setting
    both leaves nothing to emit and is rejected by :meth:`validate`.
    ``segment_single_file_template`` names the per-stream output file when
    ``segment_single_file`` is active and must contain ``$KEY$``.
    """

    dash_only: bool = False
    hls_only: bool = False
    segment_single_file: bool = False
    segment_single_file_template: Optional[str] = None
    segment_duration: Optional[float] = None
    output_format: OutputFormat = OutputFormat.MP4

    def __post_init__(self) -> None:
        self.output_format = OutputFormat(self.output_format)

    def validate(self) -> None:
        if self.dash_only and self.hls_only:
            raise ConfigurationError("Cannot disable both hls and dash")
        if (
            self.segment_single_file_template is not None
            and KEY_PLACEHOLDER not in self.segment_single_file_template
        ):
            raise ConfigurationError("segmentSingleFileTemplate must contain $KEY$")
        if self.segment_duration is not None and self.segment_duration <= 0:
            raise ConfigurationError("segmentDuration must be a positive number of seconds")

    @property
    def emit_hls(self) -> bool:
        return not self.dash_only

    @property
    def emit_dash(self) -> bool:
        return not self.hls_only

    @property
    def single_file_template(self) -> str:
        if self.segment_single_file_template:
            return self.segment_single_file_template
        extension = "mp4" if self.output_format is OutputFormat.MP4 else "ts"
        return f"{KEY_PLACEHOLDER}.{extension}"

    def single_file_name(self, key: str) -> str:
        return self.single_file_template.replace(KEY_PLACEHOLDER, key)


@dataclass(slots=True)
class PackagerSettings:
    """Runtime settings resolved from the environment, overridable per call."""

    shaka_executable: str = DEFAULT_PACKAGER_BINARY
    staging_dir: Path = DEFAULT_STAGING_DIR
    s3_endpoint_url: Optional[str] = None
    service_access_token: Optional[str] = None
    max_download_workers: int = DEFAULT_DOWNLOAD_WORKERS
    log_dir: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "PackagerSettings":
        workers_raw = to_optional_str(os.getenv(ENV_DOWNLOAD_WORKERS))
        workers = to_optional_int(workers_raw)
        if workers is None or workers < 1:
            if workers_raw is not None:
                LOGGER.warning(
                    "Ignoring %s=%s; using %d download workers",
                    ENV_DOWNLOAD_WORKERS,
                    workers_raw,
                    DEFAULT_DOWNLOAD_WORKERS,
                )
            workers = DEFAULT_DOWNLOAD_WORKERS
        staging = to_optional_str(os.getenv(ENV_STAGING_DIR))
        log_dir = to_optional_str(os.getenv(ENV_LOG_DIR))
        return cls(
            shaka_executable=to_optional_str(os.getenv(ENV_PACKAGER_BINARY)) or DEFAULT_PACKAGER_BINARY,
            staging_dir=Path(staging).expanduser() if staging else DEFAULT_STAGING_DIR,
            s3_endpoint_url=to_optional_str(os.getenv(ENV_S3_ENDPOINT_URL)),
            service_access_token=to_optional_str(os.getenv(ENV_SERVICE_ACCESS_TOKEN)),
            max_download_workers=workers,
            log_dir=Path(log_dir).expanduser() if log_dir else None,
        )


__all__ = [
    "DEFAULT_PACKAGER_BINARY",
    "DEFAULT_STAGING_DIR",
    "KEY_PLACEHOLDER",
    "OutputFormat",
    "PackageFormatOptions",
    "PackagerSettings",
]
