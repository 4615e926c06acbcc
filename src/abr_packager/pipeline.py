"""Fetch, package and publish orchestration for one packaging run."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .config import DEFAULT_DOWNLOAD_WORKERS, DEFAULT_PACKAGER_BINARY, PackageFormatOptions
from .exceptions import PackagingError
from .packager import PackagerJob, create_shaka_args
from .publishing import PackagePublisher, publisher_for
from .staging import cleanup, new_job_id, prepare
from .tracks import StreamInput, validate_inputs
from .transfer import check_sources, download_all, remove_sources

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PackagingRun:
    """State owned by a single run, keyed by its job identifier."""

    job_id: str
    inputs: Sequence[StreamInput]
    dest: str
    publisher: PackagePublisher
    options: PackageFormatOptions
    source: Optional[str] = None
    staging_root: Optional[Path] = None
    no_implicit_audio: bool = False
    shaka_executable: str = DEFAULT_PACKAGER_BINARY
    service_access_token: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    max_download_workers: int = DEFAULT_DOWNLOAD_WORKERS
    staging_dir: Optional[Path] = field(default=None, init=False)

    def execute(self) -> str:
        self.staging_dir = prepare(self.job_id, self.staging_root)
        try:
            local_inputs = self._fetch()
            self._invoke(local_inputs)
            return self._publish()
        except PackagingError as exc:
            LOGGER.error("[%s] Packaging failed: %s", self.job_id, exc)
            raise
        finally:
            cleanup(self.staging_dir)

    def _fetch(self) -> List[StreamInput]:
        LOGGER.info("[%s] Fetching %d input(s)", self.job_id, len(self.inputs))
        return download_all(
            self.inputs,
            self.source,
            self.staging_dir,
            service_access_token=self.service_access_token,
            s3_endpoint_url=self.s3_endpoint_url,
            max_workers=self.max_download_workers,
        )

    def _invoke(self, local_inputs: Sequence[StreamInput]) -> None:
        args = create_shaka_args(local_inputs, self.no_implicit_audio, self.options)
        PackagerJob(
            binary=self.shaka_executable,
            arguments=args,
            working_dir=self.staging_dir,
        ).run()

    def _publish(self) -> str:
        remove_sources(self.staging_dir)
        location = self.publisher.publish(self.staging_dir)
        LOGGER.info("[%s] Package published to %s", self.job_id, location)
        return location


def do_package(
    inputs: Sequence[StreamInput],
    dest: str,
    *,
    source: Optional[str] = None,
    staging_dir: Optional[Path | str] = None,
    no_implicit_audio: bool = False,
    package_format_options: Optional[PackageFormatOptions] = None,
    shaka_executable: Optional[str] = None,
    service_access_token: Optional[str] = None,
    s3_endpoint_url: Optional[str] = None,
    max_download_workers: int = DEFAULT_DOWNLOAD_WORKERS,
) -> str:
    """Package *inputs* with Shaka Packager and publish the result to *dest*.

    All configuration is validated before the staging directory is created.
    Every failure surfaces as a :class:`~abr_packager.exceptions.PackagingError`.
    Returns the location the package was published to.
    """

    options = package_format_options or PackageFormatOptions()
    options.validate()
    validate_inputs(inputs)
    check_sources(inputs, source)
    publisher = publisher_for(dest, s3_endpoint_url=s3_endpoint_url)

    run = PackagingRun(
        job_id=new_job_id(),
        inputs=list(inputs),
        dest=dest,
        publisher=publisher,
        options=options,
        source=source,
        staging_root=Path(staging_dir) if staging_dir else None,
        no_implicit_audio=no_implicit_audio,
        shaka_executable=shaka_executable or DEFAULT_PACKAGER_BINARY,
        service_access_token=service_access_token,
        s3_endpoint_url=s3_endpoint_url,
        max_download_workers=max_download_workers,
    )
    LOGGER.info("[%s] Packaging %d input(s) into %s", run.job_id, len(run.inputs), dest)
    try:
        return run.execute()
    except OSError as exc:
        raise PackagingError(f"Packaging run {run.job_id} failed: {exc}") from exc


__all__ = ["PackagingRun", "do_package"]
