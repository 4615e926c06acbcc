"""Resolve stream inputs to local files, downloading remote sources when needed."""
from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import requests

from .config import DEFAULT_DOWNLOAD_WORKERS
from .exceptions import ConfigurationError, DownloadError, PackagingError
from .tracks import StreamInput
from .utils import basename_of, create_s3_cmd_args, has_scheme, join_location, local_path, scheme_of

LOGGER = logging.getLogger(__name__)

LOCAL_SCHEMES = frozenset({"", "file"})
REMOTE_SCHEMES = frozenset({"s3", "http", "https"})
HTTP_CHUNK_SIZE = 1024 * 1024
HTTP_TIMEOUT = (10.0, 60.0)
# Downloads live below the packager's working directory so they never share
# a name with a packager output.
SOURCES_DIRNAME = "_sources"


def sources_dir(staging_dir: Path) -> Path:
    return Path(staging_dir) / SOURCES_DIRNAME


def resolve_location(stream: StreamInput, source: Optional[str] = None) -> str:
    """Return where *stream* should be read from.

    A fully-qualified input filename wins over the source root.
    """

    if has_scheme(stream.filename) or not source:
        return stream.filename
    return join_location(source, stream.filename)


def check_sources(inputs: Sequence[StreamInput], source: Optional[str] = None) -> None:
    """Validate every input location without touching the network or disk."""

    remote_names: Counter[str] = Counter()
    for stream in inputs:
        location = resolve_location(stream, source)
        scheme = scheme_of(location)
        if scheme not in LOCAL_SCHEMES and scheme not in REMOTE_SCHEMES:
            raise ConfigurationError(f"Unsupported protocol for download: {scheme}:")
        if scheme in REMOTE_SCHEMES:
            name = basename_of(location)
            if not name:
                raise ConfigurationError(f"Cannot derive a local filename from {location}")
            remote_names[name] += 1
    clashes = sorted(name for name, count in remote_names.items() if count > 1)
    if clashes:
        raise ConfigurationError(
            f"Remote inputs would overwrite each other in staging: {', '.join(clashes)}"
        )


def _run_transfer(cmd: List[str], description: str) -> None:
    LOGGER.debug("Running %s", shlex.join(cmd))
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise DownloadError(f"{description} failed: unable to run {cmd[0]}: {exc}") from exc
    if completed.returncode != 0:
        stderr = (completed.stderr or "").strip()
        message = f"{description} failed (exit code {completed.returncode})"
        if stderr:
            LOGGER.error("%s", stderr)
            message = f"{message}: {stderr}"
        raise DownloadError(message)


def _download_s3(location: str, destination: Path, s3_endpoint_url: Optional[str]) -> None:
    cmd = ["aws", *create_s3_cmd_args(["cp", location, str(destination)], s3_endpoint_url)]
    _run_transfer(cmd, f"Download of {location}")


def _download_http(
    location: str,
    destination: Path,
    service_access_token: Optional[str],
    session: Optional[requests.Session],
) -> None:
    headers: Dict[str, str] = {}
    if service_access_token:
        headers["Authorization"] = f"Bearer {service_access_token}"
    client = session or requests.Session()
    try:
        with client.get(location, headers=headers, stream=True, timeout=HTTP_TIMEOUT) as response:
            if response.status_code >= 400:
                raise DownloadError(
                    f"Download of {location} failed: status={response.status_code}"
                )
            with destination.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=HTTP_CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
    except requests.RequestException as exc:
        raise DownloadError(f"Download of {location} failed: {exc}") from exc
    finally:
        if session is None:
            client.close()


def download(
    stream: StreamInput,
    source: Optional[str] = None,
    staging_dir: Optional[Path] = None,
    *,
    service_access_token: Optional[str] = None,
    s3_endpoint_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> StreamInput:
    """Make *stream* available locally and return it with a local filename."""

    location = resolve_location(stream, source)
    scheme = scheme_of(location)
    if scheme in LOCAL_SCHEMES:
        return stream.with_filename(str(local_path(location)))
    if scheme not in REMOTE_SCHEMES:
        raise ConfigurationError(f"Unsupported protocol for download: {scheme}:")
    if staging_dir is None:
        raise ConfigurationError("Staging directory required for remote download")

    target_dir = sources_dir(Path(staging_dir))
    target_dir.mkdir(parents=True, exist_ok=True)
    destination = target_dir / basename_of(location)
    if scheme == "s3":
        _download_s3(location, destination, s3_endpoint_url)
    else:
        _download_http(location, destination, service_access_token, session)
    LOGGER.info("Downloaded %s to %s", location, destination)
    return stream.with_filename(str(destination))


def download_all(
    inputs: Sequence[StreamInput],
    source: Optional[str] = None,
    staging_dir: Optional[Path] = None,
    *,
    service_access_token: Optional[str] = None,
    s3_endpoint_url: Optional[str] = None,
    max_workers: int = DEFAULT_DOWNLOAD_WORKERS,
) -> List[StreamInput]:
    """Fetch all inputs concurrently; results keep the order of *inputs*."""

    if not inputs:
        return []
    results: List[Optional[StreamInput]] = [None] * len(inputs)
    workers = min(max(1, max_workers), len(inputs))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_map = {
            executor.submit(
                download,
                stream,
                source,
                staging_dir,
                service_access_token=service_access_token,
                s3_endpoint_url=s3_endpoint_url,
            ): index
            for index, stream in enumerate(inputs)
        }
        for future in as_completed(future_map):
            index = future_map[future]
            try:
                results[index] = future.result()
            except Exception:
                for pending in future_map:
                    pending.cancel()
                raise
    return [item for item in results if item is not None]


def remove_sources(staging_dir: Path) -> None:
    """Delete downloaded inputs so they are not published with the package."""

    target_dir = sources_dir(staging_dir)
    if not target_dir.exists():
        return
    try:
        shutil.rmtree(target_dir)
    except OSError as exc:
        raise PackagingError(f"Failed to remove downloaded sources in {target_dir}: {exc}") from exc
    LOGGER.debug("Removed downloaded sources in %s", target_dir)


__all__ = [
    "check_sources",
    "download",
    "download_all",
    "resolve_location",
    "remove_sources",
    "sources_dir",
]
