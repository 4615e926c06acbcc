"""URL manipulation helpers."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import unquote, urlsplit, urlunsplit

_SCHEME_RE = re.compile(r"^[a-z0-9]+:")


def has_scheme(location: str | None) -> bool:
    """Return ``True`` when *location* is a fully-qualified ``<scheme>:`` URL."""

    return bool(_SCHEME_RE.match(location or ""))


def scheme_of(location: str) -> str:
    """Return the lower-cased scheme of *location*, or ``""`` for plain paths."""

    if not has_scheme(location):
        return ""
    return urlsplit(location).scheme.lower()


def strip_trailing_slash(url: str) -> str:
    trimmed = (url or "").strip()
    while trimmed.endswith("/"):
        trimmed = trimmed[:-1]
    return trimmed


def join_location(base: str, filename: str) -> str:
    """Append *filename* to a source root, which may be a URL or a directory.

    An HTTP(S) root keeps its query string and fragment after the joined path,
    so signed URLs stay valid.
    """

    if scheme_of(base) in {"http", "https"}:
        parts = urlsplit(base.strip())
        path = f"{parts.path.rstrip('/')}/{filename.lstrip('/')}"
        return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))
    if has_scheme(base):
        return f"{strip_trailing_slash(base)}/{filename.lstrip('/')}"
    return str(Path(base).expanduser() / filename)


def local_path(location: str) -> Path:
    """Return the absolute filesystem path for a plain path or ``file:`` URL."""

    if has_scheme(location):
        location = unquote(urlsplit(location).path)
    return Path(location).expanduser().resolve()


def basename_of(location: str) -> str:
    if has_scheme(location):
        location = unquote(urlsplit(location).path)
    return Path(location).name


def create_s3_cmd_args(cmd_args: Sequence[str], s3_endpoint_url: Optional[str] = None) -> list[str]:
    """Build an ``aws`` argument list, honouring a non-default S3 endpoint."""

    args = ["s3"]
    if s3_endpoint_url:
        args.append(f"--endpoint-url={s3_endpoint_url}")
    args.extend(cmd_args)
    return args


__all__ = [
    "basename_of",
    "create_s3_cmd_args",
    "has_scheme",
    "join_location",
    "local_path",
    "scheme_of",
    "strip_trailing_slash",
]
