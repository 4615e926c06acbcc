"""Utility helpers shared across the packager."""
from __future__ import annotations

from .coerce import to_optional_int, to_optional_str
from .urls import (
    basename_of,
    create_s3_cmd_args,
    has_scheme,
    join_location,
    local_path,
    scheme_of,
    strip_trailing_slash,
)

__all__ = [
    "basename_of",
    "create_s3_cmd_args",
    "has_scheme",
    "join_location",
    "local_path",
    "scheme_of",
    "strip_trailing_slash",
    "to_optional_int",
    "to_optional_str",
]
