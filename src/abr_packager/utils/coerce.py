"""Coercion utilities for values read from the environment."""
from __future__ import annotations

from typing import Any, Optional


def to_optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def to_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = ["to_optional_int", "to_optional_str"]
