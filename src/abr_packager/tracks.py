"""Elementary stream inputs and the ``[a|v|t]:<key>=<filename>[:label]`` syntax."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Sequence

from .exceptions import ConfigurationError


class StreamKind(str, Enum):
    """Stream types that can be bundled into an ABR package."""

    AUDIO = "audio"
    VIDEO = "video"
    TEXT = "text"

    @classmethod
    def from_code(cls, code: str) -> "StreamKind":
        try:
            return _KIND_CODES[code.strip().lower()]
        except KeyError as exc:
            raise ConfigurationError(
                f"Unknown input type {code!r}; expected one of a, v or t"
            ) from exc


_KIND_CODES = {
    "a": StreamKind.AUDIO,
    "v": StreamKind.VIDEO,
    "t": StreamKind.TEXT,
}


@dataclass(frozen=True, slots=True)
class StreamInput:
    """One elementary stream to package.

    ``filename`` is either relative to the source root or a fully-qualified
    location (``s3://``, ``https://``, ``file://``). ``label`` is used as the
    HLS rendition name where the stream is grouped.
    """

    kind: StreamKind
    key: str
    filename: str
    label: Optional[str] = None

    def with_filename(self, filename: str) -> "StreamInput":
        return replace(self, filename=filename)


def _split_label(remainder: str) -> tuple[str, Optional[str]]:
    """Split a trailing ``:label`` off *remainder*.

    Only the last colon is considered, and only when the text before it ends
    in a filename with an extension and the text after it has no slash. That
    keeps ``clip:01.mp4`` and ``https://host:8080/file.mp4`` whole while
    ``audio.mp4:English`` still yields a label.
    """

    head, sep, tail = remainder.rpartition(":")
    if not sep or not tail or "/" in tail or not PurePosixPath(head).suffix:
        return remainder, None
    return head, tail


def parse_input_option(option: str) -> StreamInput:
    """Parse one ``[a|v|t]:<key>=<filename>[:label]`` input option."""

    code, sep, key_and_filename = option.partition(":")
    if not sep:
        raise ConfigurationError(f"Invalid input {option!r}; expected [a|v|t]:<key>=<filename>[:label]")
    kind = StreamKind.from_code(code)
    key, sep, remainder = key_and_filename.partition("=")
    key = key.strip()
    if not sep or not key or not remainder:
        raise ConfigurationError(f"Invalid input {option!r}; expected [a|v|t]:<key>=<filename>[:label]")
    filename, label = _split_label(remainder)
    return StreamInput(kind=kind, key=key, filename=filename, label=label)


def parse_input_options(options: Iterable[str]) -> List[StreamInput]:
    return [parse_input_option(option) for option in options]


def validate_inputs(inputs: Sequence[StreamInput]) -> None:
    """Reject empty input lists and keys reused within the same kind."""

    if not inputs:
        raise ConfigurationError("Need at least one input")
    counts = Counter((item.kind, item.key) for item in inputs)
    duplicates = sorted(f"{kind.value}:{key}" for (kind, key), count in counts.items() if count > 1)
    if duplicates:
        raise ConfigurationError(f"Duplicate input keys: {', '.join(duplicates)}")


def inputs_of_kind(inputs: Iterable[StreamInput], kind: StreamKind) -> List[StreamInput]:
    return [item for item in inputs if item.kind is kind]


__all__ = [
    "StreamInput",
    "StreamKind",
    "inputs_of_kind",
    "parse_input_option",
    "parse_input_options",
    "validate_inputs",
]
