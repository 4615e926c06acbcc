"""Helpers for constructing and running Shaka Packager commands."""
from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import OutputFormat, PackageFormatOptions
from .exceptions import PackagerExecutionError
from .tracks import StreamInput, StreamKind, inputs_of_kind

LOGGER = logging.getLogger(__name__)

DEFAULT_AUDIO_LABEL = "defaultaudio"
AUDIO_GROUP_ID = "audio"
TEXT_GROUP_ID = "text"
HLS_MASTER_PLAYLIST = "index.m3u8"
DASH_MANIFEST = "manifest.mpd"


def _format_float(value: float) -> str:
    return f"{value:.6f}".rstrip("0").rstrip(".")


@dataclass(slots=True)
class PackagerStream:
    """Single stream descriptor passed to Shaka Packager."""

    input_path: str
    stream: str
    output: Optional[str] = None
    init_segment: Optional[str] = None
    segment_template: Optional[str] = None
    playlist_name: Optional[str] = None
    hls_group_id: Optional[str] = None
    hls_name: Optional[str] = None
    extra_flags: Sequence[str] = field(default_factory=tuple)

    def argument(self) -> str:
        parts: list[str] = [f"in={self.input_path}", f"stream={self.stream}"]
        if self.output is not None:
            parts.append(f"out={self.output}")
        if self.init_segment is not None:
            parts.append(f"init_segment={self.init_segment}")
        if self.segment_template is not None:
            parts.append(f"segment_template={self.segment_template}")
        if self.playlist_name:
            parts.append(f"playlist_name={self.playlist_name}")
        if self.hls_group_id:
            parts.append(f"hls_group_id={self.hls_group_id}")
        if self.hls_name:
            parts.append(f"hls_name={self.hls_name}")
        parts.extend(self.extra_flags)
        return ",".join(parts)


@dataclass(frozen=True, slots=True)
class AudioSource:
    """The stream chosen to feed the single audio rendition."""

    stream: StreamInput
    label: str
    implicit: bool = False

    @property
    def key(self) -> str:
        return self.stream.key


def select_audio_source(inputs: Sequence[StreamInput], no_implicit_audio: bool) -> Optional[AudioSource]:
    """Decide which input supplies audio.

    ========================  =======================  ===================
    explicit audio input      implicit audio allowed   result
    ========================  =======================  ===================
    yes                       either                   first audio input
    no                        yes                      first video input
    no                        no                       no audio
    ========================  =======================  ===================
    """

    audio = inputs_of_kind(inputs, StreamKind.AUDIO)
    if audio:
        first = audio[0]
        if len(audio) > 1:
            LOGGER.warning(
                "Only one audio rendition is packaged; using %s and ignoring %d other(s)",
                first.key,
                len(audio) - 1,
            )
        return AudioSource(stream=first, label=first.label or DEFAULT_AUDIO_LABEL)
    if no_implicit_audio:
        return None
    videos = inputs_of_kind(inputs, StreamKind.VIDEO)
    if not videos:
        return None
    return AudioSource(stream=videos[0], label=DEFAULT_AUDIO_LABEL, implicit=True)


def disambiguate_key(key: str, taken: Iterable[str]) -> str:
    """Suffix *key* with ``-audio`` until it no longer clashes with *taken*."""

    used = set(taken)
    candidate = key
    while candidate in used:
        candidate = f"{candidate}-audio"
    return candidate


def _segment_paths(prefix: str, output_format: OutputFormat) -> tuple[Optional[str], str]:
    init_segment = f"{prefix}/init.mp4" if output_format.uses_init_segment else None
    segment_template = f"{prefix}/$Number$.{output_format.segment_extension}"
    return init_segment, segment_template


def video_stream(stream: StreamInput, options: PackageFormatOptions) -> PackagerStream:
    playlist_name = f"video-{stream.key}"
    if options.segment_single_file:
        return PackagerStream(
            input_path=stream.filename,
            stream="video",
            output=options.single_file_name(stream.key),
            playlist_name=f"{playlist_name}.m3u8",
        )
    init_segment, segment_template = _segment_paths(playlist_name, options.output_format)
    return PackagerStream(
        input_path=stream.filename,
        stream="video",
        init_segment=init_segment,
        segment_template=segment_template,
        playlist_name=f"{playlist_name}.m3u8",
    )


def text_stream(stream: StreamInput, options: PackageFormatOptions) -> PackagerStream:
    playlist_name = f"text-{stream.key}"
    if options.segment_single_file:
        return PackagerStream(
            input_path=stream.filename,
            stream="text",
            output=f"{playlist_name}.vtt",
            playlist_name=f"{playlist_name}.m3u8",
            hls_group_id=TEXT_GROUP_ID,
            hls_name=stream.label,
        )
    return PackagerStream(
        input_path=stream.filename,
        stream="text",
        segment_template=f"{playlist_name}/$Number$.vtt",
        playlist_name=f"{playlist_name}.m3u8",
        hls_group_id=TEXT_GROUP_ID,
        hls_name=stream.label,
    )


def audio_stream(
    audio: AudioSource,
    options: PackageFormatOptions,
    taken_keys: Iterable[str] = (),
) -> PackagerStream:
    if options.segment_single_file:
        key = disambiguate_key(audio.key, taken_keys)
        return PackagerStream(
            input_path=audio.stream.filename,
            stream="audio",
            output=options.single_file_name(key),
            playlist_name="audio.m3u8",
            hls_group_id=AUDIO_GROUP_ID,
            hls_name=audio.label,
        )
    init_segment, segment_template = _segment_paths("audio", options.output_format)
    return PackagerStream(
        input_path=audio.stream.filename,
        stream="audio",
        init_segment=init_segment,
        segment_template=segment_template,
        playlist_name="audio.m3u8",
        hls_group_id=AUDIO_GROUP_ID,
        hls_name=audio.label,
    )


def build_streams(
    inputs: Sequence[StreamInput],
    no_implicit_audio: bool,
    options: PackageFormatOptions,
) -> List[PackagerStream]:
    streams: List[PackagerStream] = []
    for stream in inputs:
        if stream.kind is StreamKind.VIDEO:
            streams.append(video_stream(stream, options))
        elif stream.kind is StreamKind.TEXT:
            streams.append(text_stream(stream, options))

    audio = select_audio_source(inputs, no_implicit_audio)
    if audio is not None:
        # Single-file outputs share one name template, so the audio key must
        # not collide with any other stream written through it.
        taken = [stream.key for stream in inputs if stream.kind is StreamKind.VIDEO]
        streams.append(audio_stream(audio, options, taken))
    return streams


def create_shaka_args(
    inputs: Sequence[StreamInput],
    no_implicit_audio: bool = False,
    options: Optional[PackageFormatOptions] = None,
) -> List[str]:
    """Return the Shaka Packager argument list (without the binary)."""

    options = options or PackageFormatOptions()
    options.validate()
    args = [stream.argument() for stream in build_streams(inputs, no_implicit_audio, options)]
    if options.emit_hls:
        args.extend(["--hls_master_playlist_output", HLS_MASTER_PLAYLIST])
    if options.emit_dash:
        args.extend(["--generate_static_live_mpd", "--mpd_output", DASH_MANIFEST])
    if options.segment_duration is not None:
        args.extend(["--segment_duration", _format_float(options.segment_duration)])
    return args


@dataclass(slots=True)
class PackagerJob:
    """Representation of a single, blocking Shaka Packager invocation."""

    binary: str
    arguments: Sequence[str]
    working_dir: Path

    def command(self) -> list[str]:
        return [self.binary, *self.arguments]

    def run(self) -> subprocess.CompletedProcess[str]:
        """Run the packager in the working directory and wait for it to exit."""

        command = self.command()
        LOGGER.info("Starting packager: %s", shlex.join(command))
        try:
            completed = subprocess.run(
                command,
                cwd=str(self.working_dir),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise PackagerExecutionError(f"Failed to launch packager {self.binary!r}: {exc}") from exc
        if completed.stdout:
            LOGGER.debug("Packager output:\n%s", completed.stdout.rstrip())
        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            LOGGER.error("Packager failed with exit code %s", completed.returncode)
            if stderr:
                LOGGER.error("%s", stderr)
            raise PackagerExecutionError(
                f"Packager failed with exit code {completed.returncode}: {stderr}"
                if stderr
                else f"Packager failed with exit code {completed.returncode}"
            )
        LOGGER.info("Packager finished in %s", self.working_dir)
        return completed


__all__ = [
    "AudioSource",
    "DASH_MANIFEST",
    "DEFAULT_AUDIO_LABEL",
    "HLS_MASTER_PLAYLIST",
    "PackagerJob",
    "PackagerStream",
    "audio_stream",
    "build_streams",
    "create_shaka_args",
    "disambiguate_key",
    "select_audio_source",
    "text_stream",
    "video_stream",
]
