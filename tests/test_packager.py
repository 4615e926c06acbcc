from __future__ import annotations

from pathlib import Path

import pytest

from abr_packager.config import OutputFormat, PackageFormatOptions
from abr_packager.exceptions import ConfigurationError, PackagerExecutionError
from abr_packager.packager import (
    PackagerJob,
    PackagerStream,
    create_shaka_args,
    disambiguate_key,
    select_audio_source,
)
from abr_packager.tracks import StreamInput, StreamKind

VIDEO_CLAUSE = (
    "in=test.mp4,stream=video,init_segment=video-1/init.mp4,"
    "segment_template=video-1/$Number$.m4s,playlist_name=video-1.m3u8"
)
MANIFEST_FLAGS = [
    "--hls_master_playlist_output",
    "index.m3u8",
    "--generate_static_live_mpd",
    "--mpd_output",
    "manifest.mpd",
]


def _audio(key: str = "en", filename: str = "audio.mp4", label: str | None = None) -> StreamInput:
    return StreamInput(kind=StreamKind.AUDIO, key=key, filename=filename, label=label)


def test_first_video_is_audio_source_when_implicit_audio_allowed(single_video) -> None:
    args = create_shaka_args(single_video, False)
    assert args == [
        VIDEO_CLAUSE,
        "in=test.mp4,stream=audio,init_segment=audio/init.mp4,segment_template=audio/$Number$.m4s,"
        "playlist_name=audio.m3u8,hls_group_id=audio,hls_name=defaultaudio",
        *MANIFEST_FLAGS,
    ]


def test_no_audio_clause_when_implicit_audio_disabled(single_video) -> None:
    args = create_shaka_args(single_video, True)
    assert args == [VIDEO_CLAUSE, *MANIFEST_FLAGS]


def test_segment_duration_flag(single_video) -> None:
    args = create_shaka_args(single_video, True, PackageFormatOptions(segment_duration=3.84))
    assert args == [VIDEO_CLAUSE, *MANIFEST_FLAGS, "--segment_duration", "3.84"]


def test_single_file_output_path(single_video) -> None:
    options = PackageFormatOptions(
        segment_single_file=True,
        segment_single_file_template="Container-$KEY$.mp4",
    )
    args = create_shaka_args(single_video, True, options)
    assert args == [
        "in=test.mp4,stream=video,out=Container-1.mp4,playlist_name=video-1.m3u8",
        *MANIFEST_FLAGS,
    ]


def test_explicit_audio_wins_over_video(single_video) -> None:
    inputs = [*single_video, _audio(label="English")]
    args = create_shaka_args(inputs, False)
    assert args[1] == (
        "in=audio.mp4,stream=audio,init_segment=audio/init.mp4,segment_template=audio/$Number$.m4s,"
        "playlist_name=audio.m3u8,hls_group_id=audio,hls_name=English"
    )
    assert len([arg for arg in args if "stream=audio" in arg]) == 1


def test_single_file_audio_key_is_disambiguated_from_video() -> None:
    inputs = [
        StreamInput(kind=StreamKind.VIDEO, key="1", filename="video.mp4"),
        _audio(key="1"),
    ]
    options = PackageFormatOptions(segment_single_file=True, segment_single_file_template="out-$KEY$.mp4")
    args = create_shaka_args(inputs, False, options)
    assert args[0] == "in=video.mp4,stream=video,out=out-1.mp4,playlist_name=video-1.m3u8"
    assert args[1] == (
        "in=audio.mp4,stream=audio,out=out-1-audio.mp4,playlist_name=audio.m3u8,"
        "hls_group_id=audio,hls_name=defaultaudio"
    )


def test_single_file_implicit_audio_does_not_overwrite_video(single_video) -> None:
    options = PackageFormatOptions(segment_single_file=True)
    args = create_shaka_args(single_video, False, options)
    assert args[0] == "in=test.mp4,stream=video,out=1.mp4,playlist_name=video-1.m3u8"
    assert "out=1-audio.mp4" in args[1]
    assert args[1].startswith("in=test.mp4,stream=audio,")


def test_single_file_audio_keeps_unique_key() -> None:
    inputs = [
        StreamInput(kind=StreamKind.VIDEO, key="hd", filename="video.mp4"),
        _audio(key="en"),
    ]
    options = PackageFormatOptions(segment_single_file=True)
    args = create_shaka_args(inputs, False, options)
    assert "out=en.mp4" in args[1]


def test_text_stream_clause_with_label(single_video) -> None:
    inputs = [*single_video, StreamInput(kind=StreamKind.TEXT, key="sv", filename="subs.vtt", label="Svenska")]
    args = create_shaka_args(inputs, True)
    assert args[1] == (
        "in=subs.vtt,stream=text,segment_template=text-sv/$Number$.vtt,"
        "playlist_name=text-sv.m3u8,hls_group_id=text,hls_name=Svenska"
    )


def test_text_stream_without_label_in_single_file_mode() -> None:
    inputs = [StreamInput(kind=StreamKind.TEXT, key="sv", filename="subs.vtt")]
    args = create_shaka_args(inputs, True, PackageFormatOptions(segment_single_file=True))
    assert args[0] == "in=subs.vtt,stream=text,out=text-sv.vtt,playlist_name=text-sv.m3u8,hls_group_id=text"


def test_transport_stream_output_has_no_init_segment(single_video) -> None:
    args = create_shaka_args(single_video, False, PackageFormatOptions(output_format=OutputFormat.TS))
    assert args[0] == (
        "in=test.mp4,stream=video,segment_template=video-1/$Number$.ts,playlist_name=video-1.m3u8"
    )
    assert args[1].startswith("in=test.mp4,stream=audio,segment_template=audio/$Number$.ts,")


def test_dash_only_omits_hls_master_playlist(single_video) -> None:
    args = create_shaka_args(single_video, True, PackageFormatOptions(dash_only=True))
    assert args == [VIDEO_CLAUSE, "--generate_static_live_mpd", "--mpd_output", "manifest.mpd"]


def test_hls_only_omits_dash_manifest(single_video) -> None:
    args = create_shaka_args(single_video, True, PackageFormatOptions(hls_only=True))
    assert args == [VIDEO_CLAUSE, "--hls_master_playlist_output", "index.m3u8"]


def test_dash_only_and_hls_only_is_rejected(single_video) -> None:
    with pytest.raises(ConfigurationError, match="Cannot disable both hls and dash"):
        create_shaka_args(single_video, True, PackageFormatOptions(dash_only=True, hls_only=True))


def test_select_audio_source_decision_table(single_video) -> None:
    audio = _audio()
    explicit = select_audio_source([*single_video, audio], no_implicit_audio=True)
    assert explicit is not None and explicit.stream == audio and not explicit.implicit

    implicit = select_audio_source(single_video, no_implicit_audio=False)
    assert implicit is not None and implicit.implicit
    assert implicit.stream == single_video[0]
    assert implicit.label == "defaultaudio"

    assert select_audio_source(single_video, no_implicit_audio=True) is None
    assert select_audio_source([], no_implicit_audio=False) is None


def test_select_audio_source_prefers_first_explicit_audio() -> None:
    first, second = _audio(key="en"), _audio(key="sv", filename="sv.mp4")
    selected = select_audio_source([first, second], no_implicit_audio=False)
    assert selected is not None and selected.key == "en"


def test_disambiguate_key_appends_until_unique() -> None:
    assert disambiguate_key("1", ["2"]) == "1"
    assert disambiguate_key("1", ["1"]) == "1-audio"
    assert disambiguate_key("1", ["1", "1-audio"]) == "1-audio-audio"


def test_packager_stream_argument_skips_unset_fields() -> None:
    stream = PackagerStream(input_path="a.mp4", stream="audio", output="a-out.mp4", extra_flags=("language=en",))
    assert stream.argument() == "in=a.mp4,stream=audio,out=a-out.mp4,language=en"


def test_packager_job_runs_in_working_directory(fake_run, tmp_path: Path) -> None:
    job = PackagerJob(binary="packager", arguments=["in=a.mp4,stream=video"], working_dir=tmp_path)
    job.run()
    assert fake_run.calls == [{"cmd": ["packager", "in=a.mp4,stream=video"], "cwd": str(tmp_path)}]


def test_packager_job_reports_missing_binary(fake_run, tmp_path: Path) -> None:
    fake_run.missing.add("packager")
    job = PackagerJob(binary="packager", arguments=[], working_dir=tmp_path)
    with pytest.raises(PackagerExecutionError, match="Failed to launch packager"):
        job.run()


def test_packager_job_propagates_stderr_on_failure(fake_run, tmp_path: Path) -> None:
    fake_run.returncodes["packager"] = 1
    fake_run.stderr["packager"] = "Unknown stream descriptor"
    job = PackagerJob(binary="packager", arguments=[], working_dir=tmp_path)
    with pytest.raises(PackagerExecutionError) as excinfo:
        job.run()
    assert "exit code 1" in str(excinfo.value)
    assert "Unknown stream descriptor" in str(excinfo.value)
