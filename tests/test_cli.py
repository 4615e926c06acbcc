from __future__ import annotations

import logging
from pathlib import Path

import pytest

from abr_packager import cli
from abr_packager.logging_config import current_log_file


@pytest.fixture(autouse=True)
def _quiet_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SHAKA_PACKAGER_EXECUTABLE", "S3_ENDPOINT_URL", "STAGING_DIR", "ABR_PACKAGER_LOG_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_missing_inputs_prints_help(fake_run, capsys) -> None:
    assert cli.main(["/tmp/out"]) == cli.EXIT_USAGE
    assert "Need at least one input" in capsys.readouterr().err
    assert fake_run.calls == []


def test_exclusive_format_flags_abort_before_io(fake_run, tmp_path: Path) -> None:
    code = cli.main(
        [
            str(tmp_path / "out"),
            "s3://bucket/in",
            "-i",
            "v:1=video.mp4",
            "--dash-only",
            "--hls-only",
            "--staging-dir",
            str(tmp_path / "staging"),
        ]
    )
    assert code == cli.EXIT_USAGE
    assert fake_run.calls == []
    assert not (tmp_path / "staging").exists()


def test_malformed_input_is_a_usage_error(fake_run, tmp_path: Path) -> None:
    assert cli.main([str(tmp_path / "out"), "-i", "x:1=video.mp4"]) == cli.EXIT_USAGE


def test_full_local_run(fake_packager, tmp_path: Path) -> None:
    source = tmp_path / "in"
    source.mkdir()
    (source / "video.mp4").write_bytes(b"video")
    dest = tmp_path / "out"

    code = cli.main(
        [
            str(dest),
            str(source),
            "--input",
            "v:1=video.mp4",
            "--input",
            "t:sv=subs.vtt:Svenska",
            "--staging-dir",
            str(tmp_path / "staging"),
            "--segment-duration",
            "4",
            "--output-format",
            "mp4",
        ]
    )

    assert code == 0
    assert (dest / "manifest.mpd").exists()
    (cmd,) = fake_packager.commands("packager")
    assert "hls_name=Svenska" in cmd[2]
    assert cmd[-2:] == ["--segment_duration", "4"]


def test_env_overrides_packager_executable(monkeypatch: pytest.MonkeyPatch, fake_run, tmp_path: Path) -> None:
    monkeypatch.setenv("SHAKA_PACKAGER_EXECUTABLE", "/usr/local/bin/shaka")
    code = cli.main([str(tmp_path / "out"), "-i", f"v:1={tmp_path / 'v.mp4'}", "--staging-dir", str(tmp_path / "s")])
    assert code == 0
    assert fake_run.calls[0]["cmd"][0] == "/usr/local/bin/shaka"


def test_packager_failure_exit_code(fake_run, tmp_path: Path) -> None:
    fake_run.returncodes["packager"] = 1
    code = cli.main([str(tmp_path / "out"), "-i", f"v:1={tmp_path / 'v.mp4'}", "--staging-dir", str(tmp_path / "s")])
    assert code == cli.EXIT_FAILURE


def test_format_options_from_args() -> None:
    parser = cli.build_parser(cli.PackagerSettings())
    args = parser.parse_args(
        [
            "out",
            "-i",
            "v:1=a.mp4",
            "--segment-single-file",
            "--segment-single-file-name",
            "Container-$KEY$.mp4",
            "--output-format",
            "ts",
            "--hls-only",
        ]
    )
    options = cli.format_options_from_args(args)
    assert options.segment_single_file
    assert options.single_file_name("1") == "Container-1.mp4"
    assert options.output_format.value == "ts"
    assert options.hls_only and not options.dash_only


def test_configure_logging_writes_log_file(tmp_path: Path) -> None:
    log_file = cli.configure_logging(level="DEBUG", log_dir=tmp_path / "logs")
    assert log_file is not None and log_file.parent == tmp_path / "logs"
    assert log_file.name.startswith("abr-packager-")
    assert current_log_file() == log_file
    assert cli.configure_logging() is None
    assert current_log_file() is None
