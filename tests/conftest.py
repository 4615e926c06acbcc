from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Optional

import pytest

from abr_packager.tracks import StreamInput, StreamKind


class FakeRunner:
    """Stand-in for ``subprocess.run`` that records every command."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.returncodes: dict[str, int] = {}
        self.stderr: dict[str, str] = {}
        self.side_effects: dict[str, Callable[[list[str], Optional[str]], None]] = {}
        self.missing: set[str] = set()

    def __call__(self, cmd, cwd=None, capture_output=False, text=False, check=False):
        cmd = list(cmd)
        binary = cmd[0]
        self.calls.append({"cmd": cmd, "cwd": cwd})
        if binary in self.missing:
            raise FileNotFoundError(2, "No such file or directory", binary)
        effect = self.side_effects.get(binary)
        if effect is not None:
            effect(cmd, cwd)
        return subprocess.CompletedProcess(
            cmd,
            self.returncodes.get(binary, 0),
            stdout="",
            stderr=self.stderr.get(binary, ""),
        )

    def commands(self, binary: str) -> list[list[str]]:
        return [call["cmd"] for call in self.calls if call["cmd"][0] == binary]


@pytest.fixture()
def fake_run(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr(subprocess, "run", runner)
    return runner


@pytest.fixture()
def single_video() -> list[StreamInput]:
    return [StreamInput(kind=StreamKind.VIDEO, key="1", filename="test.mp4")]


def _write_package(cmd: list[str], cwd: Optional[str]) -> None:
    root = Path(cwd or ".")
    (root / "manifest.mpd").write_text("<MPD/>", encoding="utf-8")
    (root / "index.m3u8").write_text("#EXTM3U\n", encoding="utf-8")
    segment_dir = root / "video-1"
    segment_dir.mkdir(exist_ok=True)
    (segment_dir / "init.mp4").write_bytes(b"init")
    (segment_dir / "1.m4s").write_bytes(b"segment")


@pytest.fixture()
def fake_packager(fake_run: FakeRunner) -> FakeRunner:
    """``fake_run`` where the ``packager`` binary writes a small package into its cwd."""

    fake_run.side_effects["packager"] = _write_package
    return fake_run
