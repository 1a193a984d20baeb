"""
Pytest fixtures for loopcast tests.

Most composer tests run against a fake ffmpeg process and a fake ffprobe so
they are fast and deterministic. Tests that encode for real are marked with
@pytest.mark.requires_ffmpeg and are skipped when ffmpeg/ffprobe (with
libx264) are not installed. The long composition test is additionally
marked slow and only runs with LOOPCAST_RUN_SLOW=1.
"""

import asyncio
import os
import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from loopcast.config import Settings
from loopcast.render.composer import VideoComposer
from loopcast.schemas.asset import AudioAsset, VisualAsset
from loopcast.schemas.video import VideoGenerationOptions
from loopcast.services.progress_tracker import ProgressTracker
from loopcast.utils.media_info import MediaInfo

AUDIO_PATH = "/assets/audio/background/rain/test_rain.wav"
VISUAL_PATH = "/assets/visuals/backgrounds/rain/test_window.mp4"


def _ffmpeg_available() -> bool:
    if shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None:
        return False
    try:
        encoders = subprocess.run(
            ["ffmpeg", "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return False
    return "libx264" in encoders.stdout


FFMPEG_AVAILABLE = _ffmpeg_available()
RUN_SLOW = os.environ.get("LOOPCAST_RUN_SLOW") == "1"


def pytest_collection_modifyitems(config, items):
    skip_ffmpeg = pytest.mark.skip(reason="ffmpeg/ffprobe with libx264 not available")
    skip_slow = pytest.mark.skip(reason="set LOOPCAST_RUN_SLOW=1 to run slow tests")
    for item in items:
        if "requires_ffmpeg" in item.keywords and not FFMPEG_AVAILABLE:
            item.add_marker(skip_ffmpeg)
        if "slow" in item.keywords and not RUN_SLOW:
            item.add_marker(skip_slow)


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStream:
    """Async line iterator standing in for a subprocess pipe."""

    def __init__(self, lines: list[str], gate: asyncio.Event | None = None):
        self._lines = [line.encode() + b"\n" for line in lines]
        self._gate = gate

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        if self._lines:
            await asyncio.sleep(0)
            return self._lines.pop(0)
        if self._gate is not None:
            # Pipe stays open until the process exits
            await self._gate.wait()
        raise StopAsyncIteration


class FakeProcess:
    """asyncio.subprocess.Process double.

    With ``hang=True`` the process keeps running after its output until
    terminate() or kill() is called.
    """

    def __init__(
        self,
        stdout_lines: list[str],
        stderr_lines: list[str],
        returncode: int,
        hang: bool = False,
        ignore_sigterm: bool = False,
    ):
        self._exited = asyncio.Event()
        self._final_returncode = returncode
        self._hang = hang
        self._ignore_sigterm = ignore_sigterm
        self.returncode: int | None = None
        gate = self._exited if hang else None
        self.stdout = FakeStream(stdout_lines, gate)
        self.stderr = FakeStream(stderr_lines, gate)
        self.terminated = False
        self.killed = False

    async def wait(self) -> int:
        if not self._hang:
            self.returncode = self._final_returncode
            self._exited.set()
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        if self._ignore_sigterm:
            return
        self.returncode = 255
        self._exited.set()

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9
        self._exited.set()


def progress_block(out_time: str, state: str = "continue") -> list[str]:
    """One ffmpeg -progress report."""
    return [
        "frame=100",
        "fps=25.0",
        "bitrate=1000.0kbits/s",
        f"out_time={out_time}",
        f"progress={state}",
    ]


class FakeFFmpeg:
    """Replaces asyncio.create_subprocess_exec for the composer.

    Configure the next run through the attributes before generating.
    """

    def __init__(self):
        self.commands: list[list[str]] = []
        self.processes: list[FakeProcess] = []
        self.stdout_lines: list[str] = progress_block("00:00:30.000000", "end")
        self.stderr_lines: list[str] = []
        self.returncode = 0
        self.hang = False
        self.ignore_sigterm = False
        self.output_bytes = b"\x00" * 2048
        self.started = asyncio.Event()

    async def __call__(self, *cmd: str, **kwargs: Any) -> FakeProcess:
        self.commands.append(list(cmd))
        if self.returncode == 0 and not self.hang:
            output = Path(cmd[-1])
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_bytes(self.output_bytes)
        process = FakeProcess(
            list(self.stdout_lines),
            list(self.stderr_lines),
            self.returncode,
            hang=self.hang,
            ignore_sigterm=self.ignore_sigterm,
        )
        self.processes.append(process)
        self.started.set()
        return process

    @property
    def last_command(self) -> list[str]:
        return self.commands[-1]


class FakeProbe:
    """Replaces probe_duration and probe_media; unknown paths return ``default``.

    Paths listed in ``streamless`` probe as having neither audio nor video.
    """

    def __init__(self, default: float = 10.0):
        self.default = default
        self.durations: dict[str, float] = {}
        self.streamless: set[str] = set()
        self.calls: list[str] = []
        self.error: Exception | None = None

    async def __call__(self, path: str) -> float:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return self.durations.get(path, self.default)

    async def media(self, path: str) -> MediaInfo:
        duration = await self(path)
        has_streams = path not in self.streamless
        return MediaInfo(
            duration=duration,
            width=1920,
            height=1080,
            has_video=has_streams,
            has_audio=has_streams,
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def assets_root(tmp_path: Path) -> Path:
    """Assets tree with one rain audio loop and one rain visual loop."""
    root = tmp_path / "public"
    for rel in (AUDIO_PATH, VISUAL_PATH):
        path = root / rel.lstrip("/")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"loop")
    return root


@pytest.fixture
def settings(tmp_path: Path, assets_root: Path) -> Settings:
    return Settings(
        _env_file=None,
        assets_root=str(assets_root),
        output_dir=str(tmp_path / "out"),
        cancel_grace_seconds=0.05,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(clock: FakeClock) -> ProgressTracker:
    return ProgressTracker(ttl_seconds=3600, clock=clock)


@pytest.fixture
def fake_ffmpeg(monkeypatch) -> FakeFFmpeg:
    fake = FakeFFmpeg()
    monkeypatch.setattr("loopcast.render.composer.asyncio.create_subprocess_exec", fake)
    return fake


@pytest.fixture
def fake_probe(monkeypatch) -> FakeProbe:
    fake = FakeProbe()
    monkeypatch.setattr("loopcast.render.composer.probe_duration", fake)
    monkeypatch.setattr("loopcast.render.composer.probe_media", fake.media)
    return fake


@pytest.fixture
def composer(settings: Settings, tracker: ProgressTracker) -> VideoComposer:
    return VideoComposer(settings=settings, tracker=tracker)


@pytest.fixture
def audio_asset() -> AudioAsset:
    return AudioAsset(id="test_rain", name="Test Rain", path=AUDIO_PATH, type="rain")


@pytest.fixture
def visual_asset() -> VisualAsset:
    return VisualAsset(id="test_window", name="Test Window", path=VISUAL_PATH, type="rain")


@pytest.fixture
def make_options(
    tmp_path: Path, audio_asset: AudioAsset, visual_asset: VisualAsset
) -> Callable[..., VideoGenerationOptions]:
    """Factory for composition options with sensible test defaults."""

    def _make(**overrides: Any) -> VideoGenerationOptions:
        values: dict[str, Any] = {
            "audio_asset": audio_asset,
            "visual_asset": visual_asset,
            "target_duration": 30.0,
            "output_path": str(tmp_path / "out" / "video.mp4"),
            "quality": "low",
            "job_id": "job-1",
        }
        values.update(overrides)
        return VideoGenerationOptions(**values)

    return _make


@pytest.fixture
def real_assets_root(tmp_path: Path) -> Path:
    """Assets tree with short clips generated by ffmpeg's lavfi sources."""
    root = tmp_path / "public"
    audio = root / AUDIO_PATH.lstrip("/")
    visual = root / VISUAL_PATH.lstrip("/")
    audio.parent.mkdir(parents=True, exist_ok=True)
    visual.parent.mkdir(parents=True, exist_ok=True)

    subprocess.run(
        [
            "ffmpeg", "-y", "-hide_banner", "-loglevel", "error",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=3",
            "-ar", "44100", str(audio),
        ],
        check=True,
    )
    subprocess.run(
        [
            "ffmpeg", "-y", "-hide_banner", "-loglevel", "error",
            "-f", "lavfi", "-i", "testsrc=size=320x240:rate=25:duration=2",
            "-c:v", "libx264", "-pix_fmt", "yuv420p", str(visual),
        ],
        check=True,
    )
    return root
