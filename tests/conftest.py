"""
hwconvert Test Configuration and Fixtures

Provides:
- Scripted fakes for the FFmpeg process, capability prober and ffprobe
- Auto-generated test media for the FFmpeg integration tests
- Shared fixtures for runners and output directories
"""

import asyncio
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import pytest

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from hwconvert.exceptions import ProbeError
from hwconvert.hardware.capabilities import CapabilityProber
from hwconvert.transcoding.decoders import DecodePlanner
from hwconvert.transcoding.engine import ConversionRunner
from hwconvert.transcoding.models import MediaInfo


# =============================================================================
# FAKE FFMPEG PROCESS
# =============================================================================

def _as_bytes(chunk) -> bytes:
    return chunk.encode("utf-8") if isinstance(chunk, str) else chunk


class FakeStdin:
    def __init__(self):
        self.data = b""
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.closed:
            raise BrokenPipeError("stdin closed")
        self.data += data

    def close(self) -> None:
        self.closed = True


class FakeProcess:
    """
    Scripted stand-in for asyncio.subprocess.Process.

    Output chunks are queued up front. With `exits=False` the process keeps
    running until terminate()/kill() (or finish()) is called.
    `exit_on_terminate` is the exit code used when SIGTERM arrives; None
    means SIGTERM is ignored, like a wedged FFmpeg.
    """

    def __init__(
        self,
        stdout: Iterable = (),
        stderr: Iterable = (),
        returncode: int = 0,
        exits: bool = True,
        exit_on_terminate: Optional[int] = 255,
        terminate_error: Optional[Exception] = None,
        pid: int = 4242
    ):
        self.pid = pid
        self.returncode: Optional[int] = None
        self.stdin = FakeStdin()
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.signals: List[str] = []
        self._exit_on_terminate = exit_on_terminate
        self._terminate_error = terminate_error
        self._exited = asyncio.Event()

        for chunk in stdout:
            self.stdout.feed_data(_as_bytes(chunk))
        for chunk in stderr:
            self.stderr.feed_data(_as_bytes(chunk))

        if exits:
            self.finish(returncode)

    def finish(self, code: int) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        if self._terminate_error is not None:
            raise self._terminate_error
        self.signals.append("SIGTERM")
        if self._exit_on_terminate is not None:
            self.finish(self._exit_on_terminate)

    def kill(self) -> None:
        self.signals.append("SIGKILL")
        self.finish(-9)


class FakeSpawner:
    """Replaces asyncio.create_subprocess_exec and records every command."""

    def __init__(self, factory: Optional[Callable[[], FakeProcess]] = None, error: Optional[Exception] = None):
        self.factory = factory or FakeProcess
        self.error = error
        self.calls: List[List[str]] = []
        self.process: Optional[FakeProcess] = None

    async def __call__(self, program: str, *args: str, **kwargs) -> FakeProcess:
        self.calls.append([program, *args])
        if self.error is not None:
            raise self.error
        self.process = self.factory()
        return self.process


# =============================================================================
# FAKE PROBES
# =============================================================================

def codec_listing(names: Iterable[str], kind: str = "Encoders") -> str:
    """FFmpeg-style `-encoders` / `-decoders` output for the given names."""
    lines = [
        f"{kind}:",
        " V..... = Video",
        " A..... = Audio",
        " S..... = Subtitle",
        " ------",
    ]
    for name in names:
        lines.append(f" V....D {name:<20} {name} codec")
    return "\n".join(lines) + "\n"


class FakeProber(CapabilityProber):
    """Capability prober answering from canned listings."""

    def __init__(self, encoders: Iterable[str] = (), decoders: Iterable[str] = ()):
        super().__init__("ffmpeg")
        self.listings = {
            "-encoders": codec_listing(encoders, "Encoders"),
            "-decoders": codec_listing(decoders, "Decoders"),
        }
        self.calls: List[str] = []

    async def _run_listing(self, flag: str) -> Optional[str]:
        self.calls.append(flag)
        return self.listings[flag]


class FakeProbe:
    """
    ffprobe stand-in. None for a field makes that probe fail.
    `delay` seconds pass before each answer, like a slow network share.
    """

    def __init__(self, info: Optional[MediaInfo] = None, duration: Optional[float] = None, delay: float = 0.0):
        self.info = info
        self.duration = duration
        self.delay = delay

    async def get_media_info(self, source: str) -> MediaInfo:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.info is None:
            raise ProbeError(f"Failed to get video info: {source}")
        return self.info

    async def get_duration(self, source: str) -> float:
        if self.duration is None:
            raise ProbeError(f"Failed to get video duration: {source}")
        return self.duration


# =============================================================================
# PYTEST FIXTURES
# =============================================================================

@pytest.fixture
def fake_prober() -> FakeProber:
    """Prober for a build with the common hardware encoders, minus AV1 NVENC."""
    return FakeProber(
        encoders=["libx264", "libx265", "libsvtav1", "h264_nvenc", "hevc_nvenc", "h264_amf", "h264_qsv"],
        decoders=["h264", "hevc", "h264_cuvid", "hevc_cuvid", "h264_qsv", "hevc_videotoolbox"],
    )


@pytest.fixture
def make_runner(fake_prober):
    """
    Factory for runners wired to fakes.

    Usage:
        runner, spawner = make_runner(process=lambda: FakeProcess(...), info=MediaInfo(...))
    """
    def _make(
        process: Optional[Callable[[], FakeProcess]] = None,
        info: Optional[MediaInfo] = None,
        duration: Optional[float] = None,
        spawn_error: Optional[Exception] = None,
        prober: Optional[CapabilityProber] = None,
        platform: str = "linux",
        grace_seconds: float = 1.5,
        ffprobe_delay: float = 0.0
    ):
        prober = prober or fake_prober
        spawner = FakeSpawner(process, spawn_error)
        runner = ConversionRunner(
            ffmpeg_path="ffmpeg",
            probe=FakeProbe(info, duration, ffprobe_delay),
            prober=prober,
            decode_planner=DecodePlanner(prober, platform=platform),
            grace_seconds=grace_seconds,
            spawn=spawner,
        )
        return runner, spawner

    return _make


@pytest.fixture
def temp_output_dir(tmp_path) -> Path:
    """Per-test temp directory for output files."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


# =============================================================================
# TEST MEDIA GENERATION
# =============================================================================

class TestMediaGenerator:
    """Generates synthetic test videos with FFmpeg. No downloads."""

    __test__ = False  # Not a test class despite the name

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._ffmpeg = shutil.which("ffmpeg")

    @property
    def has_ffmpeg(self) -> bool:
        return self._ffmpeg is not None

    def generate_test_video(self, name: str = "test_video", duration: int = 2) -> Optional[Path]:
        """Color bars plus a sine tone, H.264/AAC in MP4."""
        if not self.has_ffmpeg:
            return None

        output_path = self.output_dir / f"{name}.mp4"
        cmd = [
            self._ffmpeg, "-y",
            "-f", "lavfi", "-i", f"testsrc=duration={duration}:size=320x240:rate=25",
            "-f", "lavfi", "-i", f"sine=frequency=440:duration={duration}",
            "-c:v", "libx264", "-preset", "ultrafast", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "64k",
            str(output_path),
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, timeout=60)
        except (subprocess.TimeoutExpired, OSError) as e:
            print(f"Failed to generate test video: {e}")
            return None

        if result.returncode == 0 and output_path.exists():
            return output_path
        return None


@pytest.fixture(scope="session")
def test_media_dir(tmp_path_factory) -> Path:
    return tmp_path_factory.mktemp("hwconvert_test_media")


@pytest.fixture(scope="session")
def test_video(test_media_dir) -> Path:
    """Two-second generated video; skips when FFmpeg is missing."""
    generator = TestMediaGenerator(test_media_dir)
    if not generator.has_ffmpeg or not shutil.which("ffprobe"):
        pytest.skip("FFmpeg not available for test media generation")

    path = generator.generate_test_video("test_quick")
    if path is None:
        pytest.skip("Failed to generate test video")
    return path


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "requires_ffmpeg: marks tests that require FFmpeg"
    )
