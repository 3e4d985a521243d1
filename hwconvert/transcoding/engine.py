"""
Conversion runner that orchestrates a single FFmpeg conversion.
"""

import asyncio
import codecs
import logging
import os
import re
import subprocess
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..config import HWConvertConfig, get_config
from ..exceptions import ProbeError
from ..hardware.capabilities import CapabilityProber, get_capability_prober
from ..hardware.models import GPUVendor
from .cancellation import CancellationController, ProcessRegistry, force_kill
from .constants import CANCELLED_MESSAGE, CANCEL_GRACE_SECONDS, GLOBAL_ARGS, READ_CHUNK_SIZE
from .decoders import DecodePlanner
from .encoders import EncoderResolver
from .error_classifier import ErrorClassifier, get_error_classifier
from .models import (
    ConversionProgress,
    ConversionRequest,
    ConversionResult,
    ConversionState,
    GPUEncoderError,
)
from .paths import find_ffmpeg, find_ffprobe
from .probe import MediaProbe
from .progress import parse_progress_line

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ConversionProgress], None]
LogCallback = Callable[[str], None]
SpawnFn = Callable[..., Awaitable[Any]]

# FFmpeg ends stats lines with \r and -progress lines with \n
_LINE_SPLIT = re.compile(r"\r\n|\r|\n")

# Keep the tail of stderr; FFmpeg prints the fatal error last
MAX_ERROR_OUTPUT = 512 * 1024


class ConversionRunner:
    """
    Runs one FFmpeg conversion at a time.

    Idle -> probing input -> running -> succeeded / failed / cancelled.
    Each runner owns its process registry, so independent runners do not
    share state; the application is expected to start one conversion at a
    time per runner.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        probe: Optional[MediaProbe] = None,
        prober: Optional[CapabilityProber] = None,
        decode_planner: Optional[DecodePlanner] = None,
        encoder_resolver: Optional[EncoderResolver] = None,
        classifier: Optional[ErrorClassifier] = None,
        grace_seconds: float = CANCEL_GRACE_SECONDS,
        spawn: Optional[SpawnFn] = None
    ):
        self.ffmpeg_path = ffmpeg_path
        self.probe = probe or MediaProbe()
        self.prober = prober or CapabilityProber(ffmpeg_path)
        self.decode_planner = decode_planner or DecodePlanner(self.prober)
        self.encoder_resolver = encoder_resolver or EncoderResolver(self.prober)
        self.classifier = classifier or get_error_classifier()

        self.state = ConversionState.IDLE
        self.registry = ProcessRegistry()
        self.cancellation = CancellationController(self.registry, grace_seconds)
        self._spawn = spawn or asyncio.create_subprocess_exec

    @classmethod
    def from_config(cls, config: Optional[HWConvertConfig] = None) -> "ConversionRunner":
        """Build a runner with binaries and hardware settings from config."""
        config = config or get_config()
        ffmpeg_path = find_ffmpeg(config.transcoding)
        prober = get_capability_prober(ffmpeg_path)
        return cls(
            ffmpeg_path=ffmpeg_path,
            probe=MediaProbe(find_ffprobe(config.transcoding)),
            prober=prober,
            decode_planner=DecodePlanner(prober, vaapi_device=config.hardware.vaapi_device),
            grace_seconds=config.transcoding.cancel_grace_seconds,
        )

    @property
    def is_running(self) -> bool:
        return self.registry.current is not None

    def cancel(self, force: bool = False) -> None:
        """Cancel the active conversion. No-op when idle."""
        self.cancellation.cancel(force)

    async def convert(
        self,
        request: ConversionRequest,
        progress_callback: Optional[ProgressCallback] = None,
        log_callback: Optional[LogCallback] = None
    ) -> Tuple[ConversionResult, Optional[GPUEncoderError]]:
        """
        Run a conversion with the GPU pre-flight check and error classification.

        Returns:
            Tuple of (result, gpu_error). gpu_error is set when the encoder
            was rejected before starting, or when a failed GPU run matched a
            known hardware failure.
        """
        preset = request.preset
        gpu_vendor = GPUVendor(request.gpu_vendor)
        codec = preset.category.codec if preset.is_video else None

        if codec is not None and gpu_vendor.is_hardware:
            availability = await self.encoder_resolver.resolve_encoder(gpu_vendor, codec)
            if not availability.available:
                logger.warning(f"[Convert] Pre-flight failed: {availability.error.message}")
                return (
                    ConversionResult(False, request.output_path, availability.error.message),
                    availability.error,
                )

        result = await self.run_conversion(request, progress_callback, log_callback)

        gpu_error = None
        if not result.cancelled and self.classifier.should_classify(preset, gpu_vendor, result.success):
            gpu_error = self.classifier.classify(result.error or "", gpu_vendor, codec.value)
            if gpu_error:
                logger.info(f"[Convert] GPU failure classified as {gpu_error.kind.value}")

        return result, gpu_error

    async def _probe_input(self, input_path: str) -> Tuple[float, Optional[str]]:
        """Duration and video codec of the input; (0, None) when unknown."""
        try:
            info = await self.probe.get_media_info(input_path)
            codec = info.codec if info.codec != "unknown" else None
            return info.duration, codec
        except ProbeError as e:
            logger.debug(f"[Convert] Full probe failed: {e}")

        try:
            return await self.probe.get_duration(input_path), None
        except ProbeError:
            logger.warning("[Convert] Could not get video duration, progress may be inaccurate")

        return 0.0, None

    def build_args(self, request: ConversionRequest, decode_args: List[str]) -> List[str]:
        """Global flags + hardware decode args + preset args."""
        return [
            *GLOBAL_ARGS,
            *decode_args,
            *request.preset.get_args(request.input_path, request.output_path, request.gpu_vendor),
        ]

    async def run_conversion(
        self,
        request: ConversionRequest,
        progress_callback: Optional[ProgressCallback] = None,
        log_callback: Optional[LogCallback] = None
    ) -> ConversionResult:
        """
        Run FFmpeg for a request and resolve to exactly one result.

        Progress samples from both output streams are passed to
        `progress_callback` in the order they are read; raw output goes to
        `log_callback`. A cancelled run reports CANCELLED_MESSAGE and its
        partial output file is deleted.
        """
        output_path = request.output_path
        self.state = ConversionState.PROBING
        decode_args: List[str] = []
        try:
            total_duration, source_codec = await self._probe_input(request.input_path)
            if request.preset.is_video and source_codec:
                decode_args = await self.decode_planner.plan_decode_args(request.gpu_vendor, source_codec)
        except asyncio.CancelledError:
            logger.info("[Convert] Conversion cancelled before FFmpeg started")
            self.state = ConversionState.CANCELLED
            raise

        args = self.build_args(request, decode_args)
        self._emit_log(log_callback, f"Running command: ffmpeg {' '.join(args)}\n")
        logger.info(f"[Convert] Running FFmpeg: {' '.join(args[:12])}...")

        kwargs: Dict[str, Any] = {
            "stdin": asyncio.subprocess.PIPE,
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
        }
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP

        try:
            process = await self._spawn(self.ffmpeg_path, *args, **kwargs)
        except (OSError, ValueError) as e:
            logger.error(f"[Convert] Failed to start FFmpeg: {e}")
            self.state = ConversionState.FAILED
            return ConversionResult(False, output_path, str(e))

        self.registry.register(process, output_path)
        self.state = ConversionState.RUNNING
        stderr_parts: List[str] = []

        try:
            await asyncio.gather(
                self._read_stream(process.stdout, total_duration, progress_callback, log_callback),
                self._read_stream(process.stderr, total_duration, progress_callback, log_callback, stderr_parts),
            )
            return_code = await process.wait()
        except asyncio.CancelledError:
            # The awaiting task went away; don't leave FFmpeg running behind it
            self.registry.cancelled.add(process)
            force_kill(process)
            self._finish(process, output_path, None, "")
            raise

        return self._finish(process, output_path, return_code, "".join(stderr_parts))

    def _finish(
        self,
        process: Any,
        output_path: str,
        return_code: Optional[int],
        error_output: str
    ) -> ConversionResult:
        """Release the process and turn its exit into the terminal result."""
        self.cancellation.clear_timer()
        partial_output, was_cancelled = self.registry.release(process)

        if was_cancelled:
            self._remove_partial_output(partial_output)
            self.state = ConversionState.CANCELLED
            logger.info("[Convert] Conversion cancelled")
            return ConversionResult(False, output_path, CANCELLED_MESSAGE)

        if return_code == 0:
            self.state = ConversionState.SUCCEEDED
            logger.info(f"[Convert] Complete: {output_path}")
            return ConversionResult(True, output_path)

        self.state = ConversionState.FAILED
        logger.warning(f"[Convert] FFmpeg failed (code {return_code}): {error_output[-200:]}")
        return ConversionResult(
            False,
            output_path,
            error_output or f"FFmpeg exited with code {return_code}",
        )

    def _remove_partial_output(self, path: Optional[str]) -> None:
        if not path or not os.path.exists(path):
            return
        try:
            os.remove(path)
            logger.debug(f"[Convert] Removed partial output {path}")
        except OSError as e:
            logger.error(f"[Convert] Failed to delete partial file: {e}")

    async def _read_stream(
        self,
        stream: Optional[asyncio.StreamReader],
        total_duration: float,
        progress_callback: Optional[ProgressCallback],
        log_callback: Optional[LogCallback],
        sink: Optional[List[str]] = None
    ) -> None:
        """
        Read one output stream to EOF, parsing progress line by line.

        Chunks may end mid-line, so the unterminated tail is carried into
        the next chunk and flushed at EOF.
        """
        if stream is None:
            return

        decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")
        pending = ""
        sink_size = 0

        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break

            text = decoder.decode(chunk)
            if not text:
                continue

            self._emit_log(log_callback, text)
            if sink is not None:
                sink.append(text)
                sink_size += len(text)
                while sink_size > MAX_ERROR_OUTPUT and len(sink) > 1:
                    sink_size -= len(sink.pop(0))

            lines = _LINE_SPLIT.split(pending + text)
            pending = lines.pop()
            for line in lines:
                self._handle_line(line, total_duration, progress_callback)

        pending += decoder.decode(b"", final=True)
        if pending:
            self._handle_line(pending, total_duration, progress_callback)

    def _handle_line(
        self,
        line: str,
        total_duration: float,
        progress_callback: Optional[ProgressCallback]
    ) -> None:
        if not progress_callback:
            return

        progress = parse_progress_line(line, total_duration)
        if progress is None:
            return

        try:
            progress_callback(progress)
        except Exception as e:
            logger.warning(f"Progress callback error: {e}")

    @staticmethod
    def _emit_log(log_callback: Optional[LogCallback], message: str) -> None:
        if not log_callback:
            return
        try:
            log_callback(message)
        except Exception as e:
            logger.warning(f"Log callback error: {e}")
