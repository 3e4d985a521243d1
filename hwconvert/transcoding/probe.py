"""
Media probing with ffprobe.
"""

import asyncio
import json
import logging
import math
from typing import List, Tuple

from ..exceptions import ProbeError
from .models import MediaInfo

logger = logging.getLogger(__name__)


class MediaProbe:
    """Reads duration and stream metadata from input files."""

    def __init__(self, ffprobe_path: str = "ffprobe"):
        self.ffprobe_path = ffprobe_path

    async def _run(self, args: List[str]) -> Tuple[int, str]:
        try:
            process = await asyncio.create_subprocess_exec(
                self.ffprobe_path, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, _ = await process.communicate()
        except OSError as e:
            raise ProbeError(f"Failed to run ffprobe: {e}") from e
        return process.returncode, stdout.decode("utf-8", errors="ignore")

    async def get_media_info(self, source: str) -> MediaInfo:
        """Get format and first video stream metadata. Raises ProbeError."""
        code, output = await self._run([
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            source,
        ])
        if code != 0:
            raise ProbeError(f"Failed to get video info: {source}")

        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise ProbeError(f"Failed to parse video info: {e}") from e

        return self._parse_media_info(data)

    def _parse_media_info(self, data: dict) -> MediaInfo:
        fmt = data.get("format") or {}
        video_stream = next(
            (s for s in data.get("streams") or [] if s.get("codec_type") == "video"),
            {}
        )

        try:
            duration = float(fmt.get("duration") or 0)
        except (TypeError, ValueError):
            duration = 0.0
        try:
            size = int(fmt.get("size") or 0)
        except (TypeError, ValueError):
            size = 0

        return MediaInfo(
            duration=duration,
            size=size,
            width=video_stream.get("width") or 0,
            height=video_stream.get("height") or 0,
            codec=video_stream.get("codec_name") or "unknown",
            format=fmt.get("format_name") or "unknown",
        )

    async def get_duration(self, source: str) -> float:
        """Duration-only probe. Returns 0 for unparsable output; raises ProbeError on failure."""
        code, output = await self._run([
            "-i", source,
            "-show_entries", "format=duration",
            "-v", "quiet",
            "-of", "csv=p=0",
        ])
        if code != 0:
            raise ProbeError(f"Failed to get video duration: {source}")

        try:
            duration = float(output.strip())
        except ValueError:
            return 0.0
        return 0.0 if math.isnan(duration) else duration
