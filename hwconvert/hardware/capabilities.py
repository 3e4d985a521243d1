"""
Encoder/decoder capability probing for the FFmpeg binary.

FFmpeg prints one codec per line for `-encoders` / `-decoders`:

     V....D h264_nvenc           NVIDIA NVENC H.264 encoder (codec h264)

The name is the second whitespace-delimited token. Results are cached per
prober for the lifetime of the process, since the compiled feature set of
a binary cannot change underneath us.
"""

import asyncio
import logging
import re
from typing import FrozenSet, Optional

from .models import CapabilitySet

logger = logging.getLogger(__name__)

_CODEC_LINE = re.compile(r"^\s*[VASFXBD.]+\s+(\S+)")


def parse_codec_listing(output: str) -> FrozenSet[str]:
    """Parse `ffmpeg -encoders` / `-decoders` output into a set of names."""
    names = set()
    for line in output.splitlines():
        match = _CODEC_LINE.match(line)
        if match and match.group(1) != "=":  # Legend lines: " V..... = Video"
            names.add(match.group(1))
    return frozenset(names)


class CapabilityProber:
    """Queries which encoders and decoders an FFmpeg build supports."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path
        self._encoders: Optional[FrozenSet[str]] = None
        self._decoders: Optional[FrozenSet[str]] = None

    async def _run_listing(self, flag: str) -> Optional[str]:
        """
        Run `ffmpeg <flag> -hide_banner`.

        None if the binary can't be started or exits non-zero. Callers
        don't cache a None, so the next lookup runs FFmpeg again.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.ffmpeg_path, flag, "-hide_banner",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
            stdout, _ = await process.communicate()
        except OSError as e:
            logger.warning(f"[Probe] Could not run {self.ffmpeg_path} {flag}: {e}")
            return None
        if process.returncode != 0:
            logger.warning(f"[Probe] {self.ffmpeg_path} {flag} exited with code {process.returncode}")
            return None
        return stdout.decode("utf-8", errors="ignore")

    async def list_encoders(self) -> FrozenSet[str]:
        """Encoders compiled into FFmpeg. Empty if FFmpeg is unavailable."""
        if self._encoders is not None:
            return self._encoders

        output = await self._run_listing("-encoders")
        if output is None:
            return frozenset()

        self._encoders = parse_codec_listing(output)
        logger.debug(f"[Probe] {len(self._encoders)} encoders available")
        return self._encoders

    async def list_decoders(self) -> FrozenSet[str]:
        """Decoders compiled into FFmpeg. Empty if FFmpeg is unavailable."""
        if self._decoders is not None:
            return self._decoders

        output = await self._run_listing("-decoders")
        if output is None:
            return frozenset()

        self._decoders = parse_codec_listing(output)
        logger.debug(f"[Probe] {len(self._decoders)} decoders available")
        return self._decoders

    async def check_encoder_available(self, encoder: str) -> bool:
        return encoder in await self.list_encoders()

    async def check_decoder_available(self, decoder: str) -> bool:
        return decoder in await self.list_decoders()

    async def get_capabilities(self) -> CapabilitySet:
        return CapabilitySet(
            encoders=await self.list_encoders(),
            decoders=await self.list_decoders(),
        )

    def clear_cache(self) -> None:
        """Forget probed capabilities (e.g., after switching FFmpeg binaries)."""
        self._encoders = None
        self._decoders = None


# Global prober instance
_prober: Optional[CapabilityProber] = None


def get_capability_prober(ffmpeg_path: Optional[str] = None) -> CapabilityProber:
    """Get or create the global capability prober.

    A different ffmpeg_path replaces the shared instance, dropping its cache.
    """
    global _prober
    if _prober is None or (ffmpeg_path is not None and ffmpeg_path != _prober.ffmpeg_path):
        _prober = CapabilityProber(ffmpeg_path or "ffmpeg")
    return _prober
