"""
Hardware decode planning.

Decode acceleration is best effort: when the decoder or device is missing
we return no arguments and FFmpeg decodes in software. Encoder problems
are reported instead (see encoders.py), because they change the output.
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..hardware.capabilities import CapabilityProber
from ..hardware.models import GPUVendor
from .constants import (
    NVIDIA_DECODERS,
    INTEL_DECODERS,
    D3D11_DECODERS,
    VIDEOTOOLBOX_DECODERS,
    VAAPI_CODECS,
    DEFAULT_VAAPI_DEVICE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodePath:
    """How to request hardware decoding on one platform/vendor combination."""
    hwaccel_args: Tuple[str, ...]
    decoders: Dict[str, str] = field(default_factory=dict)
    uses_render_device: bool = False


CUDA_PATH = DecodePath(("-hwaccel", "cuda", "-hwaccel_output_format", "cuda"), NVIDIA_DECODERS)
QSV_PATH = DecodePath(("-hwaccel", "qsv", "-hwaccel_output_format", "qsv"), INTEL_DECODERS)
D3D11_PATH = DecodePath(("-hwaccel", "d3d11va", "-hwaccel_output_format", "d3d11"), D3D11_DECODERS)
VIDEOTOOLBOX_PATH = DecodePath(("-hwaccel", "videotoolbox"), VIDEOTOOLBOX_DECODERS)
VAAPI_PATH = DecodePath(("-hwaccel", "vaapi"), uses_render_device=True)

DECODE_PATHS: Dict[Tuple[str, GPUVendor], DecodePath] = {
    ("darwin", GPUVendor.APPLE): VIDEOTOOLBOX_PATH,
    ("win32", GPUVendor.NVIDIA): CUDA_PATH,
    ("win32", GPUVendor.INTEL): QSV_PATH,
    ("win32", GPUVendor.AMD): D3D11_PATH,
    ("linux", GPUVendor.NVIDIA): CUDA_PATH,
    ("linux", GPUVendor.AMD): VAAPI_PATH,
    ("linux", GPUVendor.INTEL): VAAPI_PATH,
}


def normalize_codec(codec: Optional[str]) -> Optional[str]:
    """Lower-case a source codec name, treating h265 as hevc."""
    if not codec:
        return None
    normalized = codec.lower()
    if normalized == "h265":
        return "hevc"
    return normalized


def normalize_platform(platform: str) -> str:
    if platform.startswith("linux"):
        return "linux"
    return platform


class DecodePlanner:
    """Chooses hardware decode arguments for a source codec."""

    def __init__(
        self,
        prober: CapabilityProber,
        platform: str = sys.platform,
        vaapi_device: str = DEFAULT_VAAPI_DEVICE,
        decode_paths: Optional[Dict[Tuple[str, GPUVendor], DecodePath]] = None
    ):
        self.prober = prober
        self.platform = normalize_platform(platform)
        self.vaapi_device = vaapi_device
        self.decode_paths = decode_paths if decode_paths is not None else DECODE_PATHS

    async def plan_decode_args(self, gpu_vendor: GPUVendor, source_codec: Optional[str]) -> List[str]:
        """Get hardware decode arguments to place before the preset arguments."""
        gpu_vendor = GPUVendor(gpu_vendor)
        if gpu_vendor == GPUVendor.CPU:
            return []

        codec = normalize_codec(source_codec)
        if not codec:
            return []

        path = self.decode_paths.get((self.platform, gpu_vendor))
        if path is None:
            return []

        if path.uses_render_device:
            if codec in VAAPI_CODECS and os.path.exists(self.vaapi_device):
                return [
                    *path.hwaccel_args,
                    "-hwaccel_device", self.vaapi_device,
                    "-hwaccel_output_format", "vaapi",
                ]
            logger.debug(f"[Decode] VAAPI unavailable for {codec} ({self.vaapi_device}), using software decode")
            return []

        decoder = path.decoders.get(codec)
        if decoder and await self.prober.check_decoder_available(decoder):
            return [*path.hwaccel_args, "-c:v", decoder]

        logger.debug(f"[Decode] No hardware decoder for {codec} on {gpu_vendor.value}, using software decode")
        return []
