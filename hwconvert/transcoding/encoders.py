"""
Encoder resolution for video codec families.
Maps a GPU vendor and codec to a concrete FFmpeg encoder and checks the
FFmpeg build actually has it before any conversion is started.
"""

import logging
from typing import Dict, Optional

from ..hardware.capabilities import CapabilityProber
from ..hardware.models import GPUVendor
from ..models import CodecFamily
from .constants import GPU_ENCODERS, SOFTWARE_ENCODERS
from .models import EncoderAvailability, GPUEncoderError, GPUErrorKind

logger = logging.getLogger(__name__)


def get_video_encoder(codec: CodecFamily, gpu_vendor: GPUVendor) -> str:
    """Encoder name for a codec/vendor pair, falling back to the software encoder."""
    return GPU_ENCODERS.get(codec, {}).get(gpu_vendor) or SOFTWARE_ENCODERS[codec]


class EncoderResolver:
    """Resolves and validates the encoder for a (vendor, codec) pair."""

    def __init__(
        self,
        prober: CapabilityProber,
        encoder_table: Optional[Dict[CodecFamily, Dict[GPUVendor, str]]] = None
    ):
        self.prober = prober
        self.encoder_table = encoder_table if encoder_table is not None else GPU_ENCODERS

    async def resolve_encoder(self, gpu_vendor: GPUVendor, codec: CodecFamily) -> EncoderAvailability:
        """
        Pre-flight check for a hardware encoder.

        CPU always succeeds without probing. For GPU vendors the encoder must
        be configured for the codec and compiled into FFmpeg; otherwise an
        `encoder_unavailable` error is returned so the caller can offer a
        CPU retry instead of spawning a doomed process.
        """
        gpu_vendor = GPUVendor(gpu_vendor)
        codec = CodecFamily(codec)

        if gpu_vendor == GPUVendor.CPU:
            return EncoderAvailability(available=True, encoder_name=SOFTWARE_ENCODERS[codec])

        encoder = self.encoder_table.get(codec, {}).get(gpu_vendor)
        if not encoder:
            logger.info(f"[Encoder] No {codec.value} encoder configured for {gpu_vendor.value}")
            return EncoderAvailability(
                available=False,
                encoder_name="",
                error=GPUEncoderError(
                    kind=GPUErrorKind.ENCODER_UNAVAILABLE,
                    message=f"No {codec.display_name} encoder for {gpu_vendor.display_name}",
                    details=f"The selected GPU vendor does not have a {codec.value} encoder configured.",
                    suggestion="Try using CPU encoding instead.",
                    can_retry_with_cpu=True,
                    codec=codec.value,
                    gpu_vendor=gpu_vendor,
                ),
            )

        if not await self.prober.check_encoder_available(encoder):
            logger.warning(f"[Encoder] {encoder} not found in FFmpeg build")
            return EncoderAvailability(
                available=False,
                encoder_name=encoder,
                error=self._missing_encoder_error(gpu_vendor, codec, encoder),
            )

        return EncoderAvailability(available=True, encoder_name=encoder)

    def _missing_encoder_error(
        self,
        gpu_vendor: GPUVendor,
        codec: CodecFamily,
        encoder: str
    ) -> GPUEncoderError:
        gpu_name = gpu_vendor.display_name

        if gpu_vendor == GPUVendor.NVIDIA and codec == CodecFamily.AV1:
            suggestion = (
                "AV1 encoding requires an RTX 40-series GPU or newer. "
                "Try H.264 or H.265 instead, or use CPU encoding."
            )
        else:
            suggestion = f"Try using CPU encoding, or ensure your {gpu_name} drivers are up to date."

        return GPUEncoderError(
            kind=GPUErrorKind.ENCODER_UNAVAILABLE,
            message=f"{gpu_name} {codec.display_name} encoder not available",
            details=(
                f'The encoder "{encoder}" was not found in your FFmpeg installation. '
                "This could mean:\n"
                "• Your GPU drivers don't support this codec\n"
                f"• FFmpeg wasn't compiled with {gpu_name} support\n"
                "• The required libraries are missing"
            ),
            suggestion=suggestion,
            can_retry_with_cpu=True,
            codec=codec.value,
            gpu_vendor=gpu_vendor,
        )
