"""
FFmpeg error classification for GPU encoding failures.

Turns the stderr of a failed run into an actionable GPUEncoderError:
- encoder_unavailable: the encoder isn't part of this FFmpeg build
- gpu_capability: the encoder exists but the device/driver refused it
- driver_error: a GPU library failed to load

Rules are evaluated in order, vendor rules first, and the first match
wins. Anything unmatched is a generic failure (None), and the caller
shows the raw FFmpeg output. Matching is case-sensitive, mirroring how
FFmpeg spells each vendor API in its messages.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..hardware.models import GPUVendor
from ..models import CODEC_NAMES, CodecFamily
from .models import GPUEncoderError, GPUErrorKind, Preset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GPUErrorRule:
    """
    One classification rule.

    `patterns` is a tuple of alternatives groups: every group must have at
    least one substring present in the error output. `vendor` limits the
    rule to one GPU vendor; None makes it generic. The AV1 texts replace
    details/suggestion when the failing codec is AV1.
    """
    name: str
    vendor: Optional[GPUVendor]
    patterns: Tuple[Tuple[str, ...], ...]
    kind: GPUErrorKind
    message: str
    details: str
    suggestion: str
    av1_details: Optional[str] = None
    av1_suggestion: Optional[str] = None
    can_retry_with_cpu: bool = True

    def matches(self, error_output: str, gpu_vendor: GPUVendor) -> bool:
        if self.vendor is not None and self.vendor != gpu_vendor:
            return False
        return all(
            any(pattern in error_output for pattern in group)
            for group in self.patterns
        )

    def build(self, gpu_vendor: GPUVendor, codec: Optional[str]) -> GPUEncoderError:
        gpu_name = gpu_vendor.display_name
        codec_name = _codec_display_name(codec)
        details, suggestion = self.details, self.suggestion
        if codec == CodecFamily.AV1.value:
            details = self.av1_details or details
            suggestion = self.av1_suggestion or suggestion

        fields = {"gpu_name": gpu_name, "codec_name": codec_name}
        return GPUEncoderError(
            kind=self.kind,
            message=self.message.format(**fields),
            details=details.format(**fields),
            suggestion=suggestion.format(**fields),
            can_retry_with_cpu=self.can_retry_with_cpu,
            codec=codec,
            gpu_vendor=gpu_vendor,
        )


def _codec_display_name(codec: Optional[str]) -> str:
    if not codec:
        return "video"
    try:
        return CODEC_NAMES[CodecFamily(codec)]
    except ValueError:
        return codec


_AV1_NOT_SUPPORTED_SUGGESTION = "Use H.264 or H.265 for hardware encoding, or switch to CPU for AV1."


VENDOR_RULES: List[GPUErrorRule] = [
    # === NVIDIA NVENC ===
    GPUErrorRule(
        name="nvenc_init_failed",
        vendor=GPUVendor.NVIDIA,
        patterns=((
            "No capable devices found",
            "Cannot load nvEncodeAPI",
            "nvEncodeAPICreateInstance failed",
        ),),
        kind=GPUErrorKind.GPU_CAPABILITY,
        message="{gpu_name} encoder initialization failed",
        details=(
            "FFmpeg could not initialize the NVIDIA encoder. This usually means:\n"
            "• Your GPU doesn't support hardware encoding\n"
            "• NVIDIA drivers are not installed or outdated\n"
            "• Another application is using the encoder"
        ),
        suggestion="Update your NVIDIA drivers or try CPU encoding.",
    ),
    GPUErrorRule(
        name="nvenc_not_capable",
        vendor=GPUVendor.NVIDIA,
        patterns=(("not capable", "unsupported"),),
        kind=GPUErrorKind.GPU_CAPABILITY,
        message="Your {gpu_name} GPU doesn't support {codec_name} encoding",
        details="Your GPU model doesn't support hardware {codec_name} encoding.",
        suggestion="Try using CPU encoding instead.",
        av1_details="AV1 hardware encoding requires an RTX 40-series (Ada Lovelace) GPU or newer.",
        av1_suggestion=_AV1_NOT_SUPPORTED_SUGGESTION,
    ),
    # === AMD AMF ===
    GPUErrorRule(
        name="amf_init_failed",
        vendor=GPUVendor.AMD,
        patterns=(("AMF",), ("failed", "error")),
        kind=GPUErrorKind.GPU_CAPABILITY,
        message="{gpu_name} encoder initialization failed",
        details=(
            "FFmpeg could not initialize the AMD AMF encoder. This usually means:\n"
            "• Your GPU doesn't support AMF encoding\n"
            "• AMD drivers are not installed or outdated"
        ),
        suggestion="Update your AMD drivers or try CPU encoding.",
    ),
    GPUErrorRule(
        name="amf_not_supported",
        vendor=GPUVendor.AMD,
        patterns=(("not supported", "unsupported"),),
        kind=GPUErrorKind.GPU_CAPABILITY,
        message="Your {gpu_name} GPU doesn't support {codec_name} encoding",
        details="Your GPU model doesn't support hardware {codec_name} encoding.",
        suggestion="Try using CPU encoding instead.",
        av1_details="AV1 hardware encoding requires an RX 7000 series (RDNA 3) GPU or newer.",
        av1_suggestion=_AV1_NOT_SUPPORTED_SUGGESTION,
    ),
    # === Intel QuickSync ===
    GPUErrorRule(
        name="qsv_unavailable",
        vendor=GPUVendor.INTEL,
        patterns=(("QSV",), ("failed", "error", "not found")),
        kind=GPUErrorKind.GPU_CAPABILITY,
        message="{gpu_name} Quick Sync encoder not available",
        details=(
            "FFmpeg could not initialize Intel Quick Sync Video. This usually means:\n"
            "• Your CPU/GPU doesn't support Quick Sync\n"
            "• Intel graphics drivers are not installed\n"
            "• Quick Sync is disabled in BIOS"
        ),
        suggestion=(
            "Ensure Intel graphics drivers are installed and Quick Sync is enabled in BIOS, "
            "or try CPU encoding."
        ),
    ),
    # === Apple VideoToolbox ===
    GPUErrorRule(
        name="videotoolbox_unavailable",
        vendor=GPUVendor.APPLE,
        patterns=(("videotoolbox",), ("failed", "error")),
        kind=GPUErrorKind.GPU_CAPABILITY,
        message="VideoToolbox encoder not available",
        details=(
            "FFmpeg could not initialize Apple VideoToolbox. This usually means:\n"
            "• Your Mac doesn't support hardware encoding for this codec\n"
            "• macOS version doesn't support this encoder"
        ),
        suggestion="Try using CPU encoding instead.",
    ),
]

GENERIC_RULES: List[GPUErrorRule] = [
    GPUErrorRule(
        name="encoder_not_found",
        vendor=None,
        patterns=(("Encoder",), ("not found",)),
        kind=GPUErrorKind.ENCODER_UNAVAILABLE,
        message="{codec_name} encoder not found",
        details="The selected encoder is not available in your FFmpeg installation.",
        suggestion="Try using CPU encoding instead.",
    ),
    GPUErrorRule(
        name="library_load_failed",
        vendor=None,
        patterns=(("DLL", "LoadLibrary"),),
        kind=GPUErrorKind.DRIVER_ERROR,
        message="GPU driver or library error",
        details="A required library failed to load. This usually indicates a driver issue.",
        suggestion="Update your GPU drivers and restart your computer.",
    ),
]

GPU_ERROR_RULES: List[GPUErrorRule] = VENDOR_RULES + GENERIC_RULES


class ErrorClassifier:
    """Classifies FFmpeg output from failed GPU runs."""

    def __init__(self, rules: Optional[List[GPUErrorRule]] = None):
        self.rules = rules or GPU_ERROR_RULES

    def classify(
        self,
        error_output: str,
        gpu_vendor: GPUVendor,
        codec: Optional[str] = None
    ) -> Optional[GPUEncoderError]:
        """
        Classify FFmpeg error output.

        Args:
            error_output: Accumulated stderr of the failed run
            gpu_vendor: Vendor the run targeted
            codec: Codec family of the preset ("h264", "h265", "av1"), if known

        Returns:
            The first matching GPUEncoderError, or None for a generic failure.
        """
        gpu_vendor = GPUVendor(gpu_vendor)
        if isinstance(codec, CodecFamily):
            codec = codec.value

        for rule in self.rules:
            if rule.matches(error_output, gpu_vendor):
                logger.debug(f"[Classify] Matched rule {rule.name}")
                return rule.build(gpu_vendor, codec)

        return None

    @staticmethod
    def should_classify(preset: Preset, gpu_vendor: GPUVendor, exit_ok: bool) -> bool:
        """GPU classification only applies to failed video runs on a GPU."""
        return not exit_ok and preset.is_video and GPUVendor(gpu_vendor).is_hardware

    def should_fallback_to_cpu(
        self,
        error_output: str,
        gpu_vendor: GPUVendor,
        codec: Optional[str] = None
    ) -> bool:
        """Determine if a CPU retry is worth offering."""
        error = self.classify(error_output, gpu_vendor, codec)
        return error is not None and error.can_retry_with_cpu


# Global classifier instance
_classifier: Optional[ErrorClassifier] = None


def get_error_classifier() -> ErrorClassifier:
    """Get or create the global error classifier."""
    global _classifier
    if _classifier is None:
        _classifier = ErrorClassifier()
    return _classifier
