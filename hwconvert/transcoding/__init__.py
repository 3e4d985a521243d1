"""
Conversion orchestration package for hwconvert.
Encoder/decoder selection, FFmpeg execution, progress and GPU error handling.
"""

from .models import (
    Preset,
    ConversionRequest,
    ConversionProgress,
    ConversionResult,
    ConversionState,
    GPUErrorKind,
    GPUEncoderError,
    EncoderAvailability,
    MediaInfo,
)
from .constants import (
    GPU_ENCODERS,
    SOFTWARE_ENCODERS,
    GLOBAL_ARGS,
    CANCELLED_MESSAGE,
    CANCEL_GRACE_SECONDS,
)
from .progress import parse_progress_line, format_time, parse_timestamp
from .encoders import EncoderResolver, get_video_encoder
from .decoders import DecodePlanner, DecodePath, DECODE_PATHS
from .error_classifier import ErrorClassifier, GPUErrorRule, GPU_ERROR_RULES, get_error_classifier
from .probe import MediaProbe
from .paths import find_ffmpeg, find_ffprobe, clear_path_cache, check_ffmpeg_installed
from .presets import PRESETS, get_preset_by_id, get_presets_by_category, custom_preset
from .cancellation import CancellationController, ProcessRegistry, force_kill
from .engine import ConversionRunner

__all__ = [
    # Models
    "Preset",
    "ConversionRequest",
    "ConversionProgress",
    "ConversionResult",
    "ConversionState",
    "GPUErrorKind",
    "GPUEncoderError",
    "EncoderAvailability",
    "MediaInfo",
    # Constants
    "GPU_ENCODERS",
    "SOFTWARE_ENCODERS",
    "GLOBAL_ARGS",
    "CANCELLED_MESSAGE",
    "CANCEL_GRACE_SECONDS",
    # Progress
    "parse_progress_line",
    "format_time",
    "parse_timestamp",
    # Classes
    "EncoderResolver",
    "get_video_encoder",
    "DecodePlanner",
    "DecodePath",
    "DECODE_PATHS",
    "ErrorClassifier",
    "GPUErrorRule",
    "GPU_ERROR_RULES",
    "get_error_classifier",
    "MediaProbe",
    "ConversionRunner",
    # Binaries
    "find_ffmpeg",
    "find_ffprobe",
    "clear_path_cache",
    "check_ffmpeg_installed",
    # Presets
    "PRESETS",
    "get_preset_by_id",
    "get_presets_by_category",
    "custom_preset",
    # Cancellation
    "CancellationController",
    "ProcessRegistry",
    "force_kill",
]
