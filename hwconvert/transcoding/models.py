"""
Data models for conversion operations.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Any

from ..hardware.models import GPUVendor
from ..models import PresetCategory
from .constants import CANCELLED_MESSAGE, DEFAULT_OUTPUT_SUFFIX


ArgsBuilder = Callable[[str, str, GPUVendor], List[str]]


@dataclass(frozen=True)
class Preset:
    """A conversion preset: builds the FFmpeg arguments after the global flags."""
    id: str
    name: str
    description: str
    category: PresetCategory
    extension: str
    build_args: ArgsBuilder = field(repr=False, compare=False)

    @property
    def is_video(self) -> bool:
        return self.category.is_video

    def get_args(self, input_path: str, output_path: str, gpu_vendor: GPUVendor) -> List[str]:
        return list(self.build_args(input_path, output_path, gpu_vendor))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "extension": self.extension,
        }


@dataclass(frozen=True)
class ConversionRequest:
    """One conversion, immutable for the duration of the run."""
    input_path: str
    output_directory: str
    preset: Preset
    gpu_vendor: GPUVendor = GPUVendor.CPU
    output_suffix: str = DEFAULT_OUTPUT_SUFFIX

    @property
    def output_path(self) -> str:
        stem = Path(self.input_path).stem
        return str(Path(self.output_directory) / f"{stem}{self.output_suffix}.{self.preset.extension}")


class ConversionState(str, Enum):
    IDLE = "idle"
    PROBING = "probing"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ConversionProgress:
    """One progress sample parsed from FFmpeg output."""
    percent: float = 0.0
    frame: int = 0
    fps: float = 0.0
    time: str = "00:00:00"
    bitrate: str = "N/A"
    speed: str = "N/A"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ConversionResult:
    """Terminal outcome of a conversion. `error` is set only on failure."""
    success: bool
    output_path: str
    error: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return not self.success and self.error == CANCELLED_MESSAGE


class GPUErrorKind(str, Enum):
    ENCODER_UNAVAILABLE = "encoder_unavailable"  # Not compiled in, or no vendor/codec entry
    GPU_CAPABILITY = "gpu_capability"  # Present in the build, rejected by the device
    DRIVER_ERROR = "driver_error"  # Library/driver failed to load


@dataclass
class GPUEncoderError:
    """Actionable description of a hardware encoding failure."""
    kind: GPUErrorKind
    message: str
    details: str
    suggestion: str
    can_retry_with_cpu: bool = True
    codec: Optional[str] = None
    gpu_vendor: Optional[GPUVendor] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "suggestion": self.suggestion,
            "can_retry_with_cpu": self.can_retry_with_cpu,
            "codec": self.codec,
            "gpu_vendor": self.gpu_vendor.value if self.gpu_vendor else None,
        }


@dataclass
class EncoderAvailability:
    """Result of resolving a (vendor, codec) pair to a concrete encoder."""
    available: bool
    encoder_name: str
    error: Optional[GPUEncoderError] = None


@dataclass
class MediaInfo:
    """Media file information from ffprobe."""
    duration: float = 0.0
    size: int = 0
    width: int = 0
    height: int = 0
    codec: str = "unknown"
    format: str = "unknown"
