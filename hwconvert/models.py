"""
Shared enumerations for hwconvert
"""

from enum import Enum
from typing import Dict


class CodecFamily(str, Enum):
    H264 = "h264"
    H265 = "h265"
    AV1 = "av1"

    @classmethod
    def _missing_(cls, value):
        # FFmpeg and ffprobe call H.265 "hevc"
        if isinstance(value, str):
            normalized = value.lower()
            if normalized == "hevc":
                return cls.H265
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def display_name(self) -> str:
        return CODEC_NAMES[self]


CODEC_NAMES: Dict[CodecFamily, str] = {
    CodecFamily.H264: "H.264",
    CodecFamily.H265: "H.265/HEVC",
    CodecFamily.AV1: "AV1",
}


class PresetCategory(str, Enum):
    AV1 = "av1"
    H264 = "h264"
    H265 = "h265"
    REMUX = "remux"
    AUDIO = "audio"
    CUSTOM = "custom"

    @property
    def is_video(self) -> bool:
        return self in (PresetCategory.AV1, PresetCategory.H264, PresetCategory.H265)

    @property
    def codec(self) -> CodecFamily:
        """Codec family for video categories. Raises ValueError otherwise."""
        return CodecFamily(self.value)
