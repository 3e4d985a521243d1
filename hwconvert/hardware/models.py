"""
Hardware detection models and data classes for hwconvert
"""

from typing import Dict, FrozenSet, Any
from dataclasses import dataclass, field
from enum import Enum


class GPUVendor(str, Enum):
    NVIDIA = "nvidia"
    AMD = "amd"
    INTEL = "intel"
    APPLE = "apple"
    CPU = "cpu"

    @property
    def display_name(self) -> str:
        return GPU_NAMES[self]

    @property
    def is_hardware(self) -> bool:
        return self is not GPUVendor.CPU


GPU_NAMES: Dict[GPUVendor, str] = {
    GPUVendor.NVIDIA: "NVIDIA",
    GPUVendor.AMD: "AMD",
    GPUVendor.INTEL: "Intel",
    GPUVendor.APPLE: "Apple",
    GPUVendor.CPU: "CPU",
}


@dataclass(frozen=True)
class CapabilitySet:
    """Encoder and decoder names FFmpeg was compiled with."""
    encoders: FrozenSet[str] = field(default_factory=frozenset)
    decoders: FrozenSet[str] = field(default_factory=frozenset)

    def has_encoder(self, name: str) -> bool:
        return name in self.encoders

    def has_decoder(self, name: str) -> bool:
        return name in self.decoders

    def hardware_encoders(self) -> Dict[str, list]:
        """Group compiled hardware encoders by API suffix (nvenc, amf, qsv, ...)."""
        grouped: Dict[str, list] = {}
        for name in sorted(self.encoders):
            suffix = name.rsplit("_", 1)[-1]
            if suffix in ("nvenc", "amf", "qsv", "vaapi", "videotoolbox"):
                grouped.setdefault(suffix, []).append(name)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "encoders": sorted(self.encoders),
            "decoders": sorted(self.decoders),
            "hardware_encoders": self.hardware_encoders(),
        }
