"""
Hardware capability detection for hwconvert.
"""

from .models import GPUVendor, GPU_NAMES, CapabilitySet
from .capabilities import CapabilityProber, get_capability_prober, parse_codec_listing

__all__ = [
    "GPUVendor",
    "GPU_NAMES",
    "CapabilitySet",
    "CapabilityProber",
    "get_capability_prober",
    "parse_codec_listing",
]
