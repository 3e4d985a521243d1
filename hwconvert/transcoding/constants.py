"""
Constants and encoder/decoder tables for conversion operations.
"""

from typing import Dict, FrozenSet, List

from ..hardware.models import GPUVendor
from ..models import CodecFamily


# Encoder per codec family and GPU vendor. Apple has no AV1 hardware
# encoder in FFmpeg, so it shares the software encoder.
GPU_ENCODERS: Dict[CodecFamily, Dict[GPUVendor, str]] = {
    CodecFamily.H264: {
        GPUVendor.NVIDIA: "h264_nvenc",
        GPUVendor.AMD: "h264_amf",
        GPUVendor.INTEL: "h264_qsv",
        GPUVendor.APPLE: "h264_videotoolbox",
        GPUVendor.CPU: "libx264",
    },
    CodecFamily.H265: {
        GPUVendor.NVIDIA: "hevc_nvenc",
        GPUVendor.AMD: "hevc_amf",
        GPUVendor.INTEL: "hevc_qsv",
        GPUVendor.APPLE: "hevc_videotoolbox",
        GPUVendor.CPU: "libx265",
    },
    CodecFamily.AV1: {
        GPUVendor.NVIDIA: "av1_nvenc",
        GPUVendor.AMD: "av1_amf",
        GPUVendor.INTEL: "av1_qsv",
        GPUVendor.APPLE: "libsvtav1",
        GPUVendor.CPU: "libsvtav1",
    },
}

SOFTWARE_ENCODERS: Dict[CodecFamily, str] = {
    codec: vendors[GPUVendor.CPU] for codec, vendors in GPU_ENCODERS.items()
}


# Hardware decoders keyed by normalized source codec (ffprobe codec_name)
NVIDIA_DECODERS: Dict[str, str] = {
    "h264": "h264_cuvid",
    "hevc": "hevc_cuvid",
    "av1": "av1_cuvid",
    "vp9": "vp9_cuvid",
    "mpeg2video": "mpeg2_cuvid",
    "mpeg4": "mpeg4_cuvid",
}

INTEL_DECODERS: Dict[str, str] = {
    "h264": "h264_qsv",
    "hevc": "hevc_qsv",
    "av1": "av1_qsv",
    "vp9": "vp9_qsv",
}

D3D11_DECODERS: Dict[str, str] = {
    "h264": "h264_d3d11va",
    "hevc": "hevc_d3d11va",
    "av1": "av1_d3d11va",
    "vp9": "vp9_d3d11va",
}

VIDEOTOOLBOX_DECODERS: Dict[str, str] = {
    "h264": "h264_videotoolbox",
    "hevc": "hevc_videotoolbox",
}

# VAAPI decodes through the render node rather than a named decoder
DEFAULT_VAAPI_DEVICE = "/dev/dri/renderD128"
VAAPI_CODECS: FrozenSet[str] = frozenset({"h264", "hevc", "av1", "vp9"})


# Prepended to every run: overwrite output, machine-readable progress on stdout
GLOBAL_ARGS: List[str] = ["-y", "-progress", "pipe:1"]

DEFAULT_OUTPUT_SUFFIX = "_converted"

# Sentinel error for caller-initiated stops; not a failure
CANCELLED_MESSAGE = "Conversion cancelled"

# Seconds between the polite stop and the forced kill
CANCEL_GRACE_SECONDS = 1.5

READ_CHUNK_SIZE = 4096
