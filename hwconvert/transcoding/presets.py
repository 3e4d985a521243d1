"""
Built-in conversion presets.

Each preset produces the arguments that follow the global flags: input,
codec/quality options, and the output path as the last argument.
"""

from typing import Callable, List, Optional

from ..exceptions import PresetNotFoundError
from ..hardware.models import GPUVendor
from ..models import CodecFamily, PresetCategory
from .encoders import get_video_encoder
from .models import ArgsBuilder, Preset


def _video_args(
    codec: CodecFamily,
    quality: int,
    audio_codec: str,
    audio_bitrate: str,
    cpu_preset: str,
    gpu_preset: Optional[str] = None
) -> ArgsBuilder:
    """
    Build a video preset. CPU encoders take -crf/-preset, GPU encoders
    take -cq (and -preset only where the preset sets one for GPUs).
    """
    def build(input_path: str, output_path: str, gpu_vendor: GPUVendor) -> List[str]:
        encoder = get_video_encoder(codec, gpu_vendor)
        args = ["-i", input_path, "-c:v", encoder]
        if gpu_vendor == GPUVendor.CPU:
            args += ["-crf", str(quality), "-preset", cpu_preset]
        else:
            args += ["-cq", str(quality)]
            if gpu_preset:
                args += ["-preset", gpu_preset]
        args += ["-c:a", audio_codec, "-b:a", audio_bitrate, output_path]
        return args
    return build


def _remux_args(input_path: str, output_path: str, gpu_vendor: GPUVendor) -> List[str]:
    return ["-i", input_path, "-c", "copy", output_path]


def _audio_args(audio_codec: str, audio_bitrate: Optional[str] = None) -> ArgsBuilder:
    def build(input_path: str, output_path: str, gpu_vendor: GPUVendor) -> List[str]:
        args = ["-i", input_path, "-vn", "-c:a", audio_codec]
        if audio_bitrate:
            args += ["-b:a", audio_bitrate]
        args.append(output_path)
        return args
    return build


PRESETS: List[Preset] = [
    # AV1
    Preset("av1-balanced", "AV1 - Balanced", "Good balance between quality and file size",
           PresetCategory.AV1, "mp4", _video_args(CodecFamily.AV1, 30, "libopus", "128k", "6")),
    Preset("av1-quality", "AV1 - Best Quality", "Maximum quality, larger file size",
           PresetCategory.AV1, "mp4", _video_args(CodecFamily.AV1, 20, "libopus", "192k", "4")),
    Preset("av1-compression", "AV1 - Best Compression", "Smallest file size, slower encoding",
           PresetCategory.AV1, "mp4", _video_args(CodecFamily.AV1, 40, "libopus", "96k", "6")),

    # H.264
    Preset("h264-fast", "H.264 - Fast", "Quick encoding, universal compatibility",
           PresetCategory.H264, "mp4", _video_args(CodecFamily.H264, 23, "aac", "128k", "fast", "fast")),
    Preset("h264-quality", "H.264 - Quality", "Better quality H.264 encoding",
           PresetCategory.H264, "mp4", _video_args(CodecFamily.H264, 18, "aac", "192k", "slow", "slow")),

    # H.265/HEVC
    Preset("h265-balanced", "H.265/HEVC - Balanced", "Good compression with wide device support",
           PresetCategory.H265, "mp4", _video_args(CodecFamily.H265, 28, "aac", "128k", "medium")),
    Preset("h265-quality", "H.265/HEVC - Quality", "High quality HEVC encoding",
           PresetCategory.H265, "mp4", _video_args(CodecFamily.H265, 22, "aac", "192k", "slow")),

    # Remux (stream copy)
    Preset("remux-mp4", "Remux to MP4", "Copy streams to MP4 container (no re-encoding)",
           PresetCategory.REMUX, "mp4", _remux_args),
    Preset("remux-mkv", "Remux to MKV", "Copy streams to MKV container (no re-encoding)",
           PresetCategory.REMUX, "mkv", _remux_args),
    Preset("remux-webm", "Remux to WebM", "Copy streams to WebM container (no re-encoding)",
           PresetCategory.REMUX, "webm", _remux_args),

    # Audio extraction
    Preset("audio-mp3", "Extract Audio (MP3)", "Extract audio track as MP3",
           PresetCategory.AUDIO, "mp3", _audio_args("libmp3lame", "192k")),
    Preset("audio-aac", "Extract Audio (AAC)", "Extract audio track as AAC",
           PresetCategory.AUDIO, "aac", _audio_args("aac", "192k")),
    Preset("audio-flac", "Extract Audio (FLAC)", "Extract audio track as lossless FLAC",
           PresetCategory.AUDIO, "flac", _audio_args("flac")),
]


def get_preset_by_id(preset_id: str) -> Preset:
    """Look up a preset. Raises PresetNotFoundError."""
    for preset in PRESETS:
        if preset.id == preset_id:
            return preset
    raise PresetNotFoundError(preset_id)


def get_presets_by_category(category: PresetCategory) -> List[Preset]:
    category = PresetCategory(category)
    return [p for p in PRESETS if p.category == category]


def custom_preset(
    preset_id: str,
    extension: str,
    build_args: Callable[[str, str, GPUVendor], List[str]],
    name: Optional[str] = None,
    description: str = ""
) -> Preset:
    """Wrap a caller-supplied argument builder as a custom preset."""
    return Preset(preset_id, name or preset_id, description, PresetCategory.CUSTOM, extension, build_args)
