"""
Exception types for hwconvert.

Expected conversion failures are reported as values (ConversionResult,
GPUEncoderError); these exceptions cover collaborator failures that a
caller is expected to catch.
"""


class HWConvertError(Exception):
    """Base class for all hwconvert exceptions."""


class ProbeError(HWConvertError):
    """Raised when ffprobe cannot read metadata from an input file."""


class PresetNotFoundError(HWConvertError, KeyError):
    """Raised when a preset id is not in the catalogue."""

    def __init__(self, preset_id: str):
        super().__init__(preset_id)
        self.preset_id = preset_id

    def __str__(self) -> str:
        return f"Unknown preset: {self.preset_id}"
