"""
Configuration management for hwconvert
"""

import yaml
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TranscodingConfig(BaseModel):
    ffmpeg_path: str = "auto"
    ffprobe_path: str = "auto"
    use_system_ffmpeg: bool = False  # Skip the bundled binaries and use PATH
    bundled_ffmpeg_dir: Optional[str] = None  # e.g., "<resources>/ffmpeg"
    output_suffix: str = "_converted"
    cancel_grace_seconds: float = 1.5  # Seconds before a polite stop becomes a kill


class HardwareConfig(BaseModel):
    gpu_vendor: str = "cpu"
    vaapi_device: str = "/dev/dri/renderD128"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    file: Optional[str] = None


class HWConvertConfig(BaseSettings):
    """Root configuration. HWCONVERT_* environment variables override defaults, YAML wins over both."""

    model_config = SettingsConfigDict(
        env_prefix="HWCONVERT_",
        env_nested_delimiter="__",
    )

    transcoding: TranscodingConfig = Field(default_factory=TranscodingConfig)
    hardware: HardwareConfig = Field(default_factory=HardwareConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def find_config_file() -> Optional[Path]:
    """Find the configuration file in standard locations."""
    search_paths = [
        Path.cwd() / "hwconvert.yaml",
        Path.cwd() / "hwconvert.yml",
        Path.cwd() / "config" / "hwconvert.yaml",
        Path.home() / ".config" / "hwconvert" / "hwconvert.yaml",
        Path("/etc/hwconvert/hwconvert.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def load_config(config_path: Optional[str] = None) -> HWConvertConfig:
    """Load configuration from YAML file or use defaults."""
    config_file = Path(config_path) if config_path else find_config_file()

    if config_file and config_file.exists():
        with open(config_file, "r") as f:
            yaml_data = yaml.safe_load(f) or {}
        return HWConvertConfig(**yaml_data)

    return HWConvertConfig()


# Global config instance
_config: Optional[HWConvertConfig] = None


def get_config() -> HWConvertConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: HWConvertConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
