"""
Locating the FFmpeg and FFprobe binaries.

Lookup order: explicit path from config, system PATH when
`use_system_ffmpeg` is set, a bundled copy (per-architecture subdirectory
first), then PATH.
"""

import asyncio
import logging
import os
import platform
import shutil
import stat
import sys
from pathlib import Path
from typing import Dict, Optional

from ..config import TranscodingConfig

logger = logging.getLogger(__name__)

_path_cache: Dict[str, str] = {}


def _arch() -> str:
    machine = platform.machine().lower()
    if machine in ("x86_64", "amd64"):
        return "x64"
    if machine in ("aarch64", "arm64"):
        return "arm64"
    return machine


def _ensure_executable(path: Path) -> None:
    """Bundled binaries can lose their exec bit when unpacked."""
    if sys.platform == "win32":
        return
    try:
        mode = path.stat().st_mode
        if not mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH):
            path.chmod(mode | 0o755)
    except OSError as e:
        logger.debug(f"[Paths] Could not mark {path} executable: {e}")


def get_bundled_ffmpeg_dir(bundled_dir: Optional[str]) -> Optional[Path]:
    """Directory holding bundled binaries for this architecture, if any."""
    if not bundled_dir:
        return None

    base = Path(bundled_dir)
    if sys.platform in ("darwin", "win32"):
        arch_dir = base / _arch()
        if arch_dir.is_dir():
            return arch_dir

    if base.is_dir():
        return base
    return None


def _find_binary(name: str, configured: str, config: TranscodingConfig) -> str:
    if configured != "auto":
        return configured

    if name in _path_cache:
        return _path_cache[name]

    resolved: Optional[str] = None
    if not config.use_system_ffmpeg:
        bundled = get_bundled_ffmpeg_dir(config.bundled_ffmpeg_dir)
        if bundled:
            candidate = bundled / (f"{name}.exe" if sys.platform == "win32" else name)
            if candidate.exists():
                _ensure_executable(candidate)
                resolved = str(candidate)

    if resolved is None:
        resolved = shutil.which(name) or name

    _path_cache[name] = resolved
    logger.debug(f"[Paths] Using {name}: {resolved}")
    return resolved


def find_ffmpeg(config: TranscodingConfig) -> str:
    """Find ffmpeg executable."""
    return _find_binary("ffmpeg", config.ffmpeg_path, config)


def find_ffprobe(config: TranscodingConfig) -> str:
    """Find ffprobe executable."""
    return _find_binary("ffprobe", config.ffprobe_path, config)


def has_bundled_ffmpeg(config: TranscodingConfig) -> bool:
    bundled = get_bundled_ffmpeg_dir(config.bundled_ffmpeg_dir)
    return bundled is not None and os.path.dirname(find_ffmpeg(config)) == str(bundled)


def clear_path_cache() -> None:
    """Forget resolved binaries (e.g., after toggling use_system_ffmpeg)."""
    _path_cache.clear()


async def check_ffmpeg_installed(ffmpeg_path: str = "ffmpeg") -> bool:
    """True if `ffmpeg -version` runs and exits 0."""
    try:
        process = await asyncio.create_subprocess_exec(
            ffmpeg_path, "-version",
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        return await process.wait() == 0
    except OSError:
        return False
