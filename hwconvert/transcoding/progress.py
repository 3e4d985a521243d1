"""
FFmpeg progress parsing.

Two sources are understood:

- the stats line FFmpeg writes to stderr:
  ``frame=  240 fps= 48 q=28.0 size=  1024kB time=00:00:10.00 bitrate= 838.9kbits/s speed=1.99x``
- the ``-progress pipe:1`` key=value stream on stdout, of which only
  ``out_time_ms`` is used (FFmpeg reports microseconds under that name).

Parsing is stateless: each line is handled on its own.
"""

import re
from typing import Optional

from .models import ConversionProgress

_FRAME = re.compile(r"frame=\s*(\d+)")
_FPS = re.compile(r"fps=\s*([\d.]+)")
# \b keeps the -progress "out_time=" key from matching
_TIME = re.compile(r"\btime=\s*([\d:.]+)")
_BITRATE = re.compile(r"bitrate=\s*([\d.]+\s*\w+(?:/s)?)")
_SPEED = re.compile(r"speed=\s*([\d.]+x)")
_OUT_TIME_MS = re.compile(r"out_time_ms=\s*(-?\d+)")


def parse_timestamp(value: str) -> Optional[float]:
    """Convert ``HH:MM:SS.ff`` (or ``MM:SS.ff`` / ``SS.ff``) to seconds."""
    parts = value.strip().split(":")
    if len(parts) > 3:
        return None
    try:
        seconds = 0.0
        for part in parts:
            seconds = seconds * 60 + float(part)
    except ValueError:
        return None
    return seconds


def format_time(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS``."""
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


def calculate_percent(seconds: float, total_duration: float) -> float:
    """Percent complete, clamped to [0, 100]. Zero when the duration is unknown."""
    if total_duration <= 0:
        return 0.0
    return max(0.0, min(100.0, (seconds / total_duration) * 100))


def parse_progress_line(line: str, total_duration: float) -> Optional[ConversionProgress]:
    """
    Parse one line of FFmpeg output into a progress sample.

    Returns None for lines that carry no timestamp.
    """
    match = _OUT_TIME_MS.search(line)
    if match:
        seconds = int(match.group(1)) / 1_000_000
        return ConversionProgress(
            percent=calculate_percent(seconds, total_duration),
            frame=0,
            fps=0.0,
            time=format_time(seconds),
            bitrate="N/A",
            speed="N/A",
        )

    time_match = _TIME.search(line)
    if not time_match:
        return None

    seconds = parse_timestamp(time_match.group(1))
    if seconds is None:
        return None

    frame_match = _FRAME.search(line)
    fps_match = _FPS.search(line)
    bitrate_match = _BITRATE.search(line)
    speed_match = _SPEED.search(line)

    try:
        fps = float(fps_match.group(1)) if fps_match else 0.0
    except ValueError:  # e.g. "fps=." mid-write
        fps = 0.0

    return ConversionProgress(
        percent=calculate_percent(seconds, total_duration),
        frame=int(frame_match.group(1)) if frame_match else 0,
        fps=fps,
        time=time_match.group(1),
        bitrate=bitrate_match.group(1) if bitrate_match else "N/A",
        speed=speed_match.group(1) if speed_match else "N/A",
    )
