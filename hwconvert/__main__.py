"""
hwconvert command line

Usage:
    hwconvert convert input.mkv --preset h265-balanced --gpu nvidia
    hwconvert presets
    hwconvert encoders
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import load_config, set_config
from .exceptions import PresetNotFoundError
from .hardware.capabilities import get_capability_prober
from .hardware.models import GPUVendor
from .log import setup_logging
from .transcoding import (
    CANCELLED_MESSAGE,
    ConversionProgress,
    ConversionRequest,
    ConversionRunner,
    PRESETS,
    find_ffmpeg,
    get_preset_by_id,
)

logger = logging.getLogger("hwconvert.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hwconvert", description="Hardware-accelerated FFmpeg converter")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to hwconvert.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    convert = sub.add_parser("convert", help="Convert one file")
    convert.add_argument("input", help="Input media file")
    convert.add_argument("--preset", required=True, help="Preset id (see `hwconvert presets`)")
    convert.add_argument("--gpu", choices=[v.value for v in GPUVendor], help="GPU vendor (default from config)")
    convert.add_argument("--output-dir", help="Output directory (default: next to the input)")
    convert.add_argument("-v", "--verbose", action="store_true", help="Echo FFmpeg output")

    sub.add_parser("presets", help="List presets")
    sub.add_parser("encoders", help="List hardware encoders in this FFmpeg build")
    return parser


def _print_progress(progress: ConversionProgress) -> None:
    sys.stderr.write(
        f"\r{progress.percent:5.1f}%  time={progress.time}  fps={progress.fps:g}  speed={progress.speed}   "
    )
    sys.stderr.flush()


def handle_interrupt(runner: ConversionRunner, task: "asyncio.Future") -> None:
    """
    SIGINT handler for `convert`.

    Before FFmpeg is running the whole task is cancelled. Once it runs, the
    first Ctrl+C asks FFmpeg to stop (the grace timer handles the rest) and
    a second one kills it.
    """
    process = runner.registry.current
    if process is None:
        task.cancel()
        return
    runner.cancel(force=process in runner.registry.cancelled)


async def _convert(args: argparse.Namespace, config) -> int:
    try:
        preset = get_preset_by_id(args.preset)
    except PresetNotFoundError as e:
        print(e, file=sys.stderr)
        return 2

    input_path = Path(args.input)
    request = ConversionRequest(
        input_path=str(input_path),
        output_directory=args.output_dir or str(input_path.parent),
        preset=preset,
        gpu_vendor=GPUVendor(args.gpu or config.hardware.gpu_vendor),
        output_suffix=config.transcoding.output_suffix,
    )

    runner = ConversionRunner.from_config(config)
    log_callback = (lambda text: sys.stderr.write(text)) if args.verbose else None
    task = asyncio.ensure_future(runner.convert(request, _print_progress, log_callback))

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, handle_interrupt, runner, task)
    except (NotImplementedError, RuntimeError):
        pass  # Windows event loops don't support signal handlers

    try:
        result, gpu_error = await task
    except asyncio.CancelledError:
        if not task.cancelled():
            raise
        sys.stderr.write("\n")
        print(CANCELLED_MESSAGE, file=sys.stderr)
        return 130
    sys.stderr.write("\n")

    if result.success:
        print(result.output_path)
        return 0
    if result.cancelled:
        print(result.error, file=sys.stderr)
        return 130
    if gpu_error:
        print(f"{gpu_error.message}\n{gpu_error.details}\n\n{gpu_error.suggestion}", file=sys.stderr)
        if gpu_error.can_retry_with_cpu:
            print("Re-run with --gpu cpu to use software encoding.", file=sys.stderr)
        return 1

    print(result.error, file=sys.stderr)
    return 1


async def _list_encoders(config) -> int:
    prober = get_capability_prober(find_ffmpeg(config.transcoding))
    capabilities = await prober.get_capabilities()
    if not capabilities.encoders:
        print("FFmpeg not found or reported no encoders", file=sys.stderr)
        return 1
    for api, encoders in capabilities.hardware_encoders().items():
        print(f"{api}: {', '.join(encoders)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    set_config(config)
    setup_logging(config.logging)

    if args.command == "presets":
        for preset in PRESETS:
            print(f"{preset.id:<18} {preset.category.value:<6} .{preset.extension:<5} {preset.description}")
        return 0
    if args.command == "encoders":
        return asyncio.run(_list_encoders(config))
    return asyncio.run(_convert(args, config))


if __name__ == "__main__":
    sys.exit(main())
