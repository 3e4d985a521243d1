"""
Cancellation of the in-flight FFmpeg process.

A stop starts politely: "q" on stdin (FFmpeg's interactive quit) followed
by SIGTERM. If the process is still running after the grace period, or
the caller forces it, the process is killed outright.
"""

import asyncio
import logging
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set, Tuple

from .constants import CANCEL_GRACE_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class ProcessRegistry:
    """
    The single active transcode and its bookkeeping.

    Written only from the event loop by the runner and the cancellation
    controller. Add a lock if either is ever driven from another thread.
    """
    current: Optional[Any] = None
    output_paths: Dict[Any, str] = field(default_factory=dict)
    cancelled: Set[Any] = field(default_factory=set)

    def register(self, process: Any, output_path: str) -> None:
        self.current = process
        self.output_paths[process] = output_path

    def release(self, process: Any) -> Tuple[Optional[str], bool]:
        """Drop a finished process. Returns (output_path, was_cancelled)."""
        if self.current is process:
            self.current = None
        output_path = self.output_paths.pop(process, None)
        was_cancelled = process in self.cancelled
        self.cancelled.discard(process)
        return output_path, was_cancelled

    @property
    def is_empty(self) -> bool:
        return self.current is None and not self.output_paths and not self.cancelled


# Pending taskkill runs, referenced until they finish
_kill_tasks: Set["asyncio.Task[None]"] = set()


def _kill(process: Any) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
        logger.warning("[Cancel] FFmpeg killed forcefully")
    except (ProcessLookupError, OSError) as e:
        logger.debug(f"[Cancel] Kill failed, process already gone: {e}")


async def _taskkill(process: Any) -> None:
    """Kill the process tree with taskkill, falling back to kill()."""
    try:
        killer = await asyncio.create_subprocess_exec(
            "taskkill", "/pid", str(process.pid), "/t", "/f",
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
        if await killer.wait() == 0:
            logger.warning("[Cancel] FFmpeg process tree killed")
            return
        logger.debug(f"[Cancel] taskkill exited with code {killer.returncode}")
    except OSError as e:
        logger.debug(f"[Cancel] taskkill failed: {e}")
    _kill(process)


def force_kill(process: Any) -> None:
    """
    Kill a process unconditionally. No-op once it has exited.

    On Windows the whole tree is killed by taskkill, run as a background
    task on the event loop.
    """
    if process.returncode is not None:
        return

    if sys.platform == "win32" and process.pid:
        # FFmpeg may have children (e.g. hwaccel helpers)
        task = asyncio.get_running_loop().create_task(_taskkill(process))
        _kill_tasks.add(task)
        task.add_done_callback(_kill_tasks.discard)
        return

    _kill(process)


class CancellationController:
    """Stops the registry's active process, politely first."""

    def __init__(self, registry: ProcessRegistry, grace_seconds: float = CANCEL_GRACE_SECONDS):
        self.registry = registry
        self.grace_seconds = grace_seconds
        self._grace_timer: Optional[asyncio.TimerHandle] = None

    def cancel(self, force: bool = False) -> None:
        """
        Cancel the active conversion, if any. Must be called on the event loop.

        The run resolves as cancelled and its partial output is removed by
        the runner. With `force`, the process is killed immediately instead
        of being given the grace period.
        """
        process = self.registry.current
        if process is None:
            return

        self.registry.cancelled.add(process)
        logger.info(f"[Cancel] Cancelling FFmpeg (force={force})")

        try:
            if process.stdin is not None:
                process.stdin.write(b"q")
                process.stdin.close()
        except (BrokenPipeError, ConnectionResetError, OSError, RuntimeError) as e:
            logger.debug(f"[Cancel] Could not send quit to FFmpeg: {e}")

        delivered = True
        try:
            process.terminate()
        except (ProcessLookupError, OSError) as e:
            logger.debug(f"[Cancel] SIGTERM not delivered: {e}")
            delivered = False

        if force or not delivered:
            force_kill(process)
            return

        self._arm_grace_timer(process)

    def _arm_grace_timer(self, process: Any) -> None:
        self.clear_timer()
        loop = asyncio.get_running_loop()
        self._grace_timer = loop.call_later(self.grace_seconds, self._escalate, process)

    def _escalate(self, process: Any) -> None:
        self._grace_timer = None
        if self.registry.current is process and process.returncode is None:
            logger.info(f"[Cancel] FFmpeg still running after {self.grace_seconds}s, killing")
            force_kill(process)

    def clear_timer(self) -> None:
        """Disarm a pending escalation (called when the process exits)."""
        if self._grace_timer is not None:
            self._grace_timer.cancel()
            self._grace_timer = None
