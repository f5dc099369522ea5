"""Time-based segment rotation."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Optional

from evsink.core.constants import DEFAULT_ROTATION_INTERVAL_SECONDS
from evsink.core.errors import SegmentIOError, SinkClosedError
from evsink.core.writer_manager import WriterManager
from evsink.utils.logging import get_logger

logger = get_logger(__name__)


class RotationScheduler:
    """
    Rotates the live segment on a fixed interval.

    The first rotation fires one full interval after start(), never at
    startup. Ticks follow a fixed schedule; if a rotation overruns a tick,
    the missed tick is skipped rather than fired late in a burst.
    """

    def __init__(
        self,
        manager: WriterManager,
        interval_seconds: float = DEFAULT_ROTATION_INTERVAL_SECONDS,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.manager = manager
        self.interval = interval_seconds
        self.rotations = 0
        self._task: Optional[asyncio.Task[None]] = None
        self._stop = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task is None:
            self._stop.clear()
            self._task = asyncio.create_task(self._run(), name="evsink-rotation")
            logger.info("rotation_scheduler_started", interval_seconds=self.interval)

    async def stop(self) -> None:
        if self._task:
            self._stop.set()
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            self._stop.clear()
            logger.info("rotation_scheduler_stopped", rotations=self.rotations)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval
        while not self._stop.is_set():
            delay = next_tick - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=delay)
                    return
                except asyncio.TimeoutError:
                    pass

            now = loop.time()
            next_tick += self.interval
            if next_tick <= now:
                next_tick = now + self.interval

            try:
                await self.manager.rotate(trigger="timer")
                self.rotations += 1
            except SinkClosedError:
                logger.info("rotation_scheduler_sink_closed")
                return
            except SegmentIOError as exc:
                logger.error("timed_rotation_failed", exc_info=exc)


__all__ = ["RotationScheduler"]
