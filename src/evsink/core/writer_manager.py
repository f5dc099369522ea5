"""
Writer manager: the single-active-writer state machine.

States:
    NoWriter - slot empty (before first use, after a failed append, or after
               a rotation that could not open a replacement)
    Active   - slot holds an appendable SegmentWriter

Every mutation of the slot (append, rotate, shutdown_finalize) runs under one
asyncio.Lock, so a rotation lands entirely before or after any given append.
Blocking file I/O is pushed to worker threads while the lock is held.
"""

from __future__ import annotations

import asyncio
import functools
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

from evsink.core.constants import DEFAULT_COMPRESSION_LEVEL, MAX_PAYLOAD_BYTES
from evsink.core.errors import PayloadTooLargeError, SegmentIOError, SinkClosedError
from evsink.core.models import Record
from evsink.core.segment_writer import SegmentWriter
from evsink.monitoring.metrics import (
    APPEND_LATENCY,
    EVENT_BYTES_STORED,
    EVENTS_REJECTED,
    EVENTS_STORED,
    ROTATIONS,
    SEGMENT_CREATE_FAILURES,
    SEGMENTS_CREATED,
    SEGMENTS_FINALIZED,
    WRITER_ACTIVE,
)
from evsink.utils.logging import get_logger
from evsink.utils.segment_name import SegmentNameGenerator

logger = get_logger(__name__)

T = TypeVar("T")

WriterFactory = Callable[[], SegmentWriter]


class WriterManager:
    """
    Holds at most one live SegmentWriter and serializes all access to it.

    Construct once at startup and share the instance with request handlers
    and the rotation scheduler. `writer_factory` can be swapped for a fake
    in tests; it is called from a worker thread and must raise
    SegmentIOError on failure.
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        names: Optional[SegmentNameGenerator] = None,
        writer_factory: Optional[WriterFactory] = None,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
    ):
        self.directory = Path(directory)
        self.names = names or SegmentNameGenerator()
        self.max_payload_bytes = min(max_payload_bytes, MAX_PAYLOAD_BYTES)
        self._factory: WriterFactory = writer_factory or functools.partial(
            SegmentWriter.create, self.directory, self.names, compression_level
        )
        self._lock = asyncio.Lock()
        self._writer: Optional[SegmentWriter] = None
        self._closed = False

    @property
    def is_active(self) -> bool:
        """True when a writer is accepting appends (pure read, no lock)."""
        return self._writer is not None

    @property
    def live_name(self) -> Optional[str]:
        """File name of the live segment, if any."""
        writer = self._writer
        return writer.name if writer is not None else None

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """
        Create the first segment.

        Raises:
            SegmentIOError: If the segment cannot be created; callers treat
                this as fatal at process startup.
        """
        async with self._lock:
            self._ensure_open()
            if self._writer is None:
                self._writer = await self._create()
            self._publish_state()

    async def append(self, payload: bytes, received_at: Optional[int] = None) -> Record:
        """
        Append one event to the live segment, creating a segment if needed.

        Returns:
            The record as written

        Raises:
            PayloadTooLargeError: If payload exceeds the cap (nothing written)
            SegmentIOError: If no writer could be created or the write failed;
                in the latter case the writer is abandoned and the manager
                drops back to NoWriter
        """
        if len(payload) > self.max_payload_bytes:
            EVENTS_REJECTED.labels(reason="too_long").inc()
            raise PayloadTooLargeError(len(payload), self.max_payload_bytes)

        if received_at is None:
            record = Record.now(payload)
        else:
            record = Record(received_at=received_at, payload=payload)

        return await self._run_to_completion(self._append_locked, record)

    async def rotate(self, trigger: str = "manual") -> Optional[str]:
        """
        Finalize the live segment and start a new one.

        The replacement is created first; the previous writer is finalized
        whether or not that succeeded, so the old segment is always closed.

        Returns:
            File name of the new live segment

        Raises:
            SegmentIOError: If the replacement segment could not be created
                (the manager is left in NoWriter)
        """
        return await self._run_to_completion(self._rotate_locked, trigger)

    async def shutdown_finalize(self) -> bool:
        """
        Finalize whatever writer is present and refuse further writes.

        Meant to be called once, after the HTTP listener stopped accepting
        requests. Having no writer is a no-op.

        Returns:
            False if finalization of the last segment failed (already logged)
        """
        return await self._run_to_completion(self._shutdown_locked)

    async def _run_to_completion(
        self, func: Callable[..., Awaitable[T]], *args: object
    ) -> T:
        # A cancelled caller must not release the lock mid-critical-section.
        return await asyncio.shield(func(*args))

    async def _append_locked(self, record: Record) -> Record:
        start = time.perf_counter()
        async with self._lock:
            try:
                self._ensure_open()
                if self._writer is None:
                    self._writer = await self._create()
            except SegmentIOError:
                EVENTS_REJECTED.labels(reason="io_error").inc()
                raise
            finally:
                self._publish_state()

            writer = self._writer
            try:
                await asyncio.to_thread(writer.append, record)
            except SegmentIOError as exc:
                # Emergency finish: the stream state is unknown, abandon the segment.
                self._writer = None
                self._publish_state()
                EVENTS_REJECTED.labels(reason="io_error").inc()
                logger.error(
                    "append_failed",
                    file_name=writer.name,
                    payload_bytes=len(record.payload),
                    exc_info=exc,
                )
                await self._finalize(writer, reason="emergency")
                raise
            finally:
                APPEND_LATENCY.observe(time.perf_counter() - start)

        EVENTS_STORED.inc()
        EVENT_BYTES_STORED.inc(len(record.payload))
        return record

    async def _rotate_locked(self, trigger: str) -> Optional[str]:
        async with self._lock:
            try:
                self._ensure_open()
            except SinkClosedError:
                ROTATIONS.labels(trigger=trigger, status="error").inc()
                raise

            replacement: Optional[SegmentWriter] = None
            create_error: Optional[SegmentIOError] = None
            try:
                replacement = await self._create()
            except SegmentIOError as exc:
                create_error = exc

            previous, self._writer = self._writer, replacement
            self._publish_state()

            if previous is not None:
                await self._finalize(previous, reason="rotation")

            status = "ok" if create_error is None else "error"
            ROTATIONS.labels(trigger=trigger, status=status).inc()
            logger.info(
                "segment_rotated",
                trigger=trigger,
                status=status,
                previous=previous.name if previous is not None else None,
                current=replacement.name if replacement is not None else None,
            )

            if create_error is not None:
                raise create_error
            return replacement.name if replacement is not None else None

    async def _shutdown_locked(self) -> bool:
        async with self._lock:
            if self._closed:
                logger.warning("shutdown_finalize_repeated")
                return True
            self._closed = True

            writer, self._writer = self._writer, None
            self._publish_state()
            if writer is None:
                logger.info("shutdown_without_active_writer")
                return True

            return await self._finalize(writer, reason="shutdown")

    def _ensure_open(self) -> None:
        if self._closed:
            raise SinkClosedError("Event sink is shut down")

    async def _create(self) -> SegmentWriter:
        try:
            writer = await asyncio.to_thread(self._factory)
        except SegmentIOError as exc:
            SEGMENT_CREATE_FAILURES.inc()
            logger.error(
                "segment_create_failed", directory=str(self.directory), exc_info=exc
            )
            raise
        SEGMENTS_CREATED.inc()
        return writer

    async def _finalize(self, writer: SegmentWriter, reason: str) -> bool:
        """Finalize a writer that is already out of the slot; failures are logged only."""
        try:
            await asyncio.to_thread(writer.finalize)
        except SegmentIOError as exc:
            SEGMENTS_FINALIZED.labels(outcome="error").inc()
            logger.error(
                "segment_finalize_failed",
                file_name=writer.name,
                reason=reason,
                exc_info=exc,
            )
            return False
        SEGMENTS_FINALIZED.labels(outcome="ok").inc()
        return True

    def _publish_state(self) -> None:
        WRITER_ACTIVE.set(1 if self._writer is not None else 0)


__all__ = ["WriterManager", "WriterFactory"]
