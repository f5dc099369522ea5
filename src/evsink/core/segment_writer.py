"""
Segment writer: one zstd-compressed, append-only event file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO, Optional

import zstandard as zstd

from evsink.core.constants import (
    DEFAULT_COMPRESSION_LEVEL,
    MAX_NAME_ATTEMPTS,
    SEGMENT_MAGIC,
)
from evsink.core.errors import SegmentIOError
from evsink.core.framing import encode_frame
from evsink.core.models import Record
from evsink.utils.logging import get_logger
from evsink.utils.segment_name import SegmentNameGenerator

logger = get_logger(__name__)


class SegmentWriter:
    """
    Owns one open compressing stream and the file name it was created under.

    Lifecycle: create() -> append()* -> finalize(). A writer whose append
    failed is tainted and refuses further appends; it must be finalized and
    discarded. finalize() consumes the writer, a second call is a logic error.

    Attributes:
        name: File name (RFC 3339 creation instant + suffix)
        path: Full path of the segment file
        record_count: Records appended so far
        payload_bytes: Uncompressed payload bytes appended so far
    """

    def __init__(self, path: Path, file: BinaryIO, stream: "zstd.ZstdCompressionWriter"):
        self.path = path
        self.name = path.name
        self._file = file
        self._stream = stream
        self._finalized = False
        self._tainted = False
        self.record_count = 0
        self.payload_bytes = 0

    @classmethod
    def create(
        cls,
        directory: str | Path,
        names: SegmentNameGenerator,
        level: int = DEFAULT_COMPRESSION_LEVEL,
    ) -> "SegmentWriter":
        """
        Open a new segment file named by the next generator name.

        Args:
            directory: Directory the segment is created in
            names: Name generator (monotonic RFC 3339 names)
            level: zstd compression level

        Raises:
            SegmentIOError: If the file or compressor cannot be set up. Any
                file created by this call is removed before raising.
        """
        directory = Path(directory)
        file: Optional[BinaryIO] = None
        path: Optional[Path] = None

        for _ in range(MAX_NAME_ATTEMPTS):
            path = directory / names.next_name()
            try:
                file = open(path, "xb")
                break
            except FileExistsError:
                logger.warning("segment_name_taken", path=str(path))
                continue
            except OSError as exc:
                raise SegmentIOError(f"Cannot create segment {path}: {exc}") from exc

        if file is None or path is None:
            raise SegmentIOError(
                f"No free segment name in {directory} after {MAX_NAME_ATTEMPTS} attempts"
            )

        try:
            cctx = zstd.ZstdCompressor(level=level, write_checksum=True)
            stream = cctx.stream_writer(file, closefd=True)
            stream.write(SEGMENT_MAGIC)
        except (OSError, zstd.ZstdError) as exc:
            file.close()
            _unlink_quietly(path)
            raise SegmentIOError(f"Cannot initialize compressor for {path}: {exc}") from exc

        logger.info("segment_created", file_name=path.name, level=level)
        return cls(path, file, stream)

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def tainted(self) -> bool:
        return self._tainted

    def append(self, record: Record) -> None:
        """
        Write one framed record and flush it through to the file.

        Raises:
            RuntimeError: If the writer was already finalized
            SegmentIOError: If the write or flush fails (writer becomes tainted)
        """
        if self._finalized:
            raise RuntimeError("Segment writer is already finalized")
        if self._tainted:
            raise SegmentIOError(f"Segment writer {self.name} is tainted")

        frame = encode_frame(record)
        try:
            self._stream.write(frame)
            # FLUSH_BLOCK ends the current zstd block and flushes the file,
            # so readers see the record before finalize
            self._stream.flush(zstd.FLUSH_BLOCK)
        except (OSError, ValueError, zstd.ZstdError) as exc:
            self._tainted = True
            raise SegmentIOError(f"Write to segment {self.name} failed: {exc}") from exc

        self.record_count += 1
        self.payload_bytes += len(record.payload)

    def finalize(self) -> None:
        """
        Write the zstd frame epilogue and close the file.

        Raises:
            RuntimeError: If called twice
            SegmentIOError: If the epilogue write or close fails
        """
        if self._finalized:
            raise RuntimeError("Segment writer is already finalized")
        self._finalized = True

        try:
            self._stream.close()
        except (OSError, ValueError, zstd.ZstdError) as exc:
            if not self._file.closed:
                try:
                    self._file.close()
                except OSError:
                    logger.warning("segment_close_failed", file_name=self.name)
            raise SegmentIOError(f"Finalize of segment {self.name} failed: {exc}") from exc

        logger.info(
            "segment_finalized",
            file_name=self.name,
            records=self.record_count,
            payload_bytes=self.payload_bytes,
            tainted=self._tainted,
        )

    def __repr__(self) -> str:
        return (
            f"SegmentWriter(name={self.name!r}, records={self.record_count}, "
            f"finalized={self._finalized}, tainted={self._tainted})"
        )


def _unlink_quietly(path: Path) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("orphan_segment_cleanup_failed", path=str(path))


__all__ = ["SegmentWriter"]
