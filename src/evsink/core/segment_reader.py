"""
Segment reader: decompress a segment file and iterate its records.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional

import zstandard as zstd

from evsink.core.errors import FrameError
from evsink.core.framing import iter_frames, read_magic
from evsink.core.models import Record

READ_CHUNK_SIZE = 64 * 1024


class _DecompressedStream:
    """
    Readable view of the decompressed content of a zstd file.

    Output is produced per zstd block, so a frame that was never finished
    (a live segment, or one cut short by a crash) still yields every block
    that was flushed. Consecutive frames are decoded back to back.
    """

    def __init__(self, source: BinaryIO, chunk_size: int = READ_CHUNK_SIZE):
        self._source = source
        self._chunk_size = chunk_size
        self._dctx = zstd.ZstdDecompressor()
        self._dobj: Optional[zstd.ZstdDecompressionObj] = None
        self._buffer = bytearray()
        self._source_exhausted = False

    @property
    def frame_complete(self) -> bool:
        """True once all input is consumed and the last frame had its end marker."""
        return self._source_exhausted and (self._dobj is None or self._dobj.eof)

    def _feed(self, data: bytes) -> None:
        while data:
            if self._dobj is None or self._dobj.eof:
                self._dobj = self._dctx.decompressobj()
            self._buffer += self._dobj.decompress(data)
            data = self._dobj.unused_data if self._dobj.eof else b""

    def read(self, size: int) -> bytes:
        while len(self._buffer) < size and not self._source_exhausted:
            chunk = self._source.read(self._chunk_size)
            if chunk:
                self._feed(chunk)
            else:
                self._source_exhausted = True
        out = bytes(self._buffer[:size])
        del self._buffer[:size]
        return out


class SegmentReader:
    """
    Reads records back from a completed (or live) segment.

    In strict mode a segment without its zstd end marker raises FrameError
    after the last complete record. A live segment has no end marker yet;
    open it with strict=False to stop at the last flushed record instead.
    """

    def __init__(self, path: str | Path, strict: bool = True):
        self.path = Path(path)
        self.strict = strict
        self._file: Optional[BinaryIO] = None

    def open(self) -> "SegmentReader":
        if self._file is None:
            self._file = open(self.path, "rb")
        return self

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __iter__(self) -> Iterator[Record]:
        self.open()
        self._file.seek(0)
        stream = _DecompressedStream(self._file)
        try:
            if not read_magic(stream, allow_empty=not self.strict):
                return
            yield from iter_frames(stream, strict=self.strict)
        except zstd.ZstdError as exc:
            if self.strict:
                raise FrameError(f"Corrupt compressed stream in {self.path}: {exc}") from exc
            return

        if self.strict and not stream.frame_complete:
            raise FrameError(f"Segment {self.path} ends without a zstd end marker")

    def records(self) -> List[Record]:
        return list(self)

    def __enter__(self) -> "SegmentReader":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def read_segment(path: str | Path, strict: bool = True) -> List[Record]:
    """Return every record stored in the segment at `path`, in order."""
    with SegmentReader(path, strict=strict) as reader:
        return reader.records()


__all__ = ["SegmentReader", "read_segment"]
