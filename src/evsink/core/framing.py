"""
Record framing for segment streams.

Decompressed segment layout:
    SEGMENT_MAGIC (8 bytes)
    frame*

Frame layout (little endian):
    Payload length (4 bytes) - length of the payload only
    CRC32 (4 bytes) - checksum of received_at bytes + payload
    Received at (8 bytes) - signed Unix seconds
    Payload (variable)
"""

import io
import zlib
from typing import BinaryIO, Iterator, List

from evsink.core.constants import (
    FRAME_HEADER_SIZE,
    FRAME_HEADER_STRUCT,
    MAX_PAYLOAD_BYTES,
    RECEIVED_AT_STRUCT,
    SEGMENT_MAGIC,
)
from evsink.core.errors import FrameError
from evsink.core.models import Record


def _checksum(received_at: int, payload: bytes) -> int:
    crc = zlib.crc32(RECEIVED_AT_STRUCT.pack(received_at))
    return zlib.crc32(payload, crc) & 0xFFFFFFFF


def encode_frame(record: Record) -> bytes:
    """
    Serialize one record into a self-delimiting frame.

    Args:
        record: Record to encode

    Returns:
        Frame bytes, to be written to the compressor in a single call
    """
    header = FRAME_HEADER_STRUCT.pack(
        len(record.payload),
        _checksum(record.received_at, record.payload),
        record.received_at,
    )
    return header + record.payload


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read up to `size` bytes, looping over short reads until EOF."""
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def read_magic(stream: BinaryIO, allow_empty: bool = False) -> bool:
    """
    Consume and validate the segment magic at the start of a stream.

    Returns False for an empty stream when allow_empty is set (a live
    segment whose first block has not been flushed yet).
    """
    magic = _read_exact(stream, len(SEGMENT_MAGIC))
    if not magic and allow_empty:
        return False
    if magic != SEGMENT_MAGIC:
        raise FrameError(f"Invalid segment magic: {magic!r}")
    return True


def iter_frames(stream: BinaryIO, strict: bool = True) -> Iterator[Record]:
    """
    Yield records from a decompressed frame stream positioned after the magic.

    Args:
        stream: Readable binary stream of concatenated frames
        strict: If True, a truncated trailing frame raises FrameError;
                otherwise iteration stops silently before it (useful for
                a live segment whose last block is still being flushed)

    Raises:
        FrameError: On CRC mismatch, invalid length, or (strict) truncation
    """
    while True:
        header = _read_exact(stream, FRAME_HEADER_SIZE)
        if not header:
            return
        if len(header) < FRAME_HEADER_SIZE:
            if strict:
                raise FrameError(
                    f"Truncated frame header: expected {FRAME_HEADER_SIZE} bytes, "
                    f"got {len(header)}"
                )
            return

        length, crc, received_at = FRAME_HEADER_STRUCT.unpack(header)
        if length > MAX_PAYLOAD_BYTES:
            raise FrameError(f"Invalid payload length: {length}")

        payload = _read_exact(stream, length)
        if len(payload) != length:
            if strict:
                raise FrameError(
                    f"Truncated frame payload: expected {length} bytes, got {len(payload)}"
                )
            return

        computed = _checksum(received_at, payload)
        if computed != crc:
            raise FrameError(f"CRC mismatch: expected {crc}, computed {computed}")

        yield Record(received_at=received_at, payload=payload)


def decode_frames(data: bytes, strict: bool = True) -> List[Record]:
    """Decode a complete decompressed segment (magic + frames) held in memory."""
    stream = io.BytesIO(data)
    read_magic(stream)
    return list(iter_frames(stream, strict=strict))


__all__ = ["encode_frame", "iter_frames", "decode_frames", "read_magic"]
