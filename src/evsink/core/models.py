"""
Event sink data models.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from evsink.core.constants import MAX_PAYLOAD_BYTES

_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1


@dataclass(frozen=True)
class Record:
    """
    A single client-submitted event.

    Attributes:
        received_at: Server-observed arrival time, Unix seconds (signed 64-bit)
        payload: Raw event bytes, at most MAX_PAYLOAD_BYTES
    """

    received_at: int
    payload: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.payload, bytes):
            raise TypeError(f"Payload must be bytes, got {type(self.payload)}")
        if not _I64_MIN <= self.received_at <= _I64_MAX:
            raise ValueError(f"received_at out of int64 range: {self.received_at}")
        if len(self.payload) > MAX_PAYLOAD_BYTES:
            raise ValueError(
                f"Payload too large: {len(self.payload)} bytes (max {MAX_PAYLOAD_BYTES})"
            )

    @classmethod
    def now(cls, payload: bytes, when: Optional[datetime] = None) -> "Record":
        """Build a record stamped with the current (or given) UTC second."""
        moment = when or datetime.now(timezone.utc)
        return cls(received_at=int(moment.timestamp()), payload=payload)

    def __repr__(self) -> str:
        return f"Record(received_at={self.received_at}, payload_len={len(self.payload)})"


@dataclass
class SegmentInfo:
    """
    Catalog entry for one segment file.

    compressed_size_estimate is the current on-disk length; for the live
    segment it only reflects what has been flushed so far.
    """

    name: str
    compressed_size_estimate: int
    live: bool = False


__all__ = ["Record", "SegmentInfo"]
