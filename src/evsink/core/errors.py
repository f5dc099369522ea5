"""Error taxonomy for the event sink."""


class SinkError(Exception):
    """Base class for all evsink errors."""


class PayloadTooLargeError(SinkError):
    """Raised when an event body exceeds the configured cap (before any I/O)."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Payload too large: {size} bytes (max {limit})")
        self.size = size
        self.limit = limit


class SegmentIOError(SinkError):
    """Raised when creating, writing, flushing, finalizing or scanning segments fails."""


class SinkClosedError(SegmentIOError):
    """Raised when a write or rotation is attempted after shutdown finalization."""


class MalformedSegmentNameError(SinkError):
    """Raised when a requested segment name is not an RFC 3339 timestamp."""


class SegmentNotFoundError(SinkError):
    """Raised when a well-formed segment name has no file on disk."""


class FrameError(ValueError):
    """Raised when a segment stream holds a corrupt or truncated frame."""


__all__ = [
    "SinkError",
    "PayloadTooLargeError",
    "SegmentIOError",
    "SinkClosedError",
    "MalformedSegmentNameError",
    "SegmentNotFoundError",
    "FrameError",
]
