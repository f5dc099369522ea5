"""evsink core functionality."""

from .constants import MAX_PAYLOAD_BYTES, SEGMENT_CONTENT_TYPE, SEGMENT_SUFFIX
from .errors import (
    FrameError,
    MalformedSegmentNameError,
    PayloadTooLargeError,
    SegmentIOError,
    SegmentNotFoundError,
    SinkClosedError,
    SinkError,
)
from .framing import decode_frames, encode_frame
from .models import Record, SegmentInfo
from .rotation import RotationScheduler
from .segment_reader import SegmentReader, read_segment
from .segment_writer import SegmentWriter
from .writer_manager import WriterManager

__all__ = [
    "MAX_PAYLOAD_BYTES",
    "SEGMENT_CONTENT_TYPE",
    "SEGMENT_SUFFIX",
    "FrameError",
    "MalformedSegmentNameError",
    "PayloadTooLargeError",
    "SegmentIOError",
    "SegmentNotFoundError",
    "SinkClosedError",
    "SinkError",
    "decode_frames",
    "encode_frame",
    "Record",
    "SegmentInfo",
    "RotationScheduler",
    "SegmentReader",
    "read_segment",
    "SegmentWriter",
    "WriterManager",
]
