"""evsink - append-only HTTP event sink with rotating zstd segments."""

__version__ = "0.1.0"

from .core import (  # noqa: E402
    Record,
    RotationScheduler,
    SegmentInfo,
    SegmentReader,
    SegmentWriter,
    WriterManager,
    read_segment,
)
from .catalog import SegmentCatalog  # noqa: E402
from .utils import SegmentNameGenerator  # noqa: E402

__all__ = [
    "Record",
    "RotationScheduler",
    "SegmentCatalog",
    "SegmentInfo",
    "SegmentNameGenerator",
    "SegmentReader",
    "SegmentWriter",
    "WriterManager",
    "read_segment",
]
