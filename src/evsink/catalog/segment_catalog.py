from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from evsink.core.constants import SEGMENT_SUFFIX
from evsink.core.errors import (
    MalformedSegmentNameError,
    SegmentIOError,
    SegmentNotFoundError,
)
from evsink.core.models import SegmentInfo
from evsink.utils.logging import get_logger
from evsink.utils.rfc3339 import parse_rfc3339

logger = get_logger(__name__)


class SegmentCatalog:
    """Read-only view of the segment files in a data directory.

    The directory listing is the catalog: there is no index or manifest.
    """

    def __init__(self, directory: str | Path, suffix: str = SEGMENT_SUFFIX):
        self.directory = Path(directory)
        self.suffix = suffix

    def _stem(self, file_name: str) -> Optional[str]:
        if not file_name.endswith(self.suffix):
            return None
        stem = file_name[: -len(self.suffix)]
        if parse_rfc3339(stem) is None:
            return None
        return stem

    def list_segments(self, live_name: Optional[str] = None) -> List[SegmentInfo]:
        """
        Enumerate segment files sorted by name (chronological order).

        Args:
            live_name: File name of the live segment, flagged with live=True

        Raises:
            SegmentIOError: If the directory cannot be scanned
        """
        items: List[SegmentInfo] = []
        try:
            with os.scandir(self.directory) as entries:
                for entry in entries:
                    stem = self._stem(entry.name)
                    if stem is None or not entry.is_file():
                        continue
                    try:
                        size = entry.stat().st_size
                    except FileNotFoundError:
                        # removed between listing and stat
                        continue
                    items.append(
                        SegmentInfo(
                            name=stem,
                            compressed_size_estimate=size,
                            live=entry.name == live_name,
                        )
                    )
        except OSError as exc:
            raise SegmentIOError(f"Cannot scan {self.directory}: {exc}") from exc

        items.sort(key=lambda item: item.name)
        return items

    def segment_path(self, name: str) -> Path:
        """
        Resolve a segment name (RFC 3339 timestamp) to its file.

        Raises:
            MalformedSegmentNameError: If `name` is not an RFC 3339 timestamp
            SegmentNotFoundError: If no such segment exists
        """
        if parse_rfc3339(name) is None:
            raise MalformedSegmentNameError(f"Not an RFC 3339 timestamp: {name!r}")

        path = self.directory / f"{name}{self.suffix}"
        if not path.is_file():
            raise SegmentNotFoundError(f"Segment not found: {name}")
        return path


__all__ = ["SegmentCatalog"]
