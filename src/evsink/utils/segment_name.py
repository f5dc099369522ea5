# segment_name.py
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from evsink.core.constants import SEGMENT_SUFFIX
from evsink.utils.rfc3339 import format_rfc3339


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SegmentNameGenerator:
    """
    Generator of segment file names:
        <YYYY-MM-DDTHH:MM:SS.ffffffZ><suffix>

    Names are strictly increasing within one process. If the clock returns
    an instant at or before the last issued one (same microsecond, or the
    clock stepped back) the name is bumped to last + 1 microsecond, so two
    rotations never share a file name and name order stays chronological.
    """

    def __init__(
        self,
        suffix: str = SEGMENT_SUFFIX,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not suffix:
            raise ValueError("suffix must be non-empty")
        self.suffix = suffix
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self._last: Optional[datetime] = None

    def _next_instant(self) -> datetime:
        with self._lock:
            now = self._clock().astimezone(timezone.utc)
            if self._last is not None and now <= self._last:
                now = self._last + timedelta(microseconds=1)
            self._last = now
            return now

    def next_name(self) -> str:
        return format_rfc3339(self._next_instant()) + self.suffix
