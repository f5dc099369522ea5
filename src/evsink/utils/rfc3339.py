"""RFC 3339 timestamp formatting and strict parsing for segment names."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

# date-time per RFC 3339 section 5.6; "T"/"Z" may be lowercase, fraction is optional
_RFC3339_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt](?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})$"
)


def format_rfc3339(moment: datetime) -> str:
    """
    Format a datetime as a UTC RFC 3339 string with microsecond precision.

    Fixed width output keeps lexicographic order equal to chronological order,
    e.g. ``2024-01-01T00:00:00.000000Z``.
    """
    if moment.tzinfo is None:
        raise ValueError("moment must be timezone-aware")
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_rfc3339(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 date-time, returning None for anything else."""
    match = _RFC3339_RE.match(value)
    if not match:
        return None

    frac = match.group("frac")
    offset = match.group("offset")
    if offset in ("Z", "z"):
        offset = "+00:00"

    normalized = f"{match.group('date')}T{match.group('time')}"
    if frac:
        # datetime keeps microseconds only; finer digits are truncated
        normalized += "." + frac[:6].ljust(6, "0")
    normalized += offset

    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


__all__ = ["format_rfc3339", "parse_rfc3339"]
