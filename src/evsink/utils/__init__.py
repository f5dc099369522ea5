"""
Utility helpers for evsink.
"""

from .rfc3339 import format_rfc3339, parse_rfc3339
from .segment_name import SegmentNameGenerator

__all__ = ["SegmentNameGenerator", "format_rfc3339", "parse_rfc3339"]
