"""Segment catalog package."""

from evsink.catalog.segment_catalog import SegmentCatalog

__all__ = ["SegmentCatalog"]
