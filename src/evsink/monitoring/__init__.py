"""
Monitoring utilities for evsink.
"""

from evsink.monitoring.metrics import (
    CONTENT_TYPE_LATEST,
    EVENTS_REJECTED,
    EVENTS_STORED,
    ROTATIONS,
    WRITER_ACTIVE,
    generate_latest,
)

__all__ = [
    "EVENTS_STORED",
    "EVENTS_REJECTED",
    "ROTATIONS",
    "WRITER_ACTIVE",
    "CONTENT_TYPE_LATEST",
    "generate_latest",
]
