"""Prometheus metrics for evsink components."""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Counters
EVENTS_STORED = Counter("evsink_events_stored_total", "Number of events appended")
EVENT_BYTES_STORED = Counter(
    "evsink_event_bytes_stored_total", "Uncompressed payload bytes appended"
)
EVENTS_REJECTED = Counter(
    "evsink_events_rejected_total", "Events rejected before or during append", ["reason"]
)
SEGMENTS_CREATED = Counter("evsink_segments_created_total", "Segment files created")
SEGMENT_CREATE_FAILURES = Counter(
    "evsink_segment_create_failures_total", "Segment creation failures"
)
SEGMENTS_FINALIZED = Counter(
    "evsink_segments_finalized_total", "Segment finalizations", ["outcome"]
)
ROTATIONS = Counter(
    "evsink_rotations_total", "Segment rotations", ["trigger", "status"]
)

# Gauges
WRITER_ACTIVE = Gauge(
    "evsink_writer_active", "1 when a segment writer is accepting appends, else 0"
)

# Histograms
APPEND_LATENCY = Histogram(
    "evsink_append_latency_seconds",
    "Time spent inside the append critical section",
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1),
)

__all__ = [
    "EVENTS_STORED",
    "EVENT_BYTES_STORED",
    "EVENTS_REJECTED",
    "SEGMENTS_CREATED",
    "SEGMENT_CREATE_FAILURES",
    "SEGMENTS_FINALIZED",
    "ROTATIONS",
    "WRITER_ACTIVE",
    "APPEND_LATENCY",
    "CONTENT_TYPE_LATEST",
    "generate_latest",
]
