import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest
import zstandard as zstd

# Ensure src/ is on sys.path for local test runs without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from evsink.core.constants import SEGMENT_MAGIC, SEGMENT_SUFFIX  # noqa: E402
from evsink.core.errors import FrameError, SegmentIOError  # noqa: E402
from evsink.core.framing import decode_frames  # noqa: E402
from evsink.core.models import Record  # noqa: E402
from evsink.core.segment_reader import SegmentReader, read_segment  # noqa: E402
from evsink.core.segment_writer import SegmentWriter  # noqa: E402
from evsink.utils.segment_name import SegmentNameGenerator  # noqa: E402

FIXED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _names() -> SegmentNameGenerator:
    return SegmentNameGenerator(clock=lambda: FIXED)


@pytest.mark.unit
def test_write_finalize_and_read_back(data_dir: Path) -> None:
    writer = SegmentWriter.create(data_dir, _names())
    records = [Record(received_at=i, payload=f"event-{i}".encode()) for i in range(5)]

    for record in records:
        writer.append(record)
    writer.finalize()

    assert writer.name == "2024-01-01T00:00:00.000000Z" + SEGMENT_SUFFIX
    assert writer.record_count == 5
    assert writer.finalized
    assert read_segment(writer.path) == records


@pytest.mark.unit
def test_finalized_segment_is_a_standard_zstd_stream(data_dir: Path) -> None:
    writer = SegmentWriter.create(data_dir, _names())
    writer.append(Record(received_at=42, payload=b"hello world"))
    writer.finalize()

    raw = zstd.ZstdDecompressor().decompressobj().decompress(writer.path.read_bytes())

    assert raw.startswith(SEGMENT_MAGIC)
    assert decode_frames(raw) == [Record(received_at=42, payload=b"hello world")]


@pytest.mark.unit
def test_empty_segment_is_valid(data_dir: Path) -> None:
    writer = SegmentWriter.create(data_dir, _names())
    writer.finalize()

    assert read_segment(writer.path) == []


@pytest.mark.unit
def test_appended_records_are_readable_before_finalize(data_dir: Path) -> None:
    writer = SegmentWriter.create(data_dir, _names())
    payloads = [b"a", b"b", os.urandom(70_000), b"last"]
    for i, payload in enumerate(payloads):
        writer.append(Record(received_at=i, payload=payload))

    assert [r.payload for r in read_segment(writer.path, strict=False)] == payloads

    writer.finalize()
    assert [r.payload for r in read_segment(writer.path)] == payloads


@pytest.mark.unit
def test_strict_read_of_live_segment_raises_after_flushed_records(data_dir: Path) -> None:
    writer = SegmentWriter.create(data_dir, _names())
    writer.append(Record(received_at=1, payload=b"a"))
    writer.append(Record(received_at=2, payload=b"b"))

    seen = []
    with pytest.raises(FrameError, match="end marker"):
        for record in SegmentReader(writer.path):
            seen.append(record.payload)

    assert seen == [b"a", b"b"]
    writer.finalize()


@pytest.mark.unit
def test_concatenated_frames_are_read_back_to_back(data_dir: Path) -> None:
    first = SegmentWriter.create(data_dir, _names())
    first.append(Record(received_at=1, payload=b"one"))
    first.finalize()
    second = SegmentWriter.create(data_dir, _names())
    second.append(Record(received_at=2, payload=b"two"))
    second.finalize()

    # the second file minus its own magic is a plain continuation of frames
    dctx = zstd.ZstdDecompressor()
    tail = dctx.decompressobj().decompress(second.path.read_bytes())[len(SEGMENT_MAGIC):]
    combined = data_dir / ("2024-03-01T00:00:00.000000Z" + SEGMENT_SUFFIX)
    combined.write_bytes(first.path.read_bytes() + zstd.ZstdCompressor().compress(tail))

    assert [r.payload for r in read_segment(combined)] == [b"one", b"two"]


@pytest.mark.unit
def test_double_finalize_and_append_after_finalize_are_logic_errors(data_dir: Path) -> None:
    writer = SegmentWriter.create(data_dir, _names())
    writer.finalize()

    with pytest.raises(RuntimeError):
        writer.finalize()
    with pytest.raises(RuntimeError):
        writer.append(Record(received_at=0, payload=b"late"))


@pytest.mark.unit
def test_taken_name_is_skipped(data_dir: Path) -> None:
    (data_dir / ("2024-01-01T00:00:00.000000Z" + SEGMENT_SUFFIX)).write_bytes(b"existing")

    writer = SegmentWriter.create(data_dir, _names())
    writer.finalize()

    assert writer.name == "2024-01-01T00:00:00.000001Z" + SEGMENT_SUFFIX
    assert (data_dir / ("2024-01-01T00:00:00.000000Z" + SEGMENT_SUFFIX)).read_bytes() == b"existing"


@pytest.mark.unit
def test_create_in_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(SegmentIOError):
        SegmentWriter.create(tmp_path / "missing", _names())


@pytest.mark.unit
def test_compressor_failure_leaves_no_orphan_file(data_dir: Path, monkeypatch) -> None:
    def broken_compressor(*args, **kwargs):
        raise zstd.ZstdError("cannot allocate compression context")

    monkeypatch.setattr(zstd, "ZstdCompressor", broken_compressor)

    with pytest.raises(SegmentIOError):
        SegmentWriter.create(data_dir, _names())

    assert list(data_dir.iterdir()) == []


@pytest.mark.unit
def test_failed_append_taints_writer(data_dir: Path) -> None:
    writer = SegmentWriter.create(data_dir, _names())
    real_stream = writer._stream
    writer._stream = Mock(write=Mock(side_effect=OSError("No space left on device")))

    with pytest.raises(SegmentIOError):
        writer.append(Record(received_at=0, payload=b"lost"))

    assert writer.tainted
    assert writer.record_count == 0
    with pytest.raises(SegmentIOError, match="tainted"):
        writer.append(Record(received_at=0, payload=b"refused"))

    writer._stream = real_stream
    writer.finalize()
    assert read_segment(writer.path) == []


@pytest.mark.unit
def test_strict_reader_rejects_unfinished_segment(data_dir: Path) -> None:
    writer = SegmentWriter.create(data_dir, _names())
    writer.append(Record(received_at=1, payload=os.urandom(1000)))
    writer.finalize()

    truncated = data_dir / ("2024-02-01T00:00:00.000000Z" + SEGMENT_SUFFIX)
    truncated.write_bytes(writer.path.read_bytes()[:-20])

    with SegmentReader(truncated, strict=False) as reader:
        assert len(reader.records()) <= 1
    with pytest.raises(FrameError):
        read_segment(truncated)
