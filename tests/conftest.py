import sys
from pathlib import Path
from typing import List

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from evsink.config.config import SinkConfig  # noqa: E402
from evsink.core.errors import SegmentIOError  # noqa: E402
from evsink.core.models import Record  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line(
        "markers",
        "integration: tests that touch the filesystem through the full HTTP stack",
    )
    config.addinivalue_line("markers", "slow: slow-running tests")


class FakeWriter:
    """In-memory stand-in for SegmentWriter."""

    def __init__(self, name: str, fail_append: bool = False, fail_finalize: bool = False):
        self.name = name
        self.fail_append = fail_append
        self.fail_finalize = fail_finalize
        self.records: List[Record] = []
        self.finalized = False

    def append(self, record: Record) -> None:
        if self.finalized:
            raise RuntimeError("Segment writer is already finalized")
        if self.fail_append:
            raise SegmentIOError(f"disk full while writing {self.name}")
        self.records.append(record)

    def finalize(self) -> None:
        if self.finalized:
            raise RuntimeError("Segment writer is already finalized")
        self.finalized = True
        if self.fail_finalize:
            raise SegmentIOError(f"close failed for {self.name}")


class FakeWriterFactory:
    """
    Writer factory for WriterManager that records every writer it hands out.

    Set `fail_creates` to make the next N calls raise SegmentIOError.
    """

    def __init__(self) -> None:
        self.created: List[FakeWriter] = []
        self.fail_creates = 0
        self.fail_append = False
        self.fail_finalize = False

    def __call__(self) -> FakeWriter:
        if self.fail_creates > 0:
            self.fail_creates -= 1
            raise SegmentIOError("cannot create segment")
        writer = FakeWriter(
            f"2024-01-01T00:00:{len(self.created):02d}.000000Z.events.zst",
            fail_append=self.fail_append,
            fail_finalize=self.fail_finalize,
        )
        self.created.append(writer)
        return writer


@pytest.fixture
def writer_factory() -> FakeWriterFactory:
    return FakeWriterFactory()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "segments"
    path.mkdir()
    return path


@pytest.fixture
def sink_config(data_dir: Path) -> SinkConfig:
    return SinkConfig(data_dir=data_dir, log_json=False, log_level="DEBUG")
