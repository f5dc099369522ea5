import asyncio
import sys
from pathlib import Path

import pytest

# Ensure src/ is on sys.path for local test runs without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from evsink.core.rotation import RotationScheduler  # noqa: E402
from evsink.core.writer_manager import WriterManager  # noqa: E402

pytestmark = pytest.mark.asyncio


@pytest.mark.unit
async def test_interval_must_be_positive(writer_factory) -> None:
    manager = WriterManager("unused", writer_factory=writer_factory)

    with pytest.raises(ValueError):
        RotationScheduler(manager, interval_seconds=0)


@pytest.mark.unit
async def test_first_tick_is_not_immediate(writer_factory) -> None:
    manager = WriterManager("unused", writer_factory=writer_factory)
    await manager.start()
    scheduler = RotationScheduler(manager, interval_seconds=0.5)

    await scheduler.start()
    await asyncio.sleep(0.1)

    assert scheduler.running
    assert scheduler.rotations == 0
    assert len(writer_factory.created) == 1

    await scheduler.stop()
    assert not scheduler.running


@pytest.mark.unit
@pytest.mark.slow
async def test_rotates_on_each_interval(writer_factory) -> None:
    manager = WriterManager("unused", writer_factory=writer_factory)
    await manager.start()
    scheduler = RotationScheduler(manager, interval_seconds=0.05)

    await scheduler.start()
    await asyncio.sleep(0.28)
    await scheduler.stop()

    assert scheduler.rotations >= 2
    assert len(writer_factory.created) == scheduler.rotations + 1
    assert all(w.finalized for w in writer_factory.created[:-1])
    assert manager.live_name == writer_factory.created[-1].name


@pytest.mark.unit
async def test_failed_rotation_keeps_scheduler_running(writer_factory) -> None:
    manager = WriterManager("unused", writer_factory=writer_factory)
    await manager.start()
    writer_factory.fail_creates = 1
    scheduler = RotationScheduler(manager, interval_seconds=0.05)

    await scheduler.start()
    await asyncio.sleep(0.18)
    await scheduler.stop()

    assert writer_factory.created[0].finalized
    assert scheduler.rotations >= 1
    assert manager.is_active


@pytest.mark.unit
async def test_scheduler_exits_once_sink_is_closed(writer_factory) -> None:
    manager = WriterManager("unused", writer_factory=writer_factory)
    await manager.start()
    await manager.shutdown_finalize()
    scheduler = RotationScheduler(manager, interval_seconds=0.02)

    await scheduler.start()
    await asyncio.sleep(0.1)

    assert not scheduler.running
    assert scheduler.rotations == 0
    await scheduler.stop()


@pytest.mark.unit
async def test_stop_without_start_is_noop(writer_factory) -> None:
    scheduler = RotationScheduler(WriterManager("unused", writer_factory=writer_factory))

    await scheduler.stop()

    assert not scheduler.running
