import asyncio
import threading
from datetime import datetime, timedelta

import pytest
from freezegun import freeze_time

from gws.schemas.entities import Entity
from gws.services.link_store import MemoryAvailabilityCodeStore, MemoryShortLinkStore
from gws.services.sweeper import IN_PROGRESS_STATUS, SCHEDULED_STATUS, ExpirySweeper, StatusSweeper


class BrokenStore:
    retention = timedelta(days=7)

    def purge_older_than(self, cutoff):
        raise RuntimeError("database is locked")


def test_expiry_sweep_uses_separate_retention_windows():
    """Test links go after 7 days while availability codes live for 30."""
    short_links = MemoryShortLinkStore()
    codes = MemoryAvailabilityCodeStore()
    sweeper = ExpirySweeper(short_links, codes)

    with freeze_time("2025-03-01 09:00:00") as frozen:
        link = short_links.create("https://example.com/pay")
        code = codes.create("recLead1", "recTech1")

        frozen.tick(timedelta(days=10))
        result = sweeper.sweep()
        assert result.short_links_removed == 1
        assert result.availability_codes_removed == 0
        assert not result.failed
        assert short_links.resolve(link) is None
        assert codes.resolve(code) is not None

        frozen.tick(timedelta(days=21))
        result = sweeper.sweep()
        assert result.availability_codes_removed == 1
        assert len(codes) == 0


def test_expiry_sweep_isolates_failing_store():
    codes = MemoryAvailabilityCodeStore()
    sweeper = ExpirySweeper(BrokenStore(), codes)

    with freeze_time("2025-03-01 09:00:00") as frozen:
        codes.create("recLead1", "recTech1")
        frozen.tick(timedelta(days=31))
        result = sweeper.sweep()

    assert result.failed
    assert result.short_links_removed == 0
    assert result.availability_codes_removed == 1


class ThreadRecordingSweeper(ExpirySweeper):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.threads = []

    def sweep(self, now=None):
        self.threads.append(threading.get_ident())
        return super().sweep(now)


@pytest.mark.anyio
async def test_expiry_loop_sweeps_in_worker_thread():
    sweeper = ThreadRecordingSweeper(MemoryShortLinkStore(), MemoryAvailabilityCodeStore(), interval_seconds=3600)
    task = asyncio.create_task(sweeper.run_forever())
    for _ in range(100):
        if sweeper.threads:
            break
        await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(sweeper.threads) == 1
    assert sweeper.threads[0] != threading.get_ident()


@pytest.mark.anyio
async def test_status_sweep_moves_due_jobs(record_store):
    """Test only Scheduled jobs whose time has passed move to In Progress."""
    now = datetime(2025, 3, 1, 9, 0, 0)
    record_store.add_entity(Entity(id="recDue", status=SCHEDULED_STATUS, scheduled_at=now - timedelta(minutes=5)))
    record_store.add_entity(Entity(id="recLater", status=SCHEDULED_STATUS, scheduled_at=now + timedelta(hours=2)))
    record_store.add_entity(Entity(id="recUndated", status=SCHEDULED_STATUS))
    record_store.add_entity(Entity(id="recDone", status="Completed", scheduled_at=now - timedelta(days=1)))

    moved = await StatusSweeper(record_store).sweep(now)

    assert moved == 1
    assert record_store.entities["recDue"].status == IN_PROGRESS_STATUS
    assert record_store.entities["recLater"].status == SCHEDULED_STATUS
    assert record_store.entities["recUndated"].status == SCHEDULED_STATUS
    assert record_store.entities["recDone"].status == "Completed"
