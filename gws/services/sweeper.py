"""Background sweeps.

ExpirySweeper deletes short links and availability codes past their
retention windows (7 and 30 days by default, configured separately).
StatusSweeper moves engagements whose scheduled time has passed from
Scheduled to In Progress. Both loops log and carry on; nothing raised inside
a sweep escapes the loop.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from gws.services.collaborators import RecordStore
from gws.utils.clock import utcnow

logger = logging.getLogger(__name__)

SCHEDULED_STATUS = "Scheduled 📅"
IN_PROGRESS_STATUS = "In Progress 🔧"


@dataclass
class SweepResult:
    short_links_removed: int = 0
    availability_codes_removed: int = 0
    failed: bool = False


class ExpirySweeper:
    def __init__(self, short_links, availability_codes, interval_seconds: int = 86400):
        self.short_links = short_links
        self.availability_codes = availability_codes
        self.interval_seconds = interval_seconds

    def _purge(self, name: str, store, now: datetime) -> Optional[int]:
        try:
            return store.purge_older_than(now - store.retention)
        except Exception:
            logger.exception(f"Expiry sweep failed for {name}")
            return None

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        now = now or utcnow()
        links = self._purge("short links", self.short_links, now)
        codes = self._purge("availability codes", self.availability_codes, now)
        result = SweepResult(
            short_links_removed=links or 0,
            availability_codes_removed=codes or 0,
            failed=links is None or codes is None,
        )
        logger.info(
            f"Expiry sweep removed {result.short_links_removed} short link(s), "
            f"{result.availability_codes_removed} availability code(s)"
        )
        return result

    async def run_forever(self):
        # First pass on boot, then every interval
        while True:
            await run_in_threadpool(self.sweep)
            await asyncio.sleep(self.interval_seconds)


class StatusSweeper:
    def __init__(self, record_store: RecordStore, interval_seconds: int = 900):
        self.record_store = record_store
        self.interval_seconds = interval_seconds

    async def sweep(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        logger.info("🔄 Checking for scheduled jobs that should move to In Progress...")
        entities = await self.record_store.list_entities_by_status(SCHEDULED_STATUS)
        moved = 0
        for entity in entities:
            if entity.scheduled_at is None:
                logger.warning(f"⚠️ Lead {entity.id} has no scheduled date, skipping")
                continue
            if entity.scheduled_at <= now:
                await self.record_store.update_entity(entity.id, {'status': IN_PROGRESS_STATUS})
                logger.info(f"✅ Moved lead {entity.id} to {IN_PROGRESS_STATUS}")
                moved += 1
        return moved

    async def run_forever(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("❌ Error checking scheduled jobs")
