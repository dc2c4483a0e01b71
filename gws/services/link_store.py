"""Short-link and availability-code stores.

Both stores map a 6-character code to an immutable entry. Entries are only
inserted or deleted; ``resolve`` never refreshes an entry, and an entry older
than the store's retention window does not resolve even before the sweeper
has deleted it.

``Memory*`` stores live for the life of the process: a restart invalidates
every link already sent by SMS. ``Sql*`` stores keep them across deploys.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from gws.core.exceptions import GeneratorExhaustion
from gws.db import repository
from gws.utils.clock import utcnow
from gws.utils.encoding import (
    AVAILABILITY_ALPHABET,
    MAX_GENERATION_ATTEMPTS,
    UNAMBIGUOUS_ALPHABET,
    generate_code,
    generate_unique_code,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShortLinkEntry:
    code: str
    target: str
    associated_entity_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class AvailabilityCode:
    code: str
    entity_id: str
    responder_id: str
    created_at: datetime


def _expired(created_at: datetime, retention: timedelta, now: datetime) -> bool:
    return now - created_at > retention


def _stats_payload(entries: List[ShortLinkEntry]) -> dict:
    return {
        "totalLinks": len(entries),
        "links": [
            {
                "code": e.code,
                "associatedEntityId": e.associated_entity_id,
                "createdAt": e.created_at.isoformat(),
            }
            for e in entries
        ],
    }


class MemoryShortLinkStore:
    backend = "memory"

    def __init__(self, retention: timedelta = timedelta(days=7)):
        self.retention = retention
        self._entries: Dict[str, ShortLinkEntry] = {}
        self._lock = threading.Lock()

    def create(self, target: str, associated_entity_id: Optional[str] = None) -> str:
        with self._lock:
            code = generate_unique_code(lambda c: c in self._entries, UNAMBIGUOUS_ALPHABET)
            self._entries[code] = ShortLinkEntry(code, target, associated_entity_id, utcnow())
        logger.info("Short link created: %s -> %s", code, target[:50])
        return code

    def resolve(self, code: str) -> Optional[str]:
        entry = self._entries.get(code)
        if entry is None or _expired(entry.created_at, self.retention, utcnow()):
            return None
        return entry.target

    def remove(self, code: str) -> None:
        with self._lock:
            self._entries.pop(code, None)

    def stats(self) -> dict:
        with self._lock:
            entries = list(self._entries.values())
        return _stats_payload(sorted(entries, key=lambda e: e.created_at))

    def purge_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [code for code, e in self._entries.items() if e.created_at < cutoff]
            for code in stale:
                del self._entries[code]
        return len(stale)


class MemoryAvailabilityCodeStore:
    backend = "memory"

    def __init__(self, retention: timedelta = timedelta(days=30)):
        self.retention = retention
        self._entries: Dict[str, AvailabilityCode] = {}
        self._lock = threading.Lock()

    def create(self, entity_id: str, responder_id: str) -> str:
        with self._lock:
            code = generate_unique_code(lambda c: c in self._entries, AVAILABILITY_ALPHABET)
            self._entries[code] = AvailabilityCode(code, entity_id, responder_id, utcnow())
        logger.info("Availability code %s generated for engagement %s, tech %s", code, entity_id, responder_id)
        return code

    def resolve(self, code: str) -> Optional[AvailabilityCode]:
        entry = self._entries.get(code)
        if entry is None or _expired(entry.created_at, self.retention, utcnow()):
            return None
        return entry

    def remove(self, code: str) -> None:
        with self._lock:
            self._entries.pop(code, None)

    def purge_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [code for code, e in self._entries.items() if e.created_at < cutoff]
            for code in stale:
                del self._entries[code]
        return len(stale)

    def __len__(self):
        return len(self._entries)


class _SqlStore:
    backend = "sql"

    def __init__(self, session_factory, retention: timedelta):
        self.session_factory = session_factory
        self.retention = retention

    def _insert_with_retries(self, alphabet: str, insert) -> str:
        # The primary key is the authority; a lost race surfaces as IntegrityError
        for attempt in range(MAX_GENERATION_ATTEMPTS):
            code = generate_code(alphabet)
            with self.session_factory() as db:
                try:
                    insert(db, code)
                    return code
                except IntegrityError:
                    logger.info(f"Code collision on attempt {attempt + 1}/{MAX_GENERATION_ATTEMPTS}")
        raise GeneratorExhaustion(f"Failed to generate unique code after {MAX_GENERATION_ATTEMPTS} attempts")


class SqlShortLinkStore(_SqlStore):
    def __init__(self, session_factory, retention: timedelta = timedelta(days=7)):
        super().__init__(session_factory, retention)

    def create(self, target: str, associated_entity_id: Optional[str] = None) -> str:
        code = self._insert_with_retries(
            UNAMBIGUOUS_ALPHABET,
            lambda db, c: repository.insert_short_link(db, c, target, associated_entity_id, utcnow()),
        )
        logger.info("Short link created: %s -> %s", code, target[:50])
        return code

    def resolve(self, code: str) -> Optional[str]:
        with self.session_factory() as db:
            row = repository.get_short_link(db, code)
            if row is None or _expired(row.created_at, self.retention, utcnow()):
                return None
            return row.target

    def remove(self, code: str) -> None:
        with self.session_factory() as db:
            repository.delete_short_link(db, code)

    def stats(self) -> dict:
        with self.session_factory() as db:
            rows = repository.list_short_links(db)
            entries = [ShortLinkEntry(r.code, r.target, r.associated_entity_id, r.created_at) for r in rows]
        return _stats_payload(entries)

    def purge_older_than(self, cutoff: datetime) -> int:
        with self.session_factory() as db:
            return repository.purge_short_links(db, cutoff)


class SqlAvailabilityCodeStore(_SqlStore):
    def __init__(self, session_factory, retention: timedelta = timedelta(days=30)):
        super().__init__(session_factory, retention)

    def create(self, entity_id: str, responder_id: str) -> str:
        code = self._insert_with_retries(
            AVAILABILITY_ALPHABET,
            lambda db, c: repository.insert_availability_code(db, c, entity_id, responder_id, utcnow()),
        )
        logger.info("Availability code %s generated for engagement %s, tech %s", code, entity_id, responder_id)
        return code

    def resolve(self, code: str) -> Optional[AvailabilityCode]:
        with self.session_factory() as db:
            row = repository.get_availability_code(db, code)
            if row is None or _expired(row.created_at, self.retention, utcnow()):
                return None
            return AvailabilityCode(row.code, row.entity_id, row.responder_id, row.created_at)

    def remove(self, code: str) -> None:
        with self.session_factory() as db:
            repository.delete_availability_code(db, code)

    def purge_older_than(self, cutoff: datetime) -> int:
        with self.session_factory() as db:
            return repository.purge_availability_codes(db, cutoff)
