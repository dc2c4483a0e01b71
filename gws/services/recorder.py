"""Technician availability responses.

A response reaches ``AvailabilityRecorder.record_response`` either from a
/ty/<code> or /tn/<code> link click or from a YES/NO SMS reply. Every response
is appended to the engagement's free-text log; nothing in the log is ever
rewritten. The engagement's status is stamped on every response and never
closed here: picking a tech is done by hand.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from gws.core.exceptions import EntityNotFound, ResponderNotFound
from gws.schemas.entities import Entity, MessageRecord, Responder
from gws.services.collaborators import Notifier, RecordStore
from gws.utils.clock import display_timestamp, utcnow
from gws.utils.locks import KeyedLock

logger = logging.getLogger(__name__)

AVAILABILITY_CHECK_STATUS = "Tech Availability Check"


class Answer(str, Enum):
    YES = "YES"
    NO = "NO"

    @classmethod
    def parse(cls, text: str) -> Optional["Answer"]:
        cleaned = (text or "").strip().upper()
        return cls(cleaned) if cleaned in cls.__members__ else None


class ResponseSource(str, Enum):
    LINK = "link"
    SMS = "sms"


@dataclass
class RecordedResponse:
    entity: Entity
    responder: Responder
    answer: Answer
    admin_notified: bool


def append_log_line(existing: str, line: str) -> str:
    return f"{existing}\n{line}" if existing else line


class AvailabilityRecorder:
    def __init__(self, record_store: RecordStore, notifier: Notifier,
                 admin_phone: Optional[str] = None, locks: Optional[KeyedLock] = None):
        self.record_store = record_store
        self.notifier = notifier
        self.admin_phone = admin_phone
        # Shared with the dispatcher: both append to the same log field
        self.locks = locks or KeyedLock()

    async def record_response(self, entity_id: str, responder_id: str, answer: Answer,
                              source: ResponseSource = ResponseSource.LINK) -> RecordedResponse:
        """Append the response to the engagement and notify the operator.

        Raises EntityNotFound / ResponderNotFound before anything is written.
        Record Store failures propagate; notification failures do not.
        """
        async with self.locks.hold(entity_id):
            entity = await self.record_store.get_entity(entity_id)
            if entity is None:
                logger.warning(f"Availability response for missing engagement {entity_id}")
                raise EntityNotFound(entity_id)
            responder = await self.record_store.get_responder(responder_id)
            if responder is None:
                logger.warning(f"Availability response from missing tech {responder_id}")
                raise ResponderNotFound(responder_id)

            line = f"{responder.display_name} - {answer.value} ({display_timestamp(utcnow())})"
            available = list(entity.available_responder_ids)
            if answer is Answer.YES:
                if responder.id not in available:
                    available.append(responder.id)
            elif source is ResponseSource.SMS:
                # NOTE: only an SMS "NO" withdraws an earlier YES. A "NO" link click
                # leaves Available Techs alone. Both paths behave as the ops team
                # currently relies on; do not unify without asking them.
                available = [rid for rid in available if rid != responder.id]

            updated = await self.record_store.update_entity(entity_id, {
                'availability_log': append_log_line(entity.availability_log, line),
                'available_responder_ids': available,
                'status': AVAILABILITY_CHECK_STATUS,
            })

        logger.info(f"✓ Recorded {answer.value} response from {responder.display_name} for {entity_id} via {source.value}")

        if source is ResponseSource.LINK:
            await self._log_link_response(updated, responder, answer)
        notified = await self._notify_admin(updated, responder, answer)
        return RecordedResponse(entity=updated, responder=responder, answer=answer, admin_notified=notified)

    async def _log_link_response(self, entity: Entity, responder: Responder, answer: Answer):
        try:
            await self.record_store.log_message(MessageRecord(
                direction="Inbound",
                from_=responder.phone,
                to="System",
                content=f"Availability response: {answer.value}",
                status="Received",
                entity_id=entity.id,
                responder_id=responder.id,
            ))
        except Exception:
            logger.exception(f"Failed to log availability response for {entity.id}")

    async def _notify_admin(self, entity: Entity, responder: Responder, answer: Answer) -> bool:
        if not self.admin_phone:
            logger.warning("ADMIN_PHONE not set; skipping availability notification")
            return False
        verdict = "✅ AVAILABLE" if answer is Answer.YES else "❌ NOT AVAILABLE"
        body = (
            f"📋 {responder.display_name} is {verdict} for:\n\n"
            f"{entity.name or entity.id} - {entity.address}\n\nView in Airtable"
        )
        try:
            await self.notifier.send_message(
                self.admin_phone, body, {'entity_id': entity.id, 'responder_id': responder.id}
            )
            return True
        except Exception:
            logger.exception(f"Error sending admin notification for {entity.id}")
            return False
