import logging
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from gws.core.exceptions import EntityNotFound, HubError
from gws.schemas.AvailabilityCheckRequest import (
    DEFAULT_AVAILABILITY_TEMPLATE,
    AvailabilityCheckResponse,
    AvailabilityDispatchResult,
)
from gws.schemas.entities import Responder
from gws.services.collaborators import AVAILABILITY_CHECK, Notifier, RecordStore
from gws.services.recorder import append_log_line
from gws.utils.clock import utcnow
from gws.utils.locks import KeyedLock
from gws.utils.templates import missing_variables, render_template

logger = logging.getLogger(__name__)


class AvailabilityDispatcher:
    """Texts technicians a YES/NO availability check for one engagement."""

    def __init__(self, record_store: RecordStore, notifier: Notifier, codes, base_url: str,
                 locks: Optional[KeyedLock] = None):
        self.record_store = record_store
        self.notifier = notifier
        self.codes = codes
        self.base_url = base_url.rstrip("/")
        self.locks = locks or KeyedLock()

    async def _responders(self, responder_ids: Optional[List[str]], results: List[AvailabilityDispatchResult]):
        if not responder_ids:
            return await self.record_store.list_available_responders()
        responders = []
        for responder_id in responder_ids:
            responder = await self.record_store.get_responder(responder_id)
            if responder is None:
                results.append(AvailabilityDispatchResult(responder_id=responder_id, status="failed", error="Tech not found"))
            else:
                responders.append(responder)
        return responders

    async def _send_one(self, entity, responder: Responder, template: str) -> AvailabilityDispatchResult:
        if not responder.phone:
            return AvailabilityDispatchResult(
                responder_id=responder.id, name=responder.display_name, status="failed", error="No phone number"
            )
        code = await run_in_threadpool(self.codes.create, entity.id, responder.id)
        variables = {
            'TECH_NAME': responder.greeting_name,
            'ADDRESS': entity.address or 'TBD',
            'YES_LINK': f"{self.base_url}/ty/{code}",
            'NO_LINK': f"{self.base_url}/tn/{code}",
        }
        missing = missing_variables(template, variables)
        if missing:
            logger.warning(f"Template variables left blank for tech {responder.id}: {', '.join(missing)}")
        message = render_template(template, variables)
        try:
            await self.notifier.send_message(responder.phone, message, {
                'type': AVAILABILITY_CHECK, 'entity_id': entity.id, 'responder_id': responder.id,
            })
        except HubError as e:
            # The tech never received the links
            await run_in_threadpool(self.codes.remove, code)
            logger.error(f"  ✗ Failed to send to tech {responder.id}: {e}")
            return AvailabilityDispatchResult(
                responder_id=responder.id, name=responder.display_name, status="failed", error=str(e)
            )
        except Exception:
            await run_in_threadpool(self.codes.remove, code)
            logger.exception(f"  ✗ Unexpected error sending to tech {responder.id}")
            return AvailabilityDispatchResult(
                responder_id=responder.id, name=responder.display_name, status="failed",
                error="Unexpected error sending SMS",
            )
        logger.info(f"  ✓ Sent to {responder.display_name}")
        return AvailabilityDispatchResult(responder_id=responder.id, name=responder.display_name, status="sent")

    async def dispatch(self, entity_id: str, responder_ids: Optional[List[str]] = None,
                       template: str = DEFAULT_AVAILABILITY_TEMPLATE) -> AvailabilityCheckResponse:
        entity = await self.record_store.get_entity(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)

        results: List[AvailabilityDispatchResult] = []
        responders = await self._responders(responder_ids, results)
        logger.info(f"📤 Sending availability check to {len(responders)} techs for {entity_id}")
        for responder in responders:
            results.append(await self._send_one(entity, responder, template))

        async with self.locks.hold(entity_id):
            current = await self.record_store.get_entity(entity_id) or entity
            line = f"Availability check sent to {len(responders)} techs at {utcnow().isoformat()}Z"
            await self.record_store.update_entity(entity_id, {
                'availability_requested': True,
                'availability_log': append_log_line(current.availability_log, line),
            })

        return AvailabilityCheckResponse(entity_id=entity_id, techs_contacted=len(responders), results=results)
