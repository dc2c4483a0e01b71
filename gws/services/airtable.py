"""Airtable-backed Record Store.

Engagements, Techs and Messages are read and written through the Airtable
REST API. Only the fields this service uses are mapped; everything else on a
record is left untouched by PATCH.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import httpx

from gws.core.config import Settings
from gws.core.exceptions import ConfigurationError
from gws.schemas.entities import Entity, MessageRecord, Responder
from gws.services.collaborators import RecordStore
from gws.services.http import send_request
from gws.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

# Entity attribute -> Engagements column
ENGAGEMENT_FIELDS = {
    'status': 'Status',
    'availability_log': 'Tech Availability Responses',
    'available_responder_ids': 'Available Techs',
    'availability_requested': 'Tech Availability Requested',
    'scheduled_at': 'Scheduled 📅',
    'photo_urls': 'Photos',
}


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _first(value):
    # Lookup/rollup columns come back as single-element lists
    if isinstance(value, list):
        return value[0] if value else ''
    return value or ''


def _parse_datetime(value) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def entity_from_record(record: Dict) -> Entity:
    fields = record.get('fields', {})
    first = fields.get('First Name') or _first(fields.get('First Name (from Customer)'))
    last = fields.get('Last Name') or _first(fields.get('Last Name (from Customer)'))
    photos = fields.get('Photos') or []
    return Entity(
        id=record['id'],
        name=" ".join(part for part in (first, last) if part),
        address=fields.get('Address/Location', '') or '',
        status=fields.get('Status'),
        availability_log=fields.get('Tech Availability Responses', '') or '',
        available_responder_ids=list(fields.get('Available Techs') or []),
        availability_requested=bool(fields.get('Tech Availability Requested', False)),
        scheduled_at=_parse_datetime(fields.get('Scheduled 📅')),
        photo_urls=[p['url'] if isinstance(p, dict) else p for p in photos],
    )


def responder_from_record(record: Dict) -> Responder:
    fields = record.get('fields', {})
    return Responder(
        id=record['id'],
        first_name=fields.get('First Name', '') or '',
        last_name=fields.get('Last Name', '') or '',
        name=fields.get('Name', '') or '',
        phone=fields.get('Phone'),
        availability_status=fields.get('Availability Status'),
    )


def message_from_record(record: Dict) -> MessageRecord:
    fields = record.get('fields', {})
    return MessageRecord(
        id=record.get('id'),
        direction=fields.get('Direction', 'Outbound'),
        to=fields.get('To'),
        from_=fields.get('From'),
        content=fields.get('Content', '') or '',
        status=fields.get('Status', 'Sent'),
        kind=fields.get('Kind'),
        entity_id=_first(fields.get('Related Lead')) or None,
        responder_id=_first(fields.get('Related Tech')) or None,
        created_at=_parse_datetime(fields.get('Created') or record.get('createdTime')),
    )


def engagement_fields(updates: Dict) -> Dict:
    fields = {}
    for key, value in updates.items():
        if key not in ENGAGEMENT_FIELDS:
            raise ValueError(f"Unknown engagement field: {key}")
        if key == 'scheduled_at' and value is not None:
            value = value.isoformat() + 'Z'
        elif key == 'photo_urls':
            value = [{'url': url} for url in value]
        fields[ENGAGEMENT_FIELDS[key]] = value
    return fields


class AirtableRecordStore(RecordStore):
    collaborator = "Airtable"

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    @property
    def configured(self) -> bool:
        return bool(self.settings.AIRTABLE_API_KEY and self.settings.AIRTABLE_BASE_ID)

    def _headers(self):
        if not self.configured:
            raise ConfigurationError("AIRTABLE_API_KEY and AIRTABLE_BASE_ID must be set")
        return {
            'Authorization': f'Bearer {self.settings.AIRTABLE_API_KEY}',
            'Content-Type': 'application/json',
        }

    def _table_url(self, table: str) -> str:
        return f"{self.settings.AIRTABLE_API_URL}/{self.settings.AIRTABLE_BASE_ID}/{table}"

    async def _find(self, table: str, record_id: str) -> Optional[Dict]:
        return await send_request(
            self.client, self.collaborator, 'GET', f"{self._table_url(table)}/{record_id}",
            headers=self._headers(), allow_404=True,
        )

    async def _select(self, table: str, params: Dict) -> List[Dict]:
        records = []
        params = dict(params)
        while True:
            data = await send_request(
                self.client, self.collaborator, 'GET', self._table_url(table),
                headers=self._headers(), params=params,
            )
            records.extend(data.get('records', []))
            offset = data.get('offset')
            if not offset or ('maxRecords' in params and len(records) >= params['maxRecords']):
                return records
            params['offset'] = offset

    # ============ ENGAGEMENTS ============

    async def get_entity(self, entity_id: str) -> Optional[Entity]:
        record = await self._find(self.settings.AIRTABLE_ENGAGEMENTS_TABLE, entity_id)
        return entity_from_record(record) if record else None

    async def update_entity(self, entity_id: str, fields: Dict) -> Entity:
        record = await send_request(
            self.client, self.collaborator, 'PATCH',
            f"{self._table_url(self.settings.AIRTABLE_ENGAGEMENTS_TABLE)}/{entity_id}",
            headers=self._headers(), json={'fields': engagement_fields(fields)},
        )
        logger.info(f"Updated engagement {entity_id}: {sorted(fields)}")
        return entity_from_record(record)

    async def list_entities_by_status(self, status: str) -> List[Entity]:
        records = await self._select(
            self.settings.AIRTABLE_ENGAGEMENTS_TABLE,
            {'filterByFormula': f"{{Status}} = '{_escape(status)}'"},
        )
        return [entity_from_record(r) for r in records]

    # ============ TECHS ============

    async def get_responder(self, responder_id: str) -> Optional[Responder]:
        record = await self._find(self.settings.AIRTABLE_TECHS_TABLE, responder_id)
        return responder_from_record(record) if record else None

    async def get_responder_by_phone(self, phone: str) -> Optional[Responder]:
        # Tech phones are typed in by hand in every format; compare in E.164
        wanted = normalize_phone(phone, self.settings.DEFAULT_COUNTRY_CODE)
        if not wanted:
            return None
        for record in await self._select(self.settings.AIRTABLE_TECHS_TABLE, {}):
            responder = responder_from_record(record)
            if normalize_phone(responder.phone, self.settings.DEFAULT_COUNTRY_CODE) == wanted:
                return responder
        return None

    async def list_available_responders(self) -> List[Responder]:
        records = await self._select(
            self.settings.AIRTABLE_TECHS_TABLE,
            {'filterByFormula': "{Availability Status} = 'Available'"},
        )
        return [responder_from_record(r) for r in records]

    # ============ MESSAGES ============

    async def log_message(self, message: MessageRecord) -> MessageRecord:
        fields = {
            'Direction': message.direction,
            'Type': 'SMS',
            'To': message.to,
            'From': message.from_,
            'Content': message.content,
            'Status': message.status,
        }
        if message.kind:
            fields['Kind'] = message.kind
        if message.entity_id:
            fields['Related Lead'] = [message.entity_id]
        if message.responder_id:
            fields['Related Tech'] = [message.responder_id]
        record = await send_request(
            self.client, self.collaborator, 'POST',
            self._table_url(self.settings.AIRTABLE_MESSAGES_TABLE),
            headers=self._headers(), json={'fields': fields},
        )
        return message_from_record(record)

    async def latest_outbound_message(self, to: str, kind: str) -> Optional[MessageRecord]:
        records = await self._select(
            self.settings.AIRTABLE_MESSAGES_TABLE,
            {
                'filterByFormula': (
                    f"AND({{To}} = '{_escape(to)}', {{Direction}} = 'Outbound', {{Kind}} = '{_escape(kind)}')"
                ),
                'maxRecords': 1,
                'sort[0][field]': 'Created',
                'sort[0][direction]': 'desc',
            },
        )
        return message_from_record(records[0]) if records else None

    async def aclose(self):
        await self.client.aclose()
