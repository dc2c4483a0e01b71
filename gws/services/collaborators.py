"""Interfaces for the external systems this service talks to.

The availability recorder, dispatcher and webhooks depend only on these;
Airtable/Twilio/Stripe/Cloudinary implementations live beside them and test
suites substitute in-memory fakes.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from gws.schemas.collaborators import CheckoutSession, DeliveryResult, UploadedAsset
from gws.schemas.entities import Entity, MessageRecord, Responder

AVAILABILITY_CHECK = "availability_check"


class RecordStore(ABC):
    """System of record for engagements, technicians and the message log."""

    @abstractmethod
    async def get_entity(self, entity_id: str) -> Optional[Entity]:
        ...

    @abstractmethod
    async def update_entity(self, entity_id: str, fields: Dict) -> Entity:
        """Apply a partial update. Keys are Entity attribute names."""

    @abstractmethod
    async def list_entities_by_status(self, status: str) -> List[Entity]:
        ...

    @abstractmethod
    async def get_responder(self, responder_id: str) -> Optional[Responder]:
        ...

    @abstractmethod
    async def get_responder_by_phone(self, phone: str) -> Optional[Responder]:
        ...

    @abstractmethod
    async def list_available_responders(self) -> List[Responder]:
        ...

    @abstractmethod
    async def log_message(self, message: MessageRecord) -> MessageRecord:
        ...

    @abstractmethod
    async def latest_outbound_message(self, to: str, kind: str) -> Optional[MessageRecord]:
        """Most recent outbound message of ``kind`` sent to ``to``."""


class Notifier(ABC):
    @abstractmethod
    async def send_message(self, to: str, body: str, metadata: Optional[Dict] = None) -> DeliveryResult:
        ...


class PaymentGateway(ABC):
    @abstractmethod
    async def create_checkout_session(
        self, amount_cents: int, description: str, metadata: Optional[Dict] = None
    ) -> CheckoutSession:
        ...


class AssetStore(ABC):
    @abstractmethod
    async def upload(self, data: bytes, folder: str, filename: Optional[str] = None) -> UploadedAsset:
        ...
