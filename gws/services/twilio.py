"""
Twilio SMS Notifier
Sends SMS through the Twilio REST API and mirrors every outbound message
into the Record Store's message log.
"""

import base64
import hashlib
import hmac
import logging
from typing import Dict, Optional

import httpx

from gws.core.config import Settings
from gws.core.exceptions import CollaboratorFailure, ConfigurationError
from gws.schemas.collaborators import DeliveryResult
from gws.schemas.entities import MessageRecord
from gws.services.collaborators import Notifier, RecordStore
from gws.services.http import send_request
from gws.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'


def compute_twilio_signature(auth_token: str, url: str, params: Dict[str, str]) -> str:
    """X-Twilio-Signature: base64(HMAC-SHA1(url + concatenated sorted params))."""
    payload = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode("utf-8"), payload.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_twilio_signature(auth_token: str, url: str, params: Dict[str, str], signature: Optional[str]) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(compute_twilio_signature(auth_token, url, params), signature)


class TwilioNotifier(Notifier):
    collaborator = "Twilio"

    def __init__(self, settings: Settings, record_store: Optional[RecordStore] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.record_store = record_store
        self.client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    async def send_message(self, to: str, body: str, metadata: Optional[Dict] = None) -> DeliveryResult:
        """
        Send an SMS and log it.

        Args:
            to: Recipient phone, any format; coerced to E.164
            body: Message text
            metadata: Optional ``type``, ``entity_id`` and ``responder_id`` stored on the log entry

        Returns:
            DeliveryResult with Twilio's message SID and status

        Raises:
            CollaboratorFailure when Twilio rejects the message; the failed
            attempt is still logged.
        """
        metadata = metadata or {}
        settings = self.settings
        if not (settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_PHONE_NUMBER):
            raise ConfigurationError("Twilio credentials are not configured")

        to_phone = normalize_phone(to, settings.DEFAULT_COUNTRY_CODE)
        if not to_phone:
            raise CollaboratorFailure(self.collaborator, "No phone number provided")

        try:
            data = await send_request(
                self.client, self.collaborator, 'POST',
                f"{settings.TWILIO_API_URL}/Accounts/{settings.TWILIO_ACCOUNT_SID}/Messages.json",
                auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
                data={"To": to_phone, "From": settings.TWILIO_PHONE_NUMBER, "Body": body},
            )
        except CollaboratorFailure:
            logger.error(f"✗ Error sending SMS to {to_phone}")
            await self._log(to_phone, body, "Failed", metadata)
            raise

        result = DeliveryResult(sid=data.get("sid"), status=data.get("status", "queued"), to=to_phone)
        logger.info(f"✓ SMS sent to {to_phone}: {result.sid}")
        await self._log(to_phone, body, "Sent" if result.delivered else "Failed", metadata)
        return result

    async def _log(self, to_phone: str, body: str, status: str, metadata: Dict):
        if self.record_store is None:
            return
        try:
            await self.record_store.log_message(MessageRecord(
                direction="Outbound",
                to=to_phone,
                from_=self.settings.TWILIO_PHONE_NUMBER,
                content=body,
                status=status,
                kind=metadata.get("type"),
                entity_id=metadata.get("entity_id"),
                responder_id=metadata.get("responder_id"),
            ))
        except Exception:
            logger.exception(f"Failed to log outbound SMS to {to_phone}")

    async def aclose(self):
        await self.client.aclose()
