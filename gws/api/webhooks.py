from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response
import logging

from gws.api.deps import get_services
from gws.core.exceptions import EntityNotFound, HubError, ResponderNotFound
from gws.schemas.entities import MessageRecord
from gws.services.collaborators import AVAILABILITY_CHECK
from gws.services.container import Services
from gws.services.recorder import Answer, ResponseSource
from gws.services.twilio import EMPTY_TWIML, verify_twilio_signature
from gws.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _twiml(status_code: int = status.HTTP_200_OK) -> Response:
    return Response(content=EMPTY_TWIML, media_type="application/xml", status_code=status_code)


def _signed_url(request: Request, base_url: str) -> str:
    # Twilio signs the public URL it called, not the one behind the proxy
    url = base_url.rstrip("/") + request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


@router.post("/twilio-sms")
async def twilio_sms(request: Request, services: Services = Depends(get_services)):
    """
    Inbound SMS from Twilio.

    A body of exactly YES or NO from a known tech is attributed to the
    engagement of the most recent availability check sent to that phone.
    Everything else is only written to the message log.
    """
    settings = services.settings
    form = await request.form()
    params = {key: str(value) for key, value in form.items()}

    if settings.TWILIO_VALIDATE_SIGNATURE:
        signature = request.headers.get("x-twilio-signature")
        if not verify_twilio_signature(settings.TWILIO_AUTH_TOKEN or "", _signed_url(request, settings.BASE_URL),
                                       params, signature):
            logger.warning("Rejected inbound SMS with invalid Twilio signature")
            return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": "Invalid signature"})

    from_phone = normalize_phone(params.get("From", ""), settings.DEFAULT_COUNTRY_CODE)
    body = params.get("Body", "")
    logger.info(f"📱 Inbound SMS from {from_phone}: {body[:50]}")

    answer = Answer.parse(body)
    responder = None
    entity_id = None
    if answer is not None and from_phone:
        try:
            responder = await services.record_store.get_responder_by_phone(from_phone)
            if responder is None:
                logger.info(f"{answer.value} reply from unknown number {from_phone}")
            else:
                sent = await services.record_store.latest_outbound_message(from_phone, AVAILABILITY_CHECK)
                entity_id = sent.entity_id if sent else None
                if entity_id is None:
                    logger.warning(f"{answer.value} reply from {responder.display_name} with no availability check on record")
                else:
                    await services.recorder.record_response(entity_id, responder.id, answer, ResponseSource.SMS)
        except (EntityNotFound, ResponderNotFound) as e:
            logger.warning(f"SMS reply from {from_phone} could not be recorded: {e}")
        except HubError:
            logger.exception(f"Error recording SMS reply from {from_phone}")
            return _twiml(status.HTTP_500_INTERNAL_SERVER_ERROR)

    try:
        await services.record_store.log_message(MessageRecord(
            direction="Inbound",
            from_=from_phone,
            to=settings.TWILIO_PHONE_NUMBER,
            content=body,
            status="Received",
            entity_id=entity_id,
            responder_id=responder.id if responder else None,
        ))
    except Exception:
        logger.exception(f"Failed to log inbound SMS from {from_phone}")

    return _twiml()
