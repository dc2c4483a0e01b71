from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
import logging

from gws.api.deps import get_services, require_admin
from gws.core.exceptions import EntityNotFound
from gws.schemas.PaymentLinkRequest import PaymentLinkRequest, PaymentLinkResponse
from gws.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["payments"], dependencies=[Depends(require_admin)])


@router.post("/payment-links", response_model=PaymentLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_payment_link(body: PaymentLinkRequest, services: Services = Depends(get_services)):
    entity = await services.record_store.get_entity(body.entity_id)
    if entity is None:
        raise EntityNotFound(body.entity_id)

    session = await services.payments.create_checkout_session(
        body.amount_cents, body.description, {"lead_id": entity.id}
    )
    code = await run_in_threadpool(services.short_links.create, session.url, entity.id)
    short_url = f"{services.settings.BASE_URL.rstrip('/')}/{code}"
    logger.info(f"API success: payment link {code} for lead {entity.id} -> session {session.id}")

    sms_sent = False
    if body.phone:
        message = (
            f"Hi from {services.settings.BUSINESS_NAME}! "
            f"Here's your payment link for {body.description}: {short_url}"
        )
        try:
            await services.notifier.send_message(body.phone, message, {"type": "payment_link", "entity_id": entity.id})
            sms_sent = True
        except Exception:
            logger.exception(f"Payment link {code} created but SMS to {body.phone} failed")

    return PaymentLinkResponse(
        code=code,
        short_url=short_url,
        checkout_url=session.url,
        session_id=session.id,
        sms_sent=sms_sent,
    )
