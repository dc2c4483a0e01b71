import logging
from typing import Dict, Optional

import httpx

from gws.core.config import Settings
from gws.core.exceptions import ConfigurationError
from gws.schemas.collaborators import CheckoutSession
from gws.services.collaborators import PaymentGateway
from gws.services.http import send_request

logger = logging.getLogger(__name__)


class StripeGateway(PaymentGateway):
    collaborator = "Stripe"

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    async def create_checkout_session(
        self, amount_cents: int, description: str, metadata: Optional[Dict] = None
    ) -> CheckoutSession:
        if not self.settings.STRIPE_SECRET_KEY:
            raise ConfigurationError("STRIPE_SECRET_KEY is not set")

        # Stripe takes form-encoded bodies with bracketed keys
        form = {
            'mode': 'payment',
            'success_url': self.settings.STRIPE_SUCCESS_URL,
            'cancel_url': self.settings.STRIPE_CANCEL_URL,
            'line_items[0][quantity]': '1',
            'line_items[0][price_data][currency]': self.settings.STRIPE_CURRENCY,
            'line_items[0][price_data][unit_amount]': str(amount_cents),
            'line_items[0][price_data][product_data][name]': description,
        }
        for key, value in (metadata or {}).items():
            form[f'metadata[{key}]'] = str(value)
            form[f'payment_intent_data[metadata][{key}]'] = str(value)

        data = await send_request(
            self.client, self.collaborator, 'POST', f"{self.settings.STRIPE_API_URL}/checkout/sessions",
            auth=(self.settings.STRIPE_SECRET_KEY, ''), data=form,
        )
        logger.info(f"Stripe checkout session created: {data['id']}")
        return CheckoutSession(id=data['id'], url=data['url'])

    async def aclose(self):
        await self.client.aclose()
