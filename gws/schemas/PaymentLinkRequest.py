from pydantic import BaseModel, Field
from typing import Optional


class PaymentLinkRequest(BaseModel):
    entity_id: str = Field(..., alias="entityId", min_length=1)
    amount_cents: int = Field(..., alias="amountCents", gt=0)
    description: str = Field(..., min_length=1, max_length=500)
    phone: Optional[str] = None

    model_config = {"populate_by_name": True}


class PaymentLinkResponse(BaseModel):
    code: str
    short_url: str = Field(..., alias="shortUrl")
    checkout_url: str = Field(..., alias="checkoutUrl")
    session_id: str = Field(..., alias="sessionId")
    sms_sent: bool = Field(False, alias="smsSent")

    model_config = {"populate_by_name": True}
