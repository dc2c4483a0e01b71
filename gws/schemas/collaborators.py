from pydantic import BaseModel
from typing import Optional


class DeliveryResult(BaseModel):
    sid: Optional[str] = None
    status: str
    to: str

    @property
    def delivered(self) -> bool:
        return self.status in ("queued", "accepted", "sending", "sent", "delivered")


class CheckoutSession(BaseModel):
    id: str
    url: str


class UploadedAsset(BaseModel):
    secure_url: str
    public_id: Optional[str] = None
