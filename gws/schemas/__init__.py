# re-export common schemas for simpler imports
from .entities import Entity, Responder, MessageRecord
from .collaborators import DeliveryResult, CheckoutSession, UploadedAsset
from .AvailabilityCheckRequest import AvailabilityCheckRequest, AvailabilityCheckResponse, AvailabilityDispatchResult
from .PaymentLinkRequest import PaymentLinkRequest, PaymentLinkResponse
from .ShortLinkCreateRequest import ShortLinkCreateRequest, ShortLinkResponse

__all__ = [
    "Entity",
    "Responder",
    "MessageRecord",
    "DeliveryResult",
    "CheckoutSession",
    "UploadedAsset",
    "AvailabilityCheckRequest",
    "AvailabilityCheckResponse",
    "AvailabilityDispatchResult",
    "PaymentLinkRequest",
    "PaymentLinkResponse",
    "ShortLinkCreateRequest",
    "ShortLinkResponse",
]
