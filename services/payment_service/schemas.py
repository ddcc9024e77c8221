from typing import Optional

from pydantic import BaseModel

from services.lifecycle import PaymentStatus

class PaymentCallback(BaseModel):
    """A payment result already verified by the gateway adapter."""
    order_id: int
    status: PaymentStatus
    reference: Optional[str] = None

class PaymentCallbackResponse(BaseModel):
    order_id: int
    applied: bool
    payment_status: PaymentStatus
