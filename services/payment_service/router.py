"""
Payment endpoints.

The callback is only reachable with X-Internal-API-Key: the gateway adapter
verifies the vendor signature and relays the result here. Admin endpoints
handle cash and the manual switch from an abandoned online payment to cash.
"""
from fastapi import APIRouter, Depends

from services.lifecycle import AdminActionGateway, PaymentCallbackGateway
from services.order_service.dependencies import get_admin_gateway, get_payment_callback_gateway
from services.order_service.schemas import PaymentResponse
from .schemas import PaymentCallback, PaymentCallbackResponse

router = APIRouter()
admin_router = APIRouter(prefix="/admin")
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@router.post("/callback", response_model=PaymentCallbackResponse)
async def payment_callback(
    payload: PaymentCallback,
    gateway: PaymentCallbackGateway = Depends(get_payment_callback_gateway),
):
    transition = await gateway.apply(payload.order_id, payload.status, payload.reference)
    return {
        "order_id": payload.order_id,
        "applied": transition is not None,
        "payment_status": transition.payment.status if transition else payload.status,
    }


@admin_router.patch("/{order_id}/paid", response_model=PaymentResponse)
async def mark_cash_paid(order_id: int, gateway: AdminActionGateway = Depends(get_admin_gateway)):
    transition = await gateway.mark_cash_paid(order_id)
    return transition.payment

@admin_router.patch("/{order_id}/switch-to-cash", response_model=PaymentResponse)
async def switch_to_cash(order_id: int, gateway: AdminActionGateway = Depends(get_admin_gateway)):
    transition = await gateway.switch_to_cash(order_id)
    return transition.payment
