from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.lifecycle import (
    Actor,
    Clock,
    CustomerActionGateway,
    ExtraService,
    OrderDraft,
    Transition,
    build_view,
)
from shared.config.database import get_db
from shared.config.settings import ORDER_CREATE_RATE_LIMIT
from shared.security import limiter, require_customer
from .dependencies import get_clock, get_customer_gateway, get_order_store
from .repository import PackageRepository
from .schemas import (
    AfterPhotoUpload,
    CancelRequest,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    PackageResponse,
    PaymentMethodUpdate,
    RatingCreate,
    TipCreate,
)
from .service import OrderService
from .store import SqlOrderStore

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

CustomerStatusFilter = Literal["all", "pending", "in_progress", "rate", "completed", "cancelled"]


def _respond(gateway: CustomerActionGateway, transition: Transition) -> OrderResponse:
    view = build_view(transition.order, transition.payment, gateway.actor, gateway.service.clock.now())
    return OrderResponse.from_view(view)


@public_router.get("/health")
async def health_check():
    return {"service": "order", "status": "running"}

@public_router.get("/packages", response_model=List[PackageResponse])
async def list_packages(db: AsyncSession = Depends(get_db)):
    return await PackageRepository.list_packages(db, active_only=True)


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(ORDER_CREATE_RATE_LIMIT)
async def create_order(
    request: Request,  # slowapi keys the limit on this
    payload: OrderCreate,
    gateway: CustomerActionGateway = Depends(get_customer_gateway),
):
    draft = OrderDraft(
        customer_id=gateway.actor.id,
        package_id=payload.package_id,
        payment_method=payload.payment_method,
        scheduled_at=payload.scheduled_at,
        before_photos=tuple(payload.before_photos),
        extra_services=tuple(ExtraService(e.name, e.price) for e in payload.extra_services),
    )
    return _respond(gateway, await gateway.create_order(draft))

@router.get("/", response_model=OrderListResponse)
async def list_my_orders(
    status_filter: Optional[CustomerStatusFilter] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None),
    actor: Actor = Depends(require_customer),
    store: SqlOrderStore = Depends(get_order_store),
    clock: Clock = Depends(get_clock),
):
    return await OrderService.list_customer_orders(store, actor, status_filter, page, limit, clock.now())

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, gateway: CustomerActionGateway = Depends(get_customer_gateway)):
    return OrderResponse.from_view(await gateway.view(order_id))

@router.post("/{order_id}/after-photo", response_model=OrderResponse)
async def upload_after_photo(
    order_id: int,
    payload: AfterPhotoUpload,
    gateway: CustomerActionGateway = Depends(get_customer_gateway),
):
    return _respond(gateway, await gateway.upload_after_photo(order_id, payload.photos))

@router.post("/{order_id}/complete", response_model=OrderResponse)
async def complete_order(order_id: int, gateway: CustomerActionGateway = Depends(get_customer_gateway)):
    return _respond(gateway, await gateway.complete(order_id))

@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    payload: CancelRequest | None = None,
    gateway: CustomerActionGateway = Depends(get_customer_gateway),
):
    reason = payload.reason if payload else None
    return _respond(gateway, await gateway.cancel(order_id, reason))

@router.post("/{order_id}/rating", response_model=OrderResponse)
async def submit_rating(
    order_id: int,
    payload: RatingCreate,
    gateway: CustomerActionGateway = Depends(get_customer_gateway),
):
    return _respond(gateway, await gateway.rate(order_id, payload.rating, payload.review))

@router.post("/{order_id}/tip", response_model=OrderResponse)
async def submit_tip(
    order_id: int,
    payload: TipCreate,
    gateway: CustomerActionGateway = Depends(get_customer_gateway),
):
    return _respond(gateway, await gateway.tip(order_id, payload.amount))

@router.post("/{order_id}/tip/skip", response_model=OrderResponse)
async def skip_tip(order_id: int, gateway: CustomerActionGateway = Depends(get_customer_gateway)):
    return _respond(gateway, await gateway.skip_tip(order_id))

@router.patch("/{order_id}/payment-method", response_model=OrderResponse)
async def change_payment_method(
    order_id: int,
    payload: PaymentMethodUpdate,
    gateway: CustomerActionGateway = Depends(get_customer_gateway),
):
    return _respond(gateway, await gateway.change_payment_method(order_id, payload.payment_method))
