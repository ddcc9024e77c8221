from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from services.lifecycle import Actor, AdminActionGateway, Clock, OrderStatus, Transition, build_view
from shared.config.database import get_db
from shared.security import require_admin
from .dependencies import get_admin_gateway, get_clock, get_order_store
from .models import PackageModel
from .repository import PackageRepository
from .schemas import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    CancelRequest,
    ConfirmRequest,
    DeleteResponse,
    OrderListResponse,
    OrderResponse,
    PackageCreate,
    PackageResponse,
    PendingCountResponse,
    RatingListResponse,
    RatingSummaryResponse,
)
from .service import OrderService, RatingService
from .store import SqlOrderStore

# Every route here requires an ADMIN token
admin_router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])

RatingSort = Literal["highest", "lowest", "recent"]


def _respond(gateway: AdminActionGateway, transition: Transition) -> OrderResponse:
    view = build_view(transition.order, transition.payment, gateway.actor, gateway.service.clock.now())
    return OrderResponse.from_view(view)


@admin_router.get("/", response_model=OrderListResponse)
async def list_orders(
    status: Optional[OrderStatus] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None),
    actor: Actor = Depends(require_admin),
    store: SqlOrderStore = Depends(get_order_store),
    clock: Clock = Depends(get_clock),
):
    status_value = status.value if status else None
    return await OrderService.list_admin_orders(store, actor, status_value, page, limit, clock.now())

@admin_router.get("/pending-count", response_model=PendingCountResponse)
async def pending_count(store: SqlOrderStore = Depends(get_order_store)):
    return {"count": await OrderService.pending_count(store)}

@admin_router.post("/packages", response_model=PackageResponse, status_code=201)
async def create_package(payload: PackageCreate, db: AsyncSession = Depends(get_db)):
    return await PackageRepository.create_package(db, PackageModel(**payload.model_dump()))

@admin_router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete(payload: BulkDeleteRequest, gateway: AdminActionGateway = Depends(get_admin_gateway)):
    transitions = await gateway.delete_many(payload.ids)
    return {"message": "Orders deleted", "order_ids": [t.order.id for t in transitions]}

@admin_router.get("/ratings", response_model=RatingListResponse)
async def list_ratings(
    package_id: Optional[int] = Query(default=None),
    rating_value: Optional[int] = Query(default=None, ge=1, le=5),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    sort: RatingSort = Query(default="recent"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None),
    store: SqlOrderStore = Depends(get_order_store),
):
    return await RatingService.list_ratings(
        store, package_id, rating_value, start_date, end_date, sort, page, limit
    )

@admin_router.get("/ratings/summary", response_model=RatingSummaryResponse)
async def rating_summary(store: SqlOrderStore = Depends(get_order_store)):
    return await RatingService.summary(store)

@admin_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, gateway: AdminActionGateway = Depends(get_admin_gateway)):
    return OrderResponse.from_view(await gateway.view(order_id))

@admin_router.patch("/{order_id}/confirm", response_model=OrderResponse)
async def confirm_order(
    order_id: int,
    payload: ConfirmRequest,
    gateway: AdminActionGateway = Depends(get_admin_gateway),
):
    return _respond(gateway, await gateway.confirm_and_assign(order_id, payload.staff_id))

@admin_router.post("/{order_id}/complete", response_model=OrderResponse)
async def complete_order(order_id: int, gateway: AdminActionGateway = Depends(get_admin_gateway)):
    return _respond(gateway, await gateway.complete(order_id))

@admin_router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    payload: CancelRequest | None = None,
    gateway: AdminActionGateway = Depends(get_admin_gateway),
):
    reason = payload.reason if payload else None
    return _respond(gateway, await gateway.cancel(order_id, reason))

@admin_router.delete("/{order_id}", response_model=DeleteResponse)
async def delete_order(order_id: int, gateway: AdminActionGateway = Depends(get_admin_gateway)):
    await gateway.delete(order_id)
    return {"message": "Order deleted", "order_id": order_id}
