"""
PostgreSQL-backed ``OrderStore``.

Orders and payments live in different schemas of the same database, so one
session transaction covers both. Every save is guarded by the order's
``version`` column: if another process committed first the UPDATE matches no
row and the whole transaction is rolled back.
"""
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.lifecycle import (
    ActorRole,
    ConcurrentModification,
    ExtraService,
    Order,
    OrderStatus,
    Package,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Rating,
)
from services.payment_service.models import PaymentModel
from .models import OrderModel, PackageModel
from .repository import OrderRepository, PackageRepository

logger = structlog.get_logger(__name__)


def to_order(row: OrderModel) -> Order:
    rating = None
    if row.rating is not None:
        rating = Rating(value=row.rating, review=row.review, created_at=row.rated_at)
    return Order(
        id=row.id,
        customer_id=row.customer_id,
        package_id=row.package_id,
        base_price=row.base_price,
        extra_price=row.extra_price,
        scheduled_at=row.scheduled_at,
        created_at=row.created_at,
        before_photos=tuple(row.before_photos or ()),
        status=OrderStatus(row.status),
        extra_services=tuple(ExtraService(e["name"], e["price"]) for e in (row.extra_services or [])),
        assigned_staff_id=row.assigned_staff_id,
        after_photos=tuple(row.after_photos or ()),
        rating=rating,
        tip_amount=row.tip_amount,
        completed_at=row.completed_at,
        cancelled_at=row.cancelled_at,
        cancelled_by=ActorRole(row.cancelled_by) if row.cancelled_by else None,
        cancel_reason=row.cancel_reason,
        version=row.version,
    )


def to_payment(row: PaymentModel) -> Payment:
    return Payment(
        id=row.id,
        order_id=row.order_id,
        method=PaymentMethod(row.method),
        status=PaymentStatus(row.status),
        amount=row.amount,
        created_at=row.created_at,
        paid_at=row.paid_at,
        gateway_reference=row.gateway_reference,
    )


def to_package(row: PackageModel) -> Package:
    return Package(id=row.id, name=row.name, price=row.price, is_active=row.is_active)


def order_values(order: Order) -> Dict[str, Any]:
    """Mutable order columns; identity, pricing and version are never rewritten here."""
    return {
        "status": order.status.value,
        "assigned_staff_id": order.assigned_staff_id,
        "after_photos": list(order.after_photos),
        "rating": order.rating.value if order.rating else None,
        "review": order.rating.review if order.rating else None,
        "rated_at": order.rating.created_at if order.rating else None,
        "tip_amount": order.tip_amount,
        "completed_at": order.completed_at,
        "cancelled_at": order.cancelled_at,
        "cancelled_by": order.cancelled_by.value if order.cancelled_by else None,
        "cancel_reason": order.cancel_reason,
    }


def payment_values(payment: Payment) -> Dict[str, Any]:
    return {
        "method": payment.method.value,
        "status": payment.status.value,
        "amount": payment.amount,
        "paid_at": payment.paid_at,
        "gateway_reference": payment.gateway_reference,
    }


class SqlOrderStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_order(self, order_id: int) -> Optional[Order]:
        row = await OrderRepository.get_order(self.db, order_id)
        return to_order(row) if row else None

    async def load_payment(self, order_id: int) -> Optional[Payment]:
        row = await OrderRepository.get_payment(self.db, order_id)
        return to_payment(row) if row else None

    async def load_package(self, package_id: int) -> Optional[Package]:
        row = await PackageRepository.get_package(self.db, package_id)
        return to_package(row) if row else None

    async def insert_order_and_payment(self, order: Order, payment: Payment) -> Tuple[Order, Payment]:
        order_row = OrderModel(
            customer_id=order.customer_id,
            package_id=order.package_id,
            base_price=order.base_price,
            extra_price=order.extra_price,
            extra_services=[{"name": e.name, "price": e.price} for e in order.extra_services],
            scheduled_at=order.scheduled_at,
            created_at=order.created_at,
            before_photos=list(order.before_photos),
            version=order.version,
            **order_values(order),
        )
        payment_row = PaymentModel(created_at=payment.created_at, **payment_values(payment))
        try:
            await OrderRepository.add_order_with_payment(self.db, order_row, payment_row)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(order_row)
        await self.db.refresh(payment_row)
        return to_order(order_row), to_payment(payment_row)

    async def save_order_and_payment(self, order: Order, payment: Payment, expected_version: int) -> Order:
        try:
            updated = await OrderRepository.update_order_if_version(
                self.db, order.id, expected_version, order_values(order)
            )
            if not updated:
                raise ConcurrentModification(
                    "Order was changed by another request",
                    order_id=order.id,
                    status=order.status,
                    payment_status=payment.status,
                )
            await OrderRepository.update_payment(self.db, order.id, payment_values(payment))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.warning("order_save_rolled_back", order_id=order.id, expected_version=expected_version)
            raise
        # Rows loaded earlier in this session are stale after a Core UPDATE.
        self.db.expire_all()
        return replace(order, version=expected_version + 1)

    async def delete_orders_and_payments(self, order_ids: Sequence[int]) -> None:
        try:
            await OrderRepository.delete_orders_with_payments(self.db, order_ids)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    # --- read-only queries for list screens ---

    async def list_customer_orders(
        self, customer_id: str, status_filter: Optional[str], now: datetime, offset: int, limit: int
    ) -> Tuple[List[Tuple[Order, Payment]], int]:
        rows, total = await OrderRepository.list_customer_orders(
            self.db, customer_id, status_filter, now, offset, limit
        )
        return [(to_order(o), to_payment(p)) for o, p in rows], total

    async def list_admin_orders(
        self, status: Optional[str], offset: int, limit: int
    ) -> Tuple[List[Tuple[Order, Payment]], int]:
        rows, total = await OrderRepository.list_admin_orders(self.db, status, offset, limit)
        return [(to_order(o), to_payment(p)) for o, p in rows], total

    async def count_pending_confirmation(self) -> int:
        return await OrderRepository.count_pending_confirmation(self.db)

    async def list_ratings(
        self,
        package_id: Optional[int],
        rating_value: Optional[int],
        start: Optional[datetime],
        end: Optional[datetime],
        sort: str,
        offset: int,
        limit: int,
    ) -> Tuple[List[Order], int]:
        rows, total = await OrderRepository.list_ratings(
            self.db, package_id, rating_value, start, end, sort, offset, limit
        )
        return [to_order(row) for row in rows], total

    async def rating_distribution(self) -> Dict[int, int]:
        return await OrderRepository.rating_distribution(self.db)
