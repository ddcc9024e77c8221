from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.payment_service.models import PaymentModel
from .models import OrderModel, PackageModel

# Customer list filters; "all" (or no filter) shows everything.
CUSTOMER_STATUS_FILTERS = ("all", "pending", "in_progress", "rate", "completed", "cancelled")

# In-progress orders this long past their schedule also show up under "rate".
RATE_REMINDER_AFTER = timedelta(hours=1)


def _customer_filter(status_filter: Optional[str], now: datetime):
    if status_filter == "pending":
        return OrderModel.status == "PENDING_CONFIRMATION"
    if status_filter == "in_progress":
        return OrderModel.status == "IN_PROGRESS"
    if status_filter == "completed":
        return OrderModel.status == "COMPLETED"
    if status_filter == "cancelled":
        return OrderModel.status == "CANCELLED"
    if status_filter == "rate":
        return or_(
            and_(OrderModel.status == "COMPLETED", OrderModel.rating.is_(None)),
            and_(OrderModel.status == "IN_PROGRESS", OrderModel.scheduled_at < now - RATE_REMINDER_AFTER),
        )
    return None


def _admin_visible():
    # Unpaid online payments stay hidden from admins until the gateway confirms them.
    return or_(PaymentModel.method == "CASH", PaymentModel.status == "PAID")


class OrderRepository:
    @staticmethod
    async def get_order(db: AsyncSession, order_id: int) -> Optional[OrderModel]:
        result = await db.execute(select(OrderModel).where(OrderModel.id == order_id))
        return result.scalars().first()

    @staticmethod
    async def get_payment(db: AsyncSession, order_id: int) -> Optional[PaymentModel]:
        result = await db.execute(select(PaymentModel).where(PaymentModel.order_id == order_id))
        return result.scalars().first()

    @staticmethod
    async def add_order_with_payment(db: AsyncSession, order: OrderModel, payment: PaymentModel):
        """Stages both rows; the caller commits."""
        db.add(order)
        await db.flush()
        payment.order_id = order.id
        db.add(payment)
        await db.flush()
        return order, payment

    @staticmethod
    async def update_order_if_version(
        db: AsyncSession, order_id: int, expected_version: int, values: Dict[str, Any]
    ) -> bool:
        result = await db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.version == expected_version)
            .values(**values, version=expected_version + 1)
        )
        return result.rowcount == 1

    @staticmethod
    async def update_payment(db: AsyncSession, order_id: int, values: Dict[str, Any]) -> bool:
        result = await db.execute(
            update(PaymentModel).where(PaymentModel.order_id == order_id).values(**values)
        )
        return result.rowcount == 1

    @staticmethod
    async def delete_orders_with_payments(db: AsyncSession, order_ids: Sequence[int]):
        await db.execute(delete(PaymentModel).where(PaymentModel.order_id.in_(order_ids)))
        await db.execute(delete(OrderModel).where(OrderModel.id.in_(order_ids)))

    @staticmethod
    async def list_customer_orders(
        db: AsyncSession,
        customer_id: str,
        status_filter: Optional[str],
        now: datetime,
        offset: int,
        limit: int,
    ) -> Tuple[List[Tuple[OrderModel, PaymentModel]], int]:
        conditions = [OrderModel.customer_id == customer_id]
        extra = _customer_filter(status_filter, now)
        if extra is not None:
            conditions.append(extra)

        stmt = (
            select(OrderModel, PaymentModel)
            .join(PaymentModel, PaymentModel.order_id == OrderModel.id)
            .where(*conditions)
            .order_by(OrderModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await db.execute(stmt)).all()
        total = await db.scalar(select(func.count(OrderModel.id)).where(*conditions))
        return [(row[0], row[1]) for row in rows], total or 0

    @staticmethod
    async def list_admin_orders(
        db: AsyncSession, status: Optional[str], offset: int, limit: int
    ) -> Tuple[List[Tuple[OrderModel, PaymentModel]], int]:
        conditions = [_admin_visible()]
        if status:
            conditions.append(OrderModel.status == status)

        stmt = (
            select(OrderModel, PaymentModel)
            .join(PaymentModel, PaymentModel.order_id == OrderModel.id)
            .where(*conditions)
            .order_by(OrderModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await db.execute(stmt)).all()
        total = await db.scalar(
            select(func.count(OrderModel.id))
            .join(PaymentModel, PaymentModel.order_id == OrderModel.id)
            .where(*conditions)
        )
        return [(row[0], row[1]) for row in rows], total or 0

    @staticmethod
    async def count_pending_confirmation(db: AsyncSession) -> int:
        total = await db.scalar(
            select(func.count(OrderModel.id))
            .join(PaymentModel, PaymentModel.order_id == OrderModel.id)
            .where(OrderModel.status == "PENDING_CONFIRMATION", _admin_visible())
        )
        return total or 0

    @staticmethod
    async def list_ratings(
        db: AsyncSession,
        package_id: Optional[int],
        rating_value: Optional[int],
        start: Optional[datetime],
        end: Optional[datetime],
        sort: str,
        offset: int,
        limit: int,
    ) -> Tuple[List[OrderModel], int]:
        conditions = [OrderModel.rating.is_not(None)]
        if package_id is not None:
            conditions.append(OrderModel.package_id == package_id)
        if rating_value is not None:
            conditions.append(OrderModel.rating == rating_value)
        if start is not None:
            conditions.append(OrderModel.rated_at >= start)
        if end is not None:
            conditions.append(OrderModel.rated_at <= end)

        stmt = select(OrderModel).where(*conditions)
        if sort == "highest":
            stmt = stmt.order_by(OrderModel.rating.desc(), OrderModel.rated_at.desc())
        elif sort == "lowest":
            stmt = stmt.order_by(OrderModel.rating.asc(), OrderModel.rated_at.desc())
        else:
            stmt = stmt.order_by(OrderModel.rated_at.desc())

        result = await db.execute(stmt.offset(offset).limit(limit))
        total = await db.scalar(select(func.count(OrderModel.id)).where(*conditions))
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def rating_distribution(db: AsyncSession) -> Dict[int, int]:
        """Number of ratings per star value; values nobody gave are absent."""
        result = await db.execute(
            select(OrderModel.rating, func.count(OrderModel.id))
            .where(OrderModel.rating.is_not(None))
            .group_by(OrderModel.rating)
        )
        return {value: count for value, count in result.all()}


class PackageRepository:
    @staticmethod
    async def get_package(db: AsyncSession, package_id: int) -> Optional[PackageModel]:
        result = await db.execute(select(PackageModel).where(PackageModel.id == package_id))
        return result.scalars().first()

    @staticmethod
    async def list_packages(db: AsyncSession, active_only: bool = True) -> List[PackageModel]:
        stmt = select(PackageModel).order_by(PackageModel.price)
        if active_only:
            stmt = stmt.where(PackageModel.is_active.is_(True))
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create_package(db: AsyncSession, package: PackageModel) -> PackageModel:
        db.add(package)
        await db.commit()
        await db.refresh(package)
        return package
