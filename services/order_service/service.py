import math
from datetime import datetime
from typing import List, Optional

from services.lifecycle import Actor, OrderView, build_view
from .schemas import (
    OrderListResponse,
    OrderResponse,
    Pagination,
    RatingListResponse,
    RatingOut,
    RatingSummaryResponse,
)
from .store import SqlOrderStore

DEFAULT_PAGE_SIZE = 7
RATINGS_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50
RATING_VALUES = (5, 4, 3, 2, 1)


def clamp_limit(limit: Optional[int], default: int = DEFAULT_PAGE_SIZE) -> int:
    return min(MAX_PAGE_SIZE, max(1, limit or default))


def _pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if total else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
    )


def _page(views: List[OrderView], page: int, limit: int, total: int) -> OrderListResponse:
    return OrderListResponse(
        items=[OrderResponse.from_view(v) for v in views],
        pagination=_pagination(page, limit, total),
    )


class OrderService:
    """List screens. Every command goes through the lifecycle gateways instead."""

    @staticmethod
    async def list_customer_orders(
        store: SqlOrderStore,
        actor: Actor,
        status_filter: Optional[str],
        page: int,
        limit: Optional[int],
        now: datetime,
    ) -> OrderListResponse:
        limit = clamp_limit(limit)
        pairs, total = await store.list_customer_orders(
            actor.id, status_filter, now, (page - 1) * limit, limit
        )
        views = [build_view(order, payment, actor, now) for order, payment in pairs]
        return _page(views, page, limit, total)

    @staticmethod
    async def list_admin_orders(
        store: SqlOrderStore,
        actor: Actor,
        status: Optional[str],
        page: int,
        limit: Optional[int],
        now: datetime,
    ) -> OrderListResponse:
        limit = clamp_limit(limit)
        pairs, total = await store.list_admin_orders(status, (page - 1) * limit, limit)
        views = [build_view(order, payment, actor, now) for order, payment in pairs]
        return _page(views, page, limit, total)

    @staticmethod
    async def pending_count(store: SqlOrderStore) -> int:
        return await store.count_pending_confirmation()


class RatingService:
    @staticmethod
    async def list_ratings(
        store: SqlOrderStore,
        package_id: Optional[int],
        rating_value: Optional[int],
        start: Optional[datetime],
        end: Optional[datetime],
        sort: str,
        page: int,
        limit: Optional[int],
    ) -> RatingListResponse:
        limit = clamp_limit(limit, RATINGS_PAGE_SIZE)
        orders, total = await store.list_ratings(
            package_id, rating_value, start, end, sort, (page - 1) * limit, limit
        )
        items = [
            RatingOut(
                order_id=o.id,
                customer_id=o.customer_id,
                package_id=o.package_id,
                rating=o.rating.value,
                review=o.rating.review,
                rated_at=o.rating.created_at,
            )
            for o in orders
        ]
        return RatingListResponse(items=items, pagination=_pagination(page, limit, total))

    @staticmethod
    async def summary(store: SqlOrderStore) -> RatingSummaryResponse:
        counts = await store.rating_distribution()
        distribution = {value: counts.get(value, 0) for value in RATING_VALUES}
        total = sum(distribution.values())
        if not total:
            return RatingSummaryResponse(
                average_rating=0, total_ratings=0, five_star_percentage=0, distribution=distribution
            )
        average = sum(value * count for value, count in distribution.items()) / total
        return RatingSummaryResponse(
            average_rating=round(average, 1),
            total_ratings=total,
            five_star_percentage=round(distribution[5] / total * 100, 1),
            distribution=distribution,
        )
