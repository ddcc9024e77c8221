"""
Collaborators the lifecycle depends on.

Storage, time and notification delivery are injected so the core can run
against PostgreSQL in production and in-memory fakes in tests.
"""
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence, Tuple

from .entities import Order, Package, Payment


class OrderStore(Protocol):
    async def load_order(self, order_id: int) -> Optional[Order]: ...

    async def load_payment(self, order_id: int) -> Optional[Payment]: ...

    async def load_package(self, package_id: int) -> Optional[Package]: ...

    async def insert_order_and_payment(self, order: Order, payment: Payment) -> Tuple[Order, Payment]: ...

    async def save_order_and_payment(self, order: Order, payment: Payment, expected_version: int) -> Order:
        """
        Atomically persist both values.

        Must raise ``ConcurrentModification`` when the stored order version is
        no longer ``expected_version``, and must leave the stored state intact
        on any failure. Returns the order with its new version.
        """
        ...

    async def delete_orders_and_payments(self, order_ids: Sequence[int]) -> None:
        """Remove every listed order with its payment in one transaction."""
        ...


class NotificationEmitter(Protocol):
    async def emit(
        self,
        recipient_id: str,
        title: str,
        message: str,
        related_order_id: Optional[int],
    ) -> None: ...


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)
