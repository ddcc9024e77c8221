"""
Role-specific entry points into the order lifecycle.

A gateway is bound to one actor and only exposes the commands that role can
issue. Guards are never re-checked here; every rule lives in ``machine``.
"""
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

import structlog

from .entities import Actor, OrderDraft
from .errors import PaymentAlreadySettled
from .machine import Transition
from .service import OrderLifecycleService, OrderView
from .states import ActorRole, PaymentMethod, PaymentStatus

logger = structlog.get_logger(__name__)


class _BoundGateway:
    role: ActorRole

    def __init__(self, service: OrderLifecycleService, actor: Actor):
        if actor.role != self.role:
            raise ValueError(f"{type(self).__name__} needs a {self.role.value} actor, got {actor.role.value}")
        self.service = service
        self.actor = actor

    async def view(self, order_id: int) -> OrderView:
        return await self.service.get_order_view(order_id, self.actor)


class CustomerActionGateway(_BoundGateway):
    role = ActorRole.CUSTOMER

    async def create_order(self, draft: OrderDraft) -> Transition:
        # The order always belongs to the caller, whatever the draft says.
        return await self.service.create_order(replace(draft, customer_id=self.actor.id))

    async def upload_after_photo(self, order_id: int, photos: Iterable[str]) -> Transition:
        return await self.service.upload_after_photo(order_id, self.actor, photos)

    async def complete(self, order_id: int) -> Transition:
        return await self.service.complete_order(order_id, self.actor)

    async def cancel(self, order_id: int, reason: Optional[str] = None) -> Transition:
        return await self.service.cancel_order(order_id, self.actor, reason)

    async def rate(self, order_id: int, value: int, review: Optional[str] = None) -> Transition:
        return await self.service.submit_rating(order_id, self.actor, value, review)

    async def tip(self, order_id: int, amount: int) -> Transition:
        return await self.service.submit_tip(order_id, self.actor, amount)

    async def skip_tip(self, order_id: int) -> Transition:
        return await self.service.skip_tip(order_id, self.actor)

    async def change_payment_method(self, order_id: int, method: PaymentMethod) -> Transition:
        return await self.service.change_payment_method(order_id, self.actor, method)


class AdminActionGateway(_BoundGateway):
    role = ActorRole.ADMIN

    async def confirm_and_assign(self, order_id: int, staff_id: Optional[str]) -> Transition:
        return await self.service.confirm_and_assign(order_id, self.actor, staff_id)

    async def complete(self, order_id: int) -> Transition:
        return await self.service.complete_order(order_id, self.actor)

    async def cancel(self, order_id: int, reason: Optional[str] = None) -> Transition:
        return await self.service.cancel_order(order_id, self.actor, reason)

    async def delete(self, order_id: int) -> Transition:
        return await self.service.delete_order(order_id, self.actor)

    async def delete_many(self, order_ids: Sequence[int]) -> List[Transition]:
        return await self.service.delete_orders(order_ids, self.actor)

    async def mark_cash_paid(self, order_id: int) -> Transition:
        return await self.service.mark_payment_paid(order_id, self.actor)

    async def switch_to_cash(self, order_id: int) -> Transition:
        return await self.service.switch_payment_to_cash(order_id, self.actor)


class PaymentCallbackGateway(_BoundGateway):
    """
    Applies already-verified payment gateway results.

    Gateways retry their callbacks, so a result that has already been applied
    is acknowledged and ignored instead of being reported as a conflict.
    """
    role = ActorRole.GATEWAY

    def __init__(self, service: OrderLifecycleService, actor: Actor | None = None):
        super().__init__(service, actor or Actor.gateway())

    async def apply(
        self, order_id: int, status: PaymentStatus, reference: Optional[str] = None
    ) -> Optional[Transition]:
        if status == PaymentStatus.PENDING:
            logger.info("payment_callback_pending", order_id=order_id, reference=reference)
            return None
        try:
            if status == PaymentStatus.PAID:
                return await self.service.mark_payment_paid(order_id, self.actor, reference)
            return await self.service.mark_payment_failed(order_id, self.actor, reference)
        except PaymentAlreadySettled as exc:
            # Only a retry of the same result is acknowledged.
            if exc.payment_status != status:
                raise
            logger.info(
                "payment_callback_duplicate",
                order_id=order_id,
                payment_status=status.value,
                reference=reference,
            )
            return None
