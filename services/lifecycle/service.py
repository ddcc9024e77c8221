from contextlib import AsyncExitStack
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import structlog

from shared.observability import cleaning_notifications_total, cleaning_order_transitions_total

from . import machine, time_gate
from .entities import Actor, Order, OrderDraft, Payment
from .errors import InvalidCommand, LifecycleError, NotFound, not_found
from .locks import OrderLocks
from .machine import Transition
from .notices import build_notice
from .ports import Clock, NotificationEmitter, OrderStore, SystemClock
from .states import Action, ActorRole, PaymentMethod

logger = structlog.get_logger(__name__)

Step = Callable[[Order, Payment, datetime], Transition]


@dataclass(frozen=True)
class OrderView:
    """An order as a given actor sees it at a given moment."""
    order: Order
    payment: Payment
    actions: FrozenSet[Action]
    after_photo_opens_at: datetime
    transfer_expiring: bool
    transfer_expired: bool
    transfer_seconds_remaining: Optional[int]


def build_view(order: Order, payment: Payment, actor: Actor, now: datetime) -> OrderView:
    return OrderView(
        order=order,
        payment=payment,
        actions=machine.available_actions(order, payment, actor, now),
        after_photo_opens_at=time_gate.after_photo_opens_at(order),
        transfer_expiring=time_gate.is_transfer_expiring(payment, now),
        transfer_expired=time_gate.is_transfer_expired(payment, now),
        transfer_seconds_remaining=time_gate.transfer_seconds_remaining(payment, now),
    )


class OrderLifecycleService:
    """
    Runs lifecycle commands end to end.

    For every command: take the per-order lock, load Order+Payment, apply the
    pure transition, save both atomically, release the lock, then emit exactly
    one notice. A rejected or failed command saves and emits nothing.
    """

    def __init__(
        self,
        store: OrderStore,
        emitter: NotificationEmitter,
        locks: OrderLocks,
        clock: Clock | None = None,
        language: str = "id",
    ):
        self.store = store
        self.emitter = emitter
        self.locks = locks
        self.clock = clock or SystemClock()
        self.language = language

    # --- reads ---

    async def _load_pair(self, order_id: int, actor: Actor, action: Action | None) -> Tuple[Order, Payment]:
        order = await self.store.load_order(order_id)
        # Customers never learn that someone else's order exists.
        if order is None or (actor.role == ActorRole.CUSTOMER and order.customer_id != actor.id):
            raise not_found("Order", order_id, action)
        payment = await self.store.load_payment(order_id)
        if payment is None:
            raise not_found("Payment", order_id, action)
        return order, payment

    async def get_order_view(self, order_id: int, actor: Actor) -> OrderView:
        order, payment = await self._load_pair(order_id, actor, None)
        return build_view(order, payment, actor, self.clock.now())

    # --- plumbing ---

    async def _notify(self, transition: Transition) -> None:
        notice = build_notice(transition, self.language)
        try:
            await self.emitter.emit(notice.recipient_id, notice.title, notice.message, notice.related_order_id)
        except Exception:
            # Delivery problems never undo a committed transition.
            cleaning_notifications_total.labels(outcome="failed").inc()
            logger.exception(
                "notification_emit_failed",
                action=transition.action.value,
                order_id=transition.order.id,
                recipient_id=notice.recipient_id,
            )
            return
        cleaning_notifications_total.labels(outcome="emitted").inc()

    def _rejected(self, exc: LifecycleError, action: Action, order_id: int | None, actor: Actor) -> None:
        # Errors raised by the store do not know which command was running.
        if exc.action is None:
            exc.action = action
        cleaning_order_transitions_total.labels(action=action.value, outcome=exc.kind).inc()
        logger.info(
            "order_transition_rejected",
            action=action.value,
            order_id=order_id,
            actor_role=actor.role.value,
            error=exc.kind,
            status=exc.status.value if exc.status else None,
        )

    def _failed(self, action: Action, order_id: int | None) -> None:
        cleaning_order_transitions_total.labels(action=action.value, outcome="error").inc()
        logger.exception("order_transition_failed", action=action.value, order_id=order_id)

    def _committed(self, transition: Transition) -> None:
        cleaning_order_transitions_total.labels(action=transition.action.value, outcome="committed").inc()
        logger.info(
            "order_transition_committed",
            action=transition.action.value,
            order_id=transition.order.id,
            actor_role=transition.actor.role.value,
            from_status=transition.previous_status.value if transition.previous_status else None,
            to_status=transition.order.status.value,
            payment_status=transition.payment.status.value,
        )

    async def _run(self, order_id: int, action: Action, actor: Actor, step: Step) -> Transition:
        try:
            async with self.locks.hold(order_id, action):
                order, payment = await self._load_pair(order_id, actor, action)
                transition = step(order, payment, self.clock.now())
                if transition.order == order and transition.payment == payment:
                    # Nothing changed (e.g. the same payment method again): nothing to save or announce.
                    return transition
                saved = await self.store.save_order_and_payment(
                    transition.order, transition.payment, expected_version=order.version
                )
                transition = replace(transition, order=saved)
        except LifecycleError as exc:
            self._rejected(exc, action, order_id, actor)
            raise
        except Exception:
            self._failed(action, order_id)
            raise
        self._committed(transition)
        await self._notify(transition)
        return transition

    # --- commands ---

    async def create_order(self, draft: OrderDraft) -> Transition:
        actor = Actor(id=draft.customer_id, role=ActorRole.CUSTOMER)
        try:
            package = await self.store.load_package(draft.package_id)
            transition = machine.create_order(draft, package, self.clock.now())
        except LifecycleError as exc:
            self._rejected(exc, Action.CREATE, None, actor)
            raise
        try:
            order, payment = await self.store.insert_order_and_payment(transition.order, transition.payment)
        except Exception:
            self._failed(Action.CREATE, None)
            raise
        transition = replace(transition, order=order, payment=payment)
        self._committed(transition)
        await self._notify(transition)
        return transition

    async def confirm_and_assign(self, order_id: int, actor: Actor, staff_id: Optional[str]) -> Transition:
        return await self._run(
            order_id, Action.CONFIRM_AND_ASSIGN, actor,
            lambda o, p, now: machine.confirm_and_assign(o, p, actor, staff_id, now),
        )

    async def upload_after_photo(self, order_id: int, actor: Actor, photos: Iterable[str]) -> Transition:
        photos = list(photos)
        return await self._run(
            order_id, Action.UPLOAD_AFTER_PHOTO, actor,
            lambda o, p, now: machine.upload_after_photo(o, p, actor, photos, now),
        )

    async def complete_order(self, order_id: int, actor: Actor) -> Transition:
        return await self._run(
            order_id, Action.COMPLETE, actor,
            lambda o, p, now: machine.complete_order(o, p, actor, now),
        )

    async def cancel_order(self, order_id: int, actor: Actor, reason: Optional[str] = None) -> Transition:
        return await self._run(
            order_id, Action.CANCEL, actor,
            lambda o, p, now: machine.cancel_order(o, p, actor, now, reason),
        )

    async def submit_rating(
        self, order_id: int, actor: Actor, value: int, review: Optional[str] = None
    ) -> Transition:
        return await self._run(
            order_id, Action.SUBMIT_RATING, actor,
            lambda o, p, now: machine.submit_rating(o, p, actor, value, review, now),
        )

    async def submit_tip(self, order_id: int, actor: Actor, amount: int) -> Transition:
        return await self._run(
            order_id, Action.SUBMIT_TIP, actor,
            lambda o, p, now: machine.submit_tip(o, p, actor, amount, now),
        )

    async def skip_tip(self, order_id: int, actor: Actor) -> Transition:
        return await self.submit_tip(order_id, actor, 0)

    async def mark_payment_paid(self, order_id: int, actor: Actor, reference: Optional[str] = None) -> Transition:
        return await self._run(
            order_id, Action.MARK_PAYMENT_PAID, actor,
            lambda o, p, now: machine.mark_payment_paid(o, p, actor, now, reference),
        )

    async def mark_payment_failed(self, order_id: int, actor: Actor, reference: Optional[str] = None) -> Transition:
        return await self._run(
            order_id, Action.MARK_PAYMENT_FAILED, actor,
            lambda o, p, now: machine.mark_payment_failed(o, p, actor, reference),
        )

    async def switch_payment_to_cash(self, order_id: int, actor: Actor) -> Transition:
        return await self._run(
            order_id, Action.SWITCH_PAYMENT_TO_CASH, actor,
            lambda o, p, now: machine.switch_payment_to_cash(o, p, actor),
        )

    async def change_payment_method(self, order_id: int, actor: Actor, method: PaymentMethod) -> Transition:
        return await self._run(
            order_id, Action.CHANGE_PAYMENT_METHOD, actor,
            lambda o, p, now: machine.change_payment_method(o, p, actor, method),
        )

    async def delete_order(self, order_id: int, actor: Actor) -> Transition:
        transitions = await self.delete_orders([order_id], actor)
        return transitions[0]

    async def delete_orders(self, order_ids: Sequence[int], actor: Actor) -> List[Transition]:
        """
        Remove several orders at once, all or nothing.

        If any id is unknown nothing is deleted and ``NotFound`` names the
        first missing one. Locks are taken in ascending id order so two bulk
        deletes can never wait on each other.
        """
        action = Action.DELETE
        ids = sorted(set(order_ids))
        first_id = ids[0] if ids else None
        try:
            if not ids:
                raise InvalidCommand("At least one order id is required", action=action)
            async with AsyncExitStack() as stack:
                for order_id in ids:
                    await stack.enter_async_context(self.locks.hold(order_id, action))
                transitions = []
                for order_id in ids:
                    order = await self.store.load_order(order_id)
                    payment = await self.store.load_payment(order_id) if order else None
                    if order is None or payment is None:
                        raise NotFound("Some orders not found", action=action, order_id=order_id)
                    transitions.append(machine.delete_order(order, payment, actor))
                await self.store.delete_orders_and_payments(ids)
        except LifecycleError as exc:
            self._rejected(exc, action, exc.order_id or first_id, actor)
            raise
        except Exception:
            self._failed(action, first_id)
            raise
        for transition in transitions:
            self._committed(transition)
            await self._notify(transition)
        return transitions
