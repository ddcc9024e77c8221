"""
Order lifecycle state machine.

Every guard for every order command lives here. The functions are pure: they
take the current ``Order``/``Payment`` values, the acting ``Actor`` and an
explicit ``now``, and either raise a ``LifecycleError`` or return a
``Transition`` holding the new values. Nothing is mutated, nothing is saved
and nothing is emitted; ``OrderLifecycleService`` does that.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Tuple, Type

from . import payment_state, time_gate
from .entities import MAX_PHOTOS, Actor, Order, OrderDraft, Package, Payment, Rating
from .errors import (
    AlreadyRated,
    InvalidCommand,
    InvalidTransition,
    LifecycleError,
    NotFound,
    PaymentNotReady,
    TimeGateRejected,
)
from .states import (
    CANCELLABLE_STATUSES,
    INITIAL_STATUS,
    Action,
    ActorRole,
    OrderStatus,
    PaymentMethod,
    can_move,
)

MAX_REVIEW_LENGTH = 2000

# Commands each role may issue at all; state guards come on top of this.
ROLE_ACTIONS: Dict[ActorRole, FrozenSet[Action]] = {
    ActorRole.CUSTOMER: frozenset([
        Action.CREATE,
        Action.UPLOAD_AFTER_PHOTO,
        Action.COMPLETE,
        Action.CANCEL,
        Action.SUBMIT_RATING,
        Action.SUBMIT_TIP,
        Action.CHANGE_PAYMENT_METHOD,
    ]),
    ActorRole.ADMIN: frozenset([
        Action.CONFIRM_AND_ASSIGN,
        Action.COMPLETE,
        Action.CANCEL,
        Action.DELETE,
        Action.MARK_PAYMENT_PAID,
        Action.SWITCH_PAYMENT_TO_CASH,
    ]),
    ActorRole.GATEWAY: frozenset([
        Action.MARK_PAYMENT_PAID,
        Action.MARK_PAYMENT_FAILED,
    ]),
}


@dataclass(frozen=True)
class Transition:
    action: Action
    actor: Actor
    order: Order
    payment: Payment
    previous_status: Optional[OrderStatus] = None


def _reject(
    error_cls: Type[LifecycleError],
    message: str,
    action: Action,
    order: Order,
    payment: Optional[Payment] = None,
) -> LifecycleError:
    return error_cls(
        message,
        action=action,
        order_id=order.id,
        status=order.status,
        payment_status=payment.status if payment else None,
    )


def _require_role(actor: Actor, action: Action, order: Order, payment: Payment) -> None:
    if action not in ROLE_ACTIONS[actor.role]:
        raise _reject(
            InvalidTransition,
            f"{actor.role.value} may not {action.value}",
            action, order, payment,
        )


def _require_status(
    order: Order,
    payment: Payment,
    action: Action,
    allowed: Iterable[OrderStatus],
) -> None:
    allowed = frozenset(allowed)
    if order.status not in allowed:
        expected = " or ".join(sorted(s.value for s in allowed))
        raise _reject(
            InvalidTransition,
            f"Order must be {expected} to {action.value}, it is {order.status.value}",
            action, order, payment,
        )


def _move(order: Order, target: OrderStatus, action: Action, payment: Payment) -> Order:
    if not can_move(order.status, target):
        raise _reject(
            InvalidTransition,
            f"Cannot move from {order.status.value} to {target.value}",
            action, order, payment,
        )
    return replace(order, status=target)


def _clean_photos(photos: Iterable[str], action: Action, order: Order) -> Tuple[str, ...]:
    cleaned = tuple(p.strip() for p in photos if p and p.strip())
    if not cleaned:
        raise _reject(InvalidCommand, "At least one photo is required", action, order)
    if len(cleaned) > MAX_PHOTOS:
        raise _reject(InvalidCommand, f"At most {MAX_PHOTOS} photos are allowed", action, order)
    return cleaned


def create_order(draft: OrderDraft, package: Optional[Package], now: datetime) -> Transition:
    actor = Actor(id=draft.customer_id, role=ActorRole.CUSTOMER)
    if package is None or not package.is_active:
        raise NotFound("Package not found or inactive", action=Action.CREATE)
    if draft.scheduled_at <= now:
        raise InvalidCommand("Scheduled time must be in the future", action=Action.CREATE)
    if any(extra.price < 0 for extra in draft.extra_services):
        raise InvalidCommand("Extra service prices cannot be negative", action=Action.CREATE)

    photos = tuple(p.strip() for p in draft.before_photos if p and p.strip())
    if not photos:
        raise InvalidCommand("A before photo is required", action=Action.CREATE)
    if len(photos) > MAX_PHOTOS:
        raise InvalidCommand(f"At most {MAX_PHOTOS} photos are allowed", action=Action.CREATE)

    extra_price = sum(extra.price for extra in draft.extra_services)
    order = Order(
        id=None,
        customer_id=draft.customer_id,
        package_id=package.id,
        base_price=package.price,
        extra_price=extra_price,
        extra_services=tuple(draft.extra_services),
        scheduled_at=draft.scheduled_at,
        created_at=now,
        before_photos=photos,
        status=INITIAL_STATUS,
    )
    payment = Payment(
        order_id=None,
        method=draft.payment_method,
        amount=order.total_price,
        created_at=now,
    )
    return Transition(Action.CREATE, actor, order, payment)


def confirm_and_assign(
    order: Order, payment: Payment, actor: Actor, staff_id: Optional[str], now: datetime
) -> Transition:
    action = Action.CONFIRM_AND_ASSIGN
    _require_role(actor, action, order, payment)
    _require_status(order, payment, action, [OrderStatus.PENDING_CONFIRMATION])
    # Confirmation and assignment commit together or not at all.
    if not staff_id or not staff_id.strip():
        raise _reject(InvalidCommand, "A staff member must be assigned to confirm", action, order, payment)
    moved = _move(order, OrderStatus.IN_PROGRESS, action, payment)
    return Transition(
        action, actor, replace(moved, assigned_staff_id=staff_id.strip()), payment, order.status
    )


def upload_after_photo(
    order: Order, payment: Payment, actor: Actor, photos: Iterable[str], now: datetime
) -> Transition:
    action = Action.UPLOAD_AFTER_PHOTO
    _require_role(actor, action, order, payment)
    _require_status(order, payment, action, [OrderStatus.IN_PROGRESS])
    if not time_gate.is_payment_ready(payment):
        raise _reject(
            PaymentNotReady,
            "Payment must be completed before uploading the after photo",
            action, order, payment,
        )
    opens_at = time_gate.after_photo_opens_at(order)
    if now < opens_at:
        raise _reject(
            TimeGateRejected,
            f"After photo can only be uploaded from {opens_at.isoformat()}",
            action, order, payment,
        )
    cleaned = _clean_photos(photos, action, order)
    updated = replace(order, after_photos=cleaned)
    return Transition(action, actor, updated, payment, order.status)


def complete_order(order: Order, payment: Payment, actor: Actor, now: datetime) -> Transition:
    action = Action.COMPLETE
    _require_role(actor, action, order, payment)
    _require_status(order, payment, action, [OrderStatus.IN_PROGRESS])
    if not order.has_after_photo:
        raise _reject(
            InvalidTransition,
            "The after photo must be uploaded before completing the order",
            action, order, payment,
        )
    moved = _move(order, OrderStatus.COMPLETED, action, payment)
    return Transition(action, actor, replace(moved, completed_at=now), payment, order.status)


def cancel_order(
    order: Order, payment: Payment, actor: Actor, now: datetime, reason: Optional[str] = None
) -> Transition:
    action = Action.CANCEL
    _require_role(actor, action, order, payment)
    _require_status(order, payment, action, CANCELLABLE_STATUSES)
    moved = _move(order, OrderStatus.CANCELLED, action, payment)
    cancelled = replace(
        moved,
        cancelled_at=now,
        cancelled_by=actor.role,
        cancel_reason=(reason or "").strip() or None,
    )
    # A pending payment is left as it is; refunds are handled outside the lifecycle.
    return Transition(action, actor, cancelled, payment, order.status)


def submit_rating(
    order: Order,
    payment: Payment,
    actor: Actor,
    value: int,
    review: Optional[str],
    now: datetime,
) -> Transition:
    action = Action.SUBMIT_RATING
    _require_role(actor, action, order, payment)
    _require_status(order, payment, action, [OrderStatus.COMPLETED])
    if order.rating is not None:
        raise _reject(AlreadyRated, "Rating already exists for this order", action, order, payment)
    if not 1 <= value <= 5:
        raise _reject(InvalidCommand, "Rating must be between 1 and 5", action, order, payment)
    review = (review or "").strip() or None
    if review and len(review) > MAX_REVIEW_LENGTH:
        raise _reject(
            InvalidCommand,
            f"Review must be at most {MAX_REVIEW_LENGTH} characters",
            action, order, payment,
        )
    rated = replace(order, rating=Rating(value, review, now))
    return Transition(action, actor, rated, payment, order.status)


def submit_tip(order: Order, payment: Payment, actor: Actor, amount: int, now: datetime) -> Transition:
    """Record a tip. ``amount == 0`` records an explicit skip."""
    action = Action.SUBMIT_TIP
    _require_role(actor, action, order, payment)
    _require_status(order, payment, action, [OrderStatus.COMPLETED])
    if order.tip_decided:
        raise _reject(InvalidTransition, "Tip was already decided for this order", action, order, payment)
    if amount < 0:
        raise _reject(InvalidCommand, "Tip amount cannot be negative", action, order, payment)
    tipped = replace(order, tip_amount=amount)
    return Transition(action, actor, tipped, payment, order.status)


def delete_order(order: Order, payment: Payment, actor: Actor) -> Transition:
    """Hard removal for data cleanup; allowed from any state."""
    action = Action.DELETE
    _require_role(actor, action, order, payment)
    return Transition(action, actor, order, payment, order.status)


def _payment_failure(exc: InvalidTransition, order: Order) -> InvalidTransition:
    exc.status = order.status
    exc.order_id = order.id
    return exc


def mark_payment_paid(
    order: Order,
    payment: Payment,
    actor: Actor,
    now: datetime,
    reference: Optional[str] = None,
) -> Transition:
    action = Action.MARK_PAYMENT_PAID
    _require_role(actor, action, order, payment)
    if payment.method == PaymentMethod.CASH:
        if actor.role != ActorRole.ADMIN:
            raise _reject(
                InvalidTransition, "Cash payments are marked paid by an admin only",
                action, order, payment,
            )
        if order.status != OrderStatus.COMPLETED:
            raise _reject(
                InvalidTransition,
                "Cash payments can only be marked paid after the service is completed",
                action, order, payment,
            )
    elif actor.role != ActorRole.GATEWAY:
        raise _reject(
            InvalidTransition,
            f"{payment.method.value} payments are confirmed by the payment gateway only",
            action, order, payment,
        )
    try:
        paid = payment_state.mark_paid(payment, now, reference)
    except InvalidTransition as exc:
        raise _payment_failure(exc, order)
    return Transition(action, actor, order, paid, order.status)


def mark_payment_failed(
    order: Order, payment: Payment, actor: Actor, reference: Optional[str] = None
) -> Transition:
    action = Action.MARK_PAYMENT_FAILED
    _require_role(actor, action, order, payment)
    if payment.method == PaymentMethod.CASH:
        raise _reject(InvalidTransition, "Cash payments cannot fail at the gateway", action, order, payment)
    try:
        failed = payment_state.mark_failed(payment, reference)
    except InvalidTransition as exc:
        raise _payment_failure(exc, order)
    return Transition(action, actor, order, failed, order.status)


def switch_payment_to_cash(order: Order, payment: Payment, actor: Actor) -> Transition:
    action = Action.SWITCH_PAYMENT_TO_CASH
    _require_role(actor, action, order, payment)
    try:
        cash = payment_state.switch_to_cash(payment)
    except InvalidTransition as exc:
        raise _payment_failure(exc, order)
    return Transition(action, actor, order, cash, order.status)


def change_payment_method(
    order: Order, payment: Payment, actor: Actor, method: PaymentMethod
) -> Transition:
    """Customer swaps the payment method while the order still awaits confirmation."""
    action = Action.CHANGE_PAYMENT_METHOD
    _require_role(actor, action, order, payment)
    _require_status(order, payment, action, [OrderStatus.PENDING_CONFIRMATION])
    try:
        changed = payment_state.change_method(payment, method)
    except InvalidTransition as exc:
        raise _payment_failure(exc, order)
    return Transition(action, actor, order, changed, order.status)


def available_actions(
    order: Order, payment: Payment, actor: Actor, now: datetime
) -> FrozenSet[Action]:
    """
    Commands the actor could issue right now.

    Computed by dry-running the real transitions, so the answer can never
    drift from the guards above.
    """
    dry_runs: Dict[Action, Callable[[], Transition]] = {
        Action.CONFIRM_AND_ASSIGN: lambda: confirm_and_assign(order, payment, actor, actor.id, now),
        Action.UPLOAD_AFTER_PHOTO: lambda: upload_after_photo(order, payment, actor, ["after/dry-run.jpg"], now),
        Action.COMPLETE: lambda: complete_order(order, payment, actor, now),
        Action.CANCEL: lambda: cancel_order(order, payment, actor, now),
        Action.SUBMIT_RATING: lambda: submit_rating(order, payment, actor, 5, None, now),
        Action.SUBMIT_TIP: lambda: submit_tip(order, payment, actor, 0, now),
        Action.DELETE: lambda: delete_order(order, payment, actor),
        Action.MARK_PAYMENT_PAID: lambda: mark_payment_paid(order, payment, actor, now),
        Action.MARK_PAYMENT_FAILED: lambda: mark_payment_failed(order, payment, actor),
        Action.SWITCH_PAYMENT_TO_CASH: lambda: switch_payment_to_cash(order, payment, actor),
        Action.CHANGE_PAYMENT_METHOD: lambda: change_payment_method(order, payment, actor, payment.method),
    }
    allowed = set()
    for action, attempt in dry_runs.items():
        if action not in ROLE_ACTIONS[actor.role]:
            continue
        try:
            attempt()
        except LifecycleError:
            continue
        allowed.add(action)
    return frozenset(allowed)
