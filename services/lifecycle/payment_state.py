"""
Payment sub-object transitions.

All functions are total over their guards and return a new ``Payment``; the
input value is never modified.
"""
from dataclasses import replace
from datetime import datetime

from .entities import Payment
from .errors import InvalidTransition, PaymentAlreadySettled
from .states import Action, PaymentMethod, PaymentStatus


def _require_pending(payment: Payment, action: Action) -> None:
    if payment.status != PaymentStatus.PENDING:
        raise PaymentAlreadySettled(
            f"Payment must be PENDING for {action.value}, it is {payment.status.value}",
            action=action,
            order_id=payment.order_id,
            payment_status=payment.status,
        )


def mark_paid(payment: Payment, now: datetime, reference: str | None = None) -> Payment:
    _require_pending(payment, Action.MARK_PAYMENT_PAID)
    return replace(
        payment,
        status=PaymentStatus.PAID,
        paid_at=now,
        gateway_reference=reference or payment.gateway_reference,
    )


def mark_failed(payment: Payment, reference: str | None = None) -> Payment:
    _require_pending(payment, Action.MARK_PAYMENT_FAILED)
    return replace(
        payment,
        status=PaymentStatus.FAILED,
        gateway_reference=reference or payment.gateway_reference,
    )


def change_method(payment: Payment, method: PaymentMethod) -> Payment:
    """Customer picks another method before anything was paid. Same method is a no-op."""
    _require_pending(payment, Action.CHANGE_PAYMENT_METHOD)
    if payment.method == method:
        return payment
    # A reference from the previous method's gateway attempt is no longer valid.
    return replace(payment, method=method, gateway_reference=None)


def switch_to_cash(payment: Payment) -> Payment:
    """Admin converts an abandoned online payment to pay-on-site."""
    _require_pending(payment, Action.SWITCH_PAYMENT_TO_CASH)
    if payment.method == PaymentMethod.CASH:
        raise InvalidTransition(
            "Payment is already CASH",
            action=Action.SWITCH_PAYMENT_TO_CASH,
            order_id=payment.order_id,
            payment_status=payment.status,
        )
    # The old gateway reference belongs to the abandoned online attempt.
    return replace(
        payment,
        method=PaymentMethod.CASH,
        status=PaymentStatus.PENDING,
        gateway_reference=None,
    )
