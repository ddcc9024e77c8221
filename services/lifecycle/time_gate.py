"""
Time-gated permissions.

Pure predicates over order/payment timestamps and an explicit ``now``. Nothing
here reads the system clock, so every answer is reproducible in tests.
"""
from datetime import datetime, timedelta

from .entities import Order, Payment
from .states import OrderStatus, PaymentMethod, PaymentStatus

AFTER_PHOTO_DELAY = timedelta(minutes=5)
TRANSFER_WINDOW = timedelta(minutes=60)
# Tolerates client/server clock skew before a transfer is treated as expired.
TRANSFER_EXPIRY_GRACE = timedelta(seconds=60)


def after_photo_opens_at(order: Order) -> datetime:
    return order.scheduled_at + AFTER_PHOTO_DELAY


def is_payment_ready(payment: Payment) -> bool:
    """Cash is settled on site; every other method must be PAID up front."""
    return payment.method == PaymentMethod.CASH or payment.status == PaymentStatus.PAID


def can_upload_after_photo(order: Order, payment: Payment, now: datetime) -> bool:
    return (
        now >= after_photo_opens_at(order)
        and order.status == OrderStatus.IN_PROGRESS
        and is_payment_ready(payment)
    )


def _is_pending_transfer(payment: Payment) -> bool:
    return payment.method == PaymentMethod.TRANSFER and payment.status == PaymentStatus.PENDING


def is_transfer_expiring(payment: Payment, now: datetime) -> bool:
    """Soft expiry: used for warnings only, the order is never auto-cancelled."""
    return _is_pending_transfer(payment) and now > payment.created_at + TRANSFER_WINDOW


def is_transfer_expired(payment: Payment, now: datetime) -> bool:
    return (
        _is_pending_transfer(payment)
        and now >= payment.created_at + TRANSFER_WINDOW + TRANSFER_EXPIRY_GRACE
    )


def transfer_seconds_remaining(payment: Payment, now: datetime) -> int | None:
    """Countdown shown next to a pending transfer; None when no countdown applies."""
    if not _is_pending_transfer(payment):
        return None
    remaining = (payment.created_at + TRANSFER_WINDOW - now).total_seconds()
    return max(0, int(remaining))
