"""
Typed lifecycle failures.

Each error carries the attempted action and the state the order/payment was
in when the guard rejected it, so callers can render a precise message.
"""
from typing import Any, Dict, Optional

from .states import Action, OrderStatus, PaymentStatus


class LifecycleError(Exception):
    kind = "lifecycle_error"

    def __init__(
        self,
        message: str,
        action: Action | None = None,
        order_id: int | None = None,
        status: OrderStatus | None = None,
        payment_status: PaymentStatus | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.action = action
        self.order_id = order_id
        self.status = status
        self.payment_status = payment_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind,
            "action": self.action.value if self.action else None,
            "order_id": self.order_id,
            "status": self.status.value if self.status else None,
            "payment_status": self.payment_status.value if self.payment_status else None,
            "message": self.message,
        }


class InvalidTransition(LifecycleError):
    """The order or payment is in the wrong state for the requested action."""
    kind = "invalid_transition"


class PaymentAlreadySettled(InvalidTransition):
    """The payment already left PENDING (PAID or FAILED)."""


class TimeGateRejected(LifecycleError):
    """The action is not allowed yet (or any more) at the current time."""
    kind = "time_gate_rejected"


class AlreadyRated(LifecycleError):
    kind = "already_rated"


class PaymentNotReady(LifecycleError):
    """A non-cash payment has not been PAID yet."""
    kind = "payment_not_ready"


class NotFound(LifecycleError):
    kind = "not_found"


class ConcurrentModification(LifecycleError):
    """Another transition on the same order won the race."""
    kind = "concurrent_modification"


class InvalidCommand(LifecycleError):
    """The command itself is malformed (missing photo, bad rating value, ...)."""
    kind = "invalid_command"


def not_found(what: str, order_id: Optional[int], action: Action | None = None) -> NotFound:
    return NotFound(f"{what} not found", action=action, order_id=order_id)
