"""
Order and payment states for the cleaning order lifecycle.

The order status graph only moves forward:

    PENDING_CONFIRMATION -> IN_PROGRESS -> COMPLETED
    PENDING_CONFIRMATION | IN_PROGRESS -> CANCELLED
"""

from enum import Enum
from typing import Dict, FrozenSet


class OrderStatus(str, Enum):
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    CARD = "CARD"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class ActorRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"
    GATEWAY = "GATEWAY"


class Action(str, Enum):
    """Every command the lifecycle accepts."""
    CREATE = "create_order"
    CONFIRM_AND_ASSIGN = "confirm_and_assign"
    UPLOAD_AFTER_PHOTO = "upload_after_photo"
    COMPLETE = "complete_order"
    CANCEL = "cancel_order"
    SUBMIT_RATING = "submit_rating"
    SUBMIT_TIP = "submit_tip"
    DELETE = "delete_order"
    MARK_PAYMENT_PAID = "mark_payment_paid"
    MARK_PAYMENT_FAILED = "mark_payment_failed"
    SWITCH_PAYMENT_TO_CASH = "switch_payment_to_cash"
    CHANGE_PAYMENT_METHOD = "change_payment_method"


INITIAL_STATUS: OrderStatus = OrderStatus.PENDING_CONFIRMATION

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset([
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
])

# Directed status graph; anything not listed here is rejected.
STATUS_GRAPH: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING_CONFIRMATION: frozenset([OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED]),
    OrderStatus.IN_PROGRESS: frozenset([OrderStatus.COMPLETED, OrderStatus.CANCELLED]),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

CANCELLABLE_STATUSES: FrozenSet[OrderStatus] = frozenset([
    OrderStatus.PENDING_CONFIRMATION,
    OrderStatus.IN_PROGRESS,
])


def can_move(current: OrderStatus, target: OrderStatus) -> bool:
    return target in STATUS_GRAPH[current]
