from .entities import ADMIN_POOL, Actor, ExtraService, Order, OrderDraft, Package, Payment, Rating
from .errors import (
    AlreadyRated,
    ConcurrentModification,
    InvalidCommand,
    InvalidTransition,
    LifecycleError,
    NotFound,
    PaymentAlreadySettled,
    PaymentNotReady,
    TimeGateRejected,
)
from .gateways import AdminActionGateway, CustomerActionGateway, PaymentCallbackGateway
from .locks import OrderLocks
from .machine import Transition, available_actions
from .ports import Clock, NotificationEmitter, OrderStore, SystemClock
from .service import OrderLifecycleService, OrderView, build_view
from .states import Action, ActorRole, OrderStatus, PaymentMethod, PaymentStatus

__all__ = [
    "ADMIN_POOL",
    "Action",
    "Actor",
    "ActorRole",
    "AdminActionGateway",
    "AlreadyRated",
    "Clock",
    "ConcurrentModification",
    "CustomerActionGateway",
    "ExtraService",
    "InvalidCommand",
    "InvalidTransition",
    "LifecycleError",
    "NotFound",
    "NotificationEmitter",
    "Order",
    "OrderDraft",
    "OrderLifecycleService",
    "OrderLocks",
    "OrderStatus",
    "OrderStore",
    "OrderView",
    "Package",
    "Payment",
    "PaymentCallbackGateway",
    "PaymentAlreadySettled",
    "PaymentMethod",
    "PaymentNotReady",
    "PaymentStatus",
    "Rating",
    "SystemClock",
    "TimeGateRejected",
    "Transition",
    "available_actions",
    "build_view",
]
