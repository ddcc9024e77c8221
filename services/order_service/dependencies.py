"""
FastAPI wiring for the order lifecycle.

Tests override ``get_order_store``, ``get_emitter`` and ``get_clock`` to run
the real routers against in-memory collaborators.
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from services.lifecycle import (
    Actor,
    AdminActionGateway,
    Clock,
    CustomerActionGateway,
    NotificationEmitter,
    OrderLifecycleService,
    OrderLocks,
    PaymentCallbackGateway,
    SystemClock,
)
from services.lifecycle.notices import SUPPORTED_LANGUAGES
from services.notification_service.emitter import SqlNotificationEmitter
from shared.config.database import AsyncSessionLocal, get_db
from shared.config.settings import DEFAULT_LANGUAGE, ORDER_LOCK_TIMEOUT_SECONDS
from shared.security.dependencies import require_admin, require_customer, verify_internal_api_key
from .store import SqlOrderStore

# One lock table per process; every request must share it.
order_locks = OrderLocks(timeout_seconds=ORDER_LOCK_TIMEOUT_SECONDS)


def get_order_locks() -> OrderLocks:
    return order_locks


def get_clock() -> Clock:
    return SystemClock()


def get_emitter() -> NotificationEmitter:
    return SqlNotificationEmitter(AsyncSessionLocal)


async def get_order_store(db: AsyncSession = Depends(get_db)) -> SqlOrderStore:
    return SqlOrderStore(db)


def get_language(accept_language: Optional[str] = Header(default=None)) -> str:
    """Picks the first supported language from Accept-Language."""
    if accept_language:
        for part in accept_language.split(","):
            code = part.split(";")[0].strip().lower()[:2]
            if code in SUPPORTED_LANGUAGES:
                return code
    return DEFAULT_LANGUAGE


def get_lifecycle_service(
    store: SqlOrderStore = Depends(get_order_store),
    emitter: NotificationEmitter = Depends(get_emitter),
    locks: OrderLocks = Depends(get_order_locks),
    clock: Clock = Depends(get_clock),
    language: str = Depends(get_language),
) -> OrderLifecycleService:
    return OrderLifecycleService(store, emitter, locks, clock=clock, language=language)


def get_customer_gateway(
    service: OrderLifecycleService = Depends(get_lifecycle_service),
    actor: Actor = Depends(require_customer),
) -> CustomerActionGateway:
    return CustomerActionGateway(service, actor)


def get_admin_gateway(
    service: OrderLifecycleService = Depends(get_lifecycle_service),
    actor: Actor = Depends(require_admin),
) -> AdminActionGateway:
    return AdminActionGateway(service, actor)


def get_payment_callback_gateway(
    service: OrderLifecycleService = Depends(get_lifecycle_service),
    _: bool = Depends(verify_internal_api_key),
) -> PaymentCallbackGateway:
    return PaymentCallbackGateway(service)
