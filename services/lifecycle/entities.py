from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from .states import ActorRole, OrderStatus, PaymentMethod, PaymentStatus

# Reserved recipient id for notifications addressed to every admin.
ADMIN_POOL = "admins"

MAX_PHOTOS = 4


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @classmethod
    def gateway(cls) -> "Actor":
        return cls(id="payment-gateway", role=ActorRole.GATEWAY)


@dataclass(frozen=True)
class ExtraService:
    name: str
    price: int


@dataclass(frozen=True)
class Package:
    id: int
    name: str
    price: int
    is_active: bool = True


@dataclass(frozen=True)
class Rating:
    value: int
    review: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Order:
    id: Optional[int]
    customer_id: str
    package_id: int
    base_price: int
    extra_price: int
    scheduled_at: datetime
    created_at: datetime
    before_photos: Tuple[str, ...]
    status: OrderStatus = OrderStatus.PENDING_CONFIRMATION
    extra_services: Tuple[ExtraService, ...] = ()
    assigned_staff_id: Optional[str] = None
    after_photos: Tuple[str, ...] = ()
    rating: Optional[Rating] = None
    # None: not decided yet, 0: explicitly skipped, > 0: tip given
    tip_amount: Optional[int] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[ActorRole] = None
    cancel_reason: Optional[str] = None
    version: int = 0

    @property
    def total_price(self) -> int:
        return self.base_price + self.extra_price

    @property
    def has_after_photo(self) -> bool:
        return len(self.after_photos) > 0

    @property
    def tip_decided(self) -> bool:
        return self.tip_amount is not None

    @property
    def tip_skipped(self) -> bool:
        return self.tip_amount == 0


@dataclass(frozen=True)
class Payment:
    order_id: Optional[int]
    method: PaymentMethod
    amount: int
    created_at: datetime
    status: PaymentStatus = PaymentStatus.PENDING
    id: Optional[int] = None
    paid_at: Optional[datetime] = None
    gateway_reference: Optional[str] = None


@dataclass(frozen=True)
class OrderDraft:
    """Customer input for a new order, before pricing."""
    customer_id: str
    package_id: int
    payment_method: PaymentMethod
    scheduled_at: datetime
    before_photos: Tuple[str, ...]
    extra_services: Tuple[ExtraService, ...] = field(default_factory=tuple)
