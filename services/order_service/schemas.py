from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from services.lifecycle import OrderView, PaymentMethod, PaymentStatus

class ExtraServiceIn(BaseModel):
    name: str
    price: int

class OrderCreate(BaseModel):
    package_id: int
    payment_method: PaymentMethod
    scheduled_at: datetime
    before_photos: List[str]
    extra_services: List[ExtraServiceIn] = []

    @field_validator("scheduled_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Clients that omit an offset mean UTC
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

class AfterPhotoUpload(BaseModel):
    photos: List[str]

class CancelRequest(BaseModel):
    reason: Optional[str] = None

class RatingCreate(BaseModel):
    rating: int
    review: Optional[str] = None

class TipCreate(BaseModel):
    amount: int

class ConfirmRequest(BaseModel):
    staff_id: Optional[str] = None

class PaymentMethodUpdate(BaseModel):
    payment_method: PaymentMethod

class BulkDeleteRequest(BaseModel):
    ids: List[int] = Field(min_length=1)


class PaymentResponse(BaseModel):
    id: Optional[int]
    order_id: Optional[int]
    method: PaymentMethod
    status: PaymentStatus
    amount: int
    created_at: datetime
    paid_at: Optional[datetime]
    gateway_reference: Optional[str]

    class Config:
        from_attributes = True

class ExtraServiceOut(BaseModel):
    name: str
    price: int

    class Config:
        from_attributes = True

class OrderResponse(BaseModel):
    id: int
    customer_id: str
    assigned_staff_id: Optional[str]
    package_id: int
    base_price: int
    extra_price: int
    total_price: int
    extra_services: List[ExtraServiceOut]
    status: str
    scheduled_at: datetime
    created_at: datetime
    before_photos: List[str]
    after_photos: List[str]
    rating: Optional[int]
    review: Optional[str]
    tip_amount: Optional[int]
    tip_skipped: bool
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    cancelled_by: Optional[str]
    cancel_reason: Optional[str]
    version: int
    payment: PaymentResponse
    available_actions: List[str]
    after_photo_opens_at: datetime
    transfer_expiring: bool
    transfer_expired: bool
    transfer_seconds_remaining: Optional[int]

    @classmethod
    def from_view(cls, view: OrderView) -> "OrderResponse":
        order = view.order
        return cls(
            id=order.id,
            customer_id=order.customer_id,
            assigned_staff_id=order.assigned_staff_id,
            package_id=order.package_id,
            base_price=order.base_price,
            extra_price=order.extra_price,
            total_price=order.total_price,
            extra_services=[ExtraServiceOut.model_validate(e) for e in order.extra_services],
            status=order.status.value,
            scheduled_at=order.scheduled_at,
            created_at=order.created_at,
            before_photos=list(order.before_photos),
            after_photos=list(order.after_photos),
            rating=order.rating.value if order.rating else None,
            review=order.rating.review if order.rating else None,
            tip_amount=order.tip_amount,
            tip_skipped=order.tip_skipped,
            completed_at=order.completed_at,
            cancelled_at=order.cancelled_at,
            cancelled_by=order.cancelled_by.value if order.cancelled_by else None,
            cancel_reason=order.cancel_reason,
            version=order.version,
            payment=PaymentResponse.model_validate(view.payment),
            available_actions=sorted(a.value for a in view.actions),
            after_photo_opens_at=view.after_photo_opens_at,
            transfer_expiring=view.transfer_expiring,
            transfer_expired=view.transfer_expired,
            transfer_seconds_remaining=view.transfer_seconds_remaining,
        )

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool

class OrderListResponse(BaseModel):
    items: List[OrderResponse]
    pagination: Pagination

class PendingCountResponse(BaseModel):
    count: int

class DeleteResponse(BaseModel):
    message: str
    order_id: int

class BulkDeleteResponse(BaseModel):
    message: str
    order_ids: List[int]

class RatingOut(BaseModel):
    order_id: int
    customer_id: str
    package_id: int
    rating: int
    review: Optional[str]
    rated_at: Optional[datetime]

class RatingListResponse(BaseModel):
    items: List[RatingOut]
    pagination: Pagination

class RatingSummaryResponse(BaseModel):
    average_rating: float
    total_ratings: int
    five_star_percentage: float
    distribution: Dict[int, int]


class PackageCreate(BaseModel):
    name: str
    description: Optional[str] = None
    price: int = Field(ge=0)
    is_active: bool = True

class PackageResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    price: int
    is_active: bool

    class Config:
        from_attributes = True
