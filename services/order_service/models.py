from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text
from shared.config.database import Base

class PackageModel(Base):
    __tablename__ = "packages"
    __table_args__ = {"schema": "order_schema"}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False) # whole rupiah
    is_active = Column(Boolean, nullable=False, default=True)


class OrderModel(Base):
    __tablename__ = "orders"
    # We use a separate schema to simulate microservice isolation
    __table_args__ = {"schema": "order_schema"}

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(String, nullable=False, index=True)
    assigned_staff_id = Column(String, nullable=True)
    package_id = Column(Integer, nullable=False)
    base_price = Column(Integer, nullable=False)
    extra_price = Column(Integer, nullable=False, default=0)
    extra_services = Column(JSON, nullable=False, default=list) # [{"name": ..., "price": ...}]
    status = Column(String, nullable=False, index=True, default="PENDING_CONFIRMATION")
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    before_photos = Column(JSON, nullable=False, default=list)
    after_photos = Column(JSON, nullable=False, default=list)
    rating = Column(Integer, nullable=True)
    review = Column(Text, nullable=True)
    rated_at = Column(DateTime(timezone=True), nullable=True)
    tip_amount = Column(Integer, nullable=True) # NULL: undecided, 0: skipped
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String, nullable=True)
    cancel_reason = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=0)
