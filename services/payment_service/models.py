from sqlalchemy import Column, DateTime, Integer, String
from shared.config.database import Base

class PaymentModel(Base):
    __tablename__ = "payments"
    __table_args__ = {"schema": "payment_schema"}

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, nullable=False, unique=True, index=True) # one payment per order
    method = Column(String, nullable=False) # CASH, TRANSFER, CARD
    status = Column(String, nullable=False, default="PENDING") # PENDING, PAID, FAILED
    amount = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    gateway_reference = Column(String, nullable=True)
