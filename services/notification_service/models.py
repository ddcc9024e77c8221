from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func
from shared.config.database import Base

class NotificationModel(Base):
    __tablename__ = "notifications"
    __table_args__ = {"schema": "notification_schema"}

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(String, nullable=False, index=True) # user id, or "admins" for the admin pool
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    related_order_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
