from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

class NotificationResponse(BaseModel):
    id: int
    recipient_id: str
    title: str
    message: str
    related_order_id: Optional[int]
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True

class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]
    unread_count: int

class MarkAllReadResponse(BaseModel):
    updated: int
