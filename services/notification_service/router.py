from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from services.lifecycle import Actor
from shared.config.database import get_db
from shared.security.dependencies import get_current_actor
from .schemas import MarkAllReadResponse, NotificationListResponse, NotificationResponse
from .service import NotificationService

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health")
async def health_check():
    return {"service": "notification", "status": "running"}


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(default=False),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    items, unread = await NotificationService.list_notifications(db, actor, unread_only, page, limit)
    return {"items": items, "unread_count": unread}

@router.patch("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(actor: Actor = Depends(get_current_actor), db: AsyncSession = Depends(get_db)):
    return {"updated": await NotificationService.mark_all_read(db, actor)}

@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService.mark_read(db, actor, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification
