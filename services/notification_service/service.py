from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from services.lifecycle import ADMIN_POOL, Actor
from .models import NotificationModel
from .repository import NotificationRepository


def inbox_ids(actor: Actor) -> List[str]:
    """Recipient ids whose notifications this actor reads; admins share the pool."""
    if actor.is_admin:
        return [actor.id, ADMIN_POOL]
    return [actor.id]


class NotificationService:
    @staticmethod
    async def list_notifications(
        db: AsyncSession, actor: Actor, unread_only: bool, page: int, limit: int
    ):
        ids = inbox_ids(actor)
        items = await NotificationRepository.list_for(db, ids, unread_only, (page - 1) * limit, limit)
        unread = await NotificationRepository.count_unread(db, ids)
        return items, unread

    @staticmethod
    async def mark_read(db: AsyncSession, actor: Actor, notification_id: int) -> NotificationModel | None:
        notification = await NotificationRepository.get_notification(db, notification_id)
        # Someone else's notification looks exactly like a missing one.
        if not notification or notification.recipient_id not in inbox_ids(actor):
            return None
        if notification.is_read:
            return notification
        return await NotificationRepository.mark_read(db, notification)

    @staticmethod
    async def mark_all_read(db: AsyncSession, actor: Actor) -> int:
        return await NotificationRepository.mark_all_read(db, inbox_ids(actor))
