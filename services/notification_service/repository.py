from typing import List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from .models import NotificationModel

class NotificationRepository:
    @staticmethod
    async def create_notification(db: AsyncSession, notification: NotificationModel):
        db.add(notification)
        await db.commit()
        await db.refresh(notification)
        return notification

    @staticmethod
    async def list_for(
        db: AsyncSession, recipient_ids: Sequence[str], unread_only: bool, offset: int, limit: int
    ) -> List[NotificationModel]:
        stmt = select(NotificationModel).where(NotificationModel.recipient_id.in_(recipient_ids))
        if unread_only:
            stmt = stmt.where(NotificationModel.is_read.is_(False))
        stmt = stmt.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        result = await db.execute(stmt.offset(offset).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def count_unread(db: AsyncSession, recipient_ids: Sequence[str]) -> int:
        total = await db.scalar(
            select(func.count(NotificationModel.id)).where(
                NotificationModel.recipient_id.in_(recipient_ids),
                NotificationModel.is_read.is_(False),
            )
        )
        return total or 0

    @staticmethod
    async def get_notification(db: AsyncSession, notification_id: int) -> Optional[NotificationModel]:
        result = await db.execute(select(NotificationModel).where(NotificationModel.id == notification_id))
        return result.scalars().first()

    @staticmethod
    async def mark_read(db: AsyncSession, notification: NotificationModel):
        notification.is_read = True
        await db.commit()
        await db.refresh(notification)
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, recipient_ids: Sequence[str]) -> int:
        result = await db.execute(
            update(NotificationModel)
            .where(NotificationModel.recipient_id.in_(recipient_ids), NotificationModel.is_read.is_(False))
            .values(is_read=True)
        )
        await db.commit()
        return result.rowcount
