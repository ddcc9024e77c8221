"""
Notification delivery for lifecycle transitions.

Every notice is stored as a row in ``notification_schema.notifications``
(retried up to NOTIFICATION_MAX_ATTEMPTS times) and, when PUSH_WEBHOOK_URL is
configured, also pushed to that webhook. A failed push is logged and counted;
only a notice that could not be stored at all raises.
"""
import asyncio
from typing import Optional

import httpx
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.config.settings import NOTIFICATION_MAX_ATTEMPTS, PUSH_TIMEOUT_SECONDS, PUSH_WEBHOOK_URL
from shared.observability import cleaning_notification_push_total
from .models import NotificationModel
from .repository import NotificationRepository

logger = structlog.get_logger(__name__)

RETRY_BACKOFF_SECONDS = 0.2


class SqlNotificationEmitter:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: int = NOTIFICATION_MAX_ATTEMPTS,
        push_url: str = PUSH_WEBHOOK_URL,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.session_factory = session_factory
        self.max_attempts = max(1, max_attempts)
        self.push_url = push_url
        self.http_client = http_client

    async def emit(
        self,
        recipient_id: str,
        title: str,
        message: str,
        related_order_id: Optional[int],
    ) -> None:
        stored = await self._store(recipient_id, title, message, related_order_id)
        if self.push_url:
            await self._push(stored)

    async def _store(
        self, recipient_id: str, title: str, message: str, related_order_id: Optional[int]
    ) -> NotificationModel:
        for attempt in range(1, self.max_attempts + 1):
            try:
                # A fresh session per attempt; the order transaction is already committed.
                async with self.session_factory() as db:
                    notification = NotificationModel(
                        recipient_id=recipient_id,
                        title=title,
                        message=message,
                        related_order_id=related_order_id,
                        is_read=False,
                    )
                    return await NotificationRepository.create_notification(db, notification)
            except SQLAlchemyError as exc:
                logger.warning(
                    "notification_store_retry",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    recipient_id=recipient_id,
                    related_order_id=related_order_id,
                    error=str(exc),
                )
                if attempt == self.max_attempts:
                    raise
                await asyncio.sleep(RETRY_BACKOFF_SECONDS * attempt)

    async def _push(self, notification: NotificationModel) -> None:
        payload = {
            "id": notification.id,
            "recipient_id": notification.recipient_id,
            "title": notification.title,
            "message": notification.message,
            "related_order_id": notification.related_order_id,
        }
        try:
            if self.http_client is not None:
                resp = await self.http_client.post(self.push_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=PUSH_TIMEOUT_SECONDS) as client:
                    resp = await client.post(self.push_url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            # The row is stored; clients still see it on their next poll.
            cleaning_notification_push_total.labels(outcome="failed").inc()
            logger.warning("notification_push_failed", notification_id=notification.id, error=str(exc))
            return
        cleaning_notification_push_total.labels(outcome="sent").inc()
