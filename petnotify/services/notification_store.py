"""Durable in-app notification records."""

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from petnotify.errors import PersistenceError
from petnotify.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationStore:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def create(
        self,
        user_id: uuid.UUID,
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        image_url: str | None = None,
        sender_id: uuid.UUID | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data or {},
            image_url=image_url,
            sender_id=sender_id,
            read=False,
        )
        self._db.add(notification)
        try:
            await self._db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not store notification for user {user_id}: {e}") from e
        return notification

    async def create_many(
        self,
        user_ids: Sequence[uuid.UUID],
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        image_url: str | None = None,
        sender_id: uuid.UUID | None = None,
    ) -> list[Notification]:
        """One independent record per recipient, flushed as a single unit of work."""
        notifications = [
            Notification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                data=dict(data or {}),
                image_url=image_url,
                sender_id=sender_id,
                read=False,
            )
            for user_id in user_ids
        ]
        self._db.add_all(notifications)
        try:
            await self._db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not store {len(notifications)} notifications: {e}") from e
        return notifications

    async def list_for_user(
        self, user_id: uuid.UUID, limit: int = 20, offset: int = 0
    ) -> tuple[list[Notification], int]:
        """Newest first, together with the user's total count."""
        result = await self._db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        total = await self._db.scalar(
            select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
        )
        return list(result.scalars().all()), total or 0

    async def count_unread(self, user_id: uuid.UUID) -> int:
        count = await self._db.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
        )
        return count or 0

    async def mark_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> bool:
        result = await self._db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(read=True)
        )
        return bool(result.rowcount)

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        result = await self._db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read == False)  # noqa: E712
            .values(read=True)
        )
        return result.rowcount or 0

    async def delete(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> bool:
        result = await self._db.execute(
            delete(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        )
        return bool(result.rowcount)

    async def delete_all(self, user_id: uuid.UUID) -> int:
        result = await self._db.execute(delete(Notification).where(Notification.user_id == user_id))
        deleted = result.rowcount or 0
        logger.info("Deleted %d notifications for user %s", deleted, user_id)
        return deleted
