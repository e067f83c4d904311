"""Notification façade: persist the inbox record, then push."""

import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from petnotify.config import Settings
from petnotify.errors import PersistenceError
from petnotify.metrics import notifications_created_total
from petnotify.models.notification import Notification
from petnotify.schemas.notification import BulkNotificationCreate, NotificationCreate
from petnotify.services.bulk_push_service import BulkPushOrchestrator
from petnotify.services.credential_provider import FirebaseCredentialProvider
from petnotify.services.notification_store import NotificationStore
from petnotify.services.push_providers import ExpoPushProvider, get_fcm_provider
from petnotify.services.push_service import PushDispatcher

logger = logging.getLogger(__name__)


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        raise PersistenceError(f"Could not commit notification records: {e}") from e


class NotificationService:
    """Entry point for feature handlers.

    The inbox record is the source of truth and is written first; push
    delivery is best effort on top of it. A persistence failure propagates and
    no push is attempted; a push failure is logged and never undoes the record.
    """

    def __init__(
        self,
        dispatcher: PushDispatcher,
        bulk: BulkPushOrchestrator,
        store_factory: Callable[[AsyncSession], NotificationStore] = NotificationStore,
    ) -> None:
        self._dispatcher = dispatcher
        self._bulk = bulk
        self._store_factory = store_factory

    async def create_notification(self, db: AsyncSession, params: NotificationCreate) -> Notification:
        notification = await self._store_factory(db).create(
            user_id=params.user_id,
            type=params.type,
            title=params.title,
            message=params.message,
            data=params.data,
            image_url=params.image_url,
            sender_id=params.sender_id,
        )
        notifications_created_total.labels(type=params.type.value).inc()
        return notification

    async def send_full_notification(self, db: AsyncSession, params: NotificationCreate) -> Notification:
        notification = await self.create_notification(db, params)
        # Committed before delivery so nothing in the push path can lose it
        await _commit(db)

        push_data = {
            **params.data,
            "notificationId": str(notification.id),
            "type": params.type.value,
        }
        try:
            result = await self._dispatcher.send_push_notification(
                db, params.user_id, params.title, params.message, push_data
            )
        except Exception as e:
            logger.error("Push dispatch failed for notification %s: %s", notification.id, e)
            return notification

        if result.evicted:
            try:
                await _commit(db)
            except PersistenceError as e:
                logger.error("Could not persist %d token eviction(s): %s", len(result.evicted), e)

        return notification

    async def send_bulk_full_notifications(
        self, db: AsyncSession, params: BulkNotificationCreate
    ) -> list[Notification]:
        user_ids = list(dict.fromkeys(params.user_ids))
        notifications = await self._store_factory(db).create_many(
            user_ids=user_ids,
            type=params.type,
            title=params.title,
            message=params.message,
            data=params.data,
            image_url=params.image_url,
            sender_id=params.sender_id,
        )
        notifications_created_total.labels(type=params.type.value).inc(len(notifications))
        await _commit(db)

        push_data = {**params.data, "type": params.type.value}
        try:
            summary = await self._bulk.send_bulk_push_notifications(
                db, user_ids, params.title, params.message, push_data
            )
            logger.info(
                "%s: %d Expo and %d FCM token(s) sent",
                summary.message,
                summary.expo_sent,
                summary.fcm_sent,
            )
        except Exception as e:
            logger.error("Bulk push dispatch failed for %d user(s): %s", len(user_ids), e)

        return notifications


def get_notification_service(
    settings: Settings,
    credential_provider: FirebaseCredentialProvider | None = None,
) -> NotificationService:
    """Wire a NotificationService with shared provider clients."""
    credential_provider = credential_provider or FirebaseCredentialProvider(settings)
    expo = ExpoPushProvider(settings)
    fcm = get_fcm_provider(settings, credential_provider)
    return NotificationService(
        dispatcher=PushDispatcher(expo=expo, fcm=fcm, settings=settings),
        bulk=BulkPushOrchestrator(expo=expo, fcm=fcm, settings=settings),
    )
