"""Celery tasks for fire-and-forget notification sends.

Feature handlers call ``enqueue_notification`` / ``enqueue_bulk_notification``
and return immediately; the worker persists the inbox record(s) and pushes.
"""

import asyncio
import logging
from typing import Any

from celery import shared_task
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from petnotify.config import get_settings
from petnotify.schemas.notification import BulkNotificationCreate, NotificationCreate
from petnotify.services.notification_dispatcher import get_notification_service

logger = logging.getLogger(__name__)


async def _run_single(payload: dict[str, Any]) -> str:
    settings = get_settings()
    params = NotificationCreate.model_validate(payload)
    engine = create_async_engine(settings.database_url, echo=False)
    try:
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        async with session_factory() as db:
            notification = await get_notification_service(settings).send_full_notification(db, params)
            await db.commit()
            return str(notification.id)
    finally:
        await engine.dispose()


async def _run_bulk(payload: dict[str, Any]) -> list[str]:
    settings = get_settings()
    params = BulkNotificationCreate.model_validate(payload)
    engine = create_async_engine(settings.database_url, echo=False)
    try:
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        async with session_factory() as db:
            notifications = await get_notification_service(settings).send_bulk_full_notifications(db, params)
            await db.commit()
            return [str(n.id) for n in notifications]
    finally:
        await engine.dispose()


@shared_task(name="petnotify.tasks.notification_tasks.send_full_notification", max_retries=0)
def send_full_notification(payload: dict[str, Any]) -> str:
    """Persist one inbox record and push it to the recipient's devices."""
    return asyncio.run(_run_single(payload))


@shared_task(name="petnotify.tasks.notification_tasks.send_bulk_full_notifications", max_retries=0)
def send_bulk_full_notifications(payload: dict[str, Any]) -> list[str]:
    """Persist one inbox record per recipient and push to all of them."""
    notification_ids = asyncio.run(_run_bulk(payload))
    logger.info("Bulk notification task created %d record(s)", len(notification_ids))
    return notification_ids


def enqueue_notification(params: NotificationCreate):
    return send_full_notification.delay(params.model_dump(mode="json"))


def enqueue_bulk_notification(params: BulkNotificationCreate):
    return send_bulk_full_notifications.delay(params.model_dump(mode="json"))
