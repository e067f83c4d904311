"""In-app notification inbox."""

import math
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from petnotify.dependencies import get_current_user_id, get_db
from petnotify.schemas.notification import (
    NotificationListResponse,
    NotificationResponse,
    Pagination,
    UnreadCountResponse,
)
from petnotify.services.notification_store import NotificationStore

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """List the current user's notifications, newest first."""
    notifications, total = await NotificationStore(db).list_for_user(
        user_id, limit=limit, offset=(page - 1) * limit
    )
    return NotificationListResponse(
        data=[NotificationResponse.model_validate(n) for n in notifications],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(count=await NotificationStore(db).count_unread(user_id))


@router.put("/read-all")
async def mark_all_read(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    marked = await NotificationStore(db).mark_all_read(user_id)
    return {"status": "ok", "marked": marked}


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    if not await NotificationStore(db).mark_read(user_id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"status": "ok"}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    if not await NotificationStore(db).delete(user_id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"status": "ok"}


@router.delete("")
async def delete_all_notifications(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    deleted = await NotificationStore(db).delete_all(user_id)
    return {"status": "ok", "deleted": deleted}
