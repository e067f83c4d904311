"""Notification schemas: façade parameters and inbox responses."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from petnotify.models.notification import NotificationType


class NotificationCreate(BaseModel):
    """What a feature handler (like, comment, follow, claim, chat) asks to send."""

    user_id: uuid.UUID
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    image_url: str | None = None
    sender_id: uuid.UUID | None = None


class BulkNotificationCreate(BaseModel):
    user_ids: list[uuid.UUID]
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    image_url: str | None = None
    sender_id: uuid.UUID | None = None


class NotificationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any]
    image_url: str | None = None
    sender_id: uuid.UUID | None = None
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class NotificationListResponse(BaseModel):
    data: list[NotificationResponse]
    pagination: Pagination


class UnreadCountResponse(BaseModel):
    count: int
