"""In-app notification records."""

import enum
import uuid
from typing import Any

from sqlalchemy import Boolean, Enum, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from petnotify.models.base import Base, CreatedAtMixin, JSONType, UUIDPrimaryKeyMixin


class NotificationType(str, enum.Enum):
    LIKE = "LIKE"
    COMMENT = "COMMENT"
    FOLLOW = "FOLLOW"
    CHAT = "CHAT"
    LOST_PET = "LOST_PET"
    FOUND_PET = "FOUND_PET"
    PET_SIGHTING = "PET_SIGHTING"
    PET_FOUND = "PET_FOUND"
    CLAIM = "CLAIM"
    SYSTEM = "SYSTEM"


class Notification(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """A durable inbox entry.

    Written before any push delivery is attempted and never removed by the
    dispatch path; only the recipient deletes it.
    """

    __tablename__ = "notifications"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    sender_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="notifications", foreign_keys=[user_id])
    sender: Mapped["User | None"] = relationship("User", foreign_keys=[sender_id])

    def __repr__(self) -> str:
        return f"<Notification {self.type.value} user_id={self.user_id}>"
