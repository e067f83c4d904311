"""PetNotify database models."""

from petnotify.models.device_token import DeviceToken
from petnotify.models.notification import Notification, NotificationType
from petnotify.models.user import User

__all__ = [
    "User",
    "DeviceToken",
    "Notification",
    "NotificationType",
]
