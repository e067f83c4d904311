"""Wire payloads for the Expo and FCM push channels.

Everything here is pure: tokens and a logical notification in, JSON-ready dicts
out. Which channel a token belongs to is decided by its prefix alone.
"""

import json
from collections.abc import Iterable, Iterator, Sequence
from datetime import datetime, timezone
from typing import Any, TypeVar

T = TypeVar("T")

EXPO_TOKEN_PREFIX = "ExponentPushToken["
EXPO_CHUNK_SIZE = 100
FCM_LEGACY_CHUNK_SIZE = 500

CHAT_TYPE = "CHAT"
CHAT_CHANNEL_ID = "chat_channel"
DEFAULT_CHANNEL_ID = "default_channel"

DEFAULT_APNS_TOPIC = "com.samukka_64.mobile"
ANDROID_ICON = "notification_icon"
ANDROID_COLOR = "#FF6B6B"
CLICK_ACTION = "FLUTTER_NOTIFICATION_CLICK"


def is_expo_token(token: str) -> bool:
    return token.startswith(EXPO_TOKEN_PREFIX)


def partition_tokens(tokens: Iterable[str]) -> tuple[list[str], list[str]]:
    """Split tokens into (expo, fcm), keeping first-seen order and dropping repeats."""
    expo: list[str] = []
    fcm: list[str] = []
    seen: set[str] = set()
    for token in tokens:
        if not token or token in seen:
            continue
        seen.add(token)
        (expo if is_expo_token(token) else fcm).append(token)
    return expo, fcm


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    if size < 1:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def _timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def notification_type_of(data: dict[str, Any] | None) -> str:
    value = (data or {}).get("type") or "DEFAULT"
    return getattr(value, "value", value)


def thread_id_for(data: dict[str, Any] | None) -> str | None:
    """Grouping key for chat notifications; None for every other type."""
    data = data or {}
    if notification_type_of(data) != CHAT_TYPE:
        return None
    chat_room_id = data.get("chatRoomId")
    if not chat_room_id:
        return None
    return f"chat_{chat_room_id}"


def channel_id_for(data: dict[str, Any] | None) -> str:
    return CHAT_CHANNEL_ID if notification_type_of(data) == CHAT_TYPE else DEFAULT_CHANNEL_ID


def stringify_data(data: dict[str, Any]) -> dict[str, str]:
    """FCM data blocks only accept string values."""
    result: dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            result[key] = json.dumps(value, default=str)
        else:
            result[key] = str(getattr(value, "value", value))
    return result


def build_expo_message(
    tokens: Sequence[str],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
    now: datetime | None = None,
    duplicate_display: bool = False,
) -> dict[str, Any]:
    """One Expo message addressed to every token in the chunk.

    ``duplicate_display`` copies title, body and the notification type into the
    data block as well, as the bulk path does for clients that only read data.
    """
    data = dict(data or {})
    payload_data = {**data, "date": _timestamp(now)}
    if duplicate_display:
        payload_data.update(
            {
                "title": title,
                "body": body,
                "notificationType": notification_type_of(data),
                "priority": "high",
                "click_action": CLICK_ACTION,
            }
        )
    thread_id = thread_id_for(data)
    if thread_id:
        payload_data["threadId"] = thread_id

    return {
        "to": list(tokens),
        "title": title,
        "body": body,
        "data": payload_data,
        "sound": "default",
        "badge": 1,
        "priority": "high",
        "channelId": channel_id_for(data),
    }


def _apns_headers(apns_topic: str) -> dict[str, str]:
    return {
        "apns-priority": "10",
        "apns-push-type": "alert",
        "apns-topic": apns_topic,
    }


def build_fcm_message(
    token: str,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
    apns_topic: str = DEFAULT_APNS_TOPIC,
    now: datetime | None = None,
) -> dict[str, Any]:
    """The ``message`` object for one FCM HTTP v1 send."""
    data = dict(data or {})
    thread_id = thread_id_for(data)
    channel_id = channel_id_for(data)

    android_notification: dict[str, Any] = {
        "icon": ANDROID_ICON,
        "color": ANDROID_COLOR,
        "sound": "default",
        "channel_id": channel_id,
    }
    aps: dict[str, Any] = {
        "alert": {"title": title, "body": body},
        "sound": "default",
        "badge": 1,
        "content-available": 1,
        "mutable-content": 1,
    }
    if thread_id:
        android_notification["tag"] = thread_id
        aps["thread-id"] = thread_id

    return {
        "token": token,
        "notification": {"title": title, "body": body},
        "data": stringify_data(
            {
                **data,
                "title": title,
                "body": body,
                "date": _timestamp(now),
                "notificationType": notification_type_of(data),
            }
        ),
        "android": {
            "priority": "HIGH",
            "notification": android_notification,
        },
        "apns": {
            "payload": {"aps": aps},
            "headers": _apns_headers(apns_topic),
        },
    }


def build_fcm_legacy_message(
    tokens: Sequence[str],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
    apns_topic: str = DEFAULT_APNS_TOPIC,
    now: datetime | None = None,
) -> dict[str, Any]:
    """One legacy ``/fcm/send`` batch for up to 500 registration ids.

    Title and body go into both the notification and data blocks since some
    clients only read one of them. The legacy response cannot be attributed to
    individual recipients, so no per-recipient APNs thread id is set.
    """
    data = dict(data or {})
    thread_id = thread_id_for(data)
    channel_id = channel_id_for(data)
    notification_type = notification_type_of(data)

    notification: dict[str, Any] = {
        "title": title,
        "body": body,
        "sound": "default",
        "badge": "1",
        "click_action": CLICK_ACTION,
        "icon": ANDROID_ICON,
        "android_channel_id": channel_id,
    }
    android_notification: dict[str, Any] = {
        "icon": ANDROID_ICON,
        "color": ANDROID_COLOR,
        "sound": "default",
        "channel_id": channel_id,
        "priority": "high",
    }
    if thread_id:
        notification["tag"] = thread_id
        android_notification["tag"] = thread_id

    return {
        "registration_ids": list(tokens),
        "notification": notification,
        "data": stringify_data(
            {
                **data,
                "title": title,
                "body": body,
                "date": _timestamp(now),
                "notificationType": notification_type,
                "type": notification_type,
                "priority": "high",
                "click_action": CLICK_ACTION,
            }
        ),
        "priority": "high",
        "content_available": True,
        "android": {
            "priority": "high",
            "notification": android_notification,
        },
        "apns": {
            "payload": {
                "aps": {
                    "sound": "default",
                    "badge": 1,
                    "content-available": 1,
                    "mutable-content": 1,
                }
            },
            "headers": _apns_headers(apns_topic),
        },
    }
