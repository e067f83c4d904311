"""Prometheus metric definitions for PetNotify.

Single source of truth for custom metrics. Import from here in API and Celery code.
"""

from prometheus_client import Counter

# --- Delivery metrics ---

push_sent_total = Counter(
    "petnotify_push_sent_total",
    "Push requests accepted by a provider",
    ["channel"],
)

push_failed_total = Counter(
    "petnotify_push_failed_total",
    "Push requests that failed, by channel and error kind",
    ["channel", "kind"],
)

device_tokens_evicted_total = Counter(
    "petnotify_device_tokens_evicted_total",
    "Device tokens removed after a provider reported them unregistered",
)

# --- Business metrics ---

notifications_created_total = Counter(
    "petnotify_notifications_created_total",
    "Notification records persisted, by type",
    ["type"],
)
