"""Tests for Prometheus metric definitions and where they are incremented."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import REGISTRY

from petnotify.errors import PermanentTokenError
from petnotify.metrics import (
    device_tokens_evicted_total,
    notifications_created_total,
    push_failed_total,
    push_sent_total,
)
from petnotify.services.push_providers import DeliveryOutcome
from petnotify.services.push_service import PushDispatcher


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricDefinitions:
    def test_push_sent_is_counter_with_channel_label(self):
        assert push_sent_total._type == "counter"
        assert push_sent_total._labelnames == ("channel",)

    def test_push_failed_labels(self):
        assert push_failed_total._type == "counter"
        assert push_failed_total._labelnames == ("channel", "kind")

    def test_evicted_is_unlabelled_counter(self):
        assert device_tokens_evicted_total._type == "counter"
        assert device_tokens_evicted_total._labelnames == ()

    def test_notifications_created_labels(self):
        assert notifications_created_total._labelnames == ("type",)


class TestDispatchMetrics:
    @pytest.mark.asyncio
    async def test_sent_failed_and_evicted_are_counted(self, settings):
        device = MagicMock(token="deadTok")
        registry = AsyncMock()
        registry.tokens_for_user.return_value = [MagicMock(token="ExponentPushToken[a]"), device]
        expo = AsyncMock()
        expo.send_batch.side_effect = lambda p: DeliveryOutcome(p["to"], response={})
        fcm = AsyncMock()
        fcm.send_one.side_effect = lambda m: DeliveryOutcome(
            [m["token"]], error=PermanentTokenError("gone", token=m["token"])
        )
        dispatcher = PushDispatcher(expo=expo, fcm=fcm, settings=settings, registry_factory=lambda db: registry)

        sent_before = _sample("petnotify_push_sent_total", {"channel": "expo"})
        failed_before = _sample("petnotify_push_failed_total", {"channel": "fcm", "kind": "invalid"})
        evicted_before = _sample("petnotify_device_tokens_evicted_total")

        await dispatcher.send_push_notification(AsyncMock(), uuid.uuid4(), "t", "b")

        assert _sample("petnotify_push_sent_total", {"channel": "expo"}) == sent_before + 1
        assert _sample("petnotify_push_failed_total", {"channel": "fcm", "kind": "invalid"}) == failed_before + 1
        assert _sample("petnotify_device_tokens_evicted_total") == evicted_before + 1
