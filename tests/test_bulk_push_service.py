"""Unit tests for BulkPushOrchestrator (multi-recipient dispatch)."""

import math
import uuid
from unittest.mock import AsyncMock, MagicMock, PropertyMock

import pytest

from petnotify.errors import DeliveryError
from petnotify.services.bulk_push_service import BulkPushOrchestrator
from petnotify.services.push_providers import DeliveryOutcome


def _make_device(token):
    d = MagicMock()
    d.token = token
    return d


def _registry(tokens):
    registry = AsyncMock()
    registry.tokens_for_users.return_value = [_make_device(t) for t in tokens]
    return registry


def _ok(payload, key):
    return DeliveryOutcome(list(payload[key]), response={"success": len(payload[key])})


@pytest.fixture
def expo():
    provider = AsyncMock()
    provider.send_batch.side_effect = lambda payload: _ok(payload, "to")
    return provider


@pytest.fixture
def fcm():
    provider = AsyncMock()
    type(provider).batch_configured = PropertyMock(return_value=True)
    provider.send_batch.side_effect = lambda payload: _ok(payload, "registration_ids")
    return provider


def _orchestrator(expo, fcm, settings, registry):
    return BulkPushOrchestrator(expo=expo, fcm=fcm, settings=settings, registry_factory=lambda db: registry)


class TestBulkPush:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [1, 100, 101, 250])
    async def test_expo_chunks_cover_every_token_once(self, expo, fcm, settings, count):
        tokens = [f"ExponentPushToken[{i}]" for i in range(count)]
        orchestrator = _orchestrator(expo, fcm, settings, _registry(tokens))

        summary = await orchestrator.send_bulk_push_notifications(AsyncMock(), [uuid.uuid4()], "t", "b")

        assert expo.send_batch.call_count == math.ceil(count / 100)
        sent = [t for c in expo.send_batch.call_args_list for t in c.args[0]["to"]]
        assert all(len(c.args[0]["to"]) <= 100 for c in expo.send_batch.call_args_list)
        assert sorted(sent) == sorted(tokens)
        assert summary.expo_sent == count

    @pytest.mark.asyncio
    async def test_fcm_chunks_of_500(self, expo, fcm, settings):
        tokens = [f"fcm{i}" for i in range(1001)]
        orchestrator = _orchestrator(expo, fcm, settings, _registry(tokens))

        summary = await orchestrator.send_bulk_push_notifications(
            AsyncMock(), [uuid.uuid4()], "Pet perdido", "Rex sumiu", {"type": "LOST_PET"}
        )

        sizes = [len(c.args[0]["registration_ids"]) for c in fcm.send_batch.call_args_list]
        assert sizes == [500, 500, 1]
        assert summary.fcm_sent == 1001
        assert fcm.send_batch.call_args_list[0].args[0]["data"]["type"] == "LOST_PET"

    @pytest.mark.asyncio
    async def test_missing_server_key_skips_fcm(self, expo, fcm, settings):
        type(fcm).batch_configured = PropertyMock(return_value=False)
        orchestrator = _orchestrator(expo, fcm, settings, _registry(["ExponentPushToken[a]", "fcm1"]))

        summary = await orchestrator.send_bulk_push_notifications(AsyncMock(), [uuid.uuid4()], "t", "b")

        fcm.send_batch.assert_not_called()
        assert summary.fcm_sent == 0
        assert summary.fcm_skipped is True
        assert summary.expo_sent == 1

    @pytest.mark.asyncio
    async def test_failed_chunk_does_not_stop_others(self, expo, fcm, settings):
        tokens = [f"ExponentPushToken[{i}]" for i in range(150)]
        expo.send_batch.side_effect = [
            DeliveryOutcome(tokens[:100], error=DeliveryError("HTTP 400")),
            DeliveryOutcome(tokens[100:], response={"data": []}),
        ]
        orchestrator = _orchestrator(expo, fcm, settings, _registry(tokens))

        summary = await orchestrator.send_bulk_push_notifications(AsyncMock(), [uuid.uuid4()], "t", "b")

        assert expo.send_batch.call_count == 2
        assert summary.expo_sent == 50
        assert len(summary.errors) == 1

    @pytest.mark.asyncio
    async def test_bulk_path_never_evicts(self, expo, fcm, settings):
        registry = _registry(["fcm1", "fcm2"])
        fcm.send_batch.side_effect = lambda payload: DeliveryOutcome(
            list(payload["registration_ids"]),
            response={"success": 1, "failure": 1, "results": [{}, {"error": "NotRegistered"}]},
        )
        orchestrator = _orchestrator(expo, fcm, settings, registry)

        await orchestrator.send_bulk_push_notifications(AsyncMock(), [uuid.uuid4()], "t", "b")

        registry.evict.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_user_ids_looked_up_once(self, expo, fcm, settings):
        uid = uuid.uuid4()
        registry = _registry([])
        orchestrator = _orchestrator(expo, fcm, settings, registry)

        summary = await orchestrator.send_bulk_push_notifications(AsyncMock(), [uid, uid], "t", "b")

        registry.tokens_for_users.assert_called_once_with([uid])
        assert summary.recipients == 1
        assert summary.message == "Notifications dispatched for 1 user(s)"
        expo.send_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_expo_chunk_data_carries_display_fields(self, expo, fcm, settings):
        orchestrator = _orchestrator(expo, fcm, settings, _registry(["ExponentPushToken[a]"]))

        await orchestrator.send_bulk_push_notifications(
            AsyncMock(), [uuid.uuid4()], "Pet encontrado", "Rex foi encontrado", {"type": "FOUND_PET"}
        )

        data = expo.send_batch.call_args[0][0]["data"]
        assert data["title"] == "Pet encontrado"
        assert data["body"] == "Rex foi encontrado"
        assert data["notificationType"] == "FOUND_PET"
        assert data["click_action"] == "FLUTTER_NOTIFICATION_CLICK"
