"""Unit tests for the Expo and FCM HTTP clients."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from pydantic import SecretStr

from petnotify.errors import ConfigurationError, DeliveryErrorKind, TransientDeliveryError
from petnotify.services.push_providers import (
    ExpoPushProvider,
    FcmLegacySender,
    FcmV1Sender,
    classify_fcm_error,
)

UNREGISTERED_BODY = {
    "error": {
        "code": 404,
        "status": "NOT_FOUND",
        "details": [
            {
                "@type": "type.googleapis.com/google.firebase.fcm.v1.FcmError",
                "errorCode": "UNREGISTERED",
            }
        ],
    }
}


def _response(status_code, body):
    response = MagicMock(status_code=status_code)
    response.json.return_value = body
    return response


@pytest.fixture
def credentials():
    provider = MagicMock()
    provider.get_access_token = AsyncMock(return_value="ya29.bearer")
    provider.project_id = "petnotify-test"
    return provider


class TestClassifyFcmError:
    def test_not_found_status(self):
        assert classify_fcm_error(404, {"error": {"status": "NOT_FOUND"}}) is DeliveryErrorKind.INVALID

    def test_unregistered_detail(self):
        body = {"error": {"status": "INVALID_ARGUMENT", "details": [{"errorCode": "UNREGISTERED"}]}}
        assert classify_fcm_error(400, body) is DeliveryErrorKind.INVALID

    def test_server_error_is_transient(self):
        assert classify_fcm_error(503, {"error": {"status": "UNAVAILABLE"}}) is DeliveryErrorKind.TRANSIENT

    def test_quota_is_transient(self):
        assert classify_fcm_error(429, {}) is DeliveryErrorKind.TRANSIENT

    def test_invalid_argument_is_unknown(self):
        body = {"error": {"status": "INVALID_ARGUMENT", "details": [{"errorCode": "INVALID_ARGUMENT"}]}}
        assert classify_fcm_error(400, body) is DeliveryErrorKind.UNKNOWN

    def test_non_json_body(self):
        assert classify_fcm_error(400, "Bad Request") is DeliveryErrorKind.UNKNOWN


class TestExpoPushProvider:
    @pytest.mark.asyncio
    async def test_successful_send(self, settings):
        mock_client = AsyncMock()
        mock_client.post.return_value = _response(200, {"data": [{"status": "ok"}]})

        with patch("petnotify.services.push_providers.httpx.AsyncClient") as mock_cls:
            mock_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_cls.return_value.__aexit__ = AsyncMock(return_value=False)

            outcome = await ExpoPushProvider(settings).send_batch({"to": ["ExponentPushToken[abc]"], "title": "t"})

        assert outcome.ok
        assert outcome.tokens == ["ExponentPushToken[abc]"]
        call_args = mock_client.post.call_args
        assert call_args[0][0] == "https://exp.host/--/api/v2/push/send"
        assert call_args[1]["json"]["to"] == ["ExponentPushToken[abc]"]

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, settings):
        mock_client = AsyncMock()
        mock_client.post.side_effect = httpx.ReadTimeout("timed out")

        with patch("petnotify.services.push_providers.httpx.AsyncClient") as mock_cls:
            mock_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_cls.return_value.__aexit__ = AsyncMock(return_value=False)

            outcome = await ExpoPushProvider(settings).send_batch({"to": ["ExponentPushToken[abc]"]})

        assert not outcome.ok
        assert isinstance(outcome.error, TransientDeliveryError)
        assert outcome.error.token == "ExponentPushToken[abc]"


class TestFcmV1Sender:
    @pytest.mark.asyncio
    async def test_sends_with_bearer(self, settings, credentials):
        mock_client = AsyncMock()
        mock_client.post.return_value = _response(200, {"name": "projects/p/messages/1"})

        with patch("petnotify.services.push_providers.httpx.AsyncClient") as mock_cls:
            mock_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_cls.return_value.__aexit__ = AsyncMock(return_value=False)

            outcome = await FcmV1Sender(settings, credentials).send_one({"token": "fcmTok", "data": {}})

        assert outcome.ok
        call_args = mock_client.post.call_args
        assert call_args[0][0] == "https://fcm.googleapis.com/v1/projects/petnotify-test/messages:send"
        assert call_args[1]["headers"]["Authorization"] == "Bearer ya29.bearer"
        assert call_args[1]["json"] == {"message": {"token": "fcmTok", "data": {}}}

    @pytest.mark.asyncio
    async def test_fresh_token_per_send(self, settings, credentials):
        mock_client = AsyncMock()
        mock_client.post.return_value = _response(200, {})

        with patch("petnotify.services.push_providers.httpx.AsyncClient") as mock_cls:
            mock_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_cls.return_value.__aexit__ = AsyncMock(return_value=False)

            sender = FcmV1Sender(settings, credentials)
            await sender.send_one({"token": "a"})
            await sender.send_one({"token": "b"})

        assert credentials.get_access_token.await_count == 2

    @pytest.mark.asyncio
    async def test_unregistered_is_attributed_to_token(self, settings, credentials):
        mock_client = AsyncMock()
        mock_client.post.return_value = _response(404, UNREGISTERED_BODY)

        with patch("petnotify.services.push_providers.httpx.AsyncClient") as mock_cls:
            mock_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_cls.return_value.__aexit__ = AsyncMock(return_value=False)

            outcome = await FcmV1Sender(settings, credentials).send_one({"token": "deadTok"})

        assert outcome.error.kind is DeliveryErrorKind.INVALID
        assert outcome.error.token == "deadTok"
        assert outcome.error.status_code == 404

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, settings, credentials):
        credentials.get_access_token.side_effect = ConfigurationError("no service account")

        with pytest.raises(ConfigurationError):
            await FcmV1Sender(settings, credentials).send_one({"token": "fcmTok"})

    @pytest.mark.asyncio
    async def test_token_endpoint_outage_is_transient(self, settings, credentials):
        credentials.get_access_token.side_effect = TransientDeliveryError("oauth unreachable")

        outcome = await FcmV1Sender(settings, credentials).send_one({"token": "fcmTok"})

        assert outcome.error.kind is DeliveryErrorKind.TRANSIENT
        assert outcome.error.token == "fcmTok"


class TestFcmLegacySender:
    @pytest.mark.asyncio
    async def test_uses_server_key(self, settings):
        mock_client = AsyncMock()
        mock_client.post.return_value = _response(200, {"success": 2, "failure": 0})

        with patch("petnotify.services.push_providers.httpx.AsyncClient") as mock_cls:
            mock_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
            mock_cls.return_value.__aexit__ = AsyncMock(return_value=False)

            outcome = await FcmLegacySender(settings).send_batch({"registration_ids": ["a", "b"]})

        assert outcome.ok
        assert outcome.tokens == ["a", "b"]
        assert mock_client.post.call_args[1]["headers"]["Authorization"] == "key=legacy-server-key"

    @pytest.mark.asyncio
    async def test_missing_key_raises(self, settings):
        settings.firebase_server_key = SecretStr("")
        sender = FcmLegacySender(settings)

        assert sender.configured is False
        with pytest.raises(ConfigurationError):
            await sender.send_batch({"registration_ids": ["a"]})
