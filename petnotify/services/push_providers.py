"""HTTP clients for the Expo and FCM push gateways.

Clients never raise on a failed delivery. Each send returns a DeliveryOutcome
carrying either the provider response or a classified DeliveryError, with the
recipient tokens read from the payload that was actually sent.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from petnotify.config import Settings
from petnotify.errors import (
    ConfigurationError,
    DeliveryError,
    DeliveryErrorKind,
    PermanentTokenError,
    PushError,
    TransientDeliveryError,
)
from petnotify.services.credential_provider import FirebaseCredentialProvider

logger = logging.getLogger(__name__)

# FCM v1 markers for a token that will never be deliverable again
_INVALID_STATUSES = {"NOT_FOUND"}
_INVALID_ERROR_CODES = {"UNREGISTERED"}


@dataclass
class DeliveryOutcome:
    tokens: list[str]
    response: Any = None
    error: PushError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def token(self) -> str | None:
        return self.tokens[0] if self.tokens else None


@dataclass
class ProviderResponse:
    status_code: int
    body: Any = field(default=None)


class PushProvider(Protocol):
    """What dispatch code relies on: one addressed message, or one multi-token batch."""

    async def send_one(self, message: dict[str, Any]) -> DeliveryOutcome: ...

    async def send_batch(self, payload: dict[str, Any]) -> DeliveryOutcome: ...


def _json_or_text(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:500]


def classify_fcm_error(status_code: int | None, body: Any) -> DeliveryErrorKind:
    """Map an FCM v1 error response to a delivery error kind.

    Only an explicit NOT_FOUND status or UNREGISTERED error code marks a token
    invalid; everything else is retried on the next notification at best.
    """
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        if error.get("status") in _INVALID_STATUSES:
            return DeliveryErrorKind.INVALID
        for detail in error.get("details") or []:
            if isinstance(detail, dict) and detail.get("errorCode") in _INVALID_ERROR_CODES:
                return DeliveryErrorKind.INVALID
    if status_code is not None and (status_code >= 500 or status_code == 429):
        return DeliveryErrorKind.TRANSIENT
    return DeliveryErrorKind.UNKNOWN


def _error_for(kind: DeliveryErrorKind, message: str, **kwargs) -> DeliveryError:
    if kind is DeliveryErrorKind.INVALID:
        return PermanentTokenError(message, **kwargs)
    if kind is DeliveryErrorKind.TRANSIENT:
        return TransientDeliveryError(message, **kwargs)
    return DeliveryError(message, **kwargs)


class _HttpProvider:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._timeout = settings.push_timeout_seconds

    async def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> ProviderResponse:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(url, json=payload, headers=headers)
        return ProviderResponse(status_code=response.status_code, body=_json_or_text(response))

    async def _deliver(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        tokens: list[str],
        classify=None,
    ) -> DeliveryOutcome:
        token = tokens[0] if len(tokens) == 1 else None
        try:
            response = await self._post(url, payload, headers)
        except httpx.TimeoutException as e:
            return DeliveryOutcome(tokens, error=TransientDeliveryError(f"Timed out: {e}", token=token))
        except httpx.HTTPError as e:
            return DeliveryOutcome(tokens, error=TransientDeliveryError(f"Transport error: {e}", token=token))

        if 200 <= response.status_code < 300:
            return DeliveryOutcome(tokens, response=response.body)

        if classify is not None:
            kind = classify(response.status_code, response.body)
        elif response.status_code >= 500 or response.status_code == 429:
            kind = DeliveryErrorKind.TRANSIENT
        else:
            kind = DeliveryErrorKind.UNKNOWN
        detail = response.body if isinstance(response.body, dict) else {"text": response.body}
        error = _error_for(
            kind,
            f"Provider returned HTTP {response.status_code}",
            token=token,
            status_code=response.status_code,
            detail=detail,
        )
        return DeliveryOutcome(tokens, response=response.body, error=error)


class ExpoPushProvider(_HttpProvider):
    """Expo push gateway: one request carries a list of tokens."""

    _headers = {
        "Accept": "application/json",
        "Accept-Encoding": "gzip, deflate",
        "Content-Type": "application/json",
    }

    async def send_batch(self, payload: dict[str, Any]) -> DeliveryOutcome:
        return await self._deliver(self._settings.expo_push_url, payload, self._headers, list(payload["to"]))

    async def send_one(self, message: dict[str, Any]) -> DeliveryOutcome:
        return await self.send_batch(message)


class FcmV1Sender(_HttpProvider):
    """Per-token FCM HTTP v1 sends authenticated with a fresh OAuth bearer token."""

    def __init__(self, settings: Settings, credential_provider: FirebaseCredentialProvider) -> None:
        super().__init__(settings)
        self._credentials = credential_provider

    async def send_one(self, message: dict[str, Any]) -> DeliveryOutcome:
        token = message["token"]
        try:
            access_token = await self._credentials.get_access_token()
            url = self._settings.fcm_send_url_template.format(project_id=self._credentials.project_id)
        except TransientDeliveryError as e:
            e.token = token
            return DeliveryOutcome([token], error=e)
        # ConfigurationError propagates: the channel is unusable, not this token

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        return await self._deliver(url, {"message": message}, headers, [token], classify=classify_fcm_error)


class FcmLegacySender(_HttpProvider):
    """Legacy ``/fcm/send`` batches authenticated with the static server key."""

    @property
    def configured(self) -> bool:
        return bool(self._settings.firebase_server_key.get_secret_value())

    async def send_batch(self, payload: dict[str, Any]) -> DeliveryOutcome:
        if not self.configured:
            raise ConfigurationError("FCM server key is not configured")
        headers = {
            "Authorization": f"key={self._settings.firebase_server_key.get_secret_value()}",
            "Content-Type": "application/json",
        }
        return await self._deliver(
            self._settings.fcm_legacy_send_url, payload, headers, list(payload["registration_ids"])
        )


class FcmPushProvider:
    """FCM behind one interface: modern per-token sends, legacy batch sends."""

    def __init__(self, v1: FcmV1Sender, legacy: FcmLegacySender) -> None:
        self._v1 = v1
        self._legacy = legacy

    @property
    def batch_configured(self) -> bool:
        return self._legacy.configured

    async def send_one(self, message: dict[str, Any]) -> DeliveryOutcome:
        return await self._v1.send_one(message)

    async def send_batch(self, payload: dict[str, Any]) -> DeliveryOutcome:
        return await self._legacy.send_batch(payload)


def get_fcm_provider(settings: Settings, credential_provider: FirebaseCredentialProvider) -> FcmPushProvider:
    return FcmPushProvider(
        v1=FcmV1Sender(settings, credential_provider),
        legacy=FcmLegacySender(settings),
    )
