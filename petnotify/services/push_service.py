"""Single-recipient push dispatch across the Expo and FCM channels."""

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from petnotify.config import Settings
from petnotify.errors import ConfigurationError, DeliveryError, DeliveryErrorKind, PersistenceError, PushError
from petnotify.metrics import device_tokens_evicted_total, push_failed_total, push_sent_total
from petnotify.services import payload_builder
from petnotify.services.device_registry import DeviceTokenRegistry
from petnotify.services.push_providers import (
    DeliveryOutcome,
    ExpoPushProvider,
    FcmPushProvider,
)

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Best-effort telemetry for one dispatch; never a success gate."""

    user_id: uuid.UUID
    expo_tokens: int = 0
    fcm_tokens: int = 0
    responses: list[Any] = field(default_factory=list)
    errors: list[PushError] = field(default_factory=list)
    evicted: list[str] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return len(self.responses)


class PushDispatcher:
    """Deliver one logical notification to every device of one user.

    Expo tokens go out in a single batch request. FCM tokens are sent one at a
    time through the HTTP v1 API so every failure is attributable to its token;
    tokens the provider reports as unregistered are evicted from the registry.
    """

    def __init__(
        self,
        expo: ExpoPushProvider,
        fcm: FcmPushProvider,
        settings: Settings,
        registry_factory: Callable[[AsyncSession], DeviceTokenRegistry] = DeviceTokenRegistry,
    ) -> None:
        self._expo = expo
        self._fcm = fcm
        self._apns_topic = settings.apns_topic
        self._concurrency = max(1, settings.fcm_concurrency)
        self._registry_factory = registry_factory

    async def send_push_notification(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> DispatchResult:
        data = dict(data or {})
        registry = self._registry_factory(db)
        result = DispatchResult(user_id=user_id)

        device_tokens = await registry.tokens_for_user(user_id)
        if not device_tokens:
            logger.info("No device tokens for user %s; skipping push", user_id)
            return result

        expo_tokens, fcm_tokens = payload_builder.partition_tokens(dt.token for dt in device_tokens)
        result.expo_tokens = len(expo_tokens)
        result.fcm_tokens = len(fcm_tokens)
        logger.info(
            "Sending push to user %s: %d Expo token(s), %d FCM token(s)",
            user_id,
            len(expo_tokens),
            len(fcm_tokens),
        )

        if expo_tokens:
            await self._send_expo(expo_tokens, title, body, data, result)

        if fcm_tokens:
            await self._send_fcm(registry, fcm_tokens, title, body, data, result)

        return result

    async def _send_expo(
        self,
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, Any],
        result: DispatchResult,
    ) -> None:
        payload = payload_builder.build_expo_message(tokens, title, body, data)
        try:
            outcome = await self._expo.send_batch(payload)
        except Exception as e:
            outcome = DeliveryOutcome(tokens, error=DeliveryError(f"Expo send failed: {e}"))

        if outcome.ok:
            push_sent_total.labels(channel="expo").inc()
            result.responses.append(outcome.response)
        else:
            # Expo failures never block FCM delivery
            push_failed_total.labels(channel="expo", kind=outcome.error.kind.value).inc()
            logger.error("Expo push failed for %d token(s): %s", len(tokens), outcome.error)
            result.errors.append(outcome.error)

    async def _send_fcm(
        self,
        registry: DeviceTokenRegistry,
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, Any],
        result: DispatchResult,
    ) -> None:
        messages = [
            payload_builder.build_fcm_message(token, title, body, data, apns_topic=self._apns_topic)
            for token in tokens
        ]

        sent: list[DeliveryOutcome | ConfigurationError] = []
        if self._concurrency == 1:
            for message in messages:
                sent.append(await self._send_fcm_one(message))
                if isinstance(sent[-1], ConfigurationError):
                    break
        else:
            semaphore = asyncio.Semaphore(self._concurrency)

            async def bounded(message: dict[str, Any]) -> DeliveryOutcome | ConfigurationError:
                async with semaphore:
                    return await self._send_fcm_one(message)

            sent = list(await asyncio.gather(*(bounded(m) for m in messages)))

        config_errors = [s for s in sent if isinstance(s, ConfigurationError)]
        if config_errors:
            logger.error("FCM channel unavailable for user %s: %s", result.user_id, config_errors[0])
            push_failed_total.labels(channel="fcm", kind="configuration").inc()
            result.errors.append(config_errors[0])

        outcomes = [s for s in sent if isinstance(s, DeliveryOutcome)]
        await self._record_fcm(registry, outcomes, result)

    async def _send_fcm_one(self, message: dict[str, Any]) -> DeliveryOutcome | ConfigurationError:
        token = message["token"]
        try:
            return await self._fcm.send_one(message)
        except ConfigurationError as e:
            return e
        except Exception as e:
            return DeliveryOutcome([token], error=DeliveryError(f"FCM send failed: {e}", token=token))

    async def _record_fcm(
        self,
        registry: DeviceTokenRegistry,
        outcomes: list[DeliveryOutcome],
        result: DispatchResult,
    ) -> None:
        for outcome in outcomes:
            if outcome.ok:
                push_sent_total.labels(channel="fcm").inc()
                result.responses.append(outcome.response)
                continue

            error = outcome.error
            push_failed_total.labels(channel="fcm", kind=error.kind.value).inc()
            result.errors.append(error)

            if error.kind is DeliveryErrorKind.INVALID and outcome.token:
                logger.info("FCM token %s... is unregistered; evicting", outcome.token[:12])
                try:
                    await registry.evict(outcome.token)
                except PersistenceError as e:
                    logger.error("Could not evict token %s...: %s", outcome.token[:12], e)
                    continue
                device_tokens_evicted_total.inc()
                result.evicted.append(outcome.token)
            else:
                logger.warning(
                    "FCM push failed for token %s... (%s): %s",
                    (outcome.token or "")[:12],
                    error.kind.value,
                    error,
                )

