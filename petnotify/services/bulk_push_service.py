"""Multi-recipient push delivery in provider-sized chunks."""

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from petnotify.config import Settings
from petnotify.errors import DeliveryError, PushError
from petnotify.metrics import push_failed_total, push_sent_total
from petnotify.services import payload_builder
from petnotify.services.device_registry import DeviceTokenRegistry
from petnotify.services.push_providers import DeliveryOutcome, ExpoPushProvider, FcmPushProvider, PushProvider

logger = logging.getLogger(__name__)


@dataclass
class BulkDispatchSummary:
    recipients: int
    expo_tokens: int = 0
    fcm_tokens: int = 0
    expo_sent: int = 0
    fcm_sent: int = 0
    fcm_skipped: bool = False
    chunk_responses: list[Any] = field(default_factory=list)
    errors: list[PushError] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Notifications dispatched for {self.recipients} user(s)"


class BulkPushOrchestrator:
    """Fan one notification out to many users.

    Tokens are loaded with a single query and sent in chunks: up to 100 per
    Expo request and up to 500 per legacy FCM request. The legacy response does
    not say which registration id failed, so nothing is evicted here; a dead
    token is evicted the next time its owner is messaged individually.
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
        self._registry_factory = registry_factory

    async def send_bulk_push_notifications(
        self,
        db: AsyncSession,
        user_ids: Iterable[uuid.UUID],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> BulkDispatchSummary:
        user_ids = list(dict.fromkeys(user_ids))
        data = dict(data or {})
        summary = BulkDispatchSummary(recipients=len(user_ids))

        device_tokens = await self._registry_factory(db).tokens_for_users(user_ids)
        if not device_tokens:
            logger.info("No device tokens for %d user(s); skipping bulk push", len(user_ids))
            return summary

        expo_tokens, fcm_tokens = payload_builder.partition_tokens(dt.token for dt in device_tokens)
        summary.expo_tokens = len(expo_tokens)
        summary.fcm_tokens = len(fcm_tokens)
        logger.info(
            "Bulk push to %d user(s): %d Expo token(s), %d FCM token(s)",
            len(user_ids),
            len(expo_tokens),
            len(fcm_tokens),
        )

        for chunk in payload_builder.chunked(expo_tokens, payload_builder.EXPO_CHUNK_SIZE):
            payload = payload_builder.build_expo_message(chunk, title, body, data, duplicate_display=True)
            outcome = await self._send_chunk(self._expo, payload, chunk)
            if self._record(outcome, "expo", summary):
                summary.expo_sent += len(chunk)

        if fcm_tokens:
            if not self._fcm.batch_configured:
                logger.error("FCM server key not configured; skipping %d FCM token(s)", len(fcm_tokens))
                summary.fcm_skipped = True
                return summary

            for chunk in payload_builder.chunked(fcm_tokens, payload_builder.FCM_LEGACY_CHUNK_SIZE):
                payload = payload_builder.build_fcm_legacy_message(
                    chunk, title, body, data, apns_topic=self._apns_topic
                )
                outcome = await self._send_chunk(self._fcm, payload, chunk)
                if self._record(outcome, "fcm_legacy", summary):
                    summary.fcm_sent += len(chunk)
                    logger.info("FCM: sent bulk chunk of %d token(s)", len(chunk))

        return summary

    async def _send_chunk(self, provider: PushProvider, payload: dict[str, Any], chunk: list[str]) -> DeliveryOutcome:
        try:
            return await provider.send_batch(payload)
        except PushError as e:
            return DeliveryOutcome(chunk, error=e)
        except Exception as e:
            return DeliveryOutcome(chunk, error=DeliveryError(f"Bulk send failed: {e}"))

    def _record(self, outcome: DeliveryOutcome, channel: str, summary: BulkDispatchSummary) -> bool:
        if outcome.ok:
            push_sent_total.labels(channel=channel).inc()
            summary.chunk_responses.append(outcome.response)
            return True
        kind = getattr(outcome.error, "kind", None)
        push_failed_total.labels(channel=channel, kind=kind.value if kind else "configuration").inc()
        logger.error("%s bulk chunk of %d token(s) failed: %s", channel, len(outcome.tokens), outcome.error)
        summary.errors.append(outcome.error)
        return False
