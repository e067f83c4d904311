"""Device token registry: who owns which push token."""

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from petnotify.errors import PersistenceError
from petnotify.models.device_token import PLATFORMS, DeviceToken

logger = logging.getLogger(__name__)


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert
    return postgresql.insert


class DeviceTokenRegistry:
    """Upserts and deletes keyed by the globally unique token value.

    Every mutation is a single idempotent statement, so concurrent duplicate
    registrations converge on one row without locking.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def register(
        self,
        user_id: uuid.UUID,
        token: str,
        device_id: str | None = None,
        platform: str | None = None,
    ) -> tuple[DeviceToken, bool]:
        """Register ``token`` for ``user_id``.

        Returns the row and whether it was newly created. A token owned by
        another user is transferred to ``user_id``; a token already owned by
        ``user_id`` is left untouched.
        """
        if platform is not None:
            platform = platform.lower()
            if platform not in PLATFORMS:
                platform = "unknown"

        try:
            existing = await self._db.scalar(select(DeviceToken.id).where(DeviceToken.token == token))

            table = DeviceToken.__table__
            insert = _insert_for(self._db)
            stmt = insert(table).values(
                id=uuid.uuid4(),
                token=token,
                user_id=user_id,
                device_id=device_id,
                platform=platform or "unknown",
            )
            set_ = {
                "user_id": stmt.excluded.user_id,
                "device_id": stmt.excluded.device_id,
                "updated_at": func.now(),
            }
            if platform is not None:
                set_["platform"] = stmt.excluded.platform
            stmt = stmt.on_conflict_do_update(
                index_elements=[table.c.token],
                set_=set_,
                where=table.c.user_id != stmt.excluded.user_id,
            )
            await self._db.execute(stmt)

            row = await self._db.scalar(
                select(DeviceToken)
                .where(DeviceToken.token == token)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not register device token: {e}") from e

        created = existing is None
        logger.info(
            "Device token %s for user %s (platform=%s)",
            "registered" if created else "re-registered",
            user_id,
            row.platform,
        )
        return row, created

    async def unregister(self, user_id: uuid.UUID, token: str) -> int:
        """Delete ``token`` only if ``user_id`` owns it."""
        try:
            result = await self._db.execute(
                delete(DeviceToken).where(
                    DeviceToken.user_id == user_id,
                    DeviceToken.token == token,
                )
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not unregister device token: {e}") from e
        return result.rowcount or 0

    async def tokens_for_users(self, user_ids: Iterable[uuid.UUID]) -> list[DeviceToken]:
        ids = set(user_ids)
        if not ids:
            return []
        try:
            result = await self._db.execute(select(DeviceToken).where(DeviceToken.user_id.in_(ids)))
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load device tokens: {e}") from e
        return list(result.scalars().all())

    async def tokens_for_user(self, user_id: uuid.UUID) -> list[DeviceToken]:
        return await self.tokens_for_users({user_id})

    async def evict(self, token: str) -> int:
        """Remove ``token`` regardless of owner after a provider rejected it."""
        try:
            result = await self._db.execute(delete(DeviceToken).where(DeviceToken.token == token))
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not evict device token: {e}") from e
        deleted = result.rowcount or 0
        logger.info("Evicted device token %s... (%d row(s))", token[:12], deleted)
        return deleted
