"""Seed script: populates dev DB with two users, their devices, and a few notifications."""

import asyncio
import uuid

from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from petnotify.config import get_settings
from petnotify.models import DeviceToken, Notification, NotificationType, User

SEED_OWNER_ID = uuid.UUID("aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee")
SEED_FINDER_ID = uuid.UUID("ffffffff-bbbb-cccc-dddd-eeeeeeeeeeee")
SEED_EMAIL = "dev@example.com"


async def seed():
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_factory() as db:
        result = await db.execute(text("SELECT id FROM users WHERE email = :email"), {"email": SEED_EMAIL})
        if result.scalar():
            print(f"Seed user {SEED_EMAIL} already exists, skipping.")
            await engine.dispose()
            return

        db.add_all(
            [
                User(id=SEED_OWNER_ID, email=SEED_EMAIL, name="Dev Owner"),
                User(id=SEED_FINDER_ID, email="finder@example.com", name="Dev Finder"),
            ]
        )
        await db.flush()

        # One device per channel so both delivery paths can be exercised locally
        db.add_all(
            [
                DeviceToken(
                    user_id=SEED_OWNER_ID,
                    token="ExponentPushToken[seed-dev-owner]",
                    device_id="seed-iphone",
                    platform="ios",
                ),
                DeviceToken(
                    user_id=SEED_FINDER_ID,
                    token="seed-fcm-registration-token",
                    device_id="seed-pixel",
                    platform="android",
                ),
            ]
        )

        samples = [
            (NotificationType.LOST_PET, "Pet perdido perto de você", "Rex foi visto pela última vez no parque"),
            (NotificationType.PET_SIGHTING, "Possível avistamento", "Alguém viu um cachorro parecido com o Rex"),
            (NotificationType.CHAT, "Dev Finder", "Acho que encontrei seu cachorro!"),
        ]
        for i, (notification_type, title, message) in enumerate(samples):
            data = {"chatRoomId": "seed-room"} if notification_type is NotificationType.CHAT else {"petId": "rex"}
            db.add(
                Notification(
                    user_id=SEED_OWNER_ID,
                    sender_id=SEED_FINDER_ID,
                    type=notification_type,
                    title=title,
                    message=message,
                    data=data,
                    read=i == 0,
                )
            )

        await db.commit()
        print(f"Seeded: users={SEED_EMAIL}, finder@example.com, 2 device tokens, {len(samples)} notifications")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
