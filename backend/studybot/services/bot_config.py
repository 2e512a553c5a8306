"""Runtime key/value configuration stored in the database."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.db.models import BotConfig

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "welcome_message"
DEFAULT_RESPONSE = "default_response"
BOT_ENABLED = "bot_enabled"
MAX_MESSAGE_LENGTH = "max_message_length"

# Seeded on startup when missing. `default_response` is deliberately absent
# so the built-in reply is used until an admin sets one.
DEFAULTS: dict[str, tuple[str, str]] = {
    WELCOME_MESSAGE: ("Xin chào! Tôi là bot hỗ trợ. Bạn cần giúp gì?", "Default welcome message for new users"),
    BOT_ENABLED: ("true", "Enable or disable bot responses"),
    MAX_MESSAGE_LENGTH: ("2000", "Maximum length for bot messages"),
}


class BotConfigService:
    async def get(self, db: AsyncSession, key: str) -> str | None:
        config = await db.get(BotConfig, key)
        return config.value if config else None

    async def set(self, db: AsyncSession, key: str, value: str, description: str | None = None) -> BotConfig:
        config = await db.get(BotConfig, key)
        if config is None:
            config = BotConfig(key=key, value=value, description=description)
            db.add(config)
        else:
            config.value = value
            if description is not None:
                config.description = description
        await db.flush()
        return config

    async def all(self, db: AsyncSession) -> list[BotConfig]:
        result = await db.execute(select(BotConfig).order_by(BotConfig.key))
        return list(result.scalars())

    async def seed_defaults(self, db: AsyncSession) -> int:
        """Insert missing default keys. Returns how many were added."""
        added = 0
        for key, (value, description) in DEFAULTS.items():
            if await db.get(BotConfig, key) is None:
                db.add(BotConfig(key=key, value=value, description=description))
                added += 1
        await db.flush()
        if added:
            logger.info("Seeded %d bot config defaults", added)
        return added

    async def is_bot_enabled(self, db: AsyncSession) -> bool:
        value = await self.get(db, BOT_ENABLED)
        return value is None or value.strip().lower() == "true"

    async def max_message_length(self, db: AsyncSession) -> int | None:
        value = await self.get(db, MAX_MESSAGE_LENGTH)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.warning("Ignoring non-numeric %s: %r", MAX_MESSAGE_LENGTH, value)
            return None
