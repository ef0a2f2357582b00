"""Read-through, write-invalidate cache for chats and company configs.

Entries never expire. Every write path removes the cached copy after the
database commit and before the write is acknowledged, so a request starting
afterwards always reads the replaced row.
"""

import redis.asyncio as redis
import structlog
from pydantic import ValidationError

from supportchat.schemas.chat_schema import ChatConfigRecord, ChatRecord

logger = structlog.get_logger()

CHAT_CACHE_PREFIX = "chat_cache:"
CHAT_CONFIG_CACHE_PREFIX = "chat_config_cache:"


class CacheService:
    """Memo of immutable chat and chat-config snapshots."""

    def __init__(self, redis_client: redis.Redis) -> None:  # type: ignore[type-arg]
        self._redis = redis_client

    # --- Chats ---

    async def get_chat(self, chat_id: str) -> ChatRecord | None:
        raw = await self._redis.get(f"{CHAT_CACHE_PREFIX}{chat_id}")
        if raw is None:
            return None
        try:
            return ChatRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable cached chat", chat_id=chat_id)
            await self.invalidate_chat(chat_id)
            return None

    async def set_chat(self, chat: ChatRecord) -> None:
        await self._redis.set(f"{CHAT_CACHE_PREFIX}{chat.id}", chat.model_dump_json())

    async def invalidate_chat(self, chat_id: str) -> None:
        await self._redis.delete(f"{CHAT_CACHE_PREFIX}{chat_id}")

    # --- Company chat configs ---

    async def get_chat_config(self, company_id: str) -> ChatConfigRecord | None:
        raw = await self._redis.get(f"{CHAT_CONFIG_CACHE_PREFIX}{company_id}")
        if raw is None:
            return None
        try:
            return ChatConfigRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning(
                "Discarding unreadable cached chat config", company_id=company_id
            )
            await self.invalidate_chat_config(company_id)
            return None

    async def set_chat_config(self, config: ChatConfigRecord) -> None:
        await self._redis.set(
            f"{CHAT_CONFIG_CACHE_PREFIX}{config.company_id}", config.model_dump_json()
        )

    async def invalidate_chat_config(self, company_id: str) -> None:
        await self._redis.delete(f"{CHAT_CONFIG_CACHE_PREFIX}{company_id}")
