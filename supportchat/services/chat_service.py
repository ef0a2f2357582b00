"""Chat and company configuration use cases."""

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from supportchat.core.exceptions import ChatNotFoundError, InvalidCompanyError
from supportchat.repositories.chat_config_repo import ChatConfigRepository
from supportchat.repositories.chat_repo import ChatRepository
from supportchat.repositories.message_repo import MessageRepository
from supportchat.schemas.chat_schema import (
    ChatConfigRecord,
    ChatRecord,
    ChatWithMessagesResponse,
    CreateChatRequest,
    CreateChatResponse,
    MessageResponse,
)
from supportchat.services.cache_service import CacheService
from supportchat.services.token_service import TokenService

logger = structlog.get_logger()


class ChatService:
    """Chat CRUD with a read-through, write-invalidate cache."""

    def __init__(
        self,
        chat_repo: ChatRepository,
        message_repo: MessageRepository,
        config_repo: ChatConfigRepository,
        cache: CacheService,
        token_service: TokenService,
        session: AsyncSession,
    ) -> None:
        self._chat_repo = chat_repo
        self._message_repo = message_repo
        self._config_repo = config_repo
        self._cache = cache
        self._token_service = token_service
        self._session = session

    @classmethod
    def from_session(
        cls,
        session: AsyncSession,
        cache: CacheService,
        token_service: TokenService,
    ) -> "ChatService":
        """Build a service whose repositories share ``session``."""
        return cls(
            chat_repo=ChatRepository(session),
            message_repo=MessageRepository(session),
            config_repo=ChatConfigRepository(session),
            cache=cache,
            token_service=token_service,
            session=session,
        )

    # --- Reads (read-through) ---

    async def get_chat(self, chat_id: str) -> ChatRecord | None:
        """Chat snapshot from cache, falling back to the database."""
        cached = await self._cache.get_chat(chat_id)
        if cached is not None:
            return cached
        chat = await self._chat_repo.find_by_id(chat_id)
        if chat is None:
            return None
        record = ChatRecord.model_validate(chat)
        await self._cache.set_chat(record)
        return record

    async def require_chat(self, chat_id: str) -> ChatRecord:
        chat = await self.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError
        return chat

    async def get_chat_config(self, company_id: str) -> ChatConfigRecord | None:
        """Company configuration from cache, falling back to the database."""
        cached = await self._cache.get_chat_config(company_id)
        if cached is not None:
            return cached
        config = await self._config_repo.find_by_company_id(company_id)
        if config is None:
            return None
        record = ChatConfigRecord.model_validate(config)
        await self._cache.set_chat_config(record)
        return record

    async def get_chat_with_messages(self, chat_id: str) -> ChatWithMessagesResponse:
        chat = await self.require_chat(chat_id)
        messages = await self._message_repo.find_by_chat_id(chat_id)
        return ChatWithMessagesResponse(
            chat=chat,
            messages=[MessageResponse.model_validate(m) for m in messages],
        )

    async def list_user_chats(self, user_id: str) -> list[ChatRecord]:
        chats = await self._chat_repo.find_by_user_id(user_id)
        return [ChatRecord.model_validate(c) for c in chats]

    async def list_company_chats(self, company_id: str) -> list[ChatRecord]:
        chats = await self._chat_repo.find_by_company_id(company_id)
        return [ChatRecord.model_validate(c) for c in chats]

    # --- Writes (invalidate after commit) ---

    async def create_chat(self, request: CreateChatRequest) -> CreateChatResponse:
        """Create a chat for a configured company and issue its access token."""
        if await self.get_chat_config(request.company_id) is None:
            raise InvalidCompanyError(message="Chat config not found")

        user_id = request.user_id or str(uuid.uuid4())
        chat = await self._chat_repo.create(
            user_id=user_id,
            name=request.name,
            company_id=request.company_id,
        )
        await self._session.commit()

        record = ChatRecord.model_validate(chat)
        token = self._token_service.create_chat_access_token(record.id, user_id)
        logger.info(
            "Chat created",
            chat_id=record.id,
            company_id=request.company_id,
            user_id=user_id,
        )
        return CreateChatResponse(chat=record, access_token=token)

    async def update_chat(self, chat_id: str, name: str) -> ChatRecord:
        """Rename a chat."""
        chat = await self._chat_repo.update_name(chat_id, name)
        if chat is None:
            raise ChatNotFoundError
        await self._session.commit()
        await self._cache.invalidate_chat(chat_id)
        return ChatRecord.model_validate(chat)

    async def delete_chat(self, chat_id: str) -> None:
        """Delete a chat and its messages."""
        if not await self._chat_repo.delete(chat_id):
            raise ChatNotFoundError
        await self._session.commit()
        await self._cache.invalidate_chat(chat_id)
        logger.info("Chat deleted", chat_id=chat_id)

    async def upsert_chat_config(
        self,
        company_id: str,
        system_prompt: str,
        support_email: str | None = None,
        retrieval_index_name: str | None = None,
    ) -> ChatConfigRecord:
        """Create or replace a company's configuration."""
        config = await self._config_repo.upsert(
            company_id=company_id,
            system_prompt=system_prompt,
            support_email=support_email,
            retrieval_index_name=retrieval_index_name,
        )
        await self._session.commit()
        await self._cache.invalidate_chat_config(company_id)
        return ChatConfigRecord.model_validate(config)
