"""Chat repository for chat database operations."""

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from supportchat.models.chat import Chat
from supportchat.models.message import Message


class ChatRepository:
    """Encapsulates chat queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_id(self, chat_id: str) -> Chat | None:
        """Find a chat by its id."""
        result = await self._session.execute(select(Chat).where(Chat.id == chat_id))
        return result.scalar_one_or_none()

    async def find_by_user_id(self, user_id: str) -> list[Chat]:
        """Retrieve a user's chats, most recently updated first."""
        result = await self._session.execute(
            select(Chat)
            .where(Chat.user_id == user_id)
            .order_by(Chat.updated_at.desc(), Chat.created_at.desc())
        )
        return list(result.scalars().all())

    async def find_by_company_id(self, company_id: str) -> list[Chat]:
        """Retrieve a company's chats, most recently updated first."""
        result = await self._session.execute(
            select(Chat)
            .where(Chat.company_id == company_id)
            .order_by(Chat.updated_at.desc(), Chat.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(
        self,
        user_id: str,
        name: str,
        company_id: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
    ) -> Chat:
        """Create a new chat."""
        chat = Chat(
            user_id=user_id,
            name=name,
            company_id=company_id,
            model=model,
            temperature=temperature,
        )
        self._session.add(chat)
        await self._session.flush()
        await self._session.refresh(chat)
        return chat

    async def update_name(self, chat_id: str, name: str) -> Chat | None:
        """Rename a chat and return the replaced row."""
        await self._session.execute(
            update(Chat).where(Chat.id == chat_id).values(name=name)
        )
        await self._session.flush()
        chat = await self.find_by_id(chat_id)
        if chat is not None:
            await self._session.refresh(chat)
        return chat

    async def delete(self, chat_id: str) -> bool:
        """Hard-delete a chat and its messages. Returns whether it existed."""
        await self._session.execute(delete(Message).where(Message.chat_id == chat_id))
        result = await self._session.execute(delete(Chat).where(Chat.id == chat_id))
        return bool(result.rowcount)
