"""Message repository: ordered reads and sequence-numbered writes."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from supportchat.models.message import Message


class MessageRepository:
    """Encapsulates message queries for a chat."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_chat_id(self, chat_id: str) -> list[Message]:
        """Retrieve all messages of a chat ordered by sequence number."""
        result = await self._session.execute(
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.sequence_number.asc())
        )
        return list(result.scalars().all())

    async def get_latest_sequence_number(self, chat_id: str) -> int:
        """Highest sequence number in a chat, or 0 when it has no messages."""
        result = await self._session.execute(
            select(func.max(Message.sequence_number)).where(Message.chat_id == chat_id)
        )
        return result.scalar_one_or_none() or 0

    async def create_message(
        self,
        chat_id: str,
        user_id: str,
        role: str,
        content: str,
        sequence_number: int,
        model: str | None = None,
    ) -> Message:
        """Insert a single message with a caller-computed sequence number."""
        message = Message(
            chat_id=chat_id,
            user_id=user_id,
            role=role,
            content=content,
            sequence_number=sequence_number,
            model=model,
        )
        self._session.add(message)
        await self._session.flush()
        await self._session.refresh(message)
        return message
