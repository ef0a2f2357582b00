"""Company chat configuration repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from supportchat.models.chat_config import ChatConfig


class ChatConfigRepository:
    """Encapsulates chat configuration queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_company_id(self, company_id: str) -> ChatConfig | None:
        """Find the configuration of a company."""
        result = await self._session.execute(
            select(ChatConfig).where(ChatConfig.company_id == company_id)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        company_id: str,
        system_prompt: str,
        support_email: str | None = None,
        retrieval_index_name: str | None = None,
    ) -> ChatConfig:
        """Create or replace a company configuration."""
        config = await self.find_by_company_id(company_id)
        if config is None:
            config = ChatConfig(company_id=company_id)
            self._session.add(config)
        config.system_prompt = system_prompt
        config.support_email = support_email
        config.retrieval_index_name = retrieval_index_name
        await self._session.flush()
        await self._session.refresh(config)
        return config
