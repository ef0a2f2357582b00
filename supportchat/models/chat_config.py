"""Company chat configuration database model."""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from supportchat.core.database import Base


class ChatConfig(Base):
    """Per-company assistant configuration."""

    __tablename__ = "chat_configs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    support_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    retrieval_index_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
