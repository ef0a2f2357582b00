"""Chat request, response and record schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant", "system"]


class PromptMessage(BaseModel):
    """A role/content pair sent to the model."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    role: Role
    content: str


class ChatRecord(BaseModel):
    """Immutable snapshot of a chat, safe to cache."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    user_id: str
    company_id: str | None = None
    name: str
    model: str | None = None
    temperature: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ChatConfigRecord(BaseModel):
    """Immutable snapshot of a company chat configuration, safe to cache."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    company_id: str
    system_prompt: str = ""
    support_email: str | None = None
    retrieval_index_name: str | None = None


class ChatSettings(BaseModel):
    """Per-request completion settings; never persisted."""

    model_config = ConfigDict(frozen=True)

    model: str
    temperature: float
    system_prompt: str = ""
    company_id: str | None = None
    enable_email_function: bool = False
    support_email: str | None = None
    timezone: str = "UTC"


class CreateChatRequest(BaseModel):
    """Request to open a new chat for a company."""

    name: str = Field(..., min_length=1, max_length=255)
    company_id: str = Field(..., min_length=1, max_length=64)
    user_id: str | None = Field(default=None, max_length=36)


class CreateChatResponse(BaseModel):
    """New chat plus the access token scoped to it."""

    model_config = ConfigDict(frozen=True)

    chat: ChatRecord
    access_token: str
    token_type: str = "bearer"


class UpdateChatRequest(BaseModel):
    """Request to rename a chat."""

    name: str = Field(..., min_length=1, max_length=255)


class MessageResponse(BaseModel):
    """Single persisted message."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    chat_id: str
    user_id: str
    role: str
    content: str
    sequence_number: int
    model: str | None = None
    created_at: datetime | None = None


class ChatWithMessagesResponse(BaseModel):
    """A chat with its full ordered message history."""

    model_config = ConfigDict(frozen=True)

    chat: ChatRecord
    messages: list[MessageResponse]


class ChatListResponse(BaseModel):
    """List of chats."""

    model_config = ConfigDict(frozen=True)

    chats: list[ChatRecord]


class StreamRequest(BaseModel):
    """Streaming turn input, from a JSON body or query parameters.

    ``content`` is optional here so that a missing value is reported as an
    in-band ``INVALID_REQUEST`` event rather than an HTTP validation error.
    """

    content: str | None = Field(default=None, max_length=8000)
    model: str | None = Field(default=None, max_length=100)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    timezone: str | None = Field(default=None, max_length=64)
