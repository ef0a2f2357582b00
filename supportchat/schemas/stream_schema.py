"""Server-Sent Event payloads written to the client."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TERMINATION_MARKER = ":\n\n"


class OutboundEvent(BaseModel):
    """One ``data:`` frame of the chat stream.

    Wire shapes::

        {"type": "connected"}
        {"type": "chunk", "content": "..."}
        {"type": "done", "fullContent": "..."}
        {"type": "error", "error": "...", "code": "..."}
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["connected", "chunk", "done", "error"]
    content: str | None = None
    full_content: str | None = Field(default=None, alias="fullContent")
    error: str | None = None
    code: str | None = None

    @classmethod
    def connected(cls) -> "OutboundEvent":
        return cls(type="connected")

    @classmethod
    def chunk(cls, content: str) -> "OutboundEvent":
        return cls(type="chunk", content=content)

    @classmethod
    def done(cls, full_content: str) -> "OutboundEvent":
        return cls(type="done", full_content=full_content)

    @classmethod
    def failure(cls, error: str, code: str) -> "OutboundEvent":
        return cls(type="error", error=error, code=code)

    def to_sse(self) -> str:
        """Encode as a single SSE frame."""
        payload = self.model_dump_json(by_alias=True, exclude_none=True)
        return f"data: {payload}\n\n"
