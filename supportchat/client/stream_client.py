"""Chat stream client with a managed primary transport and a raw fallback."""

from collections.abc import Callable

import httpx
import structlog

from supportchat.client.byte_stream import ByteStreamTransport
from supportchat.client.errors import StreamClientError, StreamServerError
from supportchat.client.event_source import (
    DEFAULT_TIMEOUT_SECONDS,
    EventSourceTransport,
)
from supportchat.client.frames import ChunkCallback

logger = structlog.get_logger()

CompleteCallback = Callable[[str], None]
ErrorCallback = Callable[[Exception], None]


class ChatStreamClient:
    """Sends one message to a chat and reports the streamed answer.

    Exactly one of ``on_complete`` or ``on_error`` is called, exactly once,
    per :meth:`stream_message` call.
    """

    def __init__(
        self,
        base_url: str,
        chat_id: str,
        token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._chat_id = chat_id
        self._token = token
        self._timeout = timeout
        self._transport = transport

    @property
    def stream_path(self) -> str:
        return f"/api/v1/chats/{self._chat_id}/stream"

    async def stream_message(
        self,
        content: str,
        on_chunk: ChunkCallback,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
    ) -> None:
        if not self._chat_id:
            on_error(
                StreamClientError("Chat ID not found. Please initialize a chat first.")
            )
            return
        if not self._token:
            on_error(
                StreamClientError(
                    "Authentication token not found. Please initialize a chat first."
                )
            )
            return

        async with httpx.AsyncClient(
            base_url=self._base_url,
            transport=self._transport,
            timeout=httpx.Timeout(None, connect=10.0),
        ) as client:
            try:
                text = await self._stream(client, content, on_chunk)
            except Exception as exc:
                on_error(exc)
                return
        on_complete(text)

    async def _stream(
        self, client: httpx.AsyncClient, content: str, on_chunk: ChunkCallback
    ) -> str:
        primary = EventSourceTransport(
            client, self.stream_path, self._token, timeout=self._timeout
        )
        delivered: list[str] = []

        def forward(text: str) -> None:
            delivered.append(text)
            on_chunk(text)

        try:
            return await primary.stream(content, forward)
        except StreamServerError:
            raise
        except Exception as exc:
            # Fall back only before any text reached the caller.
            if delivered:
                raise
            logger.warning(
                "Event source failed; falling back to byte stream",
                chat_id=self._chat_id,
                error=str(exc),
            )

        fallback = ByteStreamTransport(client, self.stream_path, self._token)
        return await fallback.stream(content, on_chunk)
