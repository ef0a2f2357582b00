"""Primary transport: a managed event-source connection.

The managed connection is a plain ``GET``, so the message and the token
travel as query parameters.
"""

import asyncio

import httpx
import structlog
from httpx_sse import SSEError, aconnect_sse

from supportchat.client.errors import (
    AUTH_FAILURE_STATUSES,
    StreamConnectionError,
    StreamTimeoutError,
    auth_failure,
)
from supportchat.client.frames import ChunkCallback, FrameConsumer

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 30.0


class EventSourceTransport:
    """Streams one turn through ``httpx-sse``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        path: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._path = path
        self._token = token
        self._timeout = timeout

    async def stream(self, content: str, on_chunk: ChunkCallback) -> str:
        """Return the full text; raise when the stream cannot deliver any."""
        consumer = FrameConsumer(on_chunk)
        try:
            async with asyncio.timeout(self._timeout):
                await self._read(content, consumer)
        except TimeoutError as exc:
            raise StreamTimeoutError("Stream timeout") from exc
        return consumer.text

    async def _read(self, content: str, consumer: FrameConsumer) -> None:
        params = {"content": content, "token": self._token}
        try:
            async with aconnect_sse(
                self._client, "GET", self._path, params=params
            ) as source:
                if source.response.status_code in AUTH_FAILURE_STATUSES:
                    raise await auth_failure(source.response)
                if source.response.is_error:
                    raise StreamConnectionError(
                        "Could not establish stream connection "
                        f"(status {source.response.status_code})"
                    )
                async for event in source.aiter_sse():
                    if not event.data:
                        continue
                    consumer.consume(event.data)
                    if consumer.finished:
                        return
        except SSEError as exc:
            raise StreamConnectionError(
                f"Could not establish stream connection: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            if consumer.text:
                logger.warning(
                    "Stream closed mid-response; keeping partial text",
                    error=str(exc),
                )
                return
            raise StreamConnectionError("Stream connection error") from exc

        if consumer.text:
            logger.warning("Stream ended without completion; keeping partial text")
            return
        raise StreamConnectionError("Stream connection closed unexpectedly")
