"""Fallback transport: a raw ``POST`` whose body is read as bytes."""

import codecs

import httpx
import structlog

from supportchat.client.errors import (
    AUTH_FAILURE_STATUSES,
    StreamConnectionError,
    auth_failure,
)
from supportchat.client.frames import ChunkCallback, FrameConsumer, SSEFrameParser

logger = structlog.get_logger()


class ByteStreamTransport:
    """Streams one turn by parsing SSE frames out of the response bytes."""

    def __init__(self, client: httpx.AsyncClient, path: str, token: str) -> None:
        self._client = client
        self._path = path
        self._token = token

    async def stream(self, content: str, on_chunk: ChunkCallback) -> str:
        """Return the full text once the server closes the stream."""
        consumer = FrameConsumer(on_chunk)
        parser = SSEFrameParser()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "text/event-stream",
        }

        async with self._client.stream(
            "POST", self._path, json={"content": content}, headers=headers
        ) as response:
            if response.status_code in AUTH_FAILURE_STATUSES:
                raise await auth_failure(response)
            if response.is_error:
                raise StreamConnectionError(
                    f"Stream request failed with status {response.status_code}"
                )
            async for raw in response.aiter_bytes():
                for data in parser.feed(decoder.decode(raw)):
                    consumer.consume(data)

        for data in parser.feed(decoder.decode(b"", final=True)):
            consumer.consume(data)
        for data in parser.flush():
            consumer.consume(data)

        if not consumer.finished:
            logger.info("Stream closed without a done event", chars=len(consumer.text))
        return consumer.text
