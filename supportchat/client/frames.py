"""SSE frame reassembly and payload interpretation shared by both transports."""

import json
from collections.abc import Callable

import structlog

from supportchat.client.errors import StreamServerError

logger = structlog.get_logger()

DONE_SENTINEL = "[DONE]"
FRAME_SEPARATOR = "\n\n"

ChunkCallback = Callable[[str], None]


def extract_data(frame: str) -> str | None:
    """Join the ``data:`` lines of one frame, or None when it has none.

    Comment lines (``:``) and other fields are ignored.
    """
    lines = [
        line[5:].removeprefix(" ")
        for line in frame.split("\n")
        if line.startswith("data:")
    ]
    if not lines:
        return None
    return "\n".join(lines)


class SSEFrameParser:
    """Reassembles frames from text that arrives in arbitrary pieces."""

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, text: str) -> list[str]:
        """Add decoded text; return data payloads of every completed frame."""
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        *complete, self._buffer = self._buffer.split(FRAME_SEPARATOR)
        return [data for frame in complete if (data := extract_data(frame)) is not None]

    def flush(self) -> list[str]:
        """Payload of whatever is left once the stream has ended."""
        remainder, self._buffer = self._buffer, ""
        if not remainder.strip():
            return []
        data = extract_data(remainder)
        return [data] if data is not None else []


class FrameConsumer:
    """Applies payloads to the running text of one turn.

    ``[DONE]`` and ``done`` events mark the end; JSON without ``content`` is
    ignored; an ``error`` event raises :class:`StreamServerError`.
    """

    def __init__(self, on_chunk: ChunkCallback) -> None:
        self._on_chunk = on_chunk
        self.text = ""
        self.finished = False

    def consume(self, data: str) -> None:
        if data == DONE_SENTINEL:
            self.finished = True
            return
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Ignoring unparseable stream frame", data=data[:200])
            return
        if not isinstance(payload, dict):
            logger.warning("Ignoring non-object stream frame", data=data[:200])
            return

        kind = payload.get("type")
        if kind == "error":
            raise StreamServerError(
                payload.get("error") or "Streaming failed",
                payload.get("code") or "STREAMING_ERROR",
            )
        if kind == "done":
            self.finished = True
            return

        content = payload.get("content")
        if isinstance(content, str) and content:
            self.text += content
            self._on_chunk(content)
