"""Client for the chat event stream."""

from supportchat.client.errors import (
    StreamClientError,
    StreamConnectionError,
    StreamServerError,
    StreamTimeoutError,
)
from supportchat.client.frames import SSEFrameParser
from supportchat.client.stream_client import ChatStreamClient

__all__ = [
    "ChatStreamClient",
    "SSEFrameParser",
    "StreamClientError",
    "StreamConnectionError",
    "StreamServerError",
    "StreamTimeoutError",
]
