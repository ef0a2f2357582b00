"""Errors surfaced by the chat stream client."""

import httpx

AUTH_FAILURE_STATUSES = frozenset({401, 403})
TOKEN_INVALID_MESSAGE = (
    "Invalid or expired token. Please reinitialize your chat session."
)


class StreamClientError(Exception):
    """Base class for client-side streaming failures."""


class StreamConnectionError(StreamClientError):
    """The stream could not be opened or closed before producing text."""


class StreamTimeoutError(StreamClientError):
    """The stream did not finish within the allotted time."""


class StreamServerError(StreamClientError):
    """The server reported an ``error`` event.

    ``code`` carries the wire code, e.g. ``TOKEN_INVALID``.
    """

    def __init__(self, message: str, code: str) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


async def auth_failure(response: httpx.Response) -> StreamServerError:
    """Turn a rejected token response into a ``TOKEN_INVALID`` server error."""
    await response.aread()
    try:
        body = response.json()
    except ValueError:
        body = None
    message = body.get("message") if isinstance(body, dict) else None
    return StreamServerError(message or TOKEN_INVALID_MESSAGE, "TOKEN_INVALID")
