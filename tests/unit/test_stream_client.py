"""Unit tests for the dual-transport chat stream client."""

import asyncio
import json
from collections.abc import AsyncIterator, Callable

import httpx
import pytest

from supportchat.client import (
    ChatStreamClient,
    StreamClientError,
    StreamConnectionError,
    StreamServerError,
    StreamTimeoutError,
)

SSE_HEADERS = {"content-type": "text/event-stream"}


async def _body(*parts: bytes, error: Exception | None = None) -> AsyncIterator[bytes]:
    for part in parts:
        yield part
    if error is not None:
        raise error


def _frame(payload: dict) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode()


class Recorder:
    """Collects callbacks fired by one stream_message call."""

    def __init__(self) -> None:
        self.chunks: list[str] = []
        self.completed: list[str] = []
        self.errors: list[Exception] = []

    async def run(self, client: ChatStreamClient, content: str = "Hello") -> None:
        await client.stream_message(
            content, self.chunks.append, self.completed.append, self.errors.append
        )

    @property
    def terminal_calls(self) -> int:
        return len(self.completed) + len(self.errors)


def _client(
    handler: Callable[[httpx.Request], object], timeout: float = 30.0
) -> ChatStreamClient:
    return ChatStreamClient(
        "http://test",
        "chat-1",
        "tok",
        timeout=timeout,
        transport=httpx.MockTransport(handler),  # type: ignore[arg-type]
    )


class TestPrimaryTransport:
    async def test_streams_over_event_source(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                headers=SSE_HEADERS,
                content=_body(
                    _frame({"type": "connected"}),
                    _frame({"type": "chunk", "content": "Hel"}),
                    _frame({"type": "chunk", "content": "lo"}),
                    _frame({"type": "done", "fullContent": "Hello"}),
                    b":\n\n",
                ),
            )

        recorder = Recorder()
        await recorder.run(_client(handler), "Where is my order?")

        assert recorder.chunks == ["Hel", "lo"]
        assert recorder.completed == ["Hello"]
        assert recorder.errors == []
        [request] = requests
        assert request.method == "GET"
        assert request.url.path == "/api/v1/chats/chat-1/stream"
        assert request.url.params["content"] == "Where is my order?"
        assert request.url.params["token"] == "tok"

    async def test_partial_text_survives_mid_stream_close(self) -> None:
        methods: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(
                200,
                headers=SSE_HEADERS,
                content=_body(
                    _frame({"type": "chunk", "content": "par"}),
                    error=httpx.ReadError("connection reset"),
                ),
            )

        recorder = Recorder()
        await recorder.run(_client(handler))

        assert recorder.completed == ["par"]
        assert methods == ["GET"]

    async def test_server_error_frame_is_not_retried(self) -> None:
        methods: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(
                200,
                headers=SSE_HEADERS,
                content=_body(
                    _frame(
                        {
                            "type": "error",
                            "error": "Invalid or expired token.",
                            "code": "TOKEN_INVALID",
                        }
                    ),
                    b":\n\n",
                ),
            )

        recorder = Recorder()
        await recorder.run(_client(handler))

        assert methods == ["GET"]
        assert recorder.completed == []
        [error] = recorder.errors
        assert isinstance(error, StreamServerError)
        assert error.code == "TOKEN_INVALID"


class TestFallbackTransport:
    async def test_fallback_reassembles_split_frames(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "GET":
                return httpx.Response(500, json={"message": "boom"})
            return httpx.Response(
                200,
                headers=SSE_HEADERS,
                content=_body(
                    b'data: {"content":"ab"}\n\nda',
                    b'ta: {"content":"cd"}\n\n',
                ),
            )

        recorder = Recorder()
        await recorder.run(_client(handler), "Hi")

        assert recorder.chunks == ["ab", "cd"]
        assert recorder.completed == ["abcd"]
        post = requests[-1]
        assert post.method == "POST"
        assert post.headers["authorization"] == "Bearer tok"
        assert json.loads(post.content) == {"content": "Hi"}

    async def test_wrong_content_type_falls_back(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"ok": True})
            return httpx.Response(
                200, headers=SSE_HEADERS, content=_body(_frame({"content": "ok"}))
            )

        recorder = Recorder()
        await recorder.run(_client(handler))

        assert recorder.completed == ["ok"]

    async def test_timeout_falls_back(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                await asyncio.sleep(1)
            return httpx.Response(
                200, headers=SSE_HEADERS, content=_body(_frame({"content": "late"}))
            )

        recorder = Recorder()
        await recorder.run(_client(handler, timeout=0.05))

        assert recorder.completed == ["late"]

    async def test_multibyte_characters_split_across_reads(self) -> None:
        encoded = _frame({"content": "café ☕"})
        cut = encoded.index("☕".encode()) + 1

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(404)
            return httpx.Response(
                200, headers=SSE_HEADERS, content=_body(encoded[:cut], encoded[cut:])
            )

        recorder = Recorder()
        await recorder.run(_client(handler))

        assert recorder.completed == ["café ☕"]

    async def test_unterminated_last_frame_is_flushed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(503)
            return httpx.Response(
                200,
                headers=SSE_HEADERS,
                content=_body(_frame({"content": "a"}), b'data: {"content":"b"}'),
            )

        recorder = Recorder()
        await recorder.run(_client(handler))

        assert recorder.completed == ["ab"]


class TestTerminalCallbacks:
    async def test_both_transports_fail(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, json={"message": "bad gateway"})

        recorder = Recorder()
        await recorder.run(_client(handler))

        assert recorder.terminal_calls == 1
        [error] = recorder.errors
        assert isinstance(error, StreamConnectionError)
        assert "502" in str(error)

    async def test_server_error_on_fallback(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                raise httpx.ConnectError("refused")
            return httpx.Response(
                200,
                headers=SSE_HEADERS,
                content=_body(
                    _frame({"type": "error", "error": "Chat not found", "code": "NOT_FOUND"})
                ),
            )

        recorder = Recorder()
        await recorder.run(_client(handler))

        assert recorder.terminal_calls == 1
        assert isinstance(recorder.errors[0], StreamServerError)
        assert recorder.errors[0].code == "NOT_FOUND"  # type: ignore[attr-defined]

    @pytest.mark.parametrize(("chat_id", "token"), [("", "tok"), ("chat-1", "")])
    async def test_missing_credentials(self, chat_id: str, token: str) -> None:
        calls: list[httpx.Request] = []
        client = ChatStreamClient(
            "http://test",
            chat_id,
            token,
            transport=httpx.MockTransport(lambda r: calls.append(r)),  # type: ignore[arg-type,func-returns-value]
        )

        recorder = Recorder()
        await recorder.run(client)

        assert calls == []
        assert recorder.terminal_calls == 1
        assert type(recorder.errors[0]) is StreamClientError


class TestRejectedToken:
    @pytest.mark.parametrize(
        ("status", "body"),
        [
            (401, {"status": 401, "message": "Token has expired", "code": "TOKEN_EXPIRED"}),
            (403, {"status": 403, "message": "Access token is not valid for this chat"}),
        ],
    )
    async def test_rejection_surfaces_token_invalid_without_retry(
        self, status: int, body: dict
    ) -> None:
        methods: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(status, json=body)

        recorder = Recorder()
        await recorder.run(_client(handler))

        assert methods == ["GET"]
        assert recorder.completed == []
        [error] = recorder.errors
        assert isinstance(error, StreamServerError)
        assert error.code == "TOKEN_INVALID"
        assert error.message == body["message"]

    async def test_rejection_on_fallback(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                raise httpx.ConnectError("refused")
            return httpx.Response(401, text="unauthorized")

        recorder = Recorder()
        await recorder.run(_client(handler))

        [error] = recorder.errors
        assert isinstance(error, StreamServerError)
        assert error.code == "TOKEN_INVALID"
        assert "reinitialize" in error.message


class TestTimeoutAfterText:
    async def test_timeout_after_chunks_rejects_without_resending(self) -> None:
        methods: list[str] = []

        async def stalled_body() -> AsyncIterator[bytes]:
            yield _frame({"type": "chunk", "content": "Hal"})
            await asyncio.sleep(1)

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(200, headers=SSE_HEADERS, content=stalled_body())

        recorder = Recorder()
        await recorder.run(_client(handler, timeout=0.05))

        assert methods == ["GET"]
        assert recorder.chunks == ["Hal"]
        assert recorder.completed == []
        [error] = recorder.errors
        assert isinstance(error, StreamTimeoutError)
