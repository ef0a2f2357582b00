"""Server side of the chat event stream.

Each request gets an :class:`EventChannel`. The turn itself runs in its own
task and writes frames into the channel; the HTTP response drains the channel.
When the client disconnects the channel is closed, writes become silent
no-ops, and the turn keeps draining the upstream stream so the assistant
message is still persisted once the model finishes.
"""

import asyncio
import re
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from supportchat.core.exceptions import (
    AppException,
    ChatNotFoundError,
    InvalidChatError,
    InvalidCompanyError,
    InvalidRequestError,
)
from supportchat.core.settings import LLMConfig
from supportchat.pipeline.orchestrator import StreamingCompletionOrchestrator
from supportchat.repositories.message_repo import MessageRepository
from supportchat.schemas.chat_schema import (
    ChatConfigRecord,
    ChatRecord,
    ChatSettings,
    PromptMessage,
    StreamRequest,
)
from supportchat.schemas.stream_schema import TERMINATION_MARKER, OutboundEvent
from supportchat.services.cache_service import CacheService
from supportchat.services.chat_service import ChatService
from supportchat.services.retrieval_service import (
    RetrievalService,
    format_documents_as_context,
)
from supportchat.services.token_service import TokenService

logger = structlog.get_logger()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

EMPTY_RESPONSE_FALLBACK = "Sorry, I was unable to generate a response."
TOKEN_INVALID_MESSAGE = (
    "Invalid or expired token. Please reinitialize your chat session."
)

SETUP_ERROR_CODES = frozenset(
    {"INVALID_REQUEST", "NOT_FOUND", "INVALID_CHAT", "INVALID_COMPANY"}
)
AUTH_ERROR_PATTERN = re.compile(r"\btoken\b|authenticat", re.IGNORECASE)

_pending_turns: set[asyncio.Task[None]] = set()


def classify_stream_error(exc: Exception) -> tuple[str, str]:
    """Map an exception raised during a turn to ``(message, code)``."""
    if isinstance(exc, AppException) and exc.code in SETUP_ERROR_CODES:
        return exc.message, exc.code
    message = exc.message if isinstance(exc, AppException) else str(exc)
    if AUTH_ERROR_PATTERN.search(message):
        return TOKEN_INVALID_MESSAGE, "TOKEN_INVALID"
    return message or "An error occurred processing your request", "STREAMING_ERROR"


async def wait_for_pending_turns(timeout: float = 30.0) -> None:
    """Let in-flight turns finish persisting before shutdown."""
    if not _pending_turns:
        return
    logger.info("Waiting for in-flight turns", count=len(_pending_turns))
    _, still_running = await asyncio.wait(set(_pending_turns), timeout=timeout)
    for task in still_running:
        task.cancel()


class EventChannel:
    """Frames written by the turn task, read by the response body."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._closed = False

    @property
    def writable(self) -> bool:
        return not self._closed

    def write(self, frame: str) -> None:
        if self._closed:
            return
        self._queue.put_nowait(frame)

    def send(self, event: OutboundEvent) -> None:
        self.write(event.to_sse())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def frames(self) -> AsyncGenerator[str, None]:
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


@dataclass(frozen=True)
class PreparedTurn:
    """Everything resolved before the model is contacted."""

    chat: ChatRecord
    settings: ChatSettings
    messages: list[PromptMessage]
    user_sequence_number: int


def build_chat_settings(
    llm_config: LLMConfig,
    chat: ChatRecord,
    config: ChatConfigRecord,
    request: StreamRequest,
) -> ChatSettings:
    """Defaults, then chat overrides, then request overrides."""
    temperature = llm_config.temperature
    if chat.temperature is not None:
        temperature = chat.temperature
    if request.temperature is not None:
        temperature = request.temperature
    return ChatSettings(
        model=request.model or chat.model or llm_config.default_model,
        temperature=temperature,
        system_prompt=config.system_prompt,
        company_id=config.company_id,
        enable_email_function=bool(config.support_email),
        support_email=config.support_email,
        timezone=request.timezone or "UTC",
    )


class ChatStreamService:
    """Runs streamed chat turns and encodes them as Server-Sent Events."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: CacheService,
        token_service: TokenService,
        orchestrator: StreamingCompletionOrchestrator,
        llm_config: LLMConfig,
        retrieval: RetrievalService | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache
        self._token_service = token_service
        self._orchestrator = orchestrator
        self._llm_config = llm_config
        self._retrieval = retrieval

    async def stream(
        self,
        chat_id: str,
        user_id: str | None,
        request: StreamRequest,
    ) -> AsyncGenerator[str, None]:
        """SSE frames for one turn, ending with the termination marker."""
        channel = EventChannel()
        task = asyncio.create_task(self._run_turn(channel, chat_id, user_id, request))
        _pending_turns.add(task)
        task.add_done_callback(_pending_turns.discard)
        try:
            async for frame in channel.frames():
                yield frame
        finally:
            if channel.writable:
                logger.info("Client disconnected", chat_id=chat_id, user_id=user_id)
            channel.close()

    async def _run_turn(
        self,
        channel: EventChannel,
        chat_id: str,
        user_id: str | None,
        request: StreamRequest,
    ) -> None:
        log = logger.bind(chat_id=chat_id, user_id=user_id)
        try:
            turn = await self._prepare_turn(chat_id, user_id, request)
            channel.send(OutboundEvent.connected())

            full_text = await self._orchestrator.run(
                turn.messages,
                turn.settings,
                lambda content: channel.send(OutboundEvent.chunk(content)),
            )

            await self._persist_assistant_message(turn, user_id or "", full_text)
            channel.send(OutboundEvent.done(full_text))
            channel.write(TERMINATION_MARKER)
            log.info(
                "Stream completed",
                model=turn.settings.model,
                characters=len(full_text),
                client_connected=channel.writable,
            )
        except Exception as exc:
            message, code = classify_stream_error(exc)
            if code in SETUP_ERROR_CODES:
                log.warning("Stream request rejected", code=code, error=message)
            else:
                log.exception("Error in streaming chat turn", code=code)
            channel.send(OutboundEvent.failure(message, code))
            channel.write(TERMINATION_MARKER)
        finally:
            channel.close()

    async def _prepare_turn(
        self,
        chat_id: str,
        user_id: str | None,
        request: StreamRequest,
    ) -> PreparedTurn:
        """Validate, resolve the chat and its company, persist the user message."""
        content = request.content or ""
        if not chat_id:
            raise InvalidRequestError("Chat ID is required")
        if not user_id or not content.strip():
            raise InvalidRequestError(
                "User authentication and message content are required"
            )

        async with self._session_factory() as session:
            chats = ChatService.from_session(session, self._cache, self._token_service)
            chat = await chats.get_chat(chat_id)
            if chat is None:
                raise ChatNotFoundError
            if not chat.company_id:
                raise InvalidChatError
            config = await chats.get_chat_config(chat.company_id)
            if config is None:
                raise InvalidCompanyError

            settings = build_chat_settings(self._llm_config, chat, config, request)

            message_repo = MessageRepository(session)
            previous = await message_repo.find_by_chat_id(chat_id)
            next_sequence_number = (
                await message_repo.get_latest_sequence_number(chat_id) + 1
            )
            await message_repo.create_message(
                chat_id=chat_id,
                user_id=user_id,
                role="user",
                content=content,
                sequence_number=next_sequence_number,
            )
            await session.commit()

        messages = [PromptMessage.model_validate(m) for m in previous]
        messages.append(PromptMessage(role="user", content=content))

        context = await self._retrieve_context(config, content)
        if context:
            messages.append(PromptMessage(role="system", content=context))

        return PreparedTurn(
            chat=chat,
            settings=settings,
            messages=messages,
            user_sequence_number=next_sequence_number,
        )

    async def _retrieve_context(self, config: ChatConfigRecord, query: str) -> str:
        """Knowledge-base context, or an empty string when unavailable."""
        if self._retrieval is None or not config.retrieval_index_name:
            return ""
        try:
            documents = await self._retrieval.retrieve_documents(
                config.retrieval_index_name, query
            )
        except Exception:
            logger.warning(
                "Document retrieval failed; continuing without context",
                company_id=config.company_id,
                index_name=config.retrieval_index_name,
                exc_info=True,
            )
            return ""
        return format_documents_as_context(documents)

    async def _persist_assistant_message(
        self, turn: PreparedTurn, user_id: str, full_text: str
    ) -> None:
        async with self._session_factory() as session:
            await MessageRepository(session).create_message(
                chat_id=turn.chat.id,
                user_id=user_id,
                role="assistant",
                content=full_text or EMPTY_RESPONSE_FALLBACK,
                sequence_number=turn.user_sequence_number + 1,
                model=turn.settings.model,
            )
            await session.commit()
