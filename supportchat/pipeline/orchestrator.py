"""Streaming completion orchestrator.

Drives one upstream model stream: text is forwarded to the caller's sink as
soon as it arrives, function calls are reconstructed and dispatched once the
stream has ended, and their follow-up sentences are pushed through the same
sink so the client sees one continuous answer.
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from supportchat.core.exceptions import StreamFailure
from supportchat.pipeline.accumulator import (
    ChunkAccumulator,
    CompletedCall,
    events_from_chunk,
)
from supportchat.pipeline.dispatcher import (
    CallDispatcher,
    DispatchContext,
    DispatchResult,
)
from supportchat.pipeline.followup import rechunk, synthesize
from supportchat.schemas.chat_schema import ChatSettings, PromptMessage
from supportchat.tools.send_email import EMAIL_FUNCTION_INSTRUCTIONS, SEND_EMAIL_TOOL

logger = structlog.get_logger()

ChunkSink = Callable[[str], None]
LLMFactory = Callable[[str, float], BaseChatModel]

DEFAULT_SYSTEM_PROMPT = "You are a helpful customer support assistant."

SYSTEM_PROMPT_TEMPLATE = (
    "{system_prompt}\n\n"
    "Current date and time: {system_time}\n"
    "When the user asks about 'today', 'now', 'yesterday', 'tomorrow', "
    "or any time-relative query, use this date to provide accurate information."
)

STREAM_INTERRUPTED_MARKER = "\n\n[The response was interrupted. Please try again.]"


def truncate_messages(
    messages: Sequence[PromptMessage], limit: int
) -> list[PromptMessage]:
    """Keep every system message plus the newest non-system messages.

    Original order is preserved. When system messages alone reach ``limit``
    no non-system message is kept.
    """
    system_count = sum(1 for m in messages if m.role == "system")
    room = max(limit - system_count, 0)
    non_system = [i for i, m in enumerate(messages) if m.role != "system"]
    keep = set(non_system[len(non_system) - room :]) if room else set()
    return [m for i, m in enumerate(messages) if m.role == "system" or i in keep]


def render_system_time(timezone: str | None) -> str:
    """Current time in the caller's timezone, falling back to UTC."""
    try:
        zone = ZoneInfo(timezone or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        zone = ZoneInfo("UTC")
    return datetime.now(tz=zone).strftime("%Y-%m-%d %H:%M:%S %Z")


def build_system_message(settings: ChatSettings) -> SystemMessage:
    """System prompt with the current date/time and tool instructions."""
    content = SYSTEM_PROMPT_TEMPLATE.format(
        system_prompt=settings.system_prompt.strip() or DEFAULT_SYSTEM_PROMPT,
        system_time=render_system_time(settings.timezone),
    )
    if settings.enable_email_function:
        content = f"{content}\n\n{EMAIL_FUNCTION_INSTRUCTIONS}"
    return SystemMessage(content=content)


def to_langchain_messages(messages: Sequence[PromptMessage]) -> list[BaseMessage]:
    """Convert prompt messages to LangChain message objects."""
    converted: list[BaseMessage] = []
    for msg in messages:
        if msg.role == "user":
            converted.append(HumanMessage(content=msg.content))
        elif msg.role == "assistant":
            converted.append(AIMessage(content=msg.content))
        else:
            converted.append(SystemMessage(content=msg.content))
    return converted


class StreamingCompletionOrchestrator:
    """Runs one streamed completion turn against the model provider."""

    def __init__(
        self,
        llm_factory: LLMFactory,
        dispatcher: CallDispatcher,
        max_context_messages: int = 20,
    ) -> None:
        self._llm_factory = llm_factory
        self._dispatcher = dispatcher
        self._max_context_messages = max_context_messages

    async def run(
        self,
        messages: Sequence[PromptMessage],
        settings: ChatSettings,
        on_chunk: ChunkSink,
    ) -> str:
        """Stream a completion for ``messages``; return model text plus follow-ups.

        Raises:
            StreamFailure: the upstream stream could not be opened or broke.
        """
        prompt = [
            build_system_message(settings),
            *to_langchain_messages(
                truncate_messages(messages, self._max_context_messages)
            ),
        ]
        llm = self._llm_factory(settings.model, settings.temperature)
        runnable = (
            llm.bind_tools([SEND_EMAIL_TOOL]) if settings.enable_email_function else llm
        )

        accumulator = ChunkAccumulator()
        try:
            async for chunk in runnable.astream(prompt):
                for event in events_from_chunk(chunk):
                    delta = accumulator.reduce(event)
                    if delta:
                        on_chunk(delta)
        except Exception as exc:
            logger.exception(
                "Upstream stream failed",
                model=settings.model,
                company_id=settings.company_id,
                streamed_chars=len(accumulator.text),
            )
            try:
                on_chunk(STREAM_INTERRUPTED_MARKER)
            except Exception:
                logger.warning("Could not forward interruption marker")
            raise StreamFailure(
                f"Failed to generate streaming response: {exc}"
            ) from exc

        full_text = accumulator.text
        context = DispatchContext(
            prior_messages=list(messages),
            company_id=settings.company_id,
            support_email=settings.support_email,
        )
        # Sequential so follow-ups for different calls never interleave.
        for call in accumulator.finalize():
            result = await self._dispatch(call, context)
            followup = synthesize(call.name, result)
            for piece in rechunk(followup):
                on_chunk(piece)
            full_text += followup

        return full_text

    async def _dispatch(
        self, call: CompletedCall, context: DispatchContext
    ) -> DispatchResult:
        try:
            return await self._dispatcher.dispatch(call, context)
        except Exception as exc:
            logger.exception("Dispatcher raised", call_id=call.id, name=call.name)
            return DispatchResult.failed("DISPATCH_FAILURE", message=str(exc))
