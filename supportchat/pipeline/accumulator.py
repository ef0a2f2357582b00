"""Fold provider stream events into text and reconstructed function calls.

Providers stream function calls as fragments: the call id and name usually
arrive once, while the JSON-encoded arguments arrive as successive substrings
spread over many events. :class:`ChunkAccumulator` keeps one pending record per
call index and only promotes complete records when the stream has ended.
"""

from dataclasses import dataclass
from typing import Any

import structlog
from langchain_core.messages import BaseMessageChunk

logger = structlog.get_logger()


@dataclass(frozen=True)
class TextDelta:
    """Incremental piece of model-generated text."""

    text: str


@dataclass(frozen=True)
class CallDelta:
    """Fragment of a function call, keyed by the provider-assigned index."""

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass(frozen=True)
class MetadataEvent:
    """Lifecycle or usage event with nothing to accumulate."""

    kind: str = "metadata"


StreamEvent = TextDelta | CallDelta | MetadataEvent


@dataclass
class PendingCall:
    """Call whose fragments are still arriving."""

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.id) and bool(self.name) and bool(self.arguments)


@dataclass(frozen=True)
class CompletedCall:
    """Fully reconstructed function call."""

    id: str
    name: str
    arguments: str


class ChunkAccumulator:
    """Stateful reducer over one upstream stream."""

    def __init__(self) -> None:
        self._text_parts: list[str] = []
        self._pending: dict[int, PendingCall] = {}
        self.dropped_calls: list[PendingCall] = []

    @property
    def text(self) -> str:
        """Model text received so far."""
        return "".join(self._text_parts)

    def reduce(self, event: StreamEvent) -> str | None:
        """Apply one event; return text that should be forwarded immediately."""
        if isinstance(event, TextDelta):
            if not event.text:
                return None
            self._text_parts.append(event.text)
            return event.text

        if isinstance(event, CallDelta):
            pending = self._pending.get(event.index)
            if pending is None:
                pending = PendingCall(index=event.index)
                self._pending[event.index] = pending
            if event.id and not pending.id:
                pending.id = event.id
            if event.name and not pending.name:
                pending.name = event.name
            if event.arguments:
                pending.arguments += event.arguments

        return None

    def finalize(self) -> list[CompletedCall]:
        """Promote complete pending calls, in ascending index order."""
        completed: list[CompletedCall] = []
        for index in sorted(self._pending):
            pending = self._pending[index]
            if pending.is_complete:
                completed.append(
                    CompletedCall(
                        id=pending.id or "",
                        name=pending.name or "",
                        arguments=pending.arguments,
                    )
                )
                continue
            self.dropped_calls.append(pending)
            logger.warning(
                "Dropping incomplete function call",
                index=index,
                has_id=bool(pending.id),
                has_name=bool(pending.name),
                arguments_length=len(pending.arguments),
            )
        return completed


def events_from_chunk(chunk: BaseMessageChunk) -> list[StreamEvent]:
    """Normalise a LangChain message chunk into accumulator events."""
    events: list[StreamEvent] = []

    text = _content_text(chunk.content)
    if text:
        events.append(TextDelta(text=text))

    for call_chunk in getattr(chunk, "tool_call_chunks", None) or []:
        index = call_chunk.get("index")
        events.append(
            CallDelta(
                index=index if index is not None else 0,
                id=call_chunk.get("id"),
                name=call_chunk.get("name"),
                arguments=call_chunk.get("args"),
            )
        )

    if not events:
        events.append(MetadataEvent())
    return events


def _content_text(content: Any) -> str:
    """Extract text from string content or a list of content blocks."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)
