"""Streaming completion pipeline: accumulate, dispatch, follow up."""

from supportchat.pipeline.accumulator import (
    CallDelta,
    ChunkAccumulator,
    CompletedCall,
    MetadataEvent,
    TextDelta,
)
from supportchat.pipeline.dispatcher import CallDispatcher, DispatchContext, DispatchResult
from supportchat.pipeline.orchestrator import StreamingCompletionOrchestrator

__all__ = [
    "CallDelta",
    "CallDispatcher",
    "ChunkAccumulator",
    "CompletedCall",
    "DispatchContext",
    "DispatchResult",
    "MetadataEvent",
    "StreamingCompletionOrchestrator",
    "TextDelta",
]
