"""Canned follow-up text for dispatched calls."""

from supportchat.pipeline.dispatcher import DispatchResult
from supportchat.tools.send_email import SEND_EMAIL_TOOL_NAME

FOLLOWUP_CHUNK_SIZE = 10

FOLLOWUP_MESSAGES: dict[tuple[str, bool], str] = {
    (SEND_EMAIL_TOOL_NAME, True): (
        "\n\nI've sent your request to our support team. "
        "They will get back to you by email as soon as possible."
    ),
    (SEND_EMAIL_TOOL_NAME, False): (
        "\n\nI'm sorry, I wasn't able to send your request to our support team. "
        "Please check your email address and try again, or contact support directly."
    ),
}

UNKNOWN_CALL_MESSAGE = "\n\nI'm sorry, I wasn't able to complete that action."


def synthesize(call_name: str, result: DispatchResult) -> str:
    """Map a call outcome to its follow-up sentence."""
    return FOLLOWUP_MESSAGES.get((call_name, result.success), UNKNOWN_CALL_MESSAGE)


def rechunk(text: str, size: int = FOLLOWUP_CHUNK_SIZE) -> list[str]:
    """Split text into fixed-size pieces for the chunk sink."""
    if size < 1:
        raise ValueError("size must be positive")
    return [text[i : i + size] for i in range(0, len(text), size)]
