"""ORM models; imported together so metadata sees every table."""

from supportchat.models.chat import Chat
from supportchat.models.chat_config import ChatConfig
from supportchat.models.message import Message

__all__ = ["Chat", "ChatConfig", "Message"]
