"""Domain-specific configuration models."""

from supportchat.core.settings.app_config import AppConfig
from supportchat.core.settings.auth_config import AuthConfig
from supportchat.core.settings.database_config import DatabaseConfig
from supportchat.core.settings.email_config import EmailConfig
from supportchat.core.settings.llm_config import LLMConfig
from supportchat.core.settings.redis_config import RedisConfig
from supportchat.core.settings.server_config import ServerConfig
from supportchat.core.settings.vector_store_config import VectorStoreConfig

__all__ = [
    "AppConfig",
    "AuthConfig",
    "DatabaseConfig",
    "EmailConfig",
    "LLMConfig",
    "RedisConfig",
    "ServerConfig",
    "VectorStoreConfig",
]
