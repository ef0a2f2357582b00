"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from supportchat.core.settings import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    EmailConfig,
    LLMConfig,
    RedisConfig,
    ServerConfig,
    VectorStoreConfig,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.llm.provider).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM Provider
    llm_provider: Literal["openai", "anthropic"] = Field(
        default="openai",
        description="LLM provider to use",
    )
    llm_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Default sampling temperature",
    )
    max_context_messages: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Maximum number of messages sent to the model per turn",
    )

    # OpenAI
    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="OpenAI API key",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model name",
    )

    # Anthropic
    anthropic_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Anthropic API key",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Anthropic model name",
    )

    # App
    app_name: str = Field(
        default="supportchat",
        description="Application name",
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )

    # Vector Store
    vector_store_path: Path = Field(
        default=Path("./data/vector_store"),
        description="Directory holding one serialized store per retrieval index",
    )
    chunk_size: int = Field(
        default=1000,
        ge=100,
        le=4000,
        description="Text chunk size for splitting",
    )
    chunk_overlap: int = Field(
        default=200,
        ge=0,
        le=500,
        description="Overlap between chunks",
    )
    retrieval_top_k: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of documents retrieved per query",
    )

    # Email
    email_api_url: str = Field(
        default="https://api.resend.com/emails",
        description="Transactional email API endpoint",
    )
    email_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Transactional email API key",
    )
    email_sender: str = Field(
        default="Support Assistant <assistant@example.com>",
        description="From address for support emails",
    )
    email_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for email API requests",
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        description="Server host",
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Server port",
    )

    # JWT Auth
    jwt_secret_key: SecretStr = Field(
        description="JWT secret key for token signing",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    chat_token_expire_hours: int = Field(
        default=24,
        ge=1,
        le=24 * 30,
        description="Chat access token expiration in hours",
    )
    create_chat_rate_limit: str = Field(
        default="10/minute",
        description="Chat creation endpoint rate limit",
    )

    # Database
    database_url: SecretStr = Field(
        description="Async database URL (mysql+aiomysql://... or sqlite+aiosqlite://...)",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )

    # --- Domain properties ---

    @cached_property
    def llm(self) -> LLMConfig:
        """LLM provider configuration."""
        return LLMConfig(
            provider=self.llm_provider,
            openai_api_key=self.openai_api_key,
            openai_model=self.openai_model,
            anthropic_api_key=self.anthropic_api_key,
            anthropic_model=self.anthropic_model,
            temperature=self.llm_temperature,
            max_context_messages=self.max_context_messages,
        )

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            env=self.app_env,
            debug=self.debug,
        )

    @cached_property
    def vector_store(self) -> VectorStoreConfig:
        """Vector store configuration."""
        return VectorStoreConfig(
            path=self.vector_store_path,
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            top_k=self.retrieval_top_k,
        )

    @cached_property
    def email(self) -> EmailConfig:
        """Email delivery configuration."""
        return EmailConfig(
            api_url=self.email_api_url,
            api_key=self.email_api_key,
            sender=self.email_sender,
            timeout_seconds=self.email_timeout_seconds,
        )

    @cached_property
    def server(self) -> ServerConfig:
        """Server configuration."""
        return ServerConfig(
            host=self.host,
            port=self.port,
        )

    @cached_property
    def auth(self) -> AuthConfig:
        """JWT authentication configuration."""
        return AuthConfig(
            secret_key=self.jwt_secret_key,
            algorithm=self.jwt_algorithm,
            chat_token_expire_hours=self.chat_token_expire_hours,
            create_chat_rate_limit=self.create_chat_rate_limit,
        )

    @cached_property
    def database(self) -> DatabaseConfig:
        """Database connection configuration."""
        return DatabaseConfig(url=self.database_url)

    @cached_property
    def redis(self) -> RedisConfig:
        """Redis connection configuration."""
        return RedisConfig(url=self.redis_url)

    # --- Convenience properties (delegate to domain configs) ---

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.is_development


# Global settings instance
settings = Settings()
