"""LLM provider configuration."""

from typing import Literal

from pydantic import BaseModel, SecretStr


class LLMConfig(BaseModel, frozen=True):
    """LLM provider settings."""

    provider: Literal["openai", "anthropic"]
    openai_api_key: SecretStr
    openai_model: str
    anthropic_api_key: SecretStr
    anthropic_model: str
    temperature: float
    max_context_messages: int

    @property
    def default_model(self) -> str:
        """Model name used when a request does not override it."""
        if self.provider == "anthropic":
            return self.anthropic_model
        return self.openai_model
