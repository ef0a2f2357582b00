"""JWT chat access token configuration."""

from pydantic import BaseModel, SecretStr


class AuthConfig(BaseModel, frozen=True):
    """JWT chat access token settings."""

    secret_key: SecretStr
    algorithm: str
    chat_token_expire_hours: int
    create_chat_rate_limit: str
