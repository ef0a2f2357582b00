"""Transactional email configuration."""

from pydantic import BaseModel, SecretStr


class EmailConfig(BaseModel, frozen=True):
    """Email delivery API settings."""

    api_url: str
    api_key: SecretStr
    sender: str
    timeout_seconds: float
