"""JWT chat access token creation and validation."""

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from pydantic import BaseModel, ConfigDict

from supportchat.core.config import settings
from supportchat.core.exceptions import InvalidTokenError, TokenExpiredError

CHAT_ACCESS_TOKEN_TYPE = "chat_access"


class ChatTokenPayload(BaseModel):
    """Decoded chat access token."""

    model_config = ConfigDict(frozen=True)

    sub: str
    chat_id: str
    type: str
    jti: str
    exp: int


class TokenService:
    """Issue and verify tokens granting access to a single chat."""

    def __init__(self) -> None:
        self._secret = settings.auth.secret_key.get_secret_value()
        self._algorithm = settings.auth.algorithm

    def create_chat_access_token(self, chat_id: str, user_id: str) -> str:
        """Create a signed token for ``user_id`` scoped to ``chat_id``."""
        now = datetime.now(UTC)
        expire = now + timedelta(hours=settings.auth.chat_token_expire_hours)
        payload = {
            "sub": user_id,
            "chat_id": chat_id,
            "type": CHAT_ACCESS_TOKEN_TYPE,
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode_chat_access_token(self, token: str) -> ChatTokenPayload:
        """Decode and validate a chat access token."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError from e

        if payload.get("type") != CHAT_ACCESS_TOKEN_TYPE:
            raise InvalidTokenError
        if not payload.get("chat_id") or not payload.get("sub"):
            raise InvalidTokenError

        return ChatTokenPayload(
            sub=str(payload["sub"]),
            chat_id=payload["chat_id"],
            type=payload["type"],
            jti=payload.get("jti", ""),
            exp=payload.get("exp", 0),
        )
