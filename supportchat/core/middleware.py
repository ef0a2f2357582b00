"""ASGI authentication middleware."""

import json
from urllib.parse import parse_qs

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

from supportchat.core.exceptions import AppException
from supportchat.services.token_service import TokenService

logger = structlog.get_logger()

PUBLIC_PATHS: set[str] = {
    "",
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}

CHATS_PATH = "/api/v1/chats"
COMPANY_CHATS_PREFIX = "/api/v1/chats/company/"


def is_public(method: str, path: str) -> bool:
    """Routes reachable without a chat access token."""
    normalized = path.rstrip("/") or "/"
    if normalized in PUBLIC_PATHS or path.startswith(("/docs", "/redoc")):
        return True
    if method == "POST" and normalized == CHATS_PATH:
        return True
    return method == "GET" and path.startswith(COMPANY_CHATS_PREFIX)


def extract_token(scope: Scope) -> str | None:
    """Bearer token from the header, else the ``token`` query parameter.

    Browser event sources cannot set headers, so the query string is accepted.
    """
    headers = dict(scope.get("headers", []))
    auth_header = headers.get(b"authorization", b"").decode()
    if auth_header.startswith("Bearer ") and auth_header[7:]:
        return auth_header[7:]
    query = parse_qs(scope.get("query_string", b"").decode())
    tokens = query.get("token")
    return tokens[0] if tokens and tokens[0] else None


class AuthMiddleware:
    """Pure ASGI middleware for chat token validation (SSE-compatible)."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self._tokens = TokenService()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        if method == "OPTIONS" or is_public(method, scope["path"]):
            await self.app(scope, receive, send)
            return

        token = extract_token(scope)
        if token is None:
            await self._send_error(
                send, 401, "MISSING_TOKEN", "Authorization token required"
            )
            return

        try:
            payload = self._tokens.decode_chat_access_token(token)
        except AppException as e:
            logger.info("Rejected chat token", path=scope["path"], code=e.code)
            await self._send_error(send, e.status_code, e.code, e.message)
            return

        scope.setdefault("state", {})
        scope["state"]["user_id"] = payload.sub
        scope["state"]["chat_id"] = payload.chat_id
        scope["state"]["jti"] = payload.jti
        scope["state"]["exp"] = payload.exp

        await self.app(scope, receive, send)

    @staticmethod
    async def _send_error(send: Send, status: int, code: str, message: str) -> None:
        """Send a JSON error response directly."""
        body = json.dumps({"status": status, "message": message, "code": code}).encode()

        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
