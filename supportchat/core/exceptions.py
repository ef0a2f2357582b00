"""Application exception classes and handlers."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


# --- Validation (400) ---


class InvalidRequestError(AppException):
    """Request is missing required input."""

    def __init__(self, message: str = "Invalid request") -> None:
        super().__init__(message=message, code="INVALID_REQUEST", status_code=400)


class InvalidChatError(AppException):
    """Chat exists but cannot be streamed to."""

    def __init__(
        self,
        message: str = (
            "This chat is not associated with any company. "
            "Please create a new chat with a company ID."
        ),
    ) -> None:
        super().__init__(message=message, code="INVALID_CHAT", status_code=400)


class InvalidCompanyError(AppException):
    """Company configuration is unavailable."""

    def __init__(
        self,
        message: str = (
            "The company associated with this chat is not available. "
            "Please create a chat with a valid company ID."
        ),
    ) -> None:
        super().__init__(message=message, code="INVALID_COMPANY", status_code=400)


# --- Authentication (401) ---


class AuthenticationError(AppException):
    """Base authentication error."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message=message, code="AUTHENTICATION_ERROR", status_code=401)


class TokenExpiredError(AppException):
    """Token has expired."""

    def __init__(self) -> None:
        super().__init__(
            message="Token has expired",
            code="TOKEN_EXPIRED",
            status_code=401,
        )


class InvalidTokenError(AppException):
    """Token is invalid."""

    def __init__(self) -> None:
        super().__init__(
            message="Invalid token",
            code="TOKEN_INVALID",
            status_code=401,
        )


# --- Authorization (403) ---


class AuthorizationError(AppException):
    """Insufficient permissions."""

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message=message, code="AUTHORIZATION_ERROR", status_code=403)


# --- Not Found (404) ---


class ChatNotFoundError(AppException):
    """Chat not found."""

    def __init__(self) -> None:
        super().__init__(
            message="Chat not found",
            code="NOT_FOUND",
            status_code=404,
        )


# --- Upstream (502) ---


class StreamFailure(AppException):
    """The model provider stream could not be opened or broke mid-way."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="STREAMING_ERROR", status_code=502)


# --- Exception Handlers ---


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Central exception handler for AppException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": exc.status_code,
            "message": exc.message,
            "code": exc.code,
        },
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Map request validation failures to INVALID_REQUEST."""
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in errors
    )
    return JSONResponse(
        status_code=422,
        content={
            "status": 422,
            "message": message or "Invalid request",
            "code": "INVALID_REQUEST",
        },
    )
