"""Execute reconstructed function calls.

The dispatcher never raises: every failure, including malformed arguments and
email delivery problems, is reported as ``DispatchResult(success=False)`` so a
side-effect failure can only ever degrade the follow-up message.
"""

import json
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import ValidationError

from supportchat.pipeline.accumulator import CompletedCall
from supportchat.schemas.chat_schema import PromptMessage
from supportchat.services.email_service import EmailData, EmailService
from supportchat.tools.send_email import SEND_EMAIL_TOOL_NAME, SendEmailArguments

logger = structlog.get_logger()

EMAIL_CONTEXT_MESSAGES = 20
DEFAULT_EMAIL_SUBJECT = "Support request from chat"


@dataclass(frozen=True)
class DispatchContext:
    """What a handler may know about the conversation."""

    prior_messages: list[PromptMessage] = field(default_factory=list)
    company_id: str | None = None
    support_email: str | None = None


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one call; ``details`` carries ``error`` on failure."""

    success: bool
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failed(cls, error: str, **details: Any) -> "DispatchResult":
        return cls(success=False, details={"error": error, **details})


class CallDispatcher:
    """Routes completed calls to their side-effect handler."""

    def __init__(self, email_service: EmailService) -> None:
        self._email_service = email_service

    async def dispatch(
        self, call: CompletedCall, context: DispatchContext
    ) -> DispatchResult:
        """Run the handler for ``call``."""
        if call.name != SEND_EMAIL_TOOL_NAME:
            logger.warning("Unknown function call", call_id=call.id, name=call.name)
            return DispatchResult.failed("UNKNOWN_FUNCTION_CALL", name=call.name)

        try:
            result = await self._send_email(call, context)
        except Exception as exc:
            logger.exception("Function call handler failed", call_id=call.id)
            return DispatchResult.failed("EMAIL_SERVICE_FAILURE", message=str(exc))

        logger.info(
            "Function call dispatched",
            call_id=call.id,
            name=call.name,
            success=result.success,
            error=result.details.get("error"),
        )
        return result

    async def _send_email(
        self, call: CompletedCall, context: DispatchContext
    ) -> DispatchResult:
        try:
            raw = json.loads(call.arguments)
        except json.JSONDecodeError:
            return DispatchResult.failed("INVALID_ARGUMENTS")
        if not isinstance(raw, dict):
            return DispatchResult.failed("INVALID_ARGUMENTS")

        try:
            args = SendEmailArguments.model_validate(raw)
        except ValidationError:
            return DispatchResult.failed("INVALID_ARGUMENTS")

        user_email = (args.user_email or "").strip()
        summary = (args.conversation_summary or "").strip()
        if not user_email:
            return DispatchResult.failed("MISSING_EMAIL")
        if not summary:
            return DispatchResult.failed("MISSING_SUMMARY")
        if not context.support_email:
            return DispatchResult.failed(
                "EMAIL_SERVICE_FAILURE", message="No support address configured"
            )

        transcript = [m for m in context.prior_messages if m.role != "system"]
        email = EmailData(
            to=context.support_email,
            reply_to=user_email,
            subject=(args.subject or "").strip() or DEFAULT_EMAIL_SUBJECT,
            summary=summary,
            company_id=context.company_id,
            transcript=transcript[-EMAIL_CONTEXT_MESSAGES:],
        )
        if not await self._email_service.send_email(email):
            return DispatchResult.failed("EMAIL_SERVICE_FAILURE")
        return DispatchResult(success=True, details={"userEmail": user_email})
