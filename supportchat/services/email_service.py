"""Transactional email delivery over an HTTP API."""

from dataclasses import dataclass, field

import httpx
import structlog

from supportchat.core.settings import EmailConfig
from supportchat.schemas.chat_schema import PromptMessage

logger = structlog.get_logger()

ROLE_LABELS = {"user": "Customer", "assistant": "Assistant"}


@dataclass(frozen=True)
class EmailData:
    """A support request to forward to a company's support inbox."""

    to: str
    reply_to: str
    subject: str
    summary: str
    company_id: str | None = None
    transcript: list[PromptMessage] = field(default_factory=list)


def render_email_text(data: EmailData) -> str:
    """Plain-text body: contact, summary, then the recent transcript."""
    lines = [
        f"Customer email: {data.reply_to}",
    ]
    if data.company_id:
        lines.append(f"Company: {data.company_id}")
    lines += ["", "Summary:", data.summary, ""]
    if data.transcript:
        lines.append("Recent conversation:")
        for message in data.transcript:
            label = ROLE_LABELS.get(message.role, message.role.capitalize())
            lines.append(f"{label}: {message.content}")
    return "\n".join(lines).rstrip() + "\n"


class EmailService:
    """Sends support emails; reports failure as ``False`` instead of raising."""

    def __init__(
        self,
        config: EmailConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def send_email(self, data: EmailData) -> bool:
        """Deliver one email. Returns whether the provider accepted it."""
        payload = {
            "from": self._config.sender,
            "to": [data.to],
            "reply_to": data.reply_to,
            "subject": data.subject,
            "text": render_email_text(data),
        }
        headers = {
            "Authorization": f"Bearer {self._config.api_key.get_secret_value()}",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._config.api_url, json=payload, headers=headers
                )
        except httpx.HTTPError as exc:
            logger.error(
                "Email delivery request failed",
                error=str(exc),
                error_type=type(exc).__name__,
                company_id=data.company_id,
            )
            return False

        if not response.is_success:
            logger.error(
                "Email provider rejected message",
                status_code=response.status_code,
                body=response.text[:500],
                company_id=data.company_id,
            )
            return False

        logger.info(
            "Support email sent",
            company_id=data.company_id,
            subject=data.subject,
        )
        return True
