"""Support email tool exposed to the model."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SEND_EMAIL_TOOL_NAME = "send_email"

SEND_EMAIL_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": SEND_EMAIL_TOOL_NAME,
        "description": (
            "Send the conversation to the company's human support team by email. "
            "Use this only when the user explicitly asks to be contacted by "
            "support and has provided their email address."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "userEmail": {
                    "type": "string",
                    "description": "Email address the support team should reply to.",
                },
                "conversationSummary": {
                    "type": "string",
                    "description": "Short summary of the user's issue and what was tried.",
                },
                "subject": {
                    "type": "string",
                    "description": "Subject line for the support email.",
                },
            },
            "required": ["userEmail", "conversationSummary"],
        },
    },
}

EMAIL_FUNCTION_INSTRUCTIONS = (
    "If the user wants to reach a human, ask for their email address and then "
    f"call the {SEND_EMAIL_TOOL_NAME} function with a concise summary of the "
    "conversation."
)


class SendEmailArguments(BaseModel):
    """Decoded arguments of a ``send_email`` call."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_email: str | None = Field(default=None, alias="userEmail")
    conversation_summary: str | None = Field(default=None, alias="conversationSummary")
    subject: str | None = None
