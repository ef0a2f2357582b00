"""Send one message to a chat and print the streamed answer.

Usage:
    python -m scripts.stream_chat --chat-id <id> --token <jwt> "Where is my order?"
    python -m scripts.stream_chat --company-id acme "Hello"   # opens a new chat
"""

import argparse
import asyncio
import sys

import httpx

from supportchat.client import ChatStreamClient


async def open_chat(base_url: str, company_id: str, name: str) -> tuple[str, str]:
    """Create a chat and return ``(chat_id, access_token)``."""
    async with httpx.AsyncClient(base_url=base_url) as client:
        response = await client.post(
            "/api/v1/chats", json={"name": name, "company_id": company_id}
        )
        response.raise_for_status()
        data = response.json()["data"]
    return data["chat"]["id"], data["access_token"]


async def stream_chat(args: argparse.Namespace) -> int:
    chat_id, token = args.chat_id, args.token
    if args.company_id and not chat_id:
        chat_id, token = await open_chat(args.base_url, args.company_id, args.name)
        print(f"Opened chat {chat_id}", file=sys.stderr)

    outcome: dict[str, Exception | None] = {"error": None}

    def on_chunk(text: str) -> None:
        print(text, end="", flush=True)

    def on_complete(_: str) -> None:
        print()

    def on_error(exc: Exception) -> None:
        outcome["error"] = exc
        print(f"\nStream failed: {exc}", file=sys.stderr)

    client = ChatStreamClient(args.base_url, chat_id or "", token or "")
    await client.stream_message(args.message, on_chunk, on_complete, on_error)
    return 1 if outcome["error"] else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Stream a chat turn")
    parser.add_argument("message", help="Message to send")
    parser.add_argument("--base-url", default="http://localhost:3000")
    parser.add_argument("--chat-id", help="Existing chat id")
    parser.add_argument("--token", help="Chat access token")
    parser.add_argument("--company-id", help="Open a new chat for this company")
    parser.add_argument("--name", default="CLI chat", help="Name for a new chat")
    args = parser.parse_args()

    sys.exit(asyncio.run(stream_chat(args)))


if __name__ == "__main__":
    main()
