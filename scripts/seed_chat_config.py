"""Create or replace a company's chat configuration.

Usage:
    python -m scripts.seed_chat_config --company-id acme \
        --system-prompt "You are Acme's support assistant." \
        --support-email support@acme.test --index-name acme-docs
"""

import argparse
import asyncio
from pathlib import Path

from supportchat.core.database import Base, async_session_factory, engine
from supportchat.core.redis import close_redis, init_redis
from supportchat.services.cache_service import CacheService
from supportchat.services.chat_service import ChatService
from supportchat.services.token_service import TokenService


async def seed_chat_config(
    company_id: str,
    system_prompt: str,
    support_email: str | None,
    index_name: str | None,
) -> None:
    """Upsert the configuration and drop any cached copy."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    redis_client = await init_redis()
    try:
        async with async_session_factory() as session:
            service = ChatService.from_session(
                session, CacheService(redis_client), TokenService()
            )
            config = await service.upsert_chat_config(
                company_id=company_id,
                system_prompt=system_prompt,
                support_email=support_email,
                retrieval_index_name=index_name,
            )
        print(
            f"Chat config saved for company '{config.company_id}' "
            f"(email handoff {'on' if config.support_email else 'off'})."
        )
    finally:
        await close_redis()
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or replace a chat config")
    parser.add_argument("--company-id", required=True, help="Company identifier")
    prompt = parser.add_mutually_exclusive_group(required=True)
    prompt.add_argument("--system-prompt", help="System prompt text")
    prompt.add_argument(
        "--system-prompt-file", type=Path, help="File containing the system prompt"
    )
    parser.add_argument("--support-email", help="Inbox receiving email handoffs")
    parser.add_argument("--index-name", help="Retrieval index for this company")
    args = parser.parse_args()

    system_prompt = (
        args.system_prompt_file.read_text(encoding="utf-8")
        if args.system_prompt_file
        else args.system_prompt
    )
    asyncio.run(
        seed_chat_config(
            args.company_id, system_prompt, args.support_email, args.index_name
        )
    )


if __name__ == "__main__":
    main()
