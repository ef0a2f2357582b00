"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-chat-tokens-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CREATE_CHAT_RATE_LIMIT", "1000/minute")
os.environ.setdefault("OPENAI_API_KEY", "")
os.environ.setdefault("DEBUG", "false")

from collections.abc import AsyncGenerator, Iterable  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import fakeredis.aioredis  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from langchain_core.messages import AIMessageChunk  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from supportchat.core.database import Base  # noqa: E402
from supportchat.models import Chat, ChatConfig, Message  # noqa: E402, F401
from supportchat.pipeline import CallDispatcher, StreamingCompletionOrchestrator  # noqa: E402
from supportchat.services.cache_service import CacheService  # noqa: E402
from supportchat.services.email_service import EmailService  # noqa: E402
from supportchat.services.token_service import TokenService  # noqa: E402

# --- Test DB (SQLite in-memory) ---

test_engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(autouse=True)
async def setup_db() -> AsyncGenerator[None, None]:
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session."""
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def override_get_session_factory() -> async_sessionmaker[AsyncSession]:
    return test_session_factory


# --- Test Redis (fakeredis) ---


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Create a fresh fake Redis client."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def patch_redis(
    fake_redis: fakeredis.aioredis.FakeRedis, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Patch the global redis_client used by get_redis()."""
    monkeypatch.setattr("supportchat.core.redis.redis_client", fake_redis)


@pytest.fixture
def cache(fake_redis: fakeredis.aioredis.FakeRedis) -> CacheService:
    return CacheService(fake_redis)


# --- Token helpers ---


@pytest.fixture
def token_service() -> TokenService:
    return TokenService()


def make_chat_headers(chat_id: str, user_id: str = "user-1") -> dict[str, str]:
    """Generate Authorization headers with a valid chat access token."""
    token = TokenService().create_chat_access_token(chat_id=chat_id, user_id=user_id)
    return {"Authorization": f"Bearer {token}"}


# --- Seed helpers ---


async def seed_chat_config(
    company_id: str = "acme",
    system_prompt: str = "You are Acme's support assistant.",
    support_email: str | None = "support@acme.test",
    retrieval_index_name: str | None = None,
) -> None:
    async with test_session_factory() as session:
        session.add(
            ChatConfig(
                company_id=company_id,
                system_prompt=system_prompt,
                support_email=support_email,
                retrieval_index_name=retrieval_index_name,
            )
        )
        await session.commit()


async def seed_chat(
    chat_id: str = "chat-1",
    user_id: str = "user-1",
    company_id: str | None = "acme",
    name: str = "Order question",
) -> None:
    async with test_session_factory() as session:
        session.add(Chat(id=chat_id, user_id=user_id, company_id=company_id, name=name))
        await session.commit()


# --- Fake streaming model ---


def text_chunk(text: str) -> AIMessageChunk:
    return AIMessageChunk(content=text)


def call_chunk(
    index: int,
    id: str | None = None,
    name: str | None = None,
    args: str | None = None,
) -> AIMessageChunk:
    return AIMessageChunk(
        content="",
        tool_call_chunks=[{"index": index, "id": id, "name": name, "args": args}],
    )


class FakeStreamingLLM:
    """Replays a fixed list of chunks, optionally failing afterwards."""

    def __init__(
        self,
        chunks: Iterable[AIMessageChunk] = (),
        error: Exception | None = None,
    ) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.bound_tools: list[Any] | None = None
        self.prompts: list[list[Any]] = []

    def bind_tools(self, tools: list[Any], **kwargs: Any) -> "FakeStreamingLLM":
        self.bound_tools = tools
        return self

    async def astream(self, messages: list[Any], **kwargs: Any):  # type: ignore[no-untyped-def]
        self.prompts.append(list(messages))
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_llm() -> FakeStreamingLLM:
    return FakeStreamingLLM([text_chunk("Hello"), text_chunk(" there!")])


@pytest.fixture
def mock_email_service() -> MagicMock:
    """EmailService whose sends always succeed."""
    mock = MagicMock(spec=EmailService)
    mock.send_email = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def orchestrator(
    fake_llm: FakeStreamingLLM, mock_email_service: MagicMock
) -> StreamingCompletionOrchestrator:
    return StreamingCompletionOrchestrator(
        llm_factory=lambda model, temperature: fake_llm,  # type: ignore[arg-type,return-value]
        dispatcher=CallDispatcher(mock_email_service),
        max_context_messages=20,
    )


# --- App override & client fixtures ---


def _get_app(orchestrator: StreamingCompletionOrchestrator):  # type: ignore[no-untyped-def]
    """Import app lazily and apply overrides."""
    from supportchat.core.database import get_async_session, get_session_factory
    from supportchat.dependencies import get_orchestrator, get_retrieval_service
    from supportchat.main import app

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_session_factory] = override_get_session_factory
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_retrieval_service] = lambda: None
    return app


@pytest.fixture
async def async_client(
    fake_redis: fakeredis.aioredis.FakeRedis,
    orchestrator: StreamingCompletionOrchestrator,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with test overrides."""
    application = _get_app(orchestrator)
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    application.dependency_overrides.clear()


# --- DB session for tests ---


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a raw async session for repository tests."""
    async with test_session_factory() as session:
        yield session
