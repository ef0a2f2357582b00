"""Global dependencies for the application."""

from functools import lru_cache

from fastapi import Depends, Request
from langchain_anthropic import ChatAnthropic
from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI, OpenAIEmbeddings
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from supportchat.core.config import settings
from supportchat.core.database import get_async_session, get_session_factory
from supportchat.core.exceptions import AuthenticationError, AuthorizationError
from supportchat.core.redis import get_redis
from supportchat.pipeline import CallDispatcher, StreamingCompletionOrchestrator
from supportchat.pipeline.orchestrator import LLMFactory
from supportchat.services.cache_service import CacheService
from supportchat.services.chat_service import ChatService
from supportchat.services.email_service import EmailService
from supportchat.services.retrieval_service import RetrievalService
from supportchat.services.stream_service import ChatStreamService
from supportchat.services.token_service import TokenService


# --- Model provider ---


@lru_cache
def get_llm(model: str, temperature: float) -> BaseChatModel:
    """Get a streaming chat model for the configured provider."""
    llm_config = settings.llm
    match llm_config.provider:
        case "openai":
            return ChatOpenAI(
                model=model,
                temperature=temperature,
                api_key=llm_config.openai_api_key,
                streaming=True,
            )
        case "anthropic":
            return ChatAnthropic(  # type: ignore[call-arg]
                model_name=model,
                temperature=temperature,
                api_key=llm_config.anthropic_api_key,
                streaming=True,
            )
        case _:
            raise ValueError(f"Unsupported LLM provider: {llm_config.provider}")


def get_llm_factory() -> LLMFactory:
    """Get the callable the orchestrator uses to obtain a model."""
    return get_llm


@lru_cache
def get_embeddings() -> Embeddings:
    """Get the embeddings model instance."""
    return OpenAIEmbeddings(
        api_key=settings.llm.openai_api_key,
    )


# --- Collaborators ---


@lru_cache
def get_email_service() -> EmailService:
    """Get the transactional email client."""
    return EmailService(settings.email)


@lru_cache
def get_retrieval_service() -> RetrievalService | None:
    """Get the knowledge retrieval service, or None without an embeddings key."""
    if not settings.llm.openai_api_key.get_secret_value():
        return None
    return RetrievalService(get_embeddings(), settings.vector_store)


def get_token_service() -> TokenService:
    """Get the chat access token service."""
    return TokenService()


def get_cache_service() -> CacheService:
    """Get CacheService backed by the active Redis client."""
    return CacheService(get_redis())


def get_chat_service(
    session: AsyncSession = Depends(get_async_session),
    cache: CacheService = Depends(get_cache_service),
    token_service: TokenService = Depends(get_token_service),
) -> ChatService:
    """Get ChatService bound to the current session."""
    return ChatService.from_session(session, cache, token_service)


def get_orchestrator(
    llm_factory: LLMFactory = Depends(get_llm_factory),
    email_service: EmailService = Depends(get_email_service),
) -> StreamingCompletionOrchestrator:
    """Get the streaming completion orchestrator."""
    return StreamingCompletionOrchestrator(
        llm_factory=llm_factory,
        dispatcher=CallDispatcher(email_service),
        max_context_messages=settings.llm.max_context_messages,
    )


def get_stream_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: CacheService = Depends(get_cache_service),
    token_service: TokenService = Depends(get_token_service),
    orchestrator: StreamingCompletionOrchestrator = Depends(get_orchestrator),
    retrieval: RetrievalService | None = Depends(get_retrieval_service),
) -> ChatStreamService:
    """Get the event-stream service.

    Turns use their own sessions because they can outlive the request.
    """
    return ChatStreamService(
        session_factory=session_factory,
        cache=cache,
        token_service=token_service,
        orchestrator=orchestrator,
        llm_config=settings.llm,
        retrieval=retrieval,
    )


# --- Auth dependencies ---


class ChatAccess(BaseModel):
    """Chat access granted by the token the middleware validated."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    chat_id: str


def get_chat_access(request: Request) -> ChatAccess:
    """Extract the chat access grant from middleware-populated state."""
    state = getattr(request, "state", None)
    user_id = getattr(state, "user_id", None) if state else None
    if user_id is None:
        raise AuthenticationError(message="Not authenticated")
    return ChatAccess(user_id=user_id, chat_id=state.chat_id)


def require_chat_access(
    chat_id: str,
    access: ChatAccess = Depends(get_chat_access),
) -> ChatAccess:
    """Ensure the token was issued for the chat in the path."""
    if access.chat_id != chat_id:
        raise AuthorizationError(message="Access token is not valid for this chat")
    return access
