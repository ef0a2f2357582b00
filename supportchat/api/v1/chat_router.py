"""Chat API router: chat lifecycle and streamed turns."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse

from supportchat.core.config import settings
from supportchat.core.exceptions import AuthorizationError
from supportchat.core.rate_limit import limiter
from supportchat.dependencies import (
    ChatAccess,
    get_chat_access,
    get_chat_service,
    get_stream_service,
    require_chat_access,
)
from supportchat.schemas.chat_schema import (
    ChatListResponse,
    ChatRecord,
    ChatWithMessagesResponse,
    CreateChatRequest,
    CreateChatResponse,
    StreamRequest,
    UpdateChatRequest,
)
from supportchat.schemas.response_schema import ApiResponse, success_response
from supportchat.services.chat_service import ChatService
from supportchat.services.stream_service import SSE_HEADERS, ChatStreamService

router = APIRouter(prefix="/api/v1/chats", tags=["chats"])

ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
StreamServiceDep = Annotated[ChatStreamService, Depends(get_stream_service)]
ChatAccessDep = Annotated[ChatAccess, Depends(require_chat_access)]


@router.post(
    "",
    response_model=ApiResponse[CreateChatResponse],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.auth.create_chat_rate_limit)
async def create_chat(
    request: Request,
    body: CreateChatRequest,
    service: ChatServiceDep,
) -> dict:
    """Create a chat for a company and return its access token."""
    result = await service.create_chat(body)
    return success_response(result, status=201, message="Chat created")


@router.get("/user/{user_id}", response_model=ApiResponse[ChatListResponse])
async def list_user_chats(
    user_id: str,
    service: ChatServiceDep,
    access: Annotated[ChatAccess, Depends(get_chat_access)],
) -> dict:
    """List chats belonging to the token's user."""
    if access.user_id != user_id:
        raise AuthorizationError(message="Cannot list chats of another user")
    chats = await service.list_user_chats(user_id)
    return success_response(ChatListResponse(chats=chats))


@router.get("/company/{company_id}", response_model=ApiResponse[ChatListResponse])
async def list_company_chats(company_id: str, service: ChatServiceDep) -> dict:
    """List chats opened for a company."""
    chats = await service.list_company_chats(company_id)
    return success_response(ChatListResponse(chats=chats))


@router.get("/{chat_id}", response_model=ApiResponse[ChatWithMessagesResponse])
async def get_chat(
    chat_id: str,
    service: ChatServiceDep,
    _: ChatAccessDep,
) -> dict:
    """Get a chat with its ordered message history."""
    result = await service.get_chat_with_messages(chat_id)
    return success_response(result)


@router.put("/{chat_id}", response_model=ApiResponse[ChatRecord])
async def update_chat(
    chat_id: str,
    body: UpdateChatRequest,
    service: ChatServiceDep,
    _: ChatAccessDep,
) -> dict:
    """Rename a chat."""
    chat = await service.update_chat(chat_id, body.name)
    return success_response(chat, message="Chat updated")


@router.delete("/{chat_id}", response_model=ApiResponse[None])
async def delete_chat(
    chat_id: str,
    service: ChatServiceDep,
    _: ChatAccessDep,
) -> dict:
    """Delete a chat and all of its messages."""
    await service.delete_chat(chat_id)
    return success_response(None, message="Chat deleted")


def event_stream_response(
    service: ChatStreamService,
    chat_id: str,
    access: ChatAccess,
    body: StreamRequest,
) -> StreamingResponse:
    """Wrap a turn's frames in a Server-Sent Events response."""
    return StreamingResponse(
        service.stream(chat_id, access.user_id, body),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/{chat_id}/stream")
async def stream_message(
    chat_id: str,
    body: StreamRequest,
    service: StreamServiceDep,
    access: ChatAccessDep,
) -> StreamingResponse:
    """Stream one assistant turn for a message sent as a JSON body."""
    return event_stream_response(service, chat_id, access, body)


@router.get("/{chat_id}/stream")
async def stream_message_from_query(
    chat_id: str,
    params: Annotated[StreamRequest, Query()],
    service: StreamServiceDep,
    access: ChatAccessDep,
) -> StreamingResponse:
    """Stream one assistant turn for a message sent as query parameters."""
    return event_stream_response(service, chat_id, access, params)
