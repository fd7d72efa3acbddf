"""
Chat routes: message processing and conversation lookups.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request

from ..config import Settings
from ..database import utcnow
from ..dependencies import get_ai_service, get_app_settings, get_conversation_manager
from ..exceptions import NotFoundError
from ..schemas.base import UUID_PATTERN
from ..schemas.conversation import (
    ConversationHistoryResponse,
    ConversationStatusUpdate,
    ConversationSummary,
    HistoryMessage,
    Pagination,
)
from ..schemas.message import ChatMessageRequest
from ..services.ai_service import AIService
from ..services.conversation_manager import ConversationManager
from ..utils.logger import performance_timer
from ..utils.middleware import get_request_id
from ..utils.rate_limit import rate_limit


router = APIRouter(prefix="/api/chat", tags=["Chat"])

ConversationId = Annotated[str, Path(pattern=UUID_PATTERN, description="Conversation UUID")]


@router.post("/message", dependencies=[Depends(rate_limit("chat"))])
async def send_message(
    request: Request,
    chat_request: ChatMessageRequest,
    ai_service: AIService = Depends(get_ai_service)
):
    """Process a chat message and return the assistant's reply."""
    with performance_timer(
        "chat-message-endpoint",
        "ChatRoutes",
        message_length=len(chat_request.message),
        has_conversation_id=bool(chat_request.conversation_id),
    ):
        result = await ai_service.process_chat_message(
            chat_request.message,
            chat_request.conversation_id,
            chat_request.user_id,
            chat_request.context_dict(),
            chat_request.metadata,
        )

    return {
        "success": True,
        "conversationId": result.conversation_id,
        "response": result.response,
        "metadata": {
            **result.metadata.model_dump(by_alias=True),
            "requestId": get_request_id(request),
            "timestamp": utcnow().isoformat(),
        },
    }


@router.get("/conversation/{conversation_id}")
async def get_conversation(
    request: Request,
    conversation_id: ConversationId,
    manager: ConversationManager = Depends(get_conversation_manager)
):
    """Get conversation details."""
    conversation = await manager.get_conversation(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation", conversation_id)

    return {"success": True, "conversation": conversation, "requestId": get_request_id(request)}


@router.get(
    "/conversation/{conversation_id}/history",
    response_model=ConversationHistoryResponse,
    response_model_exclude_none=True
)
async def get_conversation_history(
    request: Request,
    conversation_id: ConversationId,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    include_metadata: bool = Query(False, alias="includeMetadata"),
    manager: ConversationManager = Depends(get_conversation_manager)
):
    """Get paginated message history, oldest first."""
    messages = await manager.get_conversation_history(conversation_id, limit, offset)

    entries = []
    for message in messages:
        entry = HistoryMessage(
            message_id=message.message_id,
            role=message.role,
            content=message.content,
            created_at=message.created_at,
        )
        if include_metadata:
            entry.metadata = message.metadata
            entry.token_count = message.token_count
        entries.append(entry)

    return ConversationHistoryResponse(
        conversation_id=conversation_id,
        messages=entries,
        pagination=Pagination(limit=limit, offset=offset, total=len(entries)),
        request_id=get_request_id(request),
    )


@router.put("/conversation/{conversation_id}/status", dependencies=[Depends(rate_limit("general"))])
async def update_conversation_status(
    request: Request,
    update: ConversationStatusUpdate,
    conversation_id: ConversationId,
    manager: ConversationManager = Depends(get_conversation_manager)
):
    """Change the lifecycle status of a conversation."""
    await manager.update_conversation_status(conversation_id, update.status, update.metadata)
    return {
        "success": True,
        "conversationId": conversation_id,
        "status": update.status,
        "updatedAt": utcnow().isoformat(),
        "requestId": get_request_id(request),
    }


@router.get("/conversations/user/{user_id}")
async def get_user_conversations(
    request: Request,
    user_id: str = Path(..., min_length=1, max_length=100),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    manager: ConversationManager = Depends(get_conversation_manager)
):
    """List a user's conversations, most recently updated first."""
    conversations = await manager.get_user_conversations(user_id, limit, offset)
    summaries = [ConversationSummary.model_validate(conversation.model_dump()) for conversation in conversations]
    return {
        "success": True,
        "userId": user_id,
        "conversations": summaries,
        "pagination": {"limit": limit, "offset": offset, "total": len(summaries)},
        "requestId": get_request_id(request),
    }


@router.get("/stats")
async def get_chat_stats(
    request: Request,
    ai_service: AIService = Depends(get_ai_service),
    settings: Settings = Depends(get_app_settings)
):
    """Chat service statistics."""
    return {
        "success": True,
        "statistics": {
            **ai_service.get_service_stats(),
            "service": "chat",
            "version": settings.APP_VERSION,
            "compliance": settings.COMPLIANCE_LEVEL,
        },
        "requestId": get_request_id(request),
    }
