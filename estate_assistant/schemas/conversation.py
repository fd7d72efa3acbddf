"""
Conversation-related Pydantic schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from .base import CamelModel


class Conversation(CamelModel):
    """Conversation record as returned by the conversation manager."""
    conversation_id: str
    user_id: str
    status: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    message_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class ConversationSummary(CamelModel):
    """Schema for conversation list item."""
    conversation_id: str
    status: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    message_count: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class Message(CamelModel):
    """Message record."""
    message_id: str
    conversation_id: str
    role: str
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    token_count: int
    created_at: datetime


class ContextTurn(CamelModel):
    """One role/content pair handed to a response generator."""
    role: Literal["system", "user", "assistant"]
    content: str


class ConversationStatusUpdate(CamelModel):
    """Schema for updating a conversation status."""
    status: Literal["active", "paused", "completed", "archived"]
    metadata: Optional[Dict[str, Any]] = None


class HistoryMessage(CamelModel):
    """History entry; metadata and token count only when requested."""
    message_id: str
    role: str
    content: str
    created_at: datetime
    metadata: Optional[Dict[str, Any]] = None
    token_count: Optional[int] = None


class Pagination(CamelModel):
    limit: int
    offset: int
    total: int


class ConversationHistoryResponse(CamelModel):
    success: bool = True
    conversation_id: str
    messages: List[HistoryMessage]
    pagination: Pagination
    request_id: Optional[str] = None
