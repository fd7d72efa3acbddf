"""
Chat message Pydantic schemas.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import Field, model_validator

from .base import CamelModel, SanitizedStr, UUID_PATTERN


class PriceRange(CamelModel):
    min: Optional[float] = Field(None, ge=0)
    max: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_order(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("Minimum price cannot exceed maximum price")
        return self


class ChatContext(CamelModel):
    """Optional client context attached to a chat message."""
    property_type: Optional[Literal["residential", "commercial", "land", "investment"]] = None
    location: Optional[SanitizedStr] = Field(None, max_length=200)
    price_range: Optional[PriceRange] = None
    urgency: Optional[Literal["low", "medium", "high", "urgent"]] = None


class ChatMessageRequest(CamelModel):
    """Schema for sending a chat message."""
    message: SanitizedStr = Field(..., min_length=1, max_length=2000)
    conversation_id: Optional[str] = Field(None, pattern=UUID_PATTERN)  # If None, create new conversation
    user_id: Optional[SanitizedStr] = Field(None, min_length=1, max_length=100)
    context: Optional[ChatContext] = None
    metadata: Optional[Dict[str, Any]] = None

    def context_dict(self) -> Dict[str, Any]:
        if self.context is None:
            return {}
        return self.context.model_dump(by_alias=True, exclude_none=True)


class ChatResultMetadata(CamelModel):
    model: str
    response_time: int  # ms
    token_count: int
    message_count: int


class ChatResult(CamelModel):
    """Outcome of one processed chat message."""
    conversation_id: str
    response: str
    metadata: ChatResultMetadata

