"""
Conversation database model.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


CONVERSATION_STATUSES = ("active", "paused", "completed", "archived", "deleted")


class Conversation(Base):
    """Conversation/chat session model."""

    __tablename__ = "conversations"

    # Composite index for faster conversation listing by user ordered by recency
    __table_args__ = (
        Index("ix_conversations_user_updated", "user_id", "updated_at"),
        Index("ix_conversations_status_created", "status", "created_at"),
    )

    conversation_id = Column(String(36), primary_key=True)
    user_id = Column(String(100), nullable=False, default="anonymous")

    # Lifecycle; "deleted" is a soft delete, rows are never removed
    status = Column(String(20), nullable=False, default="active")
    meta = Column("metadata", JSON, key="meta", nullable=False, default=dict)

    # Statistics
    message_count = Column(Integer, nullable=False, default=0)

    # Timestamps (naive UTC)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    messages = relationship("Message", back_populates="conversation", order_by="Message.created_at")
