"""
Message database model.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, JSON, Index
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


MESSAGE_ROLES = ("system", "user", "assistant")


class Message(Base):
    """One turn of a conversation. Rows are immutable once written."""

    __tablename__ = "messages"

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )

    # Insertion order breaks ties between messages created in the same instant
    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(String(36), unique=True, nullable=False)
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.conversation_id"),
        nullable=False
    )

    # Message content
    role = Column(String(20), nullable=False)  # "user", "assistant", "system"
    content = Column(Text, nullable=False)

    # Message metadata
    meta = Column("metadata", JSON, key="meta", nullable=False, default=dict)
    token_count = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")
