"""
Conversation lifecycle: creation, message persistence, history retrieval,
context-window assembly and retention cleanup.
"""

import math
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import desc, func, insert, select, update

from ..config import Settings
from ..database import Database, utcnow
from ..exceptions import NotFoundError
from ..models.conversation import Conversation as ConversationRow
from ..models.message import Message as MessageRow
from ..prompts import get_system_prompt
from ..schemas.conversation import Conversation, Message
from ..utils.logger import performance_timer


logger = structlog.get_logger("estate_assistant.conversations")

conversations = ConversationRow.__table__
messages = MessageRow.__table__

CONVERSATION_COLUMNS = (
    conversations.c.conversation_id,
    conversations.c.user_id,
    conversations.c.status,
    conversations.c.meta.label("metadata"),
    conversations.c.message_count,
    conversations.c.created_at,
    conversations.c.updated_at,
)

MESSAGE_COLUMNS = (
    messages.c.message_id,
    messages.c.conversation_id,
    messages.c.role,
    messages.c.content,
    messages.c.meta.label("metadata"),
    messages.c.token_count,
    messages.c.created_at,
)


def estimate_token_count(text: str) -> int:
    """Rough token estimate: one token per four characters, rounded up."""
    return math.ceil(len(text or "") / 4)


class ConversationManager:
    """
    Owns the conversation and message tables.

    Message counts stay consistent because each append inserts the message and
    bumps the counter in the same database transaction.
    """

    def __init__(self, database: Database, settings: Settings):
        self.database = database
        self.settings = settings
        self.max_conversation_length = settings.AI_CONVERSATION_MEMORY_LIMIT
        self.data_retention_days = settings.DATA_RETENTION_DAYS

    def _log_activity(self, event: str, **fields: Any) -> None:
        if self.settings.CONVERSATION_LOGGING:
            logger.info(event, compliance_level=self.settings.COMPLIANCE_LEVEL, **fields)

    async def create_conversation(
        self,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Conversation:
        now = utcnow()
        conversation = Conversation(
            conversation_id=str(uuid.uuid4()),
            user_id=user_id or "anonymous",
            status="active",
            metadata=metadata or {},
            message_count=0,
            created_at=now,
            updated_at=now,
        )

        with performance_timer("conversation-processing", "ConversationManager", step="create"):
            await self.database.execute_query(
                insert(conversations).values(
                    conversation_id=conversation.conversation_id,
                    user_id=conversation.user_id,
                    status=conversation.status,
                    meta=conversation.metadata,
                    message_count=0,
                    created_at=now,
                    updated_at=now,
                ),
                operation="create-conversation",
            )

        self._log_activity(
            "Conversation created",
            conversation_id=conversation.conversation_id,
            user_id=conversation.user_id,
        )
        return conversation

    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Fetch a conversation, or None when it does not exist or was deleted."""
        result = await self.database.execute_query(
            select(*CONVERSATION_COLUMNS).where(
                conversations.c.conversation_id == conversation_id,
                conversations.c.status != "deleted",
            ),
            operation="get-conversation",
        )
        row = result.first()
        return Conversation.model_validate(row) if row else None

    async def add_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Message:
        now = utcnow()
        message = Message(
            message_id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            role=role,
            content=content,
            metadata=metadata or {},
            token_count=estimate_token_count(content),
            created_at=now,
        )

        with performance_timer("conversation-processing", "ConversationManager", step="add-message", role=role):
            async with self.database.transaction() as tx:
                await tx.execute_query(
                    insert(messages).values(
                        message_id=message.message_id,
                        conversation_id=conversation_id,
                        role=role,
                        content=content,
                        meta=message.metadata,
                        token_count=message.token_count,
                        created_at=now,
                    )
                )
                await tx.execute_query(
                    update(conversations)
                    .where(conversations.c.conversation_id == conversation_id)
                    .values(message_count=conversations.c.message_count + 1, updated_at=now)
                )

        self._log_activity(
            "Message added",
            conversation_id=conversation_id,
            message_id=message.message_id,
            role=role,
            token_count=message.token_count,
        )
        return message

    async def get_conversation_history(
        self,
        conversation_id: str,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Message]:
        """
        Return up to `limit` of the newest messages, skipping `offset` from the
        newest end, in chronological order.
        """
        if limit is None:
            limit = self.max_conversation_length

        result = await self.database.execute_query(
            select(*MESSAGE_COLUMNS)
            .where(messages.c.conversation_id == conversation_id)
            .order_by(desc(messages.c.created_at), desc(messages.c.id))
            .limit(limit)
            .offset(offset),
            operation="get-history",
        )
        return [Message.model_validate(row) for row in reversed(result.rows)]

    async def build_conversation_context(
        self,
        conversation_id: str,
        include_system_prompt: bool = True
    ) -> List[Dict[str, str]]:
        """Assemble the role/content turns handed to the response generator."""
        context: List[Dict[str, str]] = []
        if include_system_prompt:
            context.append({
                "role": "system",
                "content": get_system_prompt("conversation", self.settings.AI_SYSTEM_PROMPT_VERSION),
            })

        history = await self.get_conversation_history(conversation_id, self.max_conversation_length)
        context.extend({"role": message.role, "content": message.content} for message in history)
        return context

    async def update_conversation_status(
        self,
        conversation_id: str,
        status: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        values: Dict[str, Any] = {"status": status, "updated_at": utcnow()}
        if metadata is not None:
            values["meta"] = metadata

        result = await self.database.execute_query(
            update(conversations)
            .where(conversations.c.conversation_id == conversation_id)
            .values(**values),
            operation="update-conversation-status",
        )
        if result.rowcount == 0:
            raise NotFoundError("Conversation", conversation_id)

        self._log_activity("Conversation status updated", conversation_id=conversation_id, status=status)

    async def get_user_conversations(self, user_id: str, limit: int = 10, offset: int = 0) -> List[Conversation]:
        result = await self.database.execute_query(
            select(*CONVERSATION_COLUMNS)
            .where(conversations.c.user_id == user_id, conversations.c.status != "deleted")
            .order_by(desc(conversations.c.updated_at))
            .limit(limit)
            .offset(offset),
            operation="get-user-conversations",
        )
        return [Conversation.model_validate(row) for row in result.rows]

    async def count_messages(self, conversation_id: str) -> int:
        result = await self.database.execute_query(
            select(func.count().label("total")).where(messages.c.conversation_id == conversation_id),
            operation="count-messages",
        )
        return result.first()["total"]

    async def cleanup_old_conversations(self) -> int:
        """Soft-delete conversations created before the retention cutoff."""
        cutoff = utcnow() - timedelta(days=self.data_retention_days)
        result = await self.database.execute_query(
            update(conversations)
            .where(conversations.c.created_at < cutoff, conversations.c.status != "deleted")
            .values(status="deleted", updated_at=utcnow()),
            operation="cleanup-conversations",
        )

        logger.info(
            "Old conversations cleaned up",
            deleted_count=result.rowcount,
            retention_days=self.data_retention_days,
            cutoff=cutoff.isoformat(),
        )
        return result.rowcount

    def estimate_token_count(self, text: str) -> int:
        return estimate_token_count(text)
