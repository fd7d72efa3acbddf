"""
Tests for the conversation lifecycle manager.
"""

from datetime import timedelta

import pytest
from sqlalchemy import update

from estate_assistant.database import utcnow
from estate_assistant.exceptions import NotFoundError, PersistenceError
from estate_assistant.models import Conversation as ConversationRow
from estate_assistant.prompts import get_system_prompt
from estate_assistant.schemas.base import is_uuid
from estate_assistant.services.conversation_manager import estimate_token_count


async def backdate(database, conversation_id, days):
    table = ConversationRow.__table__
    await database.execute_query(
        update(table)
        .where(table.c.conversation_id == conversation_id)
        .values(created_at=utcnow() - timedelta(days=days))
    )


def test_estimate_token_count():
    assert estimate_token_count("") == 0
    assert estimate_token_count("abcd") == 1
    assert estimate_token_count("abcde") == 2


async def test_create_conversation_defaults(conversation_manager):
    conversation = await conversation_manager.create_conversation()

    assert is_uuid(conversation.conversation_id)
    assert conversation.user_id == "anonymous"
    assert conversation.status == "active"
    assert conversation.message_count == 0
    assert conversation.metadata == {}


async def test_get_conversation_is_stable(conversation_manager):
    created = await conversation_manager.create_conversation("u1", {"location": "Springfield"})

    first = await conversation_manager.get_conversation(created.conversation_id)
    second = await conversation_manager.get_conversation(created.conversation_id)

    assert first == second
    assert first.user_id == "u1"
    assert first.metadata == {"location": "Springfield"}


async def test_get_conversation_missing_returns_none(conversation_manager):
    assert await conversation_manager.get_conversation("3f1c2a7e-1b2c-4d3e-8f90-123456789abc") is None


async def test_add_message_increments_count_and_history_is_chronological(conversation_manager):
    conversation = await conversation_manager.create_conversation("u1")
    contents = [f"message {i}" for i in range(5)]
    for i, content in enumerate(contents):
        await conversation_manager.add_message(
            conversation.conversation_id, "user" if i % 2 == 0 else "assistant", content
        )

    stored = await conversation_manager.get_conversation(conversation.conversation_id)
    history = await conversation_manager.get_conversation_history(conversation.conversation_id, limit=10)

    assert stored.message_count == 5
    assert await conversation_manager.count_messages(conversation.conversation_id) == 5
    assert [message.content for message in history] == contents
    assert stored.updated_at >= stored.created_at


async def test_add_message_sets_token_count_and_metadata(conversation_manager):
    conversation = await conversation_manager.create_conversation()

    message = await conversation_manager.add_message(
        conversation.conversation_id, "user", "abcdefghi", {"source": "web"}
    )
    [stored] = await conversation_manager.get_conversation_history(conversation.conversation_id)

    assert message.token_count == 3
    assert stored.message_id == message.message_id
    assert stored.metadata == {"source": "web"}


async def test_history_limit_and_offset_count_from_newest(conversation_manager):
    conversation = await conversation_manager.create_conversation()
    for i in range(5):
        await conversation_manager.add_message(conversation.conversation_id, "user", f"m{i}")

    newest_two = await conversation_manager.get_conversation_history(conversation.conversation_id, limit=2)
    skipped_one = await conversation_manager.get_conversation_history(conversation.conversation_id, 2, 1)

    assert [m.content for m in newest_two] == ["m3", "m4"]
    assert [m.content for m in skipped_one] == ["m2", "m3"]


async def test_history_defaults_to_memory_limit(conversation_manager):
    conversation_manager.max_conversation_length = 3
    conversation = await conversation_manager.create_conversation()
    for i in range(5):
        await conversation_manager.add_message(conversation.conversation_id, "user", f"m{i}")

    history = await conversation_manager.get_conversation_history(conversation.conversation_id)

    assert [m.content for m in history] == ["m2", "m3", "m4"]


async def test_context_of_fresh_conversation(conversation_manager):
    conversation = await conversation_manager.create_conversation()

    with_prompt = await conversation_manager.build_conversation_context(conversation.conversation_id)
    without_prompt = await conversation_manager.build_conversation_context(
        conversation.conversation_id, include_system_prompt=False
    )

    assert with_prompt == [{"role": "system", "content": get_system_prompt("conversation")}]
    assert without_prompt == []


async def test_context_includes_history_in_order(conversation_manager):
    conversation = await conversation_manager.create_conversation()
    await conversation_manager.add_message(conversation.conversation_id, "user", "hello")
    await conversation_manager.add_message(conversation.conversation_id, "assistant", "hi there")

    context = await conversation_manager.build_conversation_context(conversation.conversation_id)

    assert [turn["role"] for turn in context] == ["system", "user", "assistant"]
    assert context[1]["content"] == "hello"


async def test_update_status_replaces_metadata(conversation_manager):
    conversation = await conversation_manager.create_conversation(metadata={"old": True})

    await conversation_manager.update_conversation_status(conversation.conversation_id, "paused", {"reason": "away"})
    stored = await conversation_manager.get_conversation(conversation.conversation_id)

    assert stored.status == "paused"
    assert stored.metadata == {"reason": "away"}


async def test_update_status_keeps_metadata_when_omitted(conversation_manager):
    conversation = await conversation_manager.create_conversation(metadata={"keep": 1})

    await conversation_manager.update_conversation_status(conversation.conversation_id, "completed")
    stored = await conversation_manager.get_conversation(conversation.conversation_id)

    assert stored.status == "completed"
    assert stored.metadata == {"keep": 1}


async def test_update_status_of_missing_conversation(conversation_manager):
    with pytest.raises(NotFoundError):
        await conversation_manager.update_conversation_status("3f1c2a7e-1b2c-4d3e-8f90-123456789abc", "archived")


async def test_user_conversations_newest_first_without_deleted(conversation_manager):
    older = await conversation_manager.create_conversation("u1")
    newer = await conversation_manager.create_conversation("u1")
    removed = await conversation_manager.create_conversation("u1")
    await conversation_manager.create_conversation("someone-else")

    await conversation_manager.add_message(newer.conversation_id, "user", "bump")
    await conversation_manager.update_conversation_status(removed.conversation_id, "deleted")

    listed = await conversation_manager.get_user_conversations("u1")

    assert [c.conversation_id for c in listed] == [newer.conversation_id, older.conversation_id]


async def test_cleanup_soft_deletes_only_expired(conversation_manager, database):
    expired = await conversation_manager.create_conversation("u1")
    recent = await conversation_manager.create_conversation("u1")
    await backdate(database, expired.conversation_id, 91)
    await backdate(database, recent.conversation_id, 89)

    deleted = await conversation_manager.cleanup_old_conversations()

    assert deleted == 1
    assert await conversation_manager.get_conversation(expired.conversation_id) is None
    assert await conversation_manager.get_conversation(recent.conversation_id) is not None


async def test_cleanup_skips_already_deleted(conversation_manager, database):
    expired = await conversation_manager.create_conversation()
    await backdate(database, expired.conversation_id, 120)

    assert await conversation_manager.cleanup_old_conversations() == 1
    assert await conversation_manager.cleanup_old_conversations() == 0


async def test_add_message_rolls_back_insert_when_counter_update_fails(conversation_manager, database):
    conversation = await conversation_manager.create_conversation("u1")
    await database.execute_query(
        "CREATE TRIGGER block_counter BEFORE UPDATE ON conversations "
        "BEGIN SELECT RAISE(ABORT, 'counter locked'); END"
    )

    with pytest.raises(PersistenceError):
        await conversation_manager.add_message(conversation.conversation_id, "user", "hello")

    stored = await conversation_manager.get_conversation(conversation.conversation_id)
    assert await conversation_manager.count_messages(conversation.conversation_id) == 0
    assert stored.message_count == 0


async def test_add_message_leaves_counter_alone_when_insert_fails(conversation_manager, database):
    conversation = await conversation_manager.create_conversation("u1")
    await database.execute_query(
        "CREATE TRIGGER block_messages BEFORE INSERT ON messages "
        "BEGIN SELECT RAISE(ABORT, 'messages locked'); END"
    )

    with pytest.raises(PersistenceError):
        await conversation_manager.add_message(conversation.conversation_id, "user", "hello")

    stored = await conversation_manager.get_conversation(conversation.conversation_id)
    assert await conversation_manager.count_messages(conversation.conversation_id) == 0
    assert stored.message_count == 0
    assert stored.updated_at == conversation.updated_at
