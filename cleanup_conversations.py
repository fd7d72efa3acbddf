#!/usr/bin/env python3
"""
Conversation retention job.
Soft-deletes conversations older than DATA_RETENTION_DAYS; meant to be run
from cron or another external scheduler.
"""

import asyncio

from estate_assistant.config import get_settings
from estate_assistant.database import Database
from estate_assistant.services.conversation_manager import ConversationManager
from estate_assistant.utils.logger import configure_logging


async def cleanup() -> int:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.JSON_LOGS)

    database = Database.from_settings(settings)
    try:
        await database.create_schema()
        manager = ConversationManager(database, settings)
        return await manager.cleanup_old_conversations()
    finally:
        await database.close()


if __name__ == "__main__":
    deleted = asyncio.run(cleanup())
    print(f"Soft-deleted {deleted} conversation(s)")
