"""
Shared fixtures: settings pointing at a temporary SQLite file, a migrated
database and a fake voice client.
"""

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from estate_assistant.config import Settings
from estate_assistant.database import Database
from estate_assistant.main import create_app
from estate_assistant.services.ai_service import AIService
from estate_assistant.services.conversation_manager import ConversationManager


TEST_VOICE_ID = "testvoice12345"


class FakeVoiceClient:
    """Stands in for ElevenLabsClient and records every synthesis call."""

    configured = True

    def __init__(self, audio: bytes = b"ID3-fake-audio"):
        self.audio = audio
        self.calls: List[Dict[str, Any]] = []

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        voice_settings: Dict[str, Any],
        output_format: str = "mp3_44100_128",
        model_id: Optional[str] = None
    ) -> bytes:
        self.calls.append({
            "text": text,
            "voice_id": voice_id,
            "voice_settings": voice_settings,
            "output_format": output_format,
        })
        return self.audio

    async def list_voices(self) -> List[Dict[str, Any]]:
        return [{
            "voice_id": "21m00Tcm4TlvDq8ikWAM",
            "name": "Rachel",
            "category": "premade",
            "description": "calm",
            "preview_url": "https://example.com/rachel.mp3",
        }]


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "WARNING",
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        "ELEVENLABS_API_KEY": "test-key",
        "ELEVENLABS_VOICE_ID": TEST_VOICE_ID,
        "AUDIT_LOGGING": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
async def database(settings):
    db = Database.from_settings(settings)
    await db.create_schema()
    yield db
    await db.close()


@pytest.fixture
def conversation_manager(database, settings) -> ConversationManager:
    return ConversationManager(database, settings)


@pytest.fixture
def voice_client() -> FakeVoiceClient:
    return FakeVoiceClient()


@pytest.fixture
def ai_service(settings, conversation_manager, voice_client) -> AIService:
    return AIService(settings, conversation_manager, voice_client)


@pytest.fixture
def client(settings, voice_client):
    with TestClient(create_app(settings, voice_client=voice_client)) as test_client:
        yield test_client
