"""
End-to-end tests through the HTTP surface.
"""

import base64
import sqlite3

from fastapi.testclient import TestClient

from estate_assistant.main import create_app

from .conftest import TEST_VOICE_ID, FakeVoiceClient, make_settings


MISSING_ID = "3f1c2a7e-1b2c-4d3e-8f90-123456789abc"


def start_conversation(client, message="I am looking for a house"):
    response = client.post("/api/chat/message", json={"message": message, "userId": "u1"})
    assert response.status_code == 200
    return response.json()["conversationId"]


def test_banner(client):
    body = client.get("/").json()

    assert body["status"] == "operational"
    assert body["endpoints"]["chat"] == "/api/chat"


def test_request_id_and_compliance_headers(client):
    generated = client.get("/api/health")
    echoed = client.get("/api/health", headers={"X-Request-ID": "req-123"})

    assert generated.headers["X-Request-ID"]
    assert echoed.headers["X-Request-ID"] == "req-123"
    assert echoed.headers["X-Compliance-Level"] == "BIG_BROTHER_V2"
    assert echoed.headers["X-Audit-Enabled"] == "false"


def test_chat_message_flow(client):
    response = client.post(
        "/api/chat/message",
        json={"message": "<b>What are prices</b> like?", "userId": "u1", "context": {"location": "Springfield"}},
        headers={"X-Request-ID": "chat-1"},
    )
    body = response.json()

    assert response.status_code == 200
    assert body["success"] is True
    assert "market" in body["response"]
    assert body["metadata"]["messageCount"] == 2
    assert body["metadata"]["requestId"] == "chat-1"

    conversation = client.get(f"/api/chat/conversation/{body['conversationId']}").json()["conversation"]
    assert conversation["userId"] == "u1"
    assert conversation["messageCount"] == 2
    assert conversation["metadata"] == {"location": "Springfield"}


def test_follow_up_message(client):
    conversation_id = start_conversation(client)

    response = client.post(
        "/api/chat/message", json={"message": "Can I book a viewing?", "conversationId": conversation_id}
    )

    assert response.json()["conversationId"] == conversation_id
    assert response.json()["metadata"]["messageCount"] == 4


def test_message_to_unknown_conversation(client):
    response = client.post("/api/chat/message", json={"message": "hello", "conversationId": MISSING_ID})

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"
    assert response.json()["success"] is False


def test_invalid_chat_body(client):
    empty = client.post("/api/chat/message", json={"message": "<p></p>"})
    bad_id = client.post("/api/chat/message", json={"message": "hi", "conversationId": "not-a-uuid"})

    assert empty.status_code == 400
    assert empty.json()["error"] == "VALIDATION_ERROR"
    assert empty.json()["details"][0]["field"] == "message"
    assert bad_id.status_code == 400


def test_non_json_body_is_rejected(client):
    response = client.post("/api/chat/message", content="hello", headers={"Content-Type": "text/plain"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid content type"


def test_oversized_body_is_rejected(tmp_path):
    settings = make_settings(tmp_path, MAX_REQUEST_BYTES=32)
    with TestClient(create_app(settings, voice_client=FakeVoiceClient())) as client:
        response = client.post("/api/chat/message", json={"message": "x" * 100})

    assert response.status_code == 413


def test_conversation_lookups_validate_and_404(client):
    assert client.get("/api/chat/conversation/abc").status_code == 400
    missing = client.get(f"/api/chat/conversation/{MISSING_ID}")

    assert missing.status_code == 404
    assert missing.json()["details"] == {"resource": "Conversation", "identifier": MISSING_ID}


def test_history_with_and_without_metadata(client):
    conversation_id = start_conversation(client)

    plain = client.get(f"/api/chat/conversation/{conversation_id}/history").json()
    detailed = client.get(
        f"/api/chat/conversation/{conversation_id}/history", params={"includeMetadata": "true", "limit": 1}
    ).json()

    assert [m["role"] for m in plain["messages"]] == ["user", "assistant"]
    assert "metadata" not in plain["messages"][0]
    assert plain["pagination"] == {"limit": 20, "offset": 0, "total": 2}
    [latest] = detailed["messages"]
    assert latest["role"] == "assistant"
    assert latest["metadata"]["model"]
    assert latest["tokenCount"] > 0


def test_history_limit_out_of_range(client):
    response = client.get(f"/api/chat/conversation/{MISSING_ID}/history", params={"limit": 500})

    assert response.status_code == 400


def test_status_update(client):
    conversation_id = start_conversation(client)

    response = client.put(f"/api/chat/conversation/{conversation_id}/status", json={"status": "archived"})
    missing = client.put(f"/api/chat/conversation/{MISSING_ID}/status", json={"status": "archived"})
    invalid = client.put(f"/api/chat/conversation/{conversation_id}/status", json={"status": "deleted"})

    assert response.status_code == 200
    assert response.json()["status"] == "archived"
    assert missing.status_code == 404
    assert invalid.status_code == 400


def test_user_conversations(client):
    first = start_conversation(client)
    second = start_conversation(client, "Any agents available?")

    body = client.get("/api/chat/conversations/user/u1").json()

    assert [c["conversationId"] for c in body["conversations"]] == [second, first]
    assert body["pagination"]["total"] == 2


def test_chat_stats(client):
    start_conversation(client)

    stats = client.get("/api/chat/stats").json()["statistics"]

    assert stats["requestCount"] == 1
    assert stats["service"] == "chat"


def test_synthesize_returns_audio(client, voice_client):
    response = client.post(
        "/api/voice/synthesize",
        json={"text": "Welcome home", "quality": "high", "outputFormat": "mp3_22050_32"},
    )

    assert response.status_code == 200
    assert response.content == voice_client.audio
    assert response.headers["content-type"] == "audio/mpeg"
    assert response.headers["X-Voice-ID"] == TEST_VOICE_ID
    assert response.headers["X-Text-Length"] == "12"
    assert response.headers["X-Audio-Format"] == "mp3_22050_32"
    assert 'filename="synthesis.mp3"' in response.headers["Content-Disposition"]


def test_synthesize_rejects_out_of_range_settings(client, voice_client):
    response = client.post(
        "/api/voice/synthesize",
        json={"text": "Hello", "voiceSettings": {"stability": 1.5, "style": -1}},
    )

    assert response.status_code == 400
    assert response.json()["details"]["errors"] == [
        "Stability must be between 0 and 1",
        "Style must be between 0 and 1",
    ]
    assert voice_client.calls == []


def test_synthesize_rejects_malformed_voice_id(client):
    response = client.post("/api/voice/synthesize", json={"text": "Hello", "voiceId": "bad id!"})

    assert response.status_code == 400


def test_chat_and_speak(client, voice_client):
    response = client.post("/api/voice/chat-and-speak", json={"message": "Find me an agent", "outputFormat": "pcm_16000"})
    body = response.json()

    assert response.status_code == 200
    assert base64.b64decode(body["audio"]["data"]) == voice_client.audio
    assert body["audio"]["format"] == "pcm_16000"
    assert body["metadata"]["voiceSynthesis"]["textLength"] == len(body["response"])
    assert voice_client.calls[0]["text"] == body["response"]


def test_voices_and_presets(client):
    voices = client.get("/api/voice/voices").json()
    presets = client.get("/api/voice/settings/presets").json()

    assert voices["totalCount"] == 1
    assert voices["voices"][0]["voiceId"] == "21m00Tcm4TlvDq8ikWAM"
    assert set(presets["presets"]) == {"high_quality", "medium_quality", "fast_generation", "custom_example"}
    assert presets["presets"]["high_quality"]["useSpeakerBoost"] is True


def test_voice_stats_lists_formats(client):
    stats = client.get("/api/voice/stats").json()["statistics"]

    assert "mp3_44100_128" in stats["supportedFormats"]


def test_voice_rate_limit(tmp_path):
    settings = make_settings(tmp_path, RATE_LIMIT_VOICE_MAX_REQUESTS=2)
    with TestClient(create_app(settings, voice_client=FakeVoiceClient())) as client:
        statuses = [client.post("/api/voice/synthesize", json={"text": "hi"}).status_code for _ in range(2)]
        limited = client.post("/api/voice/synthesize", json={"text": "hi"})

    assert statuses == [200, 200]
    assert limited.status_code == 429
    assert limited.json()["error"] == "RATE_LIMIT_EXCEEDED"
    assert int(limited.headers["Retry-After"]) >= 1


def test_health_endpoints(client):
    basic = client.get("/api/health")
    detailed = client.get("/api/health/detailed", params={"includeMetrics": "true"})
    readiness = client.get("/api/health/readiness")
    liveness = client.get("/api/health/liveness")

    assert basic.json()["status"] == "healthy"
    assert detailed.status_code == 200
    assert set(detailed.json()["components"]) == {"database", "brokerService", "aiService", "system"}
    assert detailed.json()["metrics"]["application"]["databaseConnected"] is True
    assert readiness.json()["status"] == "ready"
    assert liveness.json()["status"] == "alive"


def test_readiness_reports_configuration_issues(tmp_path):
    settings = make_settings(tmp_path, ELEVENLABS_API_KEY=None)
    with TestClient(create_app(settings, voice_client=FakeVoiceClient())) as client:
        response = client.get("/api/health/readiness")

    assert response.status_code == 503
    assert "ELEVENLABS_API_KEY not configured" in response.json()["issues"]


def test_property_routes_on_empty_catalogue(client):
    search = client.post("/api/properties/search", json={"location": "Springfield"})
    analysis = client.get("/api/properties/market-analysis", params={"location": "Springfield"})
    agents = client.get("/api/agents")
    agent = client.get("/api/agents/agent-1")
    showing = client.post(
        "/api/properties/p-1/showings",
        json={"clientName": "Ana", "preferredDate": "2999-01-01T10:00:00Z"},
    )

    assert search.status_code == 200
    assert search.json()["properties"] == []
    assert analysis.status_code == 404
    assert agents.json()["totalCount"] == 0
    assert agent.status_code == 404
    assert showing.status_code == 404


def test_showing_in_the_past_is_rejected(client):
    response = client.post(
        "/api/properties/p-1/showings",
        json={"clientName": "Ana", "preferredDate": "2000-01-01T10:00:00Z"},
    )

    assert response.status_code == 400


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


class BrokenVoiceClient(FakeVoiceClient):
    async def list_voices(self):
        raise RuntimeError("socket closed")


def test_unexpected_errors_use_internal_error_code(tmp_path):
    settings = make_settings(tmp_path, ENVIRONMENT="production")
    with TestClient(create_app(settings, voice_client=BrokenVoiceClient())) as client:
        response = client.get("/api/voice/voices")

    assert response.status_code == 500
    assert response.json()["error"] == "INTERNAL_ERROR"
    assert "details" not in response.json()
    assert response.headers["X-Error-Type"] == "RuntimeError"


def drop_messages_table(settings):
    path = settings.DATABASE_URL.split("///", 1)[1]
    with sqlite3.connect(path) as connection:
        connection.execute("DROP TABLE messages")


def test_database_errors_hide_driver_details_in_production(tmp_path):
    settings = make_settings(tmp_path, ENVIRONMENT="production")
    with TestClient(create_app(settings, voice_client=FakeVoiceClient())) as client:
        drop_messages_table(settings)
        response = client.post("/api/chat/message", json={"message": "hello"})

    assert response.status_code == 500
    assert response.json()["error"] == "PERSISTENCE_ERROR"
    assert "details" not in response.json()
    assert "no such table" not in response.text


def test_database_errors_show_details_in_development(tmp_path):
    settings = make_settings(tmp_path, ENVIRONMENT="development")
    with TestClient(create_app(settings, voice_client=FakeVoiceClient())) as client:
        drop_messages_table(settings)
        response = client.post("/api/chat/message", json={"message": "hello"})

    assert response.status_code == 500
    assert "no such table: messages" in response.json()["details"]["error"]


def test_request_metadata_reaches_stored_message(client):
    response = client.post("/api/chat/message", json={"message": "hello", "metadata": {"source": "widget"}})
    conversation_id = response.json()["conversationId"]

    history = client.get(
        f"/api/chat/conversation/{conversation_id}/history", params={"includeMetadata": "true"}
    ).json()

    assert history["messages"][0]["metadata"]["clientMetadata"] == {"source": "widget"}
