"""
Integration tests for the chat and backend health endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from chatbot.main import app
from chatbot.services.ai.errors import RateLimited, TransientFailure
from chatbot.services.ai.schema import BackendId

from conftest import FakeAdapter, error


@pytest.fixture
def client(installed_orchestrator):
    with TestClient(app) as test_client:
        yield test_client


def script(orchestrator, backend_id, *outcomes):
    orchestrator._adapters[backend_id] = FakeAdapter(backend_id, outcomes)
    return orchestrator._adapters[backend_id]


def test_chat_automatic_success(client, installed_orchestrator, sink):
    response = client.post("/chat", json={"message": "Hello"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["content"] == "groq says hi"
    assert data["provider"] == "Groq (Llama 3)"
    assert data["error"] is None
    assert data["degraded"] is False
    assert len(sink.events) == 1


def test_chat_rate_limit_falls_back_and_reports_cooldown(client, installed_orchestrator):
    groq = script(installed_orchestrator, BackendId.GROQ, error(RateLimited, "quota", "groq"))

    first = client.post("/chat", json={"message": "one"}).json()
    second = client.post("/chat", json={"message": "two"}).json()

    assert first["provider"] == "Google Gemini"
    assert second["provider"] == "Google Gemini"
    assert groq.calls == ["one"]

    health = client.get("/health/backends").json()
    assert health["status"] == "ok"
    assert health["enabled"] == ["groq", "gemini"]
    assert set(health["suppressed"]) == {"groq"}
    assert health["cooldown_seconds"] == 300


def test_chat_all_failures_still_answer_200(client, installed_orchestrator):
    script(installed_orchestrator, BackendId.GROQ, error(TransientFailure, "Groq API error: 500", "groq"))
    script(installed_orchestrator, BackendId.GEMINI, error(TransientFailure, "Gemini API error: 502", "gemini"))

    response = client.post("/chat", json={"message": "Hello"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["provider"] == "None"
    assert data["error_kind"] == "AllBackendsExhausted"
    assert "Groq API error: 500" in data["error"]
    assert "Gemini API error: 502" in data["error"]


def test_chat_explicit_provider(client, installed_orchestrator):
    groq = installed_orchestrator._adapters[BackendId.GROQ]

    data = client.post("/chat", json={"message": "Hello", "provider": "gemini"}).json()

    assert data["provider"] == "Google Gemini"
    assert data["content"] == "gemini says hi"
    assert groq.calls == []


def test_chat_explicit_provider_without_key(client):
    data = client.post("/chat", json={"message": "Hello", "provider": "openai"}).json()

    assert data["success"] is False
    assert data["error"] == "OpenAI GPT is not available"
    assert data["error_kind"] == "ExplicitBackendUnavailable"


def test_chat_unknown_provider_is_rejected(client):
    response = client.post("/chat", json={"message": "Hello", "provider": "claude"})

    assert response.status_code == 422


def test_chat_empty_message_is_rejected(client):
    response = client.post("/chat", json={"message": ""})

    assert response.status_code == 422


def test_chat_session_header_reaches_telemetry(client, sink):
    client.post("/chat", json={"message": "Hello"}, headers={"X-Session-ID": "sess-42"})

    assert sink.events[-1]["sessionId"] == "sess-42"


def test_providers_catalogue(client):
    response = client.get("/chat/providers")

    assert response.status_code == 200
    providers = response.json()["providers"]
    assert [p["id"] for p in providers] == ["groq", "gemini", "openai"]
    assert providers[0] == {"id": "groq", "name": "Groq (Llama 3)", "icon": "⚡", "available": True}
    assert providers[2]["available"] is False


def test_backends_health_when_everything_cools_down(client, installed_orchestrator):
    installed_orchestrator.cooldown.mark_suppressed(BackendId.GROQ)
    installed_orchestrator.cooldown.mark_suppressed(BackendId.GEMINI)

    data = client.get("/health/backends").json()

    assert data["status"] == "unavailable"
    assert data["suppressed"] == {"groq": 300.0, "gemini": 300.0}
