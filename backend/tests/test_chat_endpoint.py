"""
Integration tests for the chat endpoint.
"""
import pytest
from fastapi.testclient import TestClient

import brain.routes.chat as chat_module
from brain.core.config import Settings
from brain.main import app
from brain.services.orchestration.orchestrator import Orchestrator
from brain.services.orchestration.registry import AgentRegistry


class DummyOrchestrator:
    def __init__(self, delegate):
        self.delegate = delegate
        self.calls = []

    async def process(self, message, context_id=None, user_id=None):
        self.calls.append((message, context_id, user_id))
        return await self.delegate.process(message, context_id=context_id, user_id=user_id)


@pytest.fixture
def orchestrator(monkeypatch):
    dummy = DummyOrchestrator(Orchestrator(settings=Settings(), registry=AgentRegistry()))
    monkeypatch.setattr(chat_module, "get_orchestrator", lambda: dummy)
    return dummy


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


def test_greeting(client, orchestrator):
    response = client.post("/chat", json={"message": "hi", "context_id": "ctx", "user_id": "u1"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["metadata"]["strategy"] == "direct_response"
    assert data["metadata"]["intent"]["category"] == "greeting"
    assert data["metadata"]["agents_used"] == []
    assert "debug" not in data
    assert orchestrator.calls == [("hi", "ctx", "u1")]


def test_context_is_optional(client, orchestrator):
    response = client.post("/chat", json={"message": "今天有什么重要邮件吗"})

    assert response.status_code == 200
    data = response.json()
    assert data["metadata"]["context_relevance"]["needs_context_data"] is False
    assert data["metadata"]["strategy"] == "direct_response"


def test_empty_message_rejected(client, orchestrator):
    response = client.post("/chat", json={"message": "   "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Field 'message' is required"
    assert orchestrator.calls == []


def test_missing_message_is_validation_error(client, orchestrator):
    response = client.post("/chat", json={"context_id": "ctx"})

    assert response.status_code == 422


def test_trace_id_is_echoed(client, orchestrator):
    response = client.post("/chat", json={"message": "hi"}, headers={"X-Trace-ID": "trace-123"})

    assert response.headers["X-Trace-ID"] == "trace-123"
