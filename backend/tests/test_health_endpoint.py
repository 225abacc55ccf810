"""
Integration tests for health check and metrics endpoints.
"""
import pytest
from fastapi.testclient import TestClient

import brain.routes.health as health_module
from brain import __version__
from brain.main import app
from brain.services.orchestration.registry import AgentRegistry
from brain.services.slack.store import SlackMessageStore


class DummyOrchestrator:
    def __init__(self, completion=None):
        self.registry = AgentRegistry()
        self.completion = completion


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


def test_basic_health_check(client, monkeypatch):
    """Test basic health check endpoint."""
    monkeypatch.setattr(health_module, "get_orchestrator", lambda: DummyOrchestrator())

    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == __version__
    assert data["cached_agents"] == 0
    assert data["synthesis_enabled"] is False
    assert data["completion_circuit"]["name"] == "completion"


def test_health_reports_message_store(client, monkeypatch):
    monkeypatch.setattr(health_module, "get_orchestrator", lambda: DummyOrchestrator())
    monkeypatch.setattr(
        health_module, "SlackMessageStore", lambda: SlackMessageStore(client_factory=lambda: object())
    )

    assert client.get("/health").json()["message_store"] is True

    monkeypatch.setattr(
        health_module, "SlackMessageStore", lambda: SlackMessageStore(client_factory=lambda: None)
    )

    assert client.get("/health").json()["message_store"] is False


def test_health_reports_synthesis(client, monkeypatch):
    async def complete(prompt):
        return "text"

    monkeypatch.setattr(health_module, "get_orchestrator", lambda: DummyOrchestrator(complete))

    response = client.get("/health")

    assert response.json()["synthesis_enabled"] is True


def test_metrics_endpoint(client):
    client.get("/metrics")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
    assert "# HELP http_requests_total" in response.text
    assert "# HELP orchestration_requests_total" in response.text
