"""
Unit tests for Prometheus metrics collection.

Tests verify:
- Endpoint normalization keeps label cardinality bounded
- Orchestration, agent and collaborator counters are incremented
- Metrics export is valid Prometheus text
"""
from prometheus_client import REGISTRY

from brain.core.metrics import (
    get_metrics,
    get_metrics_content_type,
    normalize_endpoint,
    record_agent_action,
    record_http_request,
    record_intent,
    record_llm_request,
    record_orchestration,
    record_slack_api_request,
)


def sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_normalize_endpoint():
    assert normalize_endpoint("/webhooks/slack/ctx-42") == "/webhooks/slack/{context_id}"
    assert normalize_endpoint("/webhooks/slack/ctx-42/") == "/webhooks/slack/{context_id}"
    assert normalize_endpoint("/chat") == "/chat"
    assert normalize_endpoint("") == "/"


def test_http_request_counter():
    labels = {"method": "POST", "endpoint": "/chat", "status": "200"}
    before = sample("http_requests_total", labels)

    record_http_request("POST", "/chat", 200, 0.05)

    assert sample("http_requests_total", labels) == before + 1


def test_orchestration_counter():
    labels = {"strategy": "multi_subagent", "success": "true"}
    before = sample("orchestration_requests_total", labels)

    record_orchestration("multi_subagent", True, 0.2)

    assert sample("orchestration_requests_total", labels) == before + 1


def test_intent_counter():
    before = sample("intent_classifications_total", {"category": "greeting"})

    record_intent("greeting")

    assert sample("intent_classifications_total", {"category": "greeting"}) == before + 1


def test_agent_action_counter():
    labels = {"agent_type": "slack", "action": "search_messages", "status": "timeout"}
    before = sample("agent_actions_total", labels)

    record_agent_action("slack", "search_messages", "timeout", 10.0)

    assert sample("agent_actions_total", labels) == before + 1


def test_collaborator_counters():
    llm_before = sample("llm_requests_total", {"status": "circuit_open"})
    slack_before = sample("slack_api_requests_total", {"method": "chat.postMessage", "status": "success"})

    record_llm_request("circuit_open", 0.0)
    record_slack_api_request("chat.postMessage", "success")

    assert sample("llm_requests_total", {"status": "circuit_open"}) == llm_before + 1
    assert sample(
        "slack_api_requests_total", {"method": "chat.postMessage", "status": "success"}
    ) == slack_before + 1


def test_metrics_export():
    record_intent("unknown")

    content = get_metrics().decode("utf-8")

    assert 'intent_classifications_total{category="unknown"}' in content
    assert get_metrics_content_type().startswith("text/plain")
