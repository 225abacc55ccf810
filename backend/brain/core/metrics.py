"""
Prometheus metrics collection module.

Metrics Categories:
- RED Metrics: Rate, Errors, Duration for the HTTP surface
- Orchestration Metrics: strategies chosen, intent categories, end-to-end latency
- Agent Metrics: per agent/action outcomes and latency
- Collaborator Metrics: text-completion and Slack Web API calls

All metrics follow Prometheus naming conventions:
- Counters: _total suffix
- Histograms: _seconds suffix for duration
"""
from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY,
    CONTENT_TYPE_LATEST,
)

registry = REGISTRY

# ============================================================================
# RED METRICS - Rate, Errors, Duration
# ============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status"],
    registry=registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=registry,
)

# ============================================================================
# ORCHESTRATION METRICS
# ============================================================================

orchestration_requests_total = Counter(
    "orchestration_requests_total",
    "Total number of processed chat messages",
    ["strategy", "success"],
    registry=registry,
)

orchestration_duration_seconds = Histogram(
    "orchestration_duration_seconds",
    "End-to-end orchestration latency in seconds",
    ["strategy"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=registry,
)

intent_classifications_total = Counter(
    "intent_classifications_total",
    "Total number of classified messages by intent category",
    ["category"],
    registry=registry,
)

# ============================================================================
# AGENT METRICS
# ============================================================================

agent_actions_total = Counter(
    "agent_actions_total",
    "Total number of source agent actions",
    ["agent_type", "action", "status"],  # status: success | failure | timeout
    registry=registry,
)

agent_action_duration_seconds = Histogram(
    "agent_action_duration_seconds",
    "Source agent action latency in seconds",
    ["agent_type", "action"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=registry,
)

# ============================================================================
# COLLABORATOR METRICS
# ============================================================================

llm_requests_total = Counter(
    "llm_requests_total",
    "Total number of text-completion requests",
    ["status"],  # success | timeout | http_error | circuit_open | unexpected_error
    registry=registry,
)

llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "Text-completion request latency in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0],
    registry=registry,
)

slack_api_requests_total = Counter(
    "slack_api_requests_total",
    "Total number of Slack Web API calls",
    ["method", "status"],
    registry=registry,
)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def normalize_endpoint(path: str) -> str:
    """
    Normalize endpoint path for metrics.

    Replaces the context segment of webhook paths with a placeholder
    to avoid high cardinality:
        /webhooks/slack/ctx-42 -> /webhooks/slack/{context_id}
    """
    parts = path.rstrip("/").split("/")
    if len(parts) == 4 and parts[1] == "webhooks":
        parts[3] = "{context_id}"
        return "/".join(parts)
    return path or "/"


def record_http_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record an HTTP request for the RED metrics."""
    http_requests_total.labels(
        method=method, endpoint=endpoint, status=str(status_code)
    ).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
        duration_seconds
    )


def record_orchestration(strategy: str, success: bool, duration_seconds: float) -> None:
    """Record one processed chat message."""
    orchestration_requests_total.labels(
        strategy=strategy, success=str(success).lower()
    ).inc()
    orchestration_duration_seconds.labels(strategy=strategy).observe(duration_seconds)


def record_intent(category: str) -> None:
    intent_classifications_total.labels(category=category).inc()


def record_agent_action(
    agent_type: str,
    action: str,
    status: str,
    duration_seconds: float,
) -> None:
    """
    Record a source agent action.

    Args:
        agent_type: Agent identifier (e.g. "slack")
        action: Action name (e.g. "search_messages")
        status: "success", "failure" or "timeout"
        duration_seconds: Action latency
    """
    agent_actions_total.labels(agent_type=agent_type, action=action, status=status).inc()
    agent_action_duration_seconds.labels(agent_type=agent_type, action=action).observe(
        duration_seconds
    )


def record_llm_request(status: str, duration_seconds: float) -> None:
    llm_requests_total.labels(status=status).inc()
    llm_request_duration_seconds.observe(duration_seconds)


def record_slack_api_request(method: str, status: str) -> None:
    slack_api_requests_total.labels(method=method, status=status).inc()


def get_metrics() -> bytes:
    """Get Prometheus metrics in text format."""
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
