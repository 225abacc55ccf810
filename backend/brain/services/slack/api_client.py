"""
Minimal async Slack Web API client.

- httpx against https://slack.com/api/<method>, bearer token auth
- Slack reports failures as HTTP 200 with {"ok": false, "error": ...};
  those become SlackApiError
- Transport failures and an open circuit become SlackApiUnavailableError
"""
from typing import Any, Dict, List, Optional, Tuple

import httpx

from brain.core.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from brain.core.logging import get_logger
from brain.core.metrics import record_slack_api_request
from brain.services.slack.models import SlackMessage

logger = get_logger(__name__)

DEFAULT_API_BASE = "https://slack.com/api"


class SlackApiError(Exception):
    """Slack answered with ok=false."""

    def __init__(self, method: str, error: str):
        super().__init__(f"Slack API error in {method}: {error}")
        self.method = method
        self.error = error


class SlackApiUnavailableError(Exception):
    """Slack could not be reached (network, HTTP status, open circuit)."""


class SlackApiClient:
    """Async client for the handful of Web API methods the agent uses."""

    def __init__(
        self,
        token: str,
        api_base: str = DEFAULT_API_BASE,
        timeout_seconds: float = 10.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.token = token
        self.api_base = api_base.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.circuit_breaker = circuit_breaker or CircuitBreaker(name="slack_api")

    async def _send(
        self,
        http_method: str,
        api_method: str,
        params: Optional[Dict[str, Any]] = None,
        json_payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.token}"}
        if json_payload is not None:
            headers["Content-Type"] = "application/json; charset=utf-8"

        url = f"{self.api_base}/{api_method}"
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.request(
                http_method, url, headers=headers, params=params, json=json_payload
            )
        response.raise_for_status()
        return response.json()

    async def call(
        self,
        api_method: str,
        params: Optional[Dict[str, Any]] = None,
        json_payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Invoke a Web API method; GET with `params`, POST with `json_payload`."""
        http_method = "POST" if json_payload is not None else "GET"
        try:
            data = await self.circuit_breaker.call(
                self._send, http_method, api_method, params=params, json_payload=json_payload
            )
        except CircuitBreakerOpenError as exc:
            record_slack_api_request(api_method, "circuit_open")
            logger.warning("slack_api_circuit_open", method=api_method)
            raise SlackApiUnavailableError(str(exc)) from exc
        except httpx.HTTPError as exc:
            record_slack_api_request(api_method, "http_error")
            logger.warning(
                "slack_api_http_error",
                method=api_method,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise SlackApiUnavailableError(f"Slack API request failed: {exc}") from exc

        if not data.get("ok"):
            record_slack_api_request(api_method, "api_error")
            logger.warning("slack_api_error", method=api_method, error=data.get("error"))
            raise SlackApiError(api_method, data.get("error") or "unknown_error")

        record_slack_api_request(api_method, "success")
        return data

    async def send_message(
        self,
        channel: str,
        text: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"channel": channel, "text": text}
        if metadata:
            payload["metadata"] = {
                "event_type": "ai_brain_notification",
                "event_payload": metadata,
            }
        data = await self.call("chat.postMessage", json_payload=payload)
        return {
            "message_id": data.get("ts"),
            "channel": data.get("channel", channel),
            "timestamp": data.get("ts"),
        }

    async def search_messages(self, query: str, count: int = 20) -> Tuple[List[SlackMessage], int]:
        data = await self.call("search.messages", params={"query": query, "count": count})
        block = data.get("messages") or {}
        matches = block.get("matches") or []
        messages = [SlackMessage.from_search_match(match) for match in matches]
        total = int(block.get("total") or len(messages))
        return messages, total
