"""
Text-completion collaborator.

- Talks to an OpenAI-compatible /chat/completions endpoint over httpx
- No provider SDKs
- Used only to synthesize natural-language answers; routing never depends on it

Every failure is raised as CompletionError so callers have one type to
catch and fall back on.
"""
import time
from typing import Any, Dict, Optional

import httpx

from brain.core.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from brain.core.config import Settings, get_settings
from brain.core.logging import get_logger
from brain.core.metrics import record_llm_request

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are AI Brain, an assistant that answers questions about a team's workspace."


class CompletionError(Exception):
    """The completion service could not produce text."""


class CompletionClient:
    """Async client implementing `complete(prompt) -> str`."""

    def __init__(
        self,
        api_base: str,
        api_key: Optional[str],
        model: str,
        timeout_seconds: float = 15.0,
        max_tokens: int = 800,
    ):
        self.api_base = api_base.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens

        self.circuit_breaker = CircuitBreaker(
            name="completion",
            failure_threshold=0.5,
            time_window_seconds=60,
            open_duration_seconds=30,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompletionClient":
        return cls(
            api_base=settings.llm_api_base,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            timeout_seconds=settings.llm_timeout_seconds,
        )

    async def _post(self, path: str, json_payload: Dict[str, Any]) -> httpx.Response:
        """Low-level POST helper (isolated for circuit breaker)."""
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        url = f"{self.api_base}{path}"
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(url, headers=headers, json=json_payload)
        # Raise inside the breaker so HTTP errors count as failures.
        response.raise_for_status()
        return response

    async def complete(self, prompt: str) -> str:
        """
        Return the completion text for `prompt`.

        Raises:
            CompletionError on missing configuration, transport/HTTP failures,
            an open circuit, or an empty/malformed response.
        """
        if not self.api_key:
            record_llm_request("missing_api_key", 0.0)
            raise CompletionError("LLM API key not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.3,
            "max_tokens": self.max_tokens,
        }

        start = time.time()
        status = "success"
        try:
            response = await self.circuit_breaker.call(
                self._post, "/chat/completions", json_payload=payload
            )
            data = response.json()
        except CircuitBreakerOpenError as exc:
            status = "circuit_open"
            logger.warning("llm_circuit_open")
            raise CompletionError(str(exc)) from exc
        except httpx.TimeoutException as exc:
            status = "timeout"
            logger.warning("llm_timeout", error=str(exc), error_type=type(exc).__name__)
            raise CompletionError("completion request timed out") from exc
        except httpx.HTTPError as exc:
            status = "http_error"
            logger.warning("llm_http_error", error=str(exc), error_type=type(exc).__name__)
            raise CompletionError(f"completion request failed: {exc}") from exc
        except Exception as exc:
            status = "unexpected_error"
            logger.error(
                "llm_unexpected_error",
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise CompletionError(f"unexpected completion failure: {exc}") from exc
        finally:
            record_llm_request(status, time.time() - start)

        # OpenAI-compatible shape: choices[0].message.content
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            logger.warning("llm_invalid_response", raw=data)
            raise CompletionError("malformed completion response") from exc

        if not content or not str(content).strip():
            raise CompletionError("empty completion")
        return str(content).strip()


_completion_client: Optional[CompletionClient] = None


def get_completion_client() -> CompletionClient:
    """Global singleton accessor built from Settings."""
    global _completion_client
    if _completion_client is None:
        _completion_client = CompletionClient.from_settings(get_settings())
    return _completion_client
