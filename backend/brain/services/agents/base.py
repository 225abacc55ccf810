"""
Source agent contract.

Responsibilities:
- Dispatch a named action to the concrete agent's handler
- Time every action and enforce a per-action timeout
- Convert every failure into a SubAgentResult with success=False

A source agent is constructed from a context id alone and resolves its
own credentials. Failures never propagate out of `execute`.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from brain.core.logging import get_logger
from brain.core.metrics import record_agent_action
from brain.services.orchestration.schema import SubAgentMetadata, SubAgentResult

logger = get_logger(__name__)

ActionHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


class AgentAction(str, Enum):
    """Actions every source agent understands."""
    SEARCH_MESSAGES = "search_messages"
    GET_RECENT_MESSAGES = "get_recent_messages"
    ANALYZE_CONVERSATIONS = "analyze_conversations"
    SEND_NOTIFICATION = "send_notification"


class UnknownActionError(Exception):
    """Raised when an agent is asked for an action it does not support."""


def action_name(action: Any) -> str:
    return action.value if isinstance(action, Enum) else str(action)


def build_result(
    agent_type: str,
    action: str,
    data_source: str,
    started_at: float,
    success: bool,
    data: Any = None,
    error: Optional[str] = None,
) -> SubAgentResult:
    return SubAgentResult(
        success=success,
        data=data,
        error=error,
        metadata=SubAgentMetadata(
            agent_type=agent_type,
            action=action,
            processing_time_ms=int((time.perf_counter() - started_at) * 1000),
            data_source=data_source,
        ),
    )


class SourceAgent(ABC):
    """Adapter over one external data source exposing a fixed action set."""

    agent_type: str = ""
    data_source: str = ""

    def __init__(self, context_id: str, timeout_seconds: Optional[float] = 10.0):
        self.context_id = context_id
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    def actions(self) -> Dict[str, ActionHandler]:
        """Action name -> coroutine handler taking the parameters dict."""

    async def execute(
        self,
        action: str,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> SubAgentResult:
        started_at = time.perf_counter()
        action = action_name(action)
        params = dict(parameters or {})
        status = "success"

        try:
            handler = self.actions().get(action)
            if handler is None:
                raise UnknownActionError(f"Unknown action: {action}")
            data = await asyncio.wait_for(handler(params), timeout=self.timeout_seconds)
            result = build_result(
                self.agent_type, action, self.data_source, started_at, True, data=data
            )
        except asyncio.TimeoutError:
            status = "timeout"
            logger.warning(
                "agent_action_timeout",
                agent_type=self.agent_type,
                action=action,
                context_id=self.context_id,
                timeout_seconds=self.timeout_seconds,
            )
            result = build_result(
                self.agent_type, action, self.data_source, started_at, False,
                error=f"{action} timed out after {self.timeout_seconds}s",
            )
        except Exception as exc:
            status = "failure"
            logger.warning(
                "agent_action_failed",
                agent_type=self.agent_type,
                action=action,
                context_id=self.context_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            result = build_result(
                self.agent_type, action, self.data_source, started_at, False,
                error=str(exc) or type(exc).__name__,
            )

        record_agent_action(
            agent_type=self.agent_type,
            action=action,
            status=status,
            duration_seconds=time.perf_counter() - started_at,
        )
        return result

    async def close(self) -> None:
        """Release connection state; called when the agent is evicted."""
        return None


class UnimplementedAgent(SourceAgent):
    """Placeholder for sources without a concrete agent; every action fails."""

    data_source = "unavailable"

    def __init__(self, agent_type: str, context_id: str):
        super().__init__(context_id, timeout_seconds=None)
        self.agent_type = agent_type

    def actions(self) -> Dict[str, ActionHandler]:
        return {}

    async def execute(
        self,
        action: str,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> SubAgentResult:
        started_at = time.perf_counter()
        action = action_name(action)
        record_agent_action(
            agent_type=self.agent_type, action=action, status="failure", duration_seconds=0.0
        )
        return build_result(
            self.agent_type, action, self.data_source, started_at, False,
            error=f"{self.agent_type} agent is not implemented yet",
        )
