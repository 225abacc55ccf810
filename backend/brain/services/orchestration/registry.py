"""
Per-(agent type, context id) cache of source agents.

Owned by an Orchestrator instance. Creation is lazy and serialized by a
lock so concurrent first use of a context yields a single instance.
Idle entries expire after `ttl_seconds` (None disables expiry).
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from brain.core.logging import get_logger
from brain.services.agents.base import SourceAgent, UnimplementedAgent

logger = get_logger(__name__)

AgentFactory = Callable[[str], SourceAgent]


@dataclass
class _Entry:
    agent: SourceAgent
    last_used: float


class AgentRegistry:
    """Lazily constructs and caches source agents."""

    def __init__(
        self,
        factories: Optional[Dict[str, AgentFactory]] = None,
        ttl_seconds: Optional[float] = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factories: Dict[str, AgentFactory] = dict(factories or {})
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], _Entry] = {}
        self._lock = asyncio.Lock()

    def register(self, agent_type: str, factory: AgentFactory) -> None:
        self._factories[agent_type] = factory

    def is_implemented(self, agent_type: str) -> bool:
        return agent_type in self._factories

    @property
    def size(self) -> int:
        return len(self._entries)

    def _expired(self, entry: _Entry, now: float) -> bool:
        return self.ttl_seconds is not None and now - entry.last_used > self.ttl_seconds

    async def get(self, agent_type: str, context_id: str) -> SourceAgent:
        """Return the cached agent for this pair, creating it on first use."""
        key = (agent_type, context_id)
        now = self._clock()

        entry = self._entries.get(key)
        if entry is not None and not self._expired(entry, now):
            entry.last_used = now
            return entry.agent

        async with self._lock:
            await self._evict_expired(now)
            entry = self._entries.get(key)
            if entry is None:
                factory = self._factories.get(agent_type)
                if factory is None:
                    agent: SourceAgent = UnimplementedAgent(agent_type, context_id)
                else:
                    agent = factory(context_id)
                entry = _Entry(agent=agent, last_used=now)
                self._entries[key] = entry
                logger.debug(
                    "agent_created",
                    agent_type=agent_type,
                    context_id=context_id,
                    implemented=factory is not None,
                )
            entry.last_used = now
            return entry.agent

    async def _evict_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in expired:
            entry = self._entries.pop(key)
            await self._close_agent(key, entry.agent)
            logger.debug("agent_evicted", agent_type=key[0], context_id=key[1])

    async def _close_agent(self, key: Tuple[str, str], agent: SourceAgent) -> None:
        try:
            await agent.close()
        except Exception as exc:
            logger.warning(
                "agent_close_failed",
                agent_type=key[0],
                context_id=key[1],
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def clear(self) -> None:
        """Close and drop every cached agent."""
        async with self._lock:
            entries, self._entries = self._entries, {}
            for key, entry in entries.items():
                await self._close_agent(key, entry.agent)
