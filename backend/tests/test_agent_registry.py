"""
Unit tests for the per-context agent registry.
"""
import asyncio

import pytest

from brain.services.agents.base import SourceAgent, UnimplementedAgent
from brain.services.orchestration.registry import AgentRegistry


class DummyAgent(SourceAgent):
    agent_type = "slack"
    data_source = "dummy"

    def __init__(self, context_id):
        super().__init__(context_id)
        self.closed = False

    def actions(self):
        return {}

    async def close(self):
        self.closed = True


class CountingFactory:
    def __init__(self):
        self.created = []

    def __call__(self, context_id):
        agent = DummyAgent(context_id)
        self.created.append(agent)
        return agent


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_same_context_returns_cached_agent():
    factory = CountingFactory()
    registry = AgentRegistry(factories={"slack": factory})

    first = await registry.get("slack", "ctx-1")
    second = await registry.get("slack", "ctx-1")
    other = await registry.get("slack", "ctx-2")

    assert first is second
    assert other is not first
    assert other.context_id == "ctx-2"
    assert len(factory.created) == 2
    assert registry.size == 2


@pytest.mark.asyncio
async def test_concurrent_first_use_creates_one_agent():
    factory = CountingFactory()
    registry = AgentRegistry(factories={"slack": factory})

    agents = await asyncio.gather(*(registry.get("slack", "ctx") for _ in range(10)))

    assert len(factory.created) == 1
    assert all(agent is agents[0] for agent in agents)


@pytest.mark.asyncio
async def test_unknown_agent_type_resolves_to_unimplemented():
    registry = AgentRegistry(factories={"slack": CountingFactory()})

    agent = await registry.get("gmail", "ctx")
    result = await agent.execute("get_recent_messages", {"days": 7})

    assert isinstance(agent, UnimplementedAgent)
    assert registry.is_implemented("gmail") is False
    assert registry.is_implemented("slack") is True
    assert result.success is False
    assert result.error == "gmail agent is not implemented yet"
    assert result.metadata.agent_type == "gmail"
    assert result.metadata.data_source == "unavailable"


@pytest.mark.asyncio
async def test_idle_agents_expire():
    factory = CountingFactory()
    clock = FakeClock()
    registry = AgentRegistry(factories={"slack": factory}, ttl_seconds=10, clock=clock)

    first = await registry.get("slack", "ctx")
    clock.now = 5.0
    assert await registry.get("slack", "ctx") is first

    clock.now = 20.0
    second = await registry.get("slack", "ctx")

    assert second is not first
    assert first.closed is True
    assert registry.size == 1


@pytest.mark.asyncio
async def test_expiry_disabled():
    factory = CountingFactory()
    clock = FakeClock()
    registry = AgentRegistry(factories={"slack": factory}, ttl_seconds=None, clock=clock)

    first = await registry.get("slack", "ctx")
    clock.now = 1_000_000.0

    assert await registry.get("slack", "ctx") is first


@pytest.mark.asyncio
async def test_register_adds_factory():
    registry = AgentRegistry()
    registry.register("slack", CountingFactory())

    agent = await registry.get("slack", "ctx")

    assert isinstance(agent, DummyAgent)


@pytest.mark.asyncio
async def test_clear_closes_every_agent():
    factory = CountingFactory()
    registry = AgentRegistry(factories={"slack": factory})
    await registry.get("slack", "a")
    await registry.get("slack", "b")

    await registry.clear()

    assert registry.size == 0
    assert all(agent.closed for agent in factory.created)
