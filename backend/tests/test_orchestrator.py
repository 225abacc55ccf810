"""
Tests for the orchestration pipeline.

Tests verify:
- Greetings are answered directly without agents
- Work queries run a single agent; complex analyses fan out to several
- Missing context disables data fetching
- Partial agent failures keep the request successful
- Exceptions and timeouts degrade to the fallback reply
- Synthesis through the completion collaborator and its fallback
"""
import asyncio

import pytest

from brain.core.config import Settings
from brain.services.agents.base import AgentAction, SourceAgent
from brain.services.orchestration import formatting
from brain.services.orchestration.completion import CompletionError
from brain.services.orchestration.orchestrator import Orchestrator, select_action
from brain.services.orchestration.registry import AgentRegistry
from brain.services.orchestration.schema import (
    FALLBACK_STRATEGY,
    Intent,
    IntentCategory,
    SourceType,
    Timeframe,
)

LONG_TEXT = "x" * 150

PAYLOADS = {
    AgentAction.GET_RECENT_MESSAGES.value: {
        "messages": [{"user": "alice", "channel": "general", "text": LONG_TEXT}],
        "total": 1,
    },
    AgentAction.ANALYZE_CONVERSATIONS.value: {
        "timeframe": "week",
        "analysis": {
            "sentiment": {"classification": "positive", "score": 0.4},
            "tasks": [{"priority": "urgent"}, {"priority": "normal"}],
            "summary": "Busy week",
        },
    },
    AgentAction.SEARCH_MESSAGES.value: {"messages": [], "total": 0, "source": "none"},
    AgentAction.SEND_NOTIFICATION.value: {"sent": True},
}


class RecordingAgent(SourceAgent):
    """Returns canned payloads and records every call."""

    agent_type = "slack"
    data_source = "test"

    def __init__(self, context_id, calls, delay=0.0, timeout_seconds=1.0):
        super().__init__(context_id, timeout_seconds=timeout_seconds)
        self.calls = calls
        self.delay = delay

    def actions(self):
        return {action.value: self._handler(action.value) for action in AgentAction}

    def _handler(self, action):
        async def handle(params):
            self.calls.append((action, params))
            if self.delay:
                await asyncio.sleep(self.delay)
            return PAYLOADS[action]
        return handle


class BrokenAgent(SourceAgent):
    agent_type = "gmail"
    data_source = "test"

    def actions(self):
        async def fail(params):
            raise RuntimeError("mailbox exploded")
        return {action.value: fail for action in AgentAction}


class ExplodingClassifier:
    def classify(self, message):
        raise RuntimeError("classifier crashed")


@pytest.fixture
def calls():
    return []


def make_orchestrator(calls, debug=True, completion=None, factories=None, **settings):
    registry = AgentRegistry(
        factories=factories or {"slack": lambda ctx: RecordingAgent(ctx, calls)}
    )
    return Orchestrator(
        settings=Settings(debug=debug, **settings),
        registry=registry,
        completion=completion,
    )


class TestDirectResponses:
    @pytest.mark.asyncio
    async def test_greeting_without_agents(self, calls):
        result = await make_orchestrator(calls).process("hi", context_id="ctx")

        assert result.success is True
        assert result.metadata.strategy == "direct_response"
        assert result.metadata.agents_used == []
        assert result.metadata.intent.category == IntentCategory.GREETING
        assert result.metadata.confidence == 0.9
        assert result.response == formatting.GREETING_REPLIES["en"]
        assert calls == []

    @pytest.mark.asyncio
    async def test_chinese_greeting_reply(self, calls):
        result = await make_orchestrator(calls).process("你好", context_id="ctx")

        assert result.response == formatting.GREETING_REPLIES["zh"]

    @pytest.mark.asyncio
    async def test_casual_reply(self, calls):
        result = await make_orchestrator(calls).process("what's the weather like?", context_id="ctx")

        assert result.metadata.strategy == "direct_response"
        assert result.metadata.confidence == 0.95
        assert result.response == formatting.CASUAL_REPLIES["en"]

    @pytest.mark.asyncio
    async def test_no_context_disables_data_fetching(self, calls):
        result = await make_orchestrator(calls).process("今天有什么重要邮件吗")

        relevance = result.metadata.context_relevance
        assert result.success is True
        assert result.metadata.intent.category == IntentCategory.WORK_QUERY
        assert relevance.needs_context_data is False
        assert relevance.required_sources == []
        assert result.metadata.strategy == "direct_response"
        assert result.response == formatting.no_workspace_reply("zh")
        assert calls == []


class TestSingleAgent:
    @pytest.mark.asyncio
    async def test_work_query_runs_slack(self, calls):
        result = await make_orchestrator(calls).process("今天有什么重要邮件吗", context_id="ctx")

        assert result.success is True
        assert result.metadata.intent.category == IntentCategory.WORK_QUERY
        assert SourceType.GMAIL in result.metadata.context_relevance.required_sources
        assert result.metadata.strategy == "single_subagent"
        assert result.metadata.agents_used == ["slack"]
        assert result.metadata.confidence == 0.8
        assert calls == [("get_recent_messages", {"days": 7, "limit": 20})]
        assert "**Recent team messages**" in result.response
        assert "x" * 100 + "..." in result.response
        assert "Found 1 relevant messages in total." in result.response

    @pytest.mark.asyncio
    async def test_unknown_with_context_uses_default_agent(self, calls):
        result = await make_orchestrator(calls).process("tell me something interesting", context_id="ctx")

        assert result.metadata.strategy == "complex_workflow"
        assert result.metadata.agents_used == ["slack"]
        assert calls[0][0] == "get_recent_messages"

    @pytest.mark.asyncio
    async def test_search_wording_selects_search(self, calls):
        result = await make_orchestrator(calls).process("search deployment notes", context_id="ctx")

        assert calls == [("search_messages", {"query": "deployment notes", "limit": 10})]
        assert result.response == formatting.NO_MESSAGES_REPLY

    @pytest.mark.asyncio
    async def test_agent_timeout_keeps_request_successful(self, calls):
        orchestrator = make_orchestrator(
            calls,
            factories={"slack": lambda ctx: RecordingAgent(ctx, calls, delay=1.0, timeout_seconds=0.05)},
        )

        result = await orchestrator.process("今天有什么重要邮件吗", context_id="ctx")

        assert result.success is True
        assert result.response == formatting.AGENT_FAILED_REPLY
        assert "timed out" in result.debug.raw_agent_results["slack"].error


class TestMultiAgent:
    @pytest.mark.asyncio
    async def test_team_analysis_fans_out(self, calls):
        result = await make_orchestrator(calls).process("分析一下团队最近的工作情况", context_id="ctx")

        assert result.success is True
        assert result.metadata.intent.category == IntentCategory.COMPLEX_ANALYSIS
        assert result.metadata.context_relevance.required_sources == [
            SourceType.SLACK, SourceType.GMAIL, SourceType.JIRA,
        ]
        assert result.metadata.strategy == "multi_subagent"
        assert result.metadata.agents_used == ["slack", "gmail", "jira"]
        assert result.metadata.confidence == 0.9
        assert calls == [("analyze_conversations", {"timeframe": "week"})]

        raw = result.debug.raw_agent_results
        assert set(raw) == {"slack", "gmail", "jira"}
        assert raw["slack"].success is True
        assert raw["gmail"].success is False
        assert raw["jira"].error == "jira agent is not implemented yet"

        assert "**SLACK data**" in result.response
        assert "**Team sentiment**: positive (score: 0.4)" in result.response
        assert "**Tasks identified**: 2, 1 urgent" in result.response
        assert "GMAIL" not in result.response
        assert "JIRA" not in result.response

    @pytest.mark.asyncio
    async def test_failed_agent_section_is_omitted(self, calls):
        orchestrator = make_orchestrator(
            calls,
            factories={
                "slack": lambda ctx: RecordingAgent(ctx, calls),
                "gmail": lambda ctx: BrokenAgent(ctx),
            },
        )

        result = await orchestrator.process("analyze the team's recent work", context_id="ctx")

        assert result.success is True
        assert result.debug.raw_agent_results["gmail"].error == "mailbox exploded"
        assert "**SLACK data**" in result.response
        assert "GMAIL" not in result.response
        assert formatting.SECTION_DIVIDER not in result.response

    @pytest.mark.asyncio
    async def test_agent_construction_failure_is_isolated(self, calls):
        def crash(ctx):
            raise RuntimeError("no jira credentials")

        orchestrator = make_orchestrator(
            calls,
            factories={"slack": lambda ctx: RecordingAgent(ctx, calls), "jira": crash},
        )

        result = await orchestrator.process("分析一下团队最近的工作情况", context_id="ctx")

        jira = result.debug.raw_agent_results["jira"]
        assert result.success is True
        assert jira.success is False
        assert jira.error == "no jira credentials"
        assert jira.metadata.agent_type == "jira"

    @pytest.mark.asyncio
    async def test_all_agents_failing_reports_no_data(self, calls):
        orchestrator = make_orchestrator(calls, factories={"slack": lambda ctx: BrokenAgent(ctx)})

        result = await orchestrator.process("分析一下团队最近的工作情况", context_id="ctx")

        assert result.success is True
        assert result.response == formatting.NO_DATA_REPLY


class TestFailures:
    @pytest.mark.asyncio
    async def test_exception_returns_fallback(self, calls):
        orchestrator = make_orchestrator(calls)
        orchestrator.classifier = ExplodingClassifier()

        result = await orchestrator.process("any important emails today?", context_id="ctx")

        assert result.success is False
        assert result.metadata.strategy == FALLBACK_STRATEGY
        assert result.metadata.confidence == 0.1
        assert result.metadata.intent.category == IntentCategory.UNKNOWN
        assert result.metadata.intent.confidence == 0.0
        assert result.metadata.agents_used == []
        assert result.response == formatting.fallback_reply("en")

    @pytest.mark.asyncio
    async def test_process_timeout_returns_fallback(self, calls):
        orchestrator = make_orchestrator(
            calls,
            factories={"slack": lambda ctx: RecordingAgent(ctx, calls, delay=1.0)},
            process_timeout_seconds=0.05,
        )

        result = await orchestrator.process("今天有什么重要邮件吗", context_id="ctx")

        assert result.success is False
        assert result.metadata.strategy == FALLBACK_STRATEGY
        assert result.response == formatting.fallback_reply("zh")

    @pytest.mark.asyncio
    async def test_same_message_same_decision(self, calls):
        orchestrator = make_orchestrator(calls)

        first = await orchestrator.process("分析一下团队最近的工作情况", context_id="ctx")
        second = await orchestrator.process("分析一下团队最近的工作情况", context_id="ctx")

        assert first.metadata.strategy == second.metadata.strategy
        assert first.metadata.agents_used == second.metadata.agents_used
        assert first.response == second.response


class TestSynthesis:
    @pytest.mark.asyncio
    async def test_detailed_analysis_is_synthesized(self, calls):
        prompts = []

        async def complete(prompt):
            prompts.append(prompt)
            return "  Your team had a busy, positive week.  "

        result = await make_orchestrator(calls, completion=complete).process(
            "分析一下团队最近的工作情况", context_id="ctx"
        )

        assert result.response == "Your team had a busy, positive week."
        assert "分析一下团队最近的工作情况" in prompts[0]
        assert "**SLACK data**" in prompts[0]

    @pytest.mark.asyncio
    async def test_completion_failure_keeps_template(self, calls):
        async def complete(prompt):
            raise CompletionError("service down")

        result = await make_orchestrator(calls, completion=complete).process(
            "分析一下团队最近的工作情况", context_id="ctx"
        )

        assert result.success is True
        assert "**SLACK data**" in result.response
        assert "Synthesis failed, using templated response" in result.debug.logs

    @pytest.mark.asyncio
    async def test_empty_completion_keeps_template(self, calls):
        async def complete(prompt):
            return "   "

        result = await make_orchestrator(calls, completion=complete).process(
            "分析一下团队最近的工作情况", context_id="ctx"
        )

        assert "**SLACK data**" in result.response

    @pytest.mark.asyncio
    async def test_simple_work_is_not_synthesized(self, calls):
        prompts = []

        async def complete(prompt):
            prompts.append(prompt)
            return "unused"

        await make_orchestrator(calls, completion=complete).process("今天有什么重要邮件吗", context_id="ctx")

        assert prompts == []

    @pytest.mark.asyncio
    async def test_synthesis_can_be_disabled(self, calls):
        prompts = []

        async def complete(prompt):
            prompts.append(prompt)
            return "unused"

        orchestrator = make_orchestrator(calls, completion=complete, enable_synthesis=False)
        await orchestrator.process("分析一下团队最近的工作情况", context_id="ctx")

        assert prompts == []


class TestDebugInfo:
    @pytest.mark.asyncio
    async def test_debug_payload(self, calls):
        result = await make_orchestrator(calls).process("今天有什么重要邮件吗", context_id="ctx")

        assert result.debug is not None
        assert result.debug.logs[0] == "Started processing request"
        assert any(log.startswith("Decision made: single_subagent") for log in result.debug.logs)
        assert "single_subagent" in result.debug.reasoning
        assert set(result.debug.raw_agent_results) == {"slack"}

    @pytest.mark.asyncio
    async def test_no_debug_payload_by_default(self, calls):
        result = await make_orchestrator(calls, debug=False).process("hi", context_id="ctx")

        assert result.debug is None


@pytest.mark.parametrize(
    "message,timeframe,expected",
    [
        ("analyze today's chat", Timeframe.TODAY, ("analyze_conversations", {"timeframe": "day"})),
        ("分析本月", Timeframe.THIS_MONTH, ("analyze_conversations", {"timeframe": "month"})),
        ("analysis please", None, ("analyze_conversations", {"timeframe": "week"})),
        ("find the deploy thread", None, ("search_messages", {"query": "the deploy thread", "limit": 10})),
        ("搜索发布说明", None, ("search_messages", {"query": "发布说明", "limit": 10})),
        ("please search deploy notes", None, ("search_messages", {"query": "please deploy notes", "limit": 10})),
        ("research project status today", Timeframe.TODAY, ("get_recent_messages", {"days": 7, "limit": 20})),
        ("findings from the psychoanalysis", None, ("get_recent_messages", {"days": 7, "limit": 20})),
        ("what happened", None, ("get_recent_messages", {"days": 7, "limit": 20})),
    ],
)
def test_select_action(message, timeframe, expected):
    intent = Intent(category=IntentCategory.UNKNOWN, confidence=0.3, timeframe=timeframe)

    assert select_action(message, intent) == expected
