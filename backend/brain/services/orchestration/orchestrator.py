"""
Orchestrator: the single entry point of the core.

Responsibilities:
- classify -> score -> decide -> execute -> format, for one message
- Run the chosen source agents (in parallel for multi-agent strategies)
- Optionally hand detailed analyses to the text-completion collaborator
- Never raise: any failure becomes a degraded OrchestrationResult

NON-responsibilities:
- Does NOT persist messages or results
- Does NOT authenticate callers
- Does NOT retry; callers re-invoke `process` if they want retries
"""
import asyncio
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Pattern, Tuple

from brain.core.config import Settings, get_settings
from brain.core.logging import get_logger, set_context_id, set_user_id
from brain.core.metrics import record_intent, record_orchestration
from brain.services.agents.base import AgentAction, build_result
from brain.services.agents.slack import SlackAgent
from brain.services.orchestration import formatting, planner
from brain.services.orchestration.completion import get_completion_client
from brain.services.orchestration.intent import IntentClassifier
from brain.services.orchestration.patterns import (
    ANALYZE_ACTION_TOKENS,
    SEARCH_ACTION_TOKENS,
    detect_language,
)
from brain.services.orchestration.registry import AgentRegistry
from brain.services.orchestration.relevance import RelevanceScorer, build_prompt
from brain.services.orchestration.schema import (
    FALLBACK_STRATEGY,
    ContextRelevance,
    Decision,
    DebugInfo,
    Intent,
    IntentCategory,
    OrchestrationMetadata,
    OrchestrationResult,
    ResponseType,
    SourceType,
    Strategy,
    SubAgentResult,
    Timeframe,
)
from brain.services.slack.store import SlackMessageStore

logger = get_logger(__name__)

Completion = Callable[[str], Awaitable[str]]

SINGLE_AGENT_CONFIDENCE = 0.8
MULTI_AGENT_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.1

SEARCH_LIMIT = 10
RECENT_DAYS = 7
RECENT_LIMIT = 20

ANALYSIS_PERIODS = {
    Timeframe.TODAY: "day",
    Timeframe.YESTERDAY: "week",
    Timeframe.THIS_WEEK: "week",
    Timeframe.THIS_MONTH: "month",
}


def _token_pattern(tokens: Tuple[str, ...]) -> Pattern[str]:
    """Alternation of `tokens`; ASCII words only match as whole words."""
    parts = [
        rf"\b{re.escape(token)}\b" if token.isascii() else re.escape(token)
        for token in tokens
    ]
    return re.compile("|".join(parts), re.IGNORECASE)


_ANALYZE_TOKEN_PATTERN = _token_pattern(ANALYZE_ACTION_TOKENS)
_SEARCH_TOKEN_PATTERN = _token_pattern(SEARCH_ACTION_TOKENS)


def select_action(message: str, intent: Intent) -> Tuple[str, Dict[str, Any]]:
    """
    Pick one agent action from the wording of the message.

    "analyze" tokens select a conversation analysis, "search" tokens a
    search (with the token itself stripped from the query), anything else
    the recent-activity listing.
    """
    if _ANALYZE_TOKEN_PATTERN.search(message):
        period = ANALYSIS_PERIODS.get(intent.timeframe, "week")
        return AgentAction.ANALYZE_CONVERSATIONS.value, {"timeframe": period}
    if _SEARCH_TOKEN_PATTERN.search(message):
        query = " ".join(_SEARCH_TOKEN_PATTERN.sub(" ", message).split()) or message
        return AgentAction.SEARCH_MESSAGES.value, {"query": query, "limit": SEARCH_LIMIT}
    return AgentAction.GET_RECENT_MESSAGES.value, {"days": RECENT_DAYS, "limit": RECENT_LIMIT}


def build_default_registry(settings: Settings) -> AgentRegistry:
    """Registry with every concrete agent; other sources resolve to UnimplementedAgent."""
    store = SlackMessageStore()
    return AgentRegistry(
        factories={
            SourceType.SLACK.value: lambda context_id: SlackAgent.from_settings(
                context_id, settings, store=store
            ),
        },
        ttl_seconds=settings.agent_cache_ttl_seconds,
    )


class Orchestrator:
    """Coordinates classification, agent execution and response formatting."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        classifier: Optional[IntentClassifier] = None,
        scorer: Optional[RelevanceScorer] = None,
        registry: Optional[AgentRegistry] = None,
        completion: Optional[Completion] = None,
    ):
        self.settings = settings or get_settings()
        self.debug = self.settings.debug
        self.classifier = classifier or IntentClassifier()
        self.scorer = scorer or RelevanceScorer()
        self.registry = registry or build_default_registry(self.settings)
        self.completion = completion

    async def process(
        self,
        message: str,
        context_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> OrchestrationResult:
        """
        Answer one message.

        Never raises. Failures and timeouts produce success=False with the
        capability-listing fallback text and near-zero confidence.
        """
        started_at = time.perf_counter()
        set_user_id(user_id)
        set_context_id(context_id)
        try:
            result = await asyncio.wait_for(
                self._process(message, context_id, started_at),
                timeout=self.settings.process_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                "orchestrator_timeout",
                timeout_seconds=self.settings.process_timeout_seconds,
            )
            result = self._fallback_result(message, started_at)
        except Exception as exc:
            logger.error(
                "orchestrator_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            result = self._fallback_result(message, started_at)
        finally:
            set_user_id(None)
            set_context_id(None)

        record_orchestration(
            strategy=result.metadata.strategy,
            success=result.success,
            duration_seconds=time.perf_counter() - started_at,
        )
        return result

    async def _process(
        self,
        message: str,
        context_id: Optional[str],
        started_at: float,
    ) -> OrchestrationResult:
        logs: List[str] = []
        self._step(logs, "orchestrator_started", "Started processing request", has_context=bool(context_id))

        intent = self.classifier.classify(message)
        record_intent(intent.category.value)
        self._step(
            logs,
            "orchestrator_intent_classified",
            f"Intent classified: {intent.category.value} ({intent.confidence})",
            category=intent.category.value,
            confidence=intent.confidence,
            entities=intent.entities,
        )

        relevance = self.scorer.score(intent)
        has_context = bool(context_id)
        if not has_context and relevance.needs_context_data:
            # Nothing to query without a workspace.
            relevance = relevance.model_copy(
                update={"needs_context_data": False, "required_sources": []}
            )
            self._step(logs, "orchestrator_context_disabled", "No context id: context fetching disabled")

        decision = planner.decide(
            intent,
            relevance,
            is_implemented=self.registry.is_implemented,
            default_agent=self.settings.default_agent,
            has_context=has_context,
        )
        self._step(
            logs,
            "orchestrator_decision_made",
            f"Decision made: {decision.strategy.value} with {len(decision.assigned_agents)} agent(s)",
            strategy=decision.strategy.value,
            agents=decision.assigned_agents,
            plan=decision.processing_plan,
        )

        agent_results: Dict[str, SubAgentResult] = {}
        if decision.strategy == Strategy.DIRECT_RESPONSE:
            response = self._direct_response(message, intent, has_context)
            confidence = intent.confidence
        elif decision.strategy == Strategy.MULTI_SUBAGENT:
            agent_results = await self._run_agents(decision, message, intent, context_id, logs)
            response = formatting.aggregate_results(agent_results)
            confidence = MULTI_AGENT_CONFIDENCE
        else:
            # single_subagent, and complex_workflow degraded to its one default agent
            agent_results = await self._run_agents(decision, message, intent, context_id, logs)
            agent_type = decision.assigned_agents[0]
            response = formatting.format_agent_result(agent_results[agent_type])
            confidence = SINGLE_AGENT_CONFIDENCE

        if self._should_synthesize(relevance, agent_results):
            response = await self._synthesize(message, relevance, response, logs)

        processing_time_ms = int((time.perf_counter() - started_at) * 1000)
        self._step(
            logs,
            "orchestrator_completed",
            f"Total processing completed in {processing_time_ms}ms",
            processing_time_ms=processing_time_ms,
        )

        return OrchestrationResult(
            success=True,
            response=response,
            metadata=OrchestrationMetadata(
                strategy=decision.strategy.value,
                intent=intent,
                context_relevance=relevance,
                agents_used=list(decision.assigned_agents),
                processing_time_ms=processing_time_ms,
                confidence=confidence,
            ),
            debug=DebugInfo(
                logs=logs,
                raw_agent_results=agent_results,
                reasoning=planner.explain_decision(decision, intent),
            ) if self.debug else None,
        )

    def _direct_response(self, message: str, intent: Intent, has_context: bool) -> str:
        language = detect_language(message)
        if intent.category in (IntentCategory.GREETING, IntentCategory.CASUAL) or has_context:
            return formatting.direct_reply(intent.category, language)
        return formatting.no_workspace_reply(language)

    async def _run_agents(
        self,
        decision: Decision,
        message: str,
        intent: Intent,
        context_id: Optional[str],
        logs: List[str],
    ) -> Dict[str, SubAgentResult]:
        """Run every assigned agent concurrently; each failure stays with its agent."""
        action, parameters = select_action(message, intent)
        agents = decision.assigned_agents

        if len(agents) == 1:
            result = await self._run_agent(agents[0], context_id, action, parameters, logs)
            return {agents[0]: result}

        started_at = time.perf_counter()
        outcomes = await asyncio.gather(
            *(self._run_agent(agent_type, context_id, action, parameters, logs) for agent_type in agents),
            return_exceptions=True,
        )

        results: Dict[str, SubAgentResult] = {}
        for agent_type, outcome in zip(agents, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(
                    "orchestrator_agent_crashed",
                    agent_type=agent_type,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                outcome = build_result(
                    agent_type, action, "unavailable", started_at, False,
                    error=str(outcome) or type(outcome).__name__,
                )
            results[agent_type] = outcome
        return results

    async def _run_agent(
        self,
        agent_type: str,
        context_id: Optional[str],
        action: str,
        parameters: Dict[str, Any],
        logs: List[str],
    ) -> SubAgentResult:
        agent = await self.registry.get(agent_type, context_id or "")
        self._step(
            logs,
            "orchestrator_agent_invoked",
            f"Invoking {agent_type} agent: {action}",
            agent_type=agent_type,
            action=action,
        )
        result = await agent.execute(action, parameters)
        self._step(
            logs,
            "orchestrator_agent_completed",
            f"{agent_type} agent finished: success={result.success} "
            f"in {result.metadata.processing_time_ms}ms",
            agent_type=agent_type,
            action=action,
            success=result.success,
            error=result.error,
        )
        return result

    def _should_synthesize(
        self,
        relevance: ContextRelevance,
        agent_results: Dict[str, SubAgentResult],
    ) -> bool:
        return (
            self.completion is not None
            and self.settings.enable_synthesis
            and relevance.response_type == ResponseType.DETAILED_ANALYSIS
            and any(result.success for result in agent_results.values())
        )

    async def _synthesize(
        self,
        message: str,
        relevance: ContextRelevance,
        templated: str,
        logs: List[str],
    ) -> str:
        """Completion text for the templated context; the template itself on any failure."""
        prompt = build_prompt(message, relevance, templated)
        try:
            text = await self.completion(prompt)
        except Exception as exc:
            logger.warning(
                "orchestrator_synthesis_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            logs.append("Synthesis failed, using templated response")
            return templated

        if not text or not text.strip():
            logs.append("Synthesis returned nothing, using templated response")
            return templated

        self._step(logs, "orchestrator_synthesis_completed", "Synthesized response with completion service")
        return text.strip()

    def _fallback_result(self, message: str, started_at: float) -> OrchestrationResult:
        return OrchestrationResult(
            success=False,
            response=formatting.fallback_reply(detect_language(message or "")),
            metadata=OrchestrationMetadata(
                strategy=FALLBACK_STRATEGY,
                intent=Intent(category=IntentCategory.UNKNOWN, confidence=0.0),
                context_relevance=ContextRelevance(
                    is_work_related=False,
                    needs_context_data=False,
                    relevance_score=0.0,
                    required_sources=[],
                    response_type=ResponseType.CASUAL,
                ),
                agents_used=[],
                processing_time_ms=int((time.perf_counter() - started_at) * 1000),
                confidence=FALLBACK_CONFIDENCE,
            ),
        )

    def _step(self, logs: List[str], event: str, description: str, **fields: Any) -> None:
        """Record a processing step in the per-request log and the structured log."""
        logs.append(description)
        log = logger.info if self.debug else logger.debug
        log(event, **fields)

    async def close(self) -> None:
        await self.registry.clear()


_orchestrator: Optional[Orchestrator] = None


def get_orchestrator() -> Orchestrator:
    """
    Global singleton accessor.

    The completion collaborator is attached only when an LLM API key is
    configured; otherwise responses stay templated.
    """
    global _orchestrator
    if _orchestrator is None:
        settings = get_settings()
        completion = get_completion_client().complete if settings.llm_api_key else None
        _orchestrator = Orchestrator(settings=settings, completion=completion)
    return _orchestrator
