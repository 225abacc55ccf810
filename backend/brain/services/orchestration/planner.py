"""
Strategy selection for one request.

Pure function of (Intent, ContextRelevance): no I/O, no state. The
orchestrator executes whatever Decision comes out of here.
"""
from typing import Callable, List

from brain.services.orchestration.schema import (
    ContextRelevance,
    Decision,
    Intent,
    IntentCategory,
    SourceType,
    Strategy,
)

BASE_TIME_MS = 500
PER_AGENT_TIME_MS = 1000


def create_processing_plan(strategy: Strategy, agents: List[str]) -> str:
    if strategy == Strategy.DIRECT_RESPONSE:
        return "Generate direct response without agent involvement"
    if strategy == Strategy.SINGLE_SUBAGENT:
        return f"Execute {agents[0]} agent for specialized processing"
    if strategy == Strategy.MULTI_SUBAGENT:
        return f"Coordinate {len(agents)} agents: {', '.join(agents)}"
    return f"Fall back to the default {agents[0]} agent (no multi-step planning)"


def estimate_processing_time(strategy: Strategy, agent_count: int) -> int:
    if strategy == Strategy.DIRECT_RESPONSE:
        return BASE_TIME_MS
    if strategy == Strategy.COMPLEX_WORKFLOW:
        return BASE_TIME_MS + PER_AGENT_TIME_MS * 2
    return BASE_TIME_MS + PER_AGENT_TIME_MS * agent_count


def _best_available(
    sources: List[SourceType],
    is_implemented: Callable[[str], bool],
    default_agent: str,
) -> str:
    for source in sources:
        if is_implemented(source.value):
            return source.value
    return default_agent


def decide(
    intent: Intent,
    relevance: ContextRelevance,
    is_implemented: Callable[[str], bool],
    default_agent: str = SourceType.SLACK.value,
    has_context: bool = True,
) -> Decision:
    """
    Pick a strategy and the agents that will run it.

    - greeting/casual, or no workspace to query: direct_response, no agents
    - work_query: single_subagent on the best available source
    - complex_analysis: multi_subagent over every source when more than
      one is required, single_subagent otherwise
    - anything else: complex_workflow, which runs `default_agent` alone
    """
    sources = list(relevance.required_sources)
    category = intent.category

    if category in (IntentCategory.GREETING, IntentCategory.CASUAL) or not has_context:
        strategy = Strategy.DIRECT_RESPONSE
        agents: List[str] = []
    elif category == IntentCategory.WORK_QUERY:
        strategy = Strategy.SINGLE_SUBAGENT
        agents = [_best_available(sources, is_implemented, default_agent)]
    elif category == IntentCategory.COMPLEX_ANALYSIS:
        if len(sources) > 1:
            strategy = Strategy.MULTI_SUBAGENT
            agents = [source.value for source in sources]
        else:
            strategy = Strategy.SINGLE_SUBAGENT
            agents = [_best_available(sources, is_implemented, default_agent)]
    else:
        strategy = Strategy.COMPLEX_WORKFLOW
        agents = [default_agent]

    return Decision(
        strategy=strategy,
        assigned_agents=agents,
        context_sources=sources,
        processing_plan=create_processing_plan(strategy, agents),
        estimated_time_ms=estimate_processing_time(strategy, len(agents)),
    )


def explain_decision(decision: Decision, intent: Intent) -> str:
    agents = ", ".join(decision.assigned_agents) or "none"
    return (
        f"Based on intent '{intent.category.value}' with confidence {intent.confidence}, "
        f"decided to use '{decision.strategy.value}' strategy with "
        f"{len(decision.assigned_agents)} agent(s): {agents}"
    )
