"""
Pydantic models for the orchestration core.

Data flow:
    message -> Intent -> ContextRelevance -> Decision -> [SubAgentResult] -> OrchestrationResult

Intent, ContextRelevance and Decision are immutable and live for a single
request. OrchestrationResult is the only object returned to callers.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class IntentCategory(str, Enum):
    GREETING = "greeting"
    CASUAL = "casual"
    WORK_QUERY = "work_query"
    COMPLEX_ANALYSIS = "complex_analysis"
    UNKNOWN = "unknown"


class Timeframe(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"


class Scope(str, Enum):
    PERSONAL = "personal"
    TEAM = "team"
    PROJECT = "project"
    ORGANIZATION = "organization"


class SourceType(str, Enum):
    """External data sources; also used as agent identifiers."""
    SLACK = "slack"
    GMAIL = "gmail"
    JIRA = "jira"
    GITHUB = "github"


class ResponseType(str, Enum):
    CASUAL = "casual"
    SIMPLE_WORK = "simple_work"
    DETAILED_ANALYSIS = "detailed_analysis"


class Strategy(str, Enum):
    DIRECT_RESPONSE = "direct_response"
    SINGLE_SUBAGENT = "single_subagent"
    MULTI_SUBAGENT = "multi_subagent"
    # Degrades to a single default agent; no multi-step planning behind it.
    COMPLEX_WORKFLOW = "complex_workflow"


# Reported in OrchestrationResult.metadata.strategy when processing failed.
FALLBACK_STRATEGY = "fallback"


class Intent(BaseModel):
    """Categorized user request."""

    model_config = ConfigDict(frozen=True)

    category: IntentCategory
    confidence: float = Field(..., ge=0.0, le=1.0)
    entities: List[str] = Field(default_factory=list)
    timeframe: Optional[Timeframe] = None
    scope: Optional[Scope] = None


class ContextRelevance(BaseModel):
    """Whether (and from where) workspace data is needed to answer an intent."""

    model_config = ConfigDict(frozen=True)

    is_work_related: bool
    needs_context_data: bool
    relevance_score: float = Field(..., ge=0.0, le=1.0)
    required_sources: List[SourceType] = Field(default_factory=list)
    response_type: ResponseType


class Decision(BaseModel):
    """Processing strategy chosen for one request."""

    model_config = ConfigDict(frozen=True)

    strategy: Strategy
    assigned_agents: List[str] = Field(default_factory=list)
    context_sources: List[SourceType] = Field(default_factory=list)
    processing_plan: str
    estimated_time_ms: int


class SubAgentMetadata(BaseModel):
    agent_type: str
    action: str
    processing_time_ms: int
    data_source: str


class SubAgentResult(BaseModel):
    """Outcome of one source agent action; failures are data, not exceptions."""

    success: bool
    data: Any = None
    metadata: SubAgentMetadata
    error: Optional[str] = None


class OrchestrationMetadata(BaseModel):
    strategy: str
    intent: Intent
    context_relevance: ContextRelevance
    agents_used: List[str] = Field(default_factory=list)
    processing_time_ms: int
    confidence: float = Field(..., ge=0.0, le=1.0)


class DebugInfo(BaseModel):
    logs: List[str] = Field(default_factory=list)
    raw_agent_results: Dict[str, SubAgentResult] = Field(default_factory=dict)
    reasoning: str = ""


class OrchestrationResult(BaseModel):
    """Externally visible output of `Orchestrator.process`."""

    success: bool
    response: str
    metadata: OrchestrationMetadata
    debug: Optional[DebugInfo] = None
