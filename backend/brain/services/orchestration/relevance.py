"""
Relevance scorer: decides whether an intent needs workspace data.

Responsibilities:
- Map an Intent to a ContextRelevance using a fixed table
- Derive required data sources for simple work queries from entity hints
- Build synthesis prompts per response type

The scorer is pure and total: unmatched categories get the "no context"
default.
"""
from typing import Dict, List, Optional, Tuple

from brain.services.orchestration.patterns import SOURCE_HINTS
from brain.services.orchestration.schema import (
    ContextRelevance,
    Intent,
    IntentCategory,
    ResponseType,
    Scope,
    SourceType,
)

ANALYSIS_SOURCES: List[SourceType] = [SourceType.SLACK, SourceType.GMAIL, SourceType.JIRA]

# category -> (is_work_related, needs_context_data, relevance_score, response_type)
RELEVANCE_TABLE: Dict[IntentCategory, Tuple[bool, bool, float, ResponseType]] = {
    IntentCategory.GREETING: (False, False, 0.0, ResponseType.CASUAL),
    IntentCategory.CASUAL: (False, False, 0.0, ResponseType.CASUAL),
    IntentCategory.WORK_QUERY: (True, True, 0.7, ResponseType.SIMPLE_WORK),
    IntentCategory.COMPLEX_ANALYSIS: (True, True, 0.9, ResponseType.DETAILED_ANALYSIS),
    IntentCategory.UNKNOWN: (False, False, 0.1, ResponseType.CASUAL),
}

NO_CONTEXT = (False, False, 0.1, ResponseType.CASUAL)


def _hint_matches(hint: str, entity: str) -> bool:
    # Short hints ("pr") would match inside unrelated words.
    if len(hint) <= 2:
        return entity == hint
    return hint in entity


def derive_work_sources(intent: Intent) -> List[SourceType]:
    """
    Sources for a simple work query, in a stable order.

    Email hints add gmail, task/bug hints add jira, code/PR hints add
    github. Slack is added when nothing else matched or the scope is team.
    """
    entities = [e.lower() for e in intent.entities]
    sources: List[SourceType] = []
    for source, hints in SOURCE_HINTS:
        if any(_hint_matches(hint, entity) for hint in hints for entity in entities):
            sources.append(source)

    if not sources or intent.scope == Scope.TEAM:
        sources.append(SourceType.SLACK)
    return sources


class RelevanceScorer:
    """Maps intents to context needs."""

    def score(self, intent: Intent) -> ContextRelevance:
        is_work, needs_context, relevance, response_type = RELEVANCE_TABLE.get(
            intent.category, NO_CONTEXT
        )

        sources: List[SourceType] = []
        if needs_context:
            if intent.category == IntentCategory.COMPLEX_ANALYSIS:
                sources = list(ANALYSIS_SOURCES)
            else:
                sources = derive_work_sources(intent)

        return ContextRelevance(
            is_work_related=is_work,
            needs_context_data=needs_context,
            relevance_score=relevance,
            required_sources=sources,
            response_type=response_type,
        )


PROMPT_TEMPLATES: Dict[ResponseType, str] = {
    ResponseType.CASUAL: (
        "You are a friendly assistant. The user is making small talk.\n\n"
        "User: {message}\n\n"
        "Reply briefly and warmly, like chatting with a friend. "
        "Do not bring up work data or analysis. Answer in the user's language."
    ),
    ResponseType.SIMPLE_WORK: (
        "You are a workplace assistant. The user asks a simple work question.\n\n"
        "Question: {message}\n\n"
        "{context_block}"
        "Give a short, useful answer focused on the question. "
        "Answer in the user's language."
    ),
    ResponseType.DETAILED_ANALYSIS: (
        "You are a workplace assistant specialised in in-depth work analysis.\n\n"
        "Request: {message}\n\n"
        "{context_block}"
        "Provide a thorough analysis with trends, recommendations and action items, "
        "using clear formatting. Answer in the user's language."
    ),
}

CONTEXT_HEADINGS: Dict[ResponseType, str] = {
    ResponseType.SIMPLE_WORK: "Relevant information:",
    ResponseType.DETAILED_ANALYSIS: "Detailed work context:",
}


def build_prompt(
    message: str,
    relevance: ContextRelevance,
    context_text: Optional[str] = None,
) -> str:
    """Prompt for the text-completion collaborator."""
    heading = CONTEXT_HEADINGS.get(relevance.response_type)
    context_block = ""
    if heading and context_text:
        context_block = f"{heading}\n{context_text}\n\n"

    template = PROMPT_TEMPLATES.get(relevance.response_type, PROMPT_TEMPLATES[ResponseType.CASUAL])
    return template.format(message=message, context_block=context_block)
