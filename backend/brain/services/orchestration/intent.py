"""
Pattern-based intent classifier.

Responsibilities:
- Categorize a free-text request (greeting / casual / work query /
  complex analysis / unknown) from the literal tables in `patterns`
- Extract entities, timeframe and scope for work-related categories
- Never raise: anything unmatched is `unknown` with low confidence

Rules are evaluated top-down and the first match wins. Casual chat is
checked first so small talk never reaches a data-fetching path.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional

from brain.core.logging import get_logger
from brain.services.orchestration import patterns
from brain.services.orchestration.schema import (
    Intent,
    IntentCategory,
    Scope,
    Timeframe,
)

logger = get_logger(__name__)

UNKNOWN_CONFIDENCE = 0.3


def normalize_message(message: str) -> str:
    return (message or "").strip().lower()


def extract_entities(text: str) -> List[str]:
    """
    Ordered, de-duplicated entities: @mentions, "project <name>" names,
    then work nouns that hint at a data source.
    """
    found: List[str] = []
    found.extend(patterns.MENTION_PATTERN.findall(text))
    found.extend(patterns.PROJECT_NAME_PATTERN.findall(text))
    found.extend(m.group(0) for m in patterns.TOPIC_PATTERN.finditer(text))

    entities: List[str] = []
    for entity in found:
        if entity and entity not in entities:
            entities.append(entity)
    return entities


def extract_timeframe(text: str) -> Optional[Timeframe]:
    for pattern, timeframe in patterns.TIMEFRAME_TABLE:
        if pattern.search(text):
            return timeframe
    return None


def extract_scope(text: str) -> Scope:
    for pattern, scope in patterns.SCOPE_TABLE:
        if pattern.search(text):
            return scope
    return Scope.TEAM


def _is_casual(text: str) -> bool:
    return patterns.matches_any(patterns.CASUAL_PATTERNS, text)


def _is_work_query(text: str) -> bool:
    return (
        patterns.matches_any(patterns.WORK_QUERY_PATTERNS, text)
        and not patterns.matches_any(patterns.ANALYSIS_VERB_PATTERNS, text)
    )


def _is_complex_analysis(text: str) -> bool:
    return patterns.matches_any(patterns.COMPLEX_ANALYSIS_PATTERNS, text)


def _is_greeting(text: str) -> bool:
    return patterns.matches_any(patterns.GREETING_PATTERNS, text)


def _personal_details(text: str) -> dict:
    return {"scope": Scope.PERSONAL}


def _work_details(text: str) -> dict:
    return {
        "entities": extract_entities(text),
        "timeframe": extract_timeframe(text),
        "scope": extract_scope(text),
    }


@dataclass(frozen=True)
class IntentRule:
    """One row of the ordered classification table."""

    category: IntentCategory
    confidence: float
    matches: Callable[[str], bool]
    extract: Callable[[str], dict]


DEFAULT_RULES: List[IntentRule] = [
    IntentRule(IntentCategory.CASUAL, 0.95, _is_casual, _personal_details),
    IntentRule(IntentCategory.WORK_QUERY, 0.8, _is_work_query, _work_details),
    IntentRule(IntentCategory.COMPLEX_ANALYSIS, 0.9, _is_complex_analysis, _work_details),
    IntentRule(IntentCategory.GREETING, 0.9, _is_greeting, _personal_details),
]


class IntentClassifier:
    """Deterministic bilingual classifier over an ordered rule table."""

    def __init__(self, rules: Optional[List[IntentRule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def classify(self, message: str) -> Intent:
        text = normalize_message(message)
        if not text:
            return Intent(category=IntentCategory.UNKNOWN, confidence=UNKNOWN_CONFIDENCE)

        for rule in self.rules:
            try:
                matched = rule.matches(text)
            except Exception as exc:
                logger.warning(
                    "intent_rule_failed",
                    category=rule.category.value,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                continue
            if matched:
                return Intent(
                    category=rule.category,
                    confidence=rule.confidence,
                    **rule.extract(text),
                )

        return Intent(category=IntentCategory.UNKNOWN, confidence=UNKNOWN_CONFIDENCE)
