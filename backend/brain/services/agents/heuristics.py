"""
Message-level keyword heuristics.

Bag-of-words checks over literal keyword tables (English and Chinese side
by side). Used for webhook enrichment and for analysis insights.
"""
from typing import Dict, List, Tuple

IMPORTANT_KEYWORDS: Tuple[str, ...] = ("urgent", "紧急", "critical", "重要", "deadline", "截止", "asap")
BUG_KEYWORDS: Tuple[str, ...] = ("bug", "error", "错误", "issue", "问题", "broken", "坏了", "crash", "崩溃")
TASK_KEYWORDS: Tuple[str, ...] = ("assign", "分配", "todo", "待办", "task", "任务", "@")
POSITIVE_WORDS: Tuple[str, ...] = ("good", "好", "great", "棒", "excellent", "优秀", "thanks", "谢谢")
NEGATIVE_WORDS: Tuple[str, ...] = ("bad", "坏", "terrible", "糟糕", "problem", "问题", "wrong", "错误")

TODO_MARKERS: Tuple[str, ...] = ("TODO", "待办")
REQUEST_MARKERS: Tuple[str, ...] = ("请", "please")
DEADLINE_MARKERS: Tuple[str, ...] = ("deadline", "截止")
QUESTION_MARKERS: Tuple[str, ...] = ("?", "？")

# Weights summed into the importance score.
IMPORTANCE_WEIGHTS = {
    "important": 3,
    "bug_report": 2,
    "task_assignment": 2,
    "long_message": 1,
    "mention": 1,
}
LONG_MESSAGE_CHARS = 100
MAX_IMPORTANCE = 5


def _contains_any(text: str, keywords: Tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def _count_present(text: str, keywords: Tuple[str, ...]) -> int:
    lowered = text.lower()
    return sum(1 for keyword in keywords if keyword in lowered)


def is_important(text: str) -> bool:
    return _contains_any(text, IMPORTANT_KEYWORDS)


def is_bug_report(text: str) -> bool:
    return _contains_any(text, BUG_KEYWORDS)


def is_task_assignment(text: str) -> bool:
    return _contains_any(text, TASK_KEYWORDS)


def analyze_sentiment(text: str) -> str:
    """Coarse sentiment label: positive, negative or neutral (ties are neutral)."""
    positive = _count_present(text, POSITIVE_WORDS)
    negative = _count_present(text, NEGATIVE_WORDS)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def message_importance(text: str) -> int:
    """Bounded 0-5 importance score."""
    score = 0
    if is_important(text):
        score += IMPORTANCE_WEIGHTS["important"]
    if is_bug_report(text):
        score += IMPORTANCE_WEIGHTS["bug_report"]
    if is_task_assignment(text):
        score += IMPORTANCE_WEIGHTS["task_assignment"]
    if len(text) > LONG_MESSAGE_CHARS:
        score += IMPORTANCE_WEIGHTS["long_message"]
    if "@" in text:
        score += IMPORTANCE_WEIGHTS["mention"]
    return min(score, MAX_IMPORTANCE)


def categorize_message(text: str) -> str:
    if is_bug_report(text):
        return "bug_report"
    if is_task_assignment(text):
        return "task_assignment"
    if is_important(text):
        return "important_announcement"
    if any(marker in text for marker in QUESTION_MARKERS):
        return "question"
    return "general_discussion"


def extract_action_items(text: str) -> List[str]:
    items: List[str] = []
    if any(marker in text for marker in TODO_MARKERS):
        items.append("has_todo_item")
    if "@" in text and _contains_any(text, REQUEST_MARKERS):
        items.append("has_request")
    if _contains_any(text, DEADLINE_MARKERS):
        items.append("has_deadline")
    return items


def enhance_message(text: str) -> Dict[str, object]:
    """Enhancement tags plus importance, category and action items for one message."""
    enhancements: List[str] = []
    if is_important(text):
        enhancements.append("important_message_detected")
    if is_bug_report(text):
        enhancements.append("bug_report_detected")
    if is_task_assignment(text):
        enhancements.append("task_assignment_detected")

    sentiment = analyze_sentiment(text)
    if sentiment != "neutral":
        enhancements.append(f"sentiment_{sentiment}")

    return {
        "enhancements": enhancements,
        "importance": message_importance(text),
        "category": categorize_message(text),
        "action_items": extract_action_items(text),
        "sentiment": sentiment,
    }
