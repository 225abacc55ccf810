"""
Templated response rendering.

Direct replies and the failure message come in both supported languages;
agent data is rendered as markdown-flavoured text.
"""
from typing import Any, Dict, List, Mapping

from brain.services.orchestration.schema import IntentCategory, SubAgentResult

MESSAGE_PREVIEW_COUNT = 3
MESSAGE_PREVIEW_CHARS = 100
SECTION_DIVIDER = "\n\n---\n\n"

GREETING_REPLIES: Dict[str, str] = {
    "en": "Hi! I'm AI Brain, your workspace assistant. How can I help you today?",
    "zh": "你好！我是AI Brain智能助手。很高兴为你服务！有什么可以帮助你的吗？",
}

CASUAL_REPLIES: Dict[str, str] = {
    "en": "I'm a work assistant, mostly here to help with work-related tasks. "
          "Anything at work I can help you with?",
    "zh": "我是专门的工作助手，主要帮助处理工作相关的任务。有什么工作上的问题需要帮助吗？",
}

NO_WORKSPACE_REPLIES: Dict[str, str] = {
    "en": "I can answer that once a workspace is connected. "
          "Connect Slack or another data source and ask again.",
    "zh": "连接工作空间后我才能查询相关数据。请先连接Slack或其他数据源后再试。",
}

FALLBACK_REPLIES: Dict[str, str] = {
    "en": (
        "Sorry, something went wrong while handling your request. "
        "As your AI Brain assistant I can help you:\n\n"
        "• 📧 Review and analyze emails\n"
        "• 💬 Understand team conversations\n"
        "• 📋 Track task progress\n"
        "• 📊 Provide work analysis\n\n"
        "Please try describing what you need again."
    ),
    "zh": (
        "抱歉，我在处理您的请求时遇到了问题。作为AI Brain智能助手，我可以帮助您：\n\n"
        "• 📧 查看和分析邮件\n"
        "• 💬 理解团队对话\n"
        "• 📋 跟踪任务进度\n"
        "• 📊 提供工作分析\n\n"
        "请尝试重新描述您的需求，我会尽力帮助您。"
    ),
}

AGENT_FAILED_REPLY = "Sorry, I couldn't retrieve that information right now. Please try again later."
NOTHING_FOUND_REPLY = "I processed your request but didn't find any relevant information."
NO_MESSAGES_REPLY = "No recent team messages."
ANALYSIS_EMPTY_REPLY = "Analysis complete, everything looks normal."
NO_DATA_REPLY = "Sorry, I couldn't get any data for this request."


def _pick(replies: Mapping[str, str], language: str) -> str:
    return replies.get(language, replies["en"])


def direct_reply(category: IntentCategory, language: str = "en") -> str:
    """Canned reply for requests answered without any agent."""
    if category == IntentCategory.GREETING:
        return _pick(GREETING_REPLIES, language)
    return _pick(CASUAL_REPLIES, language)


def no_workspace_reply(language: str = "en") -> str:
    return _pick(NO_WORKSPACE_REPLIES, language)


def fallback_reply(language: str = "en") -> str:
    return _pick(FALLBACK_REPLIES, language)


def format_analysis(analysis: Mapping[str, Any]) -> str:
    parts: List[str] = []

    sentiment = analysis.get("sentiment")
    if sentiment:
        parts.append(
            f"**Team sentiment**: {sentiment.get('classification')} "
            f"(score: {sentiment.get('score')})"
        )

    if "tasks" in analysis:
        tasks = analysis.get("tasks") or []
        urgent = sum(1 for task in tasks if task.get("priority") == "urgent")
        parts.append(f"**Tasks identified**: {len(tasks)}, {urgent} urgent")

    summary = analysis.get("summary")
    if summary:
        parts.append(f"**Summary**: {summary}")

    return "\n\n".join(parts) if parts else ANALYSIS_EMPTY_REPLY


def _preview(text: str) -> str:
    if len(text) > MESSAGE_PREVIEW_CHARS:
        return text[:MESSAGE_PREVIEW_CHARS] + "..."
    return text


def format_messages(messages: List[Mapping[str, Any]]) -> str:
    if not messages:
        return NO_MESSAGES_REPLY

    lines = [
        f"• **{msg.get('user_name') or msg.get('user') or 'unknown'}** in "
        f"#{msg.get('channel_name') or msg.get('channel') or 'unknown'}: "
        f"{_preview(msg.get('text') or '')}"
        for msg in messages[:MESSAGE_PREVIEW_COUNT]
    ]
    return (
        "**Recent team messages**:\n"
        + "\n".join(lines)
        + f"\n\nFound {len(messages)} relevant messages in total."
    )


def format_agent_result(result: SubAgentResult) -> str:
    """Render one agent result: analysis block, message list or a generic note."""
    if not result.success:
        return AGENT_FAILED_REPLY

    data = result.data if isinstance(result.data, Mapping) else {}
    if data.get("analysis"):
        return format_analysis(data["analysis"])
    if "messages" in data:
        return format_messages(data.get("messages") or [])
    return NOTHING_FOUND_REPLY


def aggregate_results(results: Mapping[str, SubAgentResult]) -> str:
    """One section per successful agent, in insertion order."""
    sections = [
        f"**{agent_type.upper()} data**: {format_agent_result(result)}"
        for agent_type, result in results.items()
        if result.success
    ]
    return SECTION_DIVIDER.join(sections) if sections else NO_DATA_REPLY
