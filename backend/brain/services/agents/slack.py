"""
Slack source agent.

Responsibilities:
- Search messages: local store first, live Slack search second
- Recent activity, conversation analysis, channel activity, key discussions
- Notifications through chat.postMessage
- Webhook ingestion: enrich incoming events with keyword heuristics and store them

Every public method goes through `execute`, so failures come back as
SubAgentResult(success=False) with timing metadata.
"""
import asyncio
import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from brain.core.config import Settings
from brain.core.logging import get_logger
from brain.services.agents import heuristics
from brain.services.agents.base import ActionHandler, SourceAgent
from brain.services.orchestration.schema import SubAgentResult
from brain.services.slack.api_client import (
    DEFAULT_API_BASE,
    SlackApiClient,
    SlackApiUnavailableError,
)
from brain.services.slack.credentials import SlackCredentialStore
from brain.services.slack.models import SlackMessage, parse_slack_ts
from brain.services.slack.store import SlackMessageStore

logger = get_logger(__name__)


class SlackAction(str, Enum):
    SEARCH_MESSAGES = "search_messages"
    GET_RECENT_MESSAGES = "get_recent_messages"
    ANALYZE_CONVERSATIONS = "analyze_conversations"
    SEND_NOTIFICATION = "send_notification"
    GET_CHANNEL_ACTIVITY = "get_channel_activity"
    FIND_KEY_DISCUSSIONS = "find_key_discussions"
    PROCESS_WEBHOOK_MESSAGE = "process_webhook_message"


TIMEFRAME_DAYS = {"day": 1, "week": 7, "month": 30}

SEARCH_CANDIDATE_LIMIT = 200
ANALYSIS_MESSAGE_LIMIT = 200
ACTIVITY_MESSAGE_LIMIT = 1000
DISCUSSION_MESSAGE_LIMIT = 500
TOP_DISCUSSIONS = 20
TOP_CHANNELS = 10
DISCUSSION_PREVIEW_CHARS = 200
TASK_PREVIEW_CHARS = 200

# Recommendation thresholds.
LOW_DAILY_VOLUME = 5
MANY_CHANNELS = 10
FEW_PARTICIPANTS = 3
SENTIMENT_THRESHOLD = 0.1
GOOD_DATA_MIN_MESSAGES = 10

WEBHOOK_EVENT_TYPES = {"message", "app_mention"}

WORD_PATTERN = re.compile(r"\w+")


def relevance_score(text: str, query: str) -> float:
    """Fraction of query words found as substrings of the text."""
    words = WORD_PATTERN.findall(query.lower())
    if not words:
        return 0.0
    lowered = text.lower()
    matches = sum(1 for word in words if word in lowered)
    return matches / len(words)


def keyword_relevance(text: str, keywords: Sequence[str]) -> float:
    """Occurrences of each keyword weighted by keyword length (longer counts more)."""
    lowered = text.lower()
    return sum(lowered.count(k.lower()) * (len(k) / 10) for k in keywords if k)


def _top(counter: Counter, n: int) -> List[Dict[str, Any]]:
    return [{"name": name, "count": count} for name, count in counter.most_common(n)]


def peak_hours(messages: Sequence[SlackMessage], n: int = 3) -> List[int]:
    hours = Counter(msg.timestamp.hour for msg in messages)
    ranked = sorted(hours.items(), key=lambda item: (-item[1], item[0]))
    return [hour for hour, _ in ranked[:n]]


def group_by_day(messages: Sequence[SlackMessage]) -> Dict[str, int]:
    days = Counter(msg.timestamp.date().isoformat() for msg in messages)
    return dict(sorted(days.items()))


def summarize_messages(messages: Sequence[SlackMessage], days: int) -> Dict[str, Any]:
    return {
        "total_messages": len(messages),
        "unique_users": len({msg.user_id for msg in messages}),
        "unique_channels": len({msg.channel_id for msg in messages}),
        "avg_messages_per_day": round(len(messages) / days) if days else len(messages),
    }


def aggregate_sentiment(messages: Sequence[SlackMessage]) -> Dict[str, Any]:
    """Score in [-1, 1]: (positive - negative) messages over all messages."""
    if not messages:
        return {"classification": "neutral", "score": 0.0, "positive": 0, "negative": 0}

    labels = Counter(heuristics.analyze_sentiment(msg.text) for msg in messages)
    score = round((labels["positive"] - labels["negative"]) / len(messages), 2)
    if score > SENTIMENT_THRESHOLD:
        classification = "positive"
    elif score < -SENTIMENT_THRESHOLD:
        classification = "negative"
    else:
        classification = "neutral"
    return {
        "classification": classification,
        "score": score,
        "positive": labels["positive"],
        "negative": labels["negative"],
    }


def extract_tasks(messages: Sequence[SlackMessage]) -> List[Dict[str, Any]]:
    return [
        {
            "text": msg.text[:TASK_PREVIEW_CHARS],
            "user": msg.user_name,
            "channel": msg.channel_name,
            "priority": "urgent" if heuristics.is_important(msg.text) else "normal",
            "timestamp": msg.timestamp.isoformat(),
        }
        for msg in messages
        if heuristics.is_task_assignment(msg.text)
    ]


def generate_recommendations(summary: Dict[str, Any]) -> List[str]:
    recommendations: List[str] = []
    if summary["avg_messages_per_day"] < LOW_DAILY_VOLUME:
        recommendations.append(
            "Team communication is infrequent; consider adding daily stand-ups."
        )
    if summary["unique_channels"] > MANY_CHANNELS:
        recommendations.append(
            "There are many active channels; consider consolidating or archiving inactive ones."
        )
    if summary["unique_users"] < FEW_PARTICIPANTS:
        recommendations.append(
            "Few people take part in discussions; consider inviting more team members."
        )
    return recommendations


class SlackAgent(SourceAgent):
    """Source agent over one Slack workspace (one context id)."""

    agent_type = "slack"
    data_source = "slack_api"

    def __init__(
        self,
        context_id: str,
        store: Optional[SlackMessageStore] = None,
        credentials: Optional[SlackCredentialStore] = None,
        api_client_factory: Optional[Callable[[str], SlackApiClient]] = None,
        timeout_seconds: Optional[float] = 10.0,
    ):
        super().__init__(context_id, timeout_seconds=timeout_seconds)
        self.store = store or SlackMessageStore()
        self.credentials = credentials
        self._api_client_factory = api_client_factory or (lambda token: SlackApiClient(token))
        self._api: Optional[SlackApiClient] = None
        self._connection_checked = False

    @classmethod
    def from_settings(
        cls,
        context_id: str,
        settings: Settings,
        store: Optional[SlackMessageStore] = None,
    ) -> "SlackAgent":
        api_base = settings.slack_api_base or DEFAULT_API_BASE
        return cls(
            context_id,
            store=store,
            credentials=SlackCredentialStore(settings.slack_config_dir, settings.slack_bot_token),
            api_client_factory=lambda token: SlackApiClient(
                token, api_base=api_base, timeout_seconds=settings.slack_timeout_seconds
            ),
            timeout_seconds=settings.agent_timeout_seconds,
        )

    def actions(self) -> Dict[str, ActionHandler]:
        return {
            SlackAction.SEARCH_MESSAGES.value: self._search_messages,
            SlackAction.GET_RECENT_MESSAGES.value: self._get_recent_messages,
            SlackAction.ANALYZE_CONVERSATIONS.value: self._analyze_conversations,
            SlackAction.SEND_NOTIFICATION.value: self._send_notification,
            SlackAction.GET_CHANNEL_ACTIVITY.value: self._get_channel_activity,
            SlackAction.FIND_KEY_DISCUSSIONS.value: self._find_key_discussions,
            SlackAction.PROCESS_WEBHOOK_MESSAGE.value: self._process_webhook_message,
        }

    # ------------------------------------------------------------------
    # Public convenience wrappers
    # ------------------------------------------------------------------

    async def search_messages(self, query: str, limit: int = 20) -> SubAgentResult:
        return await self.execute(
            SlackAction.SEARCH_MESSAGES.value, {"query": query, "limit": limit}
        )

    async def get_recent_messages(self, days: int = 7, limit: int = 50) -> SubAgentResult:
        return await self.execute(
            SlackAction.GET_RECENT_MESSAGES.value, {"days": days, "limit": limit}
        )

    async def analyze_conversations(self, timeframe: str = "week") -> SubAgentResult:
        return await self.execute(
            SlackAction.ANALYZE_CONVERSATIONS.value, {"timeframe": timeframe}
        )

    async def send_notification(self, message: str, channel: Optional[str] = None) -> SubAgentResult:
        return await self.execute(
            SlackAction.SEND_NOTIFICATION.value, {"message": message, "channel": channel}
        )

    async def get_channel_activity(self, hours: int = 24) -> SubAgentResult:
        return await self.execute(SlackAction.GET_CHANNEL_ACTIVITY.value, {"hours": hours})

    async def find_key_discussions(self, keywords: Sequence[str], days: int = 7) -> SubAgentResult:
        return await self.execute(
            SlackAction.FIND_KEY_DISCUSSIONS.value, {"keywords": list(keywords), "days": days}
        )

    async def process_webhook_message(self, webhook_data: Dict[str, Any]) -> SubAgentResult:
        return await self.execute(
            SlackAction.PROCESS_WEBHOOK_MESSAGE.value, {"webhook_data": webhook_data}
        )

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def ensure_connection(self) -> Optional[SlackApiClient]:
        """Resolve the workspace token once; None means local data only."""
        if self._connection_checked:
            return self._api

        token = None
        if self.credentials is not None:
            token = await asyncio.to_thread(self.credentials.resolve_token, self.context_id)
        if token:
            self._api = self._api_client_factory(token)
            logger.info("slack_api_connected", context_id=self.context_id)
        else:
            logger.info("slack_api_unavailable", context_id=self.context_id)
        self._connection_checked = True
        return self._api

    async def _load_recent(self, since: datetime, limit: int) -> List[SlackMessage]:
        messages, _ = await self.store.load_messages(self.context_id, limit=limit, since=since)
        return messages

    # ------------------------------------------------------------------
    # Action handlers
    # ------------------------------------------------------------------

    async def _search_messages(self, params: Dict[str, Any]) -> Dict[str, Any]:
        query = (params.get("query") or "").strip()
        if not query:
            raise ValueError("query is required")
        limit = int(params.get("limit") or 20)

        try:
            candidates, _ = await self.store.load_messages(
                self.context_id, limit=SEARCH_CANDIDATE_LIMIT
            )
        except Exception as exc:
            logger.warning(
                "slack_local_search_failed",
                context_id=self.context_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            candidates = []

        scored = [(relevance_score(msg.text, query), msg) for msg in candidates]
        scored = [item for item in scored if item[0] > 0]
        scored.sort(key=lambda item: item[0], reverse=True)
        if scored:
            matches = [
                {**msg.summary(), "relevance_score": round(score, 3)}
                for score, msg in scored[:limit]
            ]
            return {
                "source": "local_database",
                "query": query,
                "messages": matches,
                "total": len(matches),
            }

        api = await self.ensure_connection()
        if api is not None:
            try:
                messages, total = await api.search_messages(query, limit)
            except Exception as exc:
                logger.warning(
                    "slack_api_search_failed",
                    context_id=self.context_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
            else:
                if messages:
                    return {
                        "source": "slack_api",
                        "query": query,
                        "messages": [msg.summary() for msg in messages[:limit]],
                        "total": total,
                    }

        return {
            "source": "none",
            "query": query,
            "messages": [],
            "total": 0,
            "message": "No messages found",
        }

    async def _get_recent_messages(self, params: Dict[str, Any]) -> Dict[str, Any]:
        days = int(params.get("days") or 7)
        limit = int(params.get("limit") or 50)
        since = datetime.now(timezone.utc) - timedelta(days=days)
        messages = await self._load_recent(since, limit)
        return {
            "messages": [msg.summary() for msg in messages],
            "total": len(messages),
            "timeframe": f"{days} days",
            "daily_breakdown": group_by_day(messages),
            "summary": summarize_messages(messages, days),
        }

    async def _analyze_conversations(self, params: Dict[str, Any]) -> Dict[str, Any]:
        timeframe = params.get("timeframe") or "week"
        if timeframe not in TIMEFRAME_DAYS:
            raise ValueError(f"Unsupported timeframe: {timeframe}")
        days = TIMEFRAME_DAYS[timeframe]

        since = datetime.now(timezone.utc) - timedelta(days=days)
        messages = await self._load_recent(since, ANALYSIS_MESSAGE_LIMIT)
        summary = summarize_messages(messages, days)
        sentiment = aggregate_sentiment(messages)
        tasks = extract_tasks(messages)
        urgent = sum(1 for task in tasks if task["priority"] == "urgent")

        analysis = {
            "overview": {
                "total_messages": summary["total_messages"],
                "active_period": timeframe,
                "data_quality": "good" if summary["total_messages"] > GOOD_DATA_MIN_MESSAGES else "limited",
            },
            "patterns": {
                "peak_hours": peak_hours(messages),
                "most_active_channels": _top(Counter(m.channel_name for m in messages), 5),
                "most_active_users": _top(Counter(m.user_name for m in messages), 5),
            },
            "sentiment": sentiment,
            "tasks": tasks,
            "summary": (
                f"{summary['total_messages']} messages from {summary['unique_users']} people "
                f"in {summary['unique_channels']} channels over the last {timeframe}; "
                f"overall sentiment {sentiment['classification']}, "
                f"{len(tasks)} tasks ({urgent} urgent)."
            ),
            "insights": [
                f"The team posted {summary['total_messages']} messages in the last {timeframe}",
                f"{summary['avg_messages_per_day']} messages per day on average",
                f"{summary['unique_users']} active users",
                f"{summary['unique_channels']} active channels",
            ],
            "recommendations": generate_recommendations(summary),
        }
        return {"timeframe": timeframe, "analysis": analysis}

    async def _send_notification(self, params: Dict[str, Any]) -> Dict[str, Any]:
        message = params.get("message")
        if not message:
            raise ValueError("message is required")
        channel = params.get("channel") or "#general"

        api = await self.ensure_connection()
        if api is None:
            raise SlackApiUnavailableError(
                f"Slack API not available for context {self.context_id}"
            )

        result = await api.send_message(
            channel,
            message,
            metadata={"source": "ai_brain", "type": "notification", "context_id": self.context_id},
        )
        return {**result, "sent": True}

    async def _get_channel_activity(self, params: Dict[str, Any]) -> Dict[str, Any]:
        hours = int(params.get("hours") or 24)
        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        messages = await self._load_recent(since, ACTIVITY_MESSAGE_LIMIT)

        stats: Dict[str, Dict[str, Any]] = {}
        for msg in messages:
            entry = stats.setdefault(
                msg.channel_id,
                {"channel_name": msg.channel_name, "messages": 0, "users": set(), "last_activity": msg.timestamp},
            )
            entry["messages"] += 1
            entry["users"].add(msg.user_id)
            entry["last_activity"] = max(entry["last_activity"], msg.timestamp)

        channels = sorted(
            (
                {
                    "channel_id": channel_id,
                    "channel_name": entry["channel_name"],
                    "message_count": entry["messages"],
                    "unique_users": len(entry["users"]),
                    "last_activity": entry["last_activity"].isoformat(),
                    "activity_score": entry["messages"] * len(entry["users"]),
                }
                for channel_id, entry in stats.items()
            ),
            key=lambda item: item["activity_score"],
            reverse=True,
        )
        peak = peak_hours(messages, n=1)

        return {
            "timeframe": f"{hours} hours",
            "total_channels": len(channels),
            "total_messages": len(messages),
            "channels": channels[:TOP_CHANNELS],
            "summary": {
                "most_active_channel": channels[0]["channel_name"] if channels else None,
                "total_activity": len(messages),
                "peak_hour": peak[0] if peak else None,
            },
        }

    async def _find_key_discussions(self, params: Dict[str, Any]) -> Dict[str, Any]:
        keywords = params.get("keywords") or []
        if isinstance(keywords, str):
            keywords = [k for k in re.split(r"[,\s]+", keywords) if k]
        if not keywords:
            raise ValueError("keywords are required")
        days = int(params.get("days") or 7)

        since = datetime.now(timezone.utc) - timedelta(days=days)
        messages = await self._load_recent(since, DISCUSSION_MESSAGE_LIMIT)

        scored = []
        for msg in messages:
            score = keyword_relevance(msg.text, keywords)
            if score > 0:
                lowered = msg.text.lower()
                matched = [k for k in keywords if k.lower() in lowered]
                scored.append((score, msg, matched))
        scored.sort(key=lambda item: item[0], reverse=True)
        scored = scored[:TOP_DISCUSSIONS]

        discussions = [
            {
                "message_id": msg.id,
                "channel": msg.channel_name,
                "user": msg.user_name,
                "text": msg.text[:DISCUSSION_PREVIEW_CHARS]
                + ("..." if len(msg.text) > DISCUSSION_PREVIEW_CHARS else ""),
                "timestamp": msg.timestamp.isoformat(),
                "relevance_score": round(score, 2),
                "matched_keywords": matched,
            }
            for score, msg, matched in scored
        ]

        insights: List[str] = []
        if discussions:
            channels = {d["channel"] for d in discussions}
            average = sum(score for score, _, _ in scored) / len(scored)
            insights = [
                f'Keywords "{", ".join(keywords)}" came up in {len(discussions)} discussions',
                f"Discussions are spread across {len(channels)} channels",
                f"Average relevance score: {average:.2f}",
            ]

        return {
            "keywords": list(keywords),
            "timeframe": f"{days} days",
            "total_discussions": len(discussions),
            "discussions": discussions,
            "insights": insights,
        }

    async def _process_webhook_message(self, params: Dict[str, Any]) -> Dict[str, Any]:
        webhook_data = params.get("webhook_data") or {}
        event = webhook_data.get("event") or {}
        event_type = event.get("type") or "message"
        if event_type not in WEBHOOK_EVENT_TYPES:
            return {"processed": False, "reason": f"unsupported event type: {event_type}"}

        text = event.get("text") or ""
        ts = event.get("ts")
        enhanced = heuristics.enhance_message(text)

        message = SlackMessage(
            id=ts or str(datetime.now(timezone.utc).timestamp()),
            channel_id=event.get("channel") or "unknown",
            channel_name=event.get("channel_name") or "unknown",
            user_id=event.get("user") or "unknown",
            user_name=event.get("user_name") or event.get("user") or "unknown",
            text=text,
            timestamp=parse_slack_ts(ts),
            thread_ts=event.get("thread_ts"),
            metadata={
                "event_type": event_type,
                "team_id": webhook_data.get("team_id"),
                **enhanced,
            },
        )
        stored = await self.store.store_message(self.context_id, message)

        logger.info(
            "slack_webhook_message_processed",
            context_id=self.context_id,
            message_id=message.id,
            category=enhanced["category"],
            importance=enhanced["importance"],
            stored=stored,
        )
        return {
            "processed": True,
            "message_id": message.id,
            "enhanced": enhanced["enhancements"],
            "importance": enhanced["importance"],
            "category": enhanced["category"],
            "action_items": enhanced["action_items"],
            "stored": stored,
        }
