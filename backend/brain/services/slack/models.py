"""
Slack message model shared by the local store, the API client and the agent.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


def parse_slack_ts(ts: Optional[str]) -> datetime:
    """Slack "1700000000.000100" timestamps -> aware UTC datetime."""
    if not ts:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


class SlackMessage(BaseModel):
    """One Slack message as stored in the `slack_messages` table."""

    id: str
    channel_id: str = "unknown"
    channel_name: str = "unknown"
    user_id: str = "unknown"
    user_name: str = "unknown"
    user_avatar: str = ""
    text: str = ""
    timestamp: datetime
    thread_ts: Optional[str] = None
    reply_count: int = 0
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SlackMessage":
        return cls(
            id=str(row.get("message_id") or row.get("id")),
            channel_id=row.get("channel_id") or "unknown",
            channel_name=row.get("channel_name") or "unknown",
            user_id=row.get("user_id") or "unknown",
            user_name=row.get("user_name") or "unknown",
            user_avatar=row.get("user_avatar") or "",
            text=row.get("text") or "",
            timestamp=row["timestamp"],
            thread_ts=row.get("thread_ts"),
            reply_count=row.get("reply_count") or 0,
            metadata=row.get("metadata") or {},
        )

    @classmethod
    def from_search_match(cls, match: Dict[str, Any]) -> "SlackMessage":
        """Build from a `search.messages` match object."""
        channel = match.get("channel") or {}
        return cls(
            id=match.get("ts") or match.get("iid") or "unknown",
            channel_id=channel.get("id") or "unknown",
            channel_name=channel.get("name") or "unknown",
            user_id=match.get("user") or "unknown",
            user_name=match.get("username") or match.get("user") or "unknown",
            text=match.get("text") or "",
            timestamp=parse_slack_ts(match.get("ts")),
        )

    def to_row(self, context_id: str) -> Dict[str, Any]:
        return {
            "message_id": self.id,
            "channel_id": self.channel_id,
            "channel_name": self.channel_name,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_avatar": self.user_avatar,
            "context_id": context_id,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "thread_ts": self.thread_ts,
            "reply_count": self.reply_count,
            "metadata": self.metadata,
        }

    def summary(self) -> Dict[str, Any]:
        """Compact shape handed to the orchestrator's formatter."""
        return {
            "id": self.id,
            "text": self.text,
            "user": self.user_name,
            "channel": self.channel_name,
            "timestamp": self.timestamp.isoformat(),
        }
