"""
Supabase-backed local store for Slack messages (`slack_messages` table).

The Supabase client is synchronous; calls run in a worker thread so they
respect the agent's timeouts. Without credentials the store reports
itself unavailable and reads return nothing.
"""
import asyncio
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from supabase import Client

from brain.core.database import get_supabase_client
from brain.core.logging import get_logger
from brain.services.slack.models import SlackMessage

logger = get_logger(__name__)

TABLE = "slack_messages"


class SlackMessageStore:
    """Reads and writes Slack messages scoped by context id."""

    def __init__(self, client_factory: Callable[[], Optional[Client]] = get_supabase_client):
        self._client_factory = client_factory

    @property
    def available(self) -> bool:
        return self._client_factory() is not None

    async def load_messages(
        self,
        context_id: str,
        limit: Optional[int] = 50,
        since: Optional[datetime] = None,
        channel: Optional[str] = None,
    ) -> Tuple[List[SlackMessage], int]:
        """
        Newest-first messages for a context.

        Returns:
            (messages, total) where total is the exact count of matching rows.
        """
        client = self._client_factory()
        if client is None:
            return [], 0

        def _query():
            query = (
                client.table(TABLE)
                .select("*", count="exact")
                .eq("context_id", context_id)
                .order("timestamp", desc=True)
            )
            if channel:
                query = query.eq("channel_id", channel)
            if since is not None:
                query = query.gte("timestamp", since.isoformat())
            if limit:
                query = query.limit(limit)
            return query.execute()

        response = await asyncio.to_thread(_query)
        rows = response.data or []
        messages = [SlackMessage.from_row(row) for row in rows]
        total = response.count if response.count is not None else len(messages)

        logger.debug(
            "slack_messages_loaded",
            context_id=context_id,
            returned=len(messages),
            total=total,
        )
        return messages, total

    async def store_message(self, context_id: str, message: SlackMessage) -> bool:
        """Upsert one message keyed by message_id. Returns False when not stored."""
        client = self._client_factory()
        if client is None:
            logger.warning("slack_store_unavailable", context_id=context_id, message_id=message.id)
            return False

        row = message.to_row(context_id)

        def _upsert():
            return client.table(TABLE).upsert(row, on_conflict="message_id").execute()

        try:
            await asyncio.to_thread(_upsert)
        except Exception as exc:
            logger.error(
                "slack_message_store_failed",
                context_id=context_id,
                message_id=message.id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False

        logger.info("slack_message_stored", context_id=context_id, message_id=message.id)
        return True
