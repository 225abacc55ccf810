"""
Per-context Slack token resolution.

Looks for `<config_dir>/<context_id>.json` with an `access_token` field
(written by the OAuth install flow, outside this service), then falls
back to a workspace-wide bot token.
"""
import json
from pathlib import Path
from typing import Optional

from brain.core.logging import get_logger

logger = get_logger(__name__)


class SlackCredentialStore:
    """Resolves the access token for a context id."""

    def __init__(self, config_dir: str, fallback_token: Optional[str] = None):
        self.config_dir = Path(config_dir)
        self.fallback_token = fallback_token

    def config_path(self, context_id: str) -> Path:
        # Context ids are used as file names; keep them inside config_dir.
        return self.config_dir / f"{Path(context_id).name}.json"

    def resolve_token(self, context_id: str) -> Optional[str]:
        path = self.config_path(context_id)
        if path.exists():
            try:
                config = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning(
                    "slack_config_unreadable",
                    context_id=context_id,
                    path=str(path),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
            else:
                token = config.get("access_token")
                if token:
                    return token

        if self.fallback_token:
            logger.debug("slack_token_fallback_used", context_id=context_id)
        return self.fallback_token
