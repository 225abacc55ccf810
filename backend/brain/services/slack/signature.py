"""
Slack request signature verification (signing secret, `v0` scheme).

Slack signs `v0:{timestamp}:{raw_body}` with HMAC-SHA256 and sends the
result as `X-Slack-Signature: v0=<hex>` next to `X-Slack-Request-Timestamp`.
"""
import hashlib
import hmac
import time
from typing import Optional

from brain.core.logging import get_logger

logger = get_logger(__name__)

MAX_REQUEST_AGE_SECONDS = 300


def compute_signature(secret: str, timestamp: str, body: bytes) -> str:
    base = b"v0:" + timestamp.encode("utf-8") + b":" + body
    digest = hmac.new(secret.encode("utf-8"), base, hashlib.sha256).hexdigest()
    return f"v0={digest}"


def verify_signature(
    secret: Optional[str],
    signature: Optional[str],
    timestamp: Optional[str],
    body: bytes,
    now: Optional[float] = None,
) -> bool:
    """
    Check a Slack request signature.

    Returns False when the secret is not configured, a header is missing,
    the timestamp is malformed or older than five minutes, or the digest
    does not match.
    """
    if not secret:
        logger.error("slack_signing_secret_missing")
        return False
    if not signature or not timestamp:
        return False

    try:
        request_time = int(timestamp)
    except ValueError:
        logger.warning("slack_signature_bad_timestamp", timestamp=timestamp)
        return False

    current = time.time() if now is None else now
    if abs(current - request_time) > MAX_REQUEST_AGE_SECONDS:
        logger.warning(
            "slack_signature_stale",
            age_seconds=int(abs(current - request_time)),
        )
        return False

    expected = compute_signature(secret, timestamp, body)
    return hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8"))
