"""
Slack Events API webhook.

POST /webhooks/slack/{context_id}
- answers `url_verification` challenges
- rejects every other payload unless it carries a valid Slack signature
- hands `event_callback` payloads to the Slack agent of that context
"""
import json
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request

from brain.core.config import get_settings
from brain.core.logging import get_logger, set_context_id
from brain.services.agents.slack import SlackAction
from brain.services.orchestration.orchestrator import get_orchestrator
from brain.services.orchestration.schema import SourceType
from brain.services.slack.signature import verify_signature

logger = get_logger(__name__)

router = APIRouter()


@router.post("/slack/{context_id}")
async def slack_events(context_id: str, request: Request) -> Dict[str, Any]:
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Body must be JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")

    set_context_id(context_id)
    payload_type = payload.get("type")

    if payload_type == "url_verification":
        logger.info("slack_url_verification")
        return {"challenge": payload.get("challenge")}

    signature = request.headers.get("x-slack-signature")
    timestamp = request.headers.get("x-slack-request-timestamp")
    if not signature or not timestamp:
        logger.warning("slack_webhook_unsigned")
        raise HTTPException(status_code=401, detail="Missing signature or timestamp")
    if not verify_signature(get_settings().slack_signing_secret, signature, timestamp, body):
        logger.warning("slack_webhook_bad_signature")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if payload_type != "event_callback":
        logger.info("slack_webhook_ignored", payload_type=payload_type)
        return {"ok": True, "ignored": True}

    agent = await get_orchestrator().registry.get(SourceType.SLACK.value, context_id)
    result = await agent.execute(
        SlackAction.PROCESS_WEBHOOK_MESSAGE.value, {"webhook_data": payload}
    )

    if not result.success:
        logger.warning("slack_webhook_failed", error=result.error)

    return {
        "ok": result.success,
        "result": result.data,
        "error": result.error,
        "processing_time_ms": result.metadata.processing_time_ms,
    }
