"""
Chat endpoint: thin HTTP wrapper around Orchestrator.process.

POST /chat {"message": ..., "context_id": optional, "user_id": optional}
"""
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from brain.core.logging import get_logger
from brain.services.orchestration.orchestrator import get_orchestrator
from brain.services.orchestration.schema import OrchestrationResult

logger = get_logger(__name__)

router = APIRouter()


class ChatRequest(BaseModel):
    """Incoming chat message."""
    message: str = Field(..., description="Natural-language request")
    context_id: Optional[str] = Field(None, description="Workspace whose data sources may be queried")
    user_id: Optional[str] = Field(None, description="Requesting user")


@router.post("", response_model=OrchestrationResult, response_model_exclude_none=True)
async def chat(request: ChatRequest):
    """
    Answer a chat message.

    Processing failures are reported in the body (success=false), not as
    HTTP errors; only an empty message is rejected.
    """
    message = request.message.strip() if request.message else ""
    if not message:
        logger.warning("chat_message_empty")
        raise HTTPException(status_code=400, detail="Field 'message' is required")

    result = await get_orchestrator().process(
        message,
        context_id=request.context_id,
        user_id=request.user_id,
    )

    logger.info(
        "chat_completed",
        success=result.success,
        strategy=result.metadata.strategy,
        agents_used=result.metadata.agents_used,
        processing_time_ms=result.metadata.processing_time_ms,
    )
    return result
