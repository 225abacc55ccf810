"""
Health check endpoint.
"""
from fastapi import APIRouter

from brain import __version__
from brain.core.logging import get_logger
from brain.services.orchestration.completion import get_completion_client
from brain.services.orchestration.orchestrator import get_orchestrator
from brain.services.slack.store import SlackMessageStore

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def health_check():
    """
    Basic health check endpoint.

    Returns:
        - status: always "ok" while the process serves requests
        - cached_agents: number of live source agents in the registry
        - synthesis_enabled: whether the completion collaborator is attached
        - completion_circuit: state of the completion circuit breaker
        - message_store: whether the Supabase message store is configured
    """
    orchestrator = get_orchestrator()
    return {
        "status": "ok",
        "version": __version__,
        "cached_agents": orchestrator.registry.size,
        "synthesis_enabled": orchestrator.completion is not None,
        "completion_circuit": get_completion_client().circuit_breaker.snapshot(),
        "message_store": SlackMessageStore().available,
    }
