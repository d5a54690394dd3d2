"""
Health check endpoints.
"""
from fastapi import APIRouter

from chatbot.core.logging import get_logger
from chatbot.services.ai.orchestration import get_orchestrator

logger = get_logger(__name__)
router = APIRouter()


@router.get("/")
async def health_check():
    """
    Basic health check endpoint.
    """
    return {
        "status": "ok",
        "message": "API is running"
    }


@router.get("/backends")
async def backends_health():
    """
    Completion backend status.

    Returns:
        - status: "ok" when at least one backend can be selected automatically
        - enabled: enabled and credentialed backends, in priority order
        - suppressed: backends in cooldown with remaining seconds
        - cooldown_seconds: configured cooldown window
    """
    orchestrator = get_orchestrator()
    enabled = [config.id.value for config in orchestrator.registry.list_enabled()]
    suppressed = orchestrator.cooldown.snapshot()
    selectable = [backend for backend in enabled if backend not in suppressed]

    response = {
        "status": "ok" if selectable else "unavailable",
        "enabled": enabled,
        "suppressed": suppressed,
        "cooldown_seconds": orchestrator.cooldown.window_seconds,
    }

    if not enabled:
        response["message"] = "No completion backend configured. Set at least one <PROVIDER>_API_KEY."
    elif not selectable:
        response["message"] = "All configured backends are cooling down after rate limits"
    else:
        response["message"] = f"{len(selectable)} backend(s) ready"

    return response
