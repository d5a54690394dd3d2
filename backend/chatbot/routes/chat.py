"""
Chat completion endpoints.

POST /chat            - obtain a completion (automatic fallback or pinned provider)
GET  /chat/providers  - provider catalogue for the provider picker
"""
from fastapi import APIRouter

from chatbot.core.logging import get_logger
from chatbot.models.responses import ChatRequest, ChatResponse, ProvidersResponse
from chatbot.services.ai.orchestration import get_orchestrator
from chatbot.services.ai.schema import CompletionRequest

logger = get_logger(__name__)

router = APIRouter()


@router.post("", response_model=ChatResponse)
async def chat(body: ChatRequest):
    """
    Get a chat response for one user message.

    Always answers 200: backend failures are reported in the body with
    `success=false` and a human-readable `error`. Callers may special-case
    `error_kind == "RateLimited"` to suggest pinning another provider.
    """
    logger.info(
        "chat_request_received",
        provider=body.provider.value if body.provider else None,
        message_length=len(body.message),
    )

    result = await get_orchestrator().complete(
        CompletionRequest(text=body.message, preferred_backend=body.provider)
    )

    return ChatResponse(
        content=result.text,
        provider=result.backend_used,
        success=result.succeeded,
        error=result.error_description,
        error_kind=result.error_kind,
        degraded=result.degraded,
    )


@router.get("/providers", response_model=ProvidersResponse)
async def list_providers():
    """
    List every known provider with its availability.

    A provider is available when it is enabled and has a credential; cooldown
    state is reported separately by /health/backends.
    """
    return {"providers": get_orchestrator().registry.describe()}
