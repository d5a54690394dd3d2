"""
Request/response models for the chat API.

These mirror the contract the chat UI already consumes:
request `{message, provider?}`, response `{content, provider, success, error?}`.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from chatbot.services.ai.schema import BackendId


class ChatRequest(BaseModel):
    """Chat completion request model."""
    message: str = Field(..., min_length=1, description="User message")
    provider: Optional[BackendId] = Field(
        None,
        description="Pin a backend (groq, gemini, openrouter, huggingface, openai); omit for automatic fallback",
    )


class ChatResponse(BaseModel):
    """Chat completion response model."""
    content: str
    provider: str
    success: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None
    degraded: bool = False


class ProviderInfo(BaseModel):
    """Provider catalogue entry."""
    id: str
    name: str
    icon: str = ""
    available: bool


class ProvidersResponse(BaseModel):
    providers: List[ProviderInfo]
