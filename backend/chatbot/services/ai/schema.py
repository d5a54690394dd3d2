"""
Pydantic models for the completion orchestrator.

These models are the only shapes that cross the adapter boundary: adapters
receive plain text and a credential, and hand back an AdapterResponse. Wire
formats of individual backends never appear here.
"""
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class BackendId(str, Enum):
    """Closed set of known completion backends."""

    GROQ = "groq"
    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    HUGGINGFACE = "huggingface"
    OPENAI = "openai"


class BackendConfig(BaseModel):
    """
    Connection parameters for one backend.

    Owned by the BackendRegistry and immutable after startup. A backend
    whose credential is empty is never a candidate, regardless of `enabled`.
    """

    model_config = ConfigDict(frozen=True)

    id: BackendId
    display_name: str
    endpoint: str
    model: str
    credential: str = Field("", repr=False)
    enabled: bool = True
    icon: str = ""
    max_tokens: int = 500
    # Ordered candidate list for the model substitution backend; the last
    # entry is the degraded-capability model.
    models: Tuple[str, ...] = ()

    @property
    def available(self) -> bool:
        return self.enabled and bool(self.credential)


class CompletionRequest(BaseModel):
    """A single user message, optionally pinned to one backend."""

    text: str
    preferred_backend: Optional[BackendId] = None


class AdapterResponse(BaseModel):
    """Normalized successful adapter output."""

    text: str
    # True when only a degraded-capability model produced the text.
    degraded: bool = False
    model: Optional[str] = None


class CompletionResult(BaseModel):
    """
    Terminal result of one completion request.

    Exactly one is produced per request; failures are encoded here rather
    than raised.
    """

    text: str = ""
    backend_used: str = "None"
    succeeded: bool = False
    error_description: Optional[str] = None
    error_kind: Optional[str] = None
    degraded: bool = False

    def to_chat_response(self) -> Dict[str, Any]:
        """Render in the `{content, provider, success, error}` shape the chat UI consumes."""
        payload: Dict[str, Any] = {
            "content": self.text,
            "provider": self.backend_used,
            "success": self.succeeded,
        }
        if self.error_description is not None:
            payload["error"] = self.error_description
        return payload
