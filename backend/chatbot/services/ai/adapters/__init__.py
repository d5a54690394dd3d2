"""
Backend adapters, one per backend family.

`build_adapters` binds every BackendId to its adapter class. The mapping
must be total over BackendId; a missing entry is a startup error rather than
a runtime dispatch failure.
"""
import os
from typing import Dict, Iterable, Optional, Type

import httpx

from chatbot.services.ai.adapters.base import DEFAULT_TIMEOUT_SECONDS, BackendAdapter
from chatbot.services.ai.adapters.chat_completions import (
    ChatCompletionsAdapter,
    GroqAdapter,
    OpenRouterAdapter,
)
from chatbot.services.ai.adapters.gemini import GeminiAdapter
from chatbot.services.ai.adapters.huggingface import ModelSubstitutionAdapter
from chatbot.services.ai.adapters.openai_responses import OpenAIResponsesAdapter
from chatbot.services.ai.schema import BackendConfig, BackendId

ADAPTER_CLASSES: Dict[BackendId, Type[BackendAdapter]] = {
    BackendId.GROQ: GroqAdapter,
    BackendId.GEMINI: GeminiAdapter,
    BackendId.OPENROUTER: OpenRouterAdapter,
    BackendId.HUGGINGFACE: ModelSubstitutionAdapter,
    BackendId.OPENAI: OpenAIResponsesAdapter,
}


def build_adapters(
    configs: Iterable[BackendConfig],
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    adapter_classes: Optional[Dict[BackendId, Type[BackendAdapter]]] = None,
) -> Dict[BackendId, BackendAdapter]:
    """
    Instantiate one adapter per configured backend.

    Raises:
        RuntimeError if the adapter mapping does not cover every BackendId.
    """
    classes = ADAPTER_CLASSES if adapter_classes is None else adapter_classes
    missing = [b.value for b in BackendId if b not in classes]
    if missing:
        raise RuntimeError(f"No adapter bound for backends: {', '.join(missing)}")

    adapters: Dict[BackendId, BackendAdapter] = {}
    for config in configs:
        adapter_cls = classes[config.id]
        if issubclass(adapter_cls, OpenRouterAdapter):
            adapters[config.id] = adapter_cls(
                config,
                timeout_seconds=timeout_seconds,
                transport=transport,
                referer=os.getenv("OPENROUTER_REFERER", "http://localhost"),
                title=os.getenv("OPENROUTER_TITLE", "AI Chat Bot"),
            )
        else:
            adapters[config.id] = adapter_cls(
                config,
                timeout_seconds=timeout_seconds,
                transport=transport,
            )
    return adapters


__all__ = [
    "ADAPTER_CLASSES",
    "BackendAdapter",
    "ChatCompletionsAdapter",
    "GeminiAdapter",
    "GroqAdapter",
    "ModelSubstitutionAdapter",
    "OpenAIResponsesAdapter",
    "OpenRouterAdapter",
    "build_adapters",
]
