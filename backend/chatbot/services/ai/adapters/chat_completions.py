"""
OpenAI-compatible /chat/completions adapters (Groq, OpenRouter).
"""
from typing import Any, Dict, List, Optional

import httpx

from chatbot.services.ai.adapters.base import DEFAULT_TIMEOUT_SECONDS, BackendAdapter
from chatbot.services.ai.schema import BackendConfig


class ChatCompletionsAdapter(BackendAdapter):
    """Adapter for backends speaking the OpenAI chat completions shape."""

    api_label = "Chat completions API"
    system_prompt: Optional[str] = None
    temperature: Optional[float] = None

    def build_messages(self, text: str) -> List[Dict[str, str]]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": text})
        return messages

    def build_payload(self, text: str, model: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": self.build_messages(text),
            "max_tokens": self.config.max_tokens,
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload

    def extract_text(self, data: Any) -> str:
        return data["choices"][0]["message"]["content"]


class GroqAdapter(ChatCompletionsAdapter):
    api_label = "Groq API"


class OpenRouterAdapter(ChatCompletionsAdapter):
    """OpenRouter asks callers to identify themselves via HTTP-Referer and X-Title."""

    api_label = "OpenRouter API"

    def __init__(
        self,
        config: BackendConfig,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        referer: str = "http://localhost",
        title: str = "AI Chat Bot",
    ):
        super().__init__(config, timeout_seconds=timeout_seconds, transport=transport)
        self.referer = referer
        self.title = title

    def build_headers(self, credential: str) -> Dict[str, str]:
        headers = super().build_headers(credential)
        headers["HTTP-Referer"] = self.referer
        headers["X-Title"] = self.title
        return headers
