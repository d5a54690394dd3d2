"""
OpenAI Responses API adapter (last-resort backend).
"""
from typing import Any, Dict

from chatbot.services.ai.adapters.base import BackendAdapter


class OpenAIResponsesAdapter(BackendAdapter):
    api_label = "OpenAI API"

    def build_payload(self, text: str, model: str) -> Dict[str, Any]:
        return {
            "model": model,
            "input": text,
            "max_output_tokens": self.config.max_tokens,
        }

    def extract_text(self, data: Any) -> str:
        # Responses API: output[0].content[] holds typed items; fall back to
        # the chat completions shape for compatible proxies.
        for item in (data.get("output") or [])[:1]:
            for content in item.get("content") or []:
                if content.get("type") == "output_text" and content.get("text"):
                    return content["text"]
        return data["choices"][0]["message"]["content"]

    def rate_limit_message(self, detail: str) -> str:
        return (
            "OpenAI API rate limit exceeded: you've reached your current usage quota. "
            "Check your plan and billing details, or use another AI provider. "
            f"Error: {detail}"
        )
