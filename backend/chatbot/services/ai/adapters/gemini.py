"""
Google Gemini generateContent adapter.

The API key travels as the `key` query parameter rather than a bearer token.
"""
from typing import Any, Dict, Optional

from chatbot.services.ai.adapters.base import BackendAdapter


class GeminiAdapter(BackendAdapter):
    api_label = "Gemini API"

    def build_headers(self, credential: str) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def build_params(self, credential: str) -> Optional[Dict[str, str]]:
        return {"key": credential}

    def build_payload(self, text: str, model: str) -> Dict[str, Any]:
        return {"contents": [{"parts": [{"text": text}]}]}

    def extract_text(self, data: Any) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]
