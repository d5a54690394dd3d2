"""
Static catalogue of completion backends.

Environment configuration (read once at startup, per backend <ID> in
GROQ, GEMINI, OPENROUTER, HUGGINGFACE, OPENAI):
- <ID>_API_KEY: credential; a missing key disables the backend
- <ID>_ENDPOINT: override the default endpoint URL
- <ID>_MODEL: override the default model identifier
- <ID>_ENABLED: "false" to disable the backend even with a key
- HUGGINGFACE_MODELS: comma-separated model candidate list (last = degraded)
- HUGGINGFACE_MODEL: tried first, ahead of the candidate list
- AI_BACKEND_PRIORITY: comma-separated automatic-mode order
"""
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from dotenv import load_dotenv

from chatbot.core.logging import get_logger
from chatbot.services.ai.errors import UnknownBackend
from chatbot.services.ai.schema import BackendConfig, BackendId

logger = get_logger(__name__)

# Automatic-mode preference order. Reflects free-tier quota generosity:
# Groq allows 30 req/min with no daily cap, Gemini 15 req/min and 1500/day,
# OpenAI is the paid last resort.
PRIORITY_ORDER: Tuple[BackendId, ...] = (
    BackendId.GROQ,
    BackendId.GEMINI,
    BackendId.OPENROUTER,
    BackendId.HUGGINGFACE,
    BackendId.OPENAI,
)

HUGGINGFACE_MODELS: Tuple[str, ...] = (
    "meta-llama/Llama-3.1-8B-Instruct",
    "mistralai/Mistral-7B-Instruct-v0.3",
    "HuggingFaceH4/zephyr-7b-beta",
    "tiiuae/falcon-7b-instruct",
    "google/gemma-2b-it",
    "NousResearch/Hermes-2-Pro-Mistral-7B",
    "mistralai/Mistral-7B-Instruct-v0.2",
    "google/gemma-2b",
    "google/gemma-7b",
    "mistralai/Mixtral-8x7B-Instruct-v0.1",
    "tiiuae/falcon-7b",
    "microsoft/phi-1_5",
    "bigscience/bloomz-560m",
    "HuggingFaceH4/zephyr-7b-alpha",
    "tiiuae/falcon-40b-instruct",
    # Summarisation model, not conversational
    "facebook/bart-large-cnn",
)

DEFAULT_BACKENDS: Dict[BackendId, Dict[str, Any]] = {
    BackendId.GEMINI: {
        "display_name": "Google Gemini",
        "endpoint": "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent",
        "model": "gemini-2.0-flash",
        "icon": "🤖",
    },
    BackendId.GROQ: {
        "display_name": "Groq (Llama 3)",
        "endpoint": "https://api.groq.com/openai/v1/chat/completions",
        "model": "llama-3.1-8b-instant",
        "icon": "⚡",
    },
    BackendId.OPENROUTER: {
        "display_name": "OpenRouter",
        "endpoint": "https://openrouter.ai/api/v1/chat/completions",
        "model": "meta-llama/llama-3.2-3b-instruct:free",
        "icon": "💬",
    },
    BackendId.HUGGINGFACE: {
        "display_name": "Hugging Face",
        "endpoint": "https://router.huggingface.co/v1/chat/completions",
        "model": HUGGINGFACE_MODELS[0],
        "icon": "🔍",
        "max_tokens": 256,
        "models": HUGGINGFACE_MODELS,
    },
    BackendId.OPENAI: {
        "display_name": "OpenAI GPT",
        "endpoint": "https://api.openai.com/v1/responses",
        "model": "gpt-4o-mini",
        "icon": "🧠",
    },
}


def parse_backend_id(value: Union[str, BackendId]) -> BackendId:
    """
    Coerce a string into a BackendId.

    Raises:
        UnknownBackend if the value names no known backend.
    """
    if isinstance(value, BackendId):
        return value
    try:
        return BackendId(str(value).strip().lower())
    except ValueError:
        raise UnknownBackend(f"Unknown provider: {value}") from None


def resolve_priority(order: Optional[Iterable[Union[str, BackendId]]]) -> Tuple[BackendId, ...]:
    """
    Build a total priority order from a (possibly partial) override.

    Backends missing from the override keep their default relative order
    after the listed ones.
    """
    if not order:
        return PRIORITY_ORDER
    resolved: List[BackendId] = []
    for item in order:
        backend_id = parse_backend_id(item)
        if backend_id not in resolved:
            resolved.append(backend_id)
    resolved.extend(b for b in PRIORITY_ORDER if b not in resolved)
    return tuple(resolved)


class BackendRegistry:
    """
    Read-only catalogue of backend configurations.

    There is no mutation API; reconfiguration means building a new registry.
    """

    def __init__(
        self,
        configs: Iterable[BackendConfig],
        priority: Optional[Iterable[Union[str, BackendId]]] = None,
    ):
        self._configs: Mapping[BackendId, BackendConfig] = {c.id: c for c in configs}
        self._priority = resolve_priority(priority)

    @property
    def priority(self) -> Tuple[BackendId, ...]:
        return self._priority

    def list_all(self) -> List[BackendConfig]:
        """Every configured backend, enabled or not, in priority order."""
        return [self._configs[b] for b in self._priority if b in self._configs]

    def list_enabled(self) -> List[BackendConfig]:
        """Backends that are enabled and credentialed, in priority order."""
        return [
            self._configs[backend_id]
            for backend_id in self._priority
            if backend_id in self._configs and self._configs[backend_id].available
        ]

    def get(self, backend_id: Union[str, BackendId]) -> BackendConfig:
        """
        Look up one backend.

        Raises:
            UnknownBackend if the identifier is unknown or not configured.
        """
        key = parse_backend_id(backend_id)
        config = self._configs.get(key)
        if config is None:
            raise UnknownBackend(f"Unknown provider: {key.value}", backend=key.value)
        return config

    def describe(self) -> List[Dict[str, Any]]:
        """Catalogue entries for the provider picker, in priority order."""
        return [
            {
                "id": backend_id.value,
                "name": self._configs[backend_id].display_name,
                "icon": self._configs[backend_id].icon,
                "available": self._configs[backend_id].available,
            }
            for backend_id in self._priority
            if backend_id in self._configs
        ]

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BackendRegistry":
        """Build the registry from environment variables (see module docstring)."""
        env = os.environ if environ is None else environ

        configs = []
        for backend_id, defaults in DEFAULT_BACKENDS.items():
            prefix = backend_id.value.upper()
            params = dict(defaults)
            params["credential"] = (env.get(f"{prefix}_API_KEY") or "").strip()
            params["enabled"] = (env.get(f"{prefix}_ENABLED") or "true").strip().lower() != "false"
            if env.get(f"{prefix}_ENDPOINT"):
                params["endpoint"] = env[f"{prefix}_ENDPOINT"]
            if env.get(f"{prefix}_MODEL"):
                params["model"] = env[f"{prefix}_MODEL"]
            if backend_id == BackendId.HUGGINGFACE:
                params["models"], params["model"] = _huggingface_models(env, params["models"])
            configs.append(BackendConfig(id=backend_id, **params))

        priority_env = env.get("AI_BACKEND_PRIORITY")
        priority = [p for p in priority_env.split(",") if p.strip()] if priority_env else None

        registry = cls(configs, priority=priority)
        logger.info(
            "backend_registry_loaded",
            priority=[b.value for b in registry.priority],
            enabled=[c.id.value for c in registry.list_enabled()],
        )
        return registry


def _huggingface_models(env: Mapping[str, str], default: Tuple[str, ...]) -> Tuple[Tuple[str, ...], str]:
    """Resolve the model substitution list; HUGGINGFACE_MODEL moves to the front."""
    models = default
    if env.get("HUGGINGFACE_MODELS"):
        models = tuple(m.strip() for m in env["HUGGINGFACE_MODELS"].split(",") if m.strip()) or default
    preferred = (env.get("HUGGINGFACE_MODEL") or "").strip()
    if preferred:
        models = (preferred,) + tuple(m for m in models if m != preferred)
    return models, models[0]


def load_env_file() -> None:
    """Load a .env file from the repository root if one exists."""
    env_path = Path(__file__).resolve().parents[4] / ".env"
    if env_path.exists():
        load_dotenv(env_path)
        logger.info("env_loaded", env_path=str(env_path))
    else:
        logger.debug("env_file_not_found", expected_path=str(env_path))
