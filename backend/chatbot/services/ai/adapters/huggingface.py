"""
Hugging Face Inference Providers adapter with model substitution.

The router endpoint serves many interchangeable open models. Instead of a
single model, this adapter walks an ordered candidate list and only reports
the backend as failed once every model has failed.

Rules:
- RateLimited from any model propagates immediately so the orchestrator can
  put the whole backend into cooldown.
- Any other failure records the model and moves on to the next one.
- The last model is a summarisation model. If it is the only one that
  answers, the text is prefixed with a notice naming the failed models and
  the response is flagged as degraded.
- If every model fails, one TransientFailure lists all of them.
"""
from typing import List, Optional

from chatbot.core.logging import get_logger
from chatbot.core.metrics import record_model_substitution
from chatbot.services.ai.adapters.chat_completions import ChatCompletionsAdapter
from chatbot.services.ai.errors import (
    MalformedResponse,
    RateLimited,
    TransientFailure,
)
from chatbot.services.ai.schema import AdapterResponse

logger = get_logger(__name__)


def degraded_notice(failed_models: List[str], fallback_model: str) -> str:
    failed_list = ", ".join(failed_models) if failed_models else "none"
    return (
        "Hugging Face chat models are currently unavailable. "
        f"The following models failed: {failed_list}. "
        f"Only the fallback model ({fallback_model}) is available, but it is designed "
        "for text summarization, not chat. Please select another AI provider "
        "(Gemini, Groq, or OpenRouter) for better chat responses."
    )


class ModelSubstitutionAdapter(ChatCompletionsAdapter):
    """Chat completions adapter that substitutes models on failure."""

    api_label = "Hugging Face API"
    system_prompt = "You are a helpful AI assistant."
    temperature = 0.7

    @property
    def models(self) -> List[str]:
        return list(self.config.models) or [self.config.model]

    async def complete(self, text: str, credential: str) -> AdapterResponse:
        models = self.models
        failed_models: List[str] = []

        for index, model in enumerate(models):
            is_degraded = len(models) > 1 and index == len(models) - 1
            try:
                content: Optional[str] = await self._request_completion(text, credential, model)
            except RateLimited:
                logger.warning(
                    "model_substitution_rate_limited",
                    backend=self.backend_id.value,
                    model=model,
                    failed_models=failed_models,
                )
                raise
            except MalformedResponse as exc:
                if not is_degraded:
                    self._record_failure(model, exc, failed_models)
                    continue
                # The summarisation model never returns chat-shaped text.
                content = None
            except Exception as exc:
                self._record_failure(model, exc, failed_models)
                continue

            if is_degraded:
                notice = degraded_notice(failed_models, model)
                logger.warning(
                    "model_substitution_degraded",
                    backend=self.backend_id.value,
                    model=model,
                    failed_models=failed_models,
                )
                return AdapterResponse(
                    text=f"{notice}\n\n{content}" if content else notice,
                    degraded=True,
                    model=model,
                )

            logger.info(
                "model_substitution_succeeded",
                backend=self.backend_id.value,
                model=model,
                skipped=len(failed_models),
            )
            return AdapterResponse(text=content, model=model)

        raise TransientFailure(
            f"All Hugging Face chat models failed: {', '.join(failed_models)}. "
            "Please check your API key or try another provider.",
            backend=self.backend_id.value,
        )

    def _record_failure(self, model: str, exc: Exception, failed_models: List[str]) -> None:
        failed_models.append(model)
        record_model_substitution(self.backend_id.value, model)
        logger.warning(
            "model_substitution_model_failed",
            backend=self.backend_id.value,
            model=model,
            error=str(exc),
            error_type=type(exc).__name__,
        )
