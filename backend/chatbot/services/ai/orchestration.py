"""
Completion orchestration with multi-backend fallback.

Responsibilities:
- Select candidate backends (pinned backend, or priority order minus
  backends in cooldown)
- Invoke one adapter at a time and classify its failure
- Put rate-limited backends into cooldown and advance to the next candidate
- Produce exactly one CompletionResult per request and emit one telemetry event

NON-responsibilities:
- Does NOT know any backend wire format (adapters own that)
- Does NOT retry a backend with backoff
- Does NOT persist cooldown state

Cancellation of the calling task propagates through the adapter's HTTP call;
no further backends are tried and no result is produced for a cancelled request.
"""
import asyncio
import os
import time
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from chatbot.core.logging import get_logger
from chatbot.core.metrics import (
    record_backend_attempt,
    record_backend_error,
    record_backend_skipped,
    record_completion,
)
from chatbot.services.ai.adapters import BackendAdapter, build_adapters
from chatbot.services.ai.cooldown import DEFAULT_COOLDOWN_SECONDS, CooldownTracker
from chatbot.services.ai.errors import (
    AllBackendsExhausted,
    CompletionError,
    ExplicitBackendUnavailable,
    RateLimited,
    TransientFailure,
    UnknownBackend,
)
from chatbot.services.ai.registry import DEFAULT_BACKENDS, BackendRegistry, parse_backend_id
from chatbot.services.ai.schema import (
    AdapterResponse,
    BackendConfig,
    BackendId,
    CompletionRequest,
    CompletionResult,
)
from chatbot.services.ai.telemetry import (
    LoggingTelemetrySink,
    TelemetrySink,
    build_api_call_event,
    get_telemetry_sink,
)

logger = get_logger(__name__)

NO_PROVIDER = "None"
EXHAUSTED_MESSAGE = "All AI providers failed or are unavailable."


class FallbackOrchestrator:
    """
    Obtain a completion from one of several interchangeable backends.

    Explicit mode (request pins a backend): only that backend is tried.
    Automatic mode: enabled backends in registry priority order, minus any
    backend currently in cooldown, are tried one after another until one
    succeeds. At most one backend ever returns success for a request.
    """

    def __init__(
        self,
        registry: BackendRegistry,
        cooldown: CooldownTracker,
        adapters: Optional[Mapping[BackendId, BackendAdapter]] = None,
        telemetry: Optional[TelemetrySink] = None,
        invocation_timeout_seconds: Optional[float] = None,
    ):
        self.registry = registry
        self.cooldown = cooldown
        self._adapters = dict(adapters) if adapters is not None else build_adapters(registry.list_all())
        self._telemetry = telemetry or LoggingTelemetrySink()
        self.invocation_timeout_seconds = invocation_timeout_seconds

    @property
    def telemetry(self) -> TelemetrySink:
        return self._telemetry

    async def get_chat_response(
        self,
        message: str,
        provider: Optional[Union[str, BackendId]] = None,
    ) -> Dict[str, Any]:
        """
        Chat UI contract: `{content, provider, success, error?}`.

        Never raises for request-path failures; an unknown provider name is
        reported as a failed result.
        """
        try:
            preferred = parse_backend_id(provider) if provider else None
        except UnknownBackend as exc:
            logger.warning("completion_unknown_provider", provider=str(provider))
            result = CompletionResult(
                backend_used=str(provider),
                error_description=exc.message,
                error_kind=exc.kind,
            )
            return result.to_chat_response()

        try:
            request = CompletionRequest(text=message, preferred_backend=preferred)
        except ValidationError as exc:
            logger.warning("completion_invalid_request", error=str(exc))
            result = CompletionResult(
                backend_used=str(provider) if provider else NO_PROVIDER,
                error_description="Message must be a string",
                error_kind=TransientFailure.__name__,
            )
            return result.to_chat_response()

        result = await self.complete(request)
        return result.to_chat_response()

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        mode = "explicit" if request.preferred_backend is not None else "automatic"
        start = time.monotonic()

        try:
            if request.preferred_backend is not None:
                result = await self._complete_explicit(request.text, request.preferred_backend)
            else:
                result = await self._complete_automatic(request.text)
        except CompletionError as exc:
            # Selection-time errors (e.g. UnknownBackend) end the request here.
            result = CompletionResult(
                backend_used=exc.backend or NO_PROVIDER,
                error_description=exc.message,
                error_kind=exc.kind,
            )
        except Exception as exc:
            logger.error(
                "completion_unexpected_error",
                mode=mode,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            result = CompletionResult(
                backend_used=NO_PROVIDER,
                error_description=str(exc) or type(exc).__name__,
                error_kind=TransientFailure.__name__,
            )

        duration_seconds = time.monotonic() - start
        record_completion(mode, result.backend_used, result.succeeded, duration_seconds)
        self._emit(result, duration_seconds * 1000.0)

        logger.info(
            "completion_finished",
            mode=mode,
            provider=result.backend_used,
            success=result.succeeded,
            degraded=result.degraded,
            error_kind=result.error_kind,
            duration_ms=round(duration_seconds * 1000.0, 1),
        )
        return result

    # ------------------------------------------------------------------
    # Selection modes
    # ------------------------------------------------------------------

    async def _complete_explicit(self, text: str, backend_id: BackendId) -> CompletionResult:
        try:
            config = self.registry.get(backend_id)
        except UnknownBackend as exc:
            logger.warning("completion_explicit_backend_unconfigured", backend=backend_id.value)
            return CompletionResult(
                backend_used=DEFAULT_BACKENDS[backend_id]["display_name"],
                error_description=exc.message,
                error_kind=exc.kind,
            )
        if not config.available:
            exc = ExplicitBackendUnavailable(
                f"{config.display_name} is not available",
                backend=backend_id.value,
            )
            logger.warning("completion_explicit_backend_unavailable", backend=backend_id.value)
            return CompletionResult(
                backend_used=config.display_name,
                error_description=exc.message,
                error_kind=exc.kind,
            )

        try:
            response = await self._invoke(config, text)
        except CompletionError as exc:
            self._handle_failure(config, exc)
            return CompletionResult(
                backend_used=config.display_name,
                error_description=exc.message,
                error_kind=exc.kind,
            )
        return self._success(config, response)

    async def _complete_automatic(self, text: str) -> CompletionResult:
        candidates = self.select_candidates()
        if not candidates:
            logger.warning("completion_no_candidates")
            return CompletionResult(
                backend_used=NO_PROVIDER,
                error_description=(
                    f"{EXHAUSTED_MESSAGE} Please check your API keys "
                    "or wait for rate-limited providers to cool down."
                ),
                error_kind=AllBackendsExhausted.__name__,
            )

        failures: List[str] = []
        for config in candidates:
            try:
                response = await self._invoke(config, text)
            except CompletionError as exc:
                self._handle_failure(config, exc)
                failures.append(f"{config.display_name}: {exc.message}")
                continue
            return self._success(config, response)

        return CompletionResult(
            backend_used=NO_PROVIDER,
            error_description=f"{EXHAUSTED_MESSAGE} " + " | ".join(failures),
            error_kind=AllBackendsExhausted.__name__,
        )

    def select_candidates(self, now: Optional[float] = None) -> List[BackendConfig]:
        """Enabled backends in priority order, minus those in cooldown."""
        candidates = []
        for config in self.registry.list_enabled():
            if self.cooldown.is_suppressed(config.id, now):
                record_backend_skipped(config.id.value)
                logger.info("completion_backend_skipped", backend=config.id.value, reason="cooldown")
                continue
            candidates.append(config)
        return candidates

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    async def _invoke(self, config: BackendConfig, text: str) -> AdapterResponse:
        """
        Call one adapter; every failure leaves here as a CompletionError.
        """
        record_backend_attempt(config.id.value)
        logger.debug("completion_backend_invoked", backend=config.id.value)
        try:
            adapter = self._adapters.get(config.id)
            if adapter is None:
                raise TransientFailure(
                    f"No adapter bound for {config.display_name}",
                    backend=config.id.value,
                )
            if self.invocation_timeout_seconds:
                return await asyncio.wait_for(
                    adapter.complete(text, config.credential),
                    timeout=self.invocation_timeout_seconds,
                )
            return await adapter.complete(text, config.credential)
        except CompletionError:
            raise
        except asyncio.TimeoutError as exc:
            raise TransientFailure(
                f"{config.display_name} did not respond within {self.invocation_timeout_seconds:g}s",
                backend=config.id.value,
            ) from exc
        except Exception as exc:
            raise TransientFailure(
                str(exc) or type(exc).__name__,
                backend=config.id.value,
            ) from exc

    def _handle_failure(self, config: BackendConfig, exc: CompletionError) -> None:
        record_backend_error(config.id.value, exc.kind)
        logger.warning(
            "completion_backend_failed",
            backend=config.id.value,
            error_kind=exc.kind,
            status_code=exc.status_code,
            error=exc.message,
        )
        if isinstance(exc, RateLimited):
            self.cooldown.mark_suppressed(config.id)

    def _success(self, config: BackendConfig, response: AdapterResponse) -> CompletionResult:
        return CompletionResult(
            text=response.text,
            backend_used=config.display_name,
            succeeded=True,
            degraded=response.degraded,
        )

    def _emit(self, result: CompletionResult, duration_ms: float) -> None:
        try:
            self._telemetry.emit(build_api_call_event(result.backend_used, result.succeeded, duration_ms))
        except Exception as exc:
            logger.debug("telemetry_emit_failed", error=str(exc), error_type=type(exc).__name__)


_orchestrator: Optional[FallbackOrchestrator] = None


def get_orchestrator() -> FallbackOrchestrator:
    """
    Global orchestrator built from environment configuration.

    Environment configuration:
    - AI_COOLDOWN_SECONDS: cooldown window for rate-limited backends (default: 300)
    - AI_REQUEST_TIMEOUT_SECONDS: per HTTP call timeout (default: 30)
    - AI_INVOCATION_TIMEOUT_SECONDS: upper bound for one backend invocation,
      model substitution included (default: 120, 0 disables)
    """
    global _orchestrator
    if _orchestrator is None:
        registry = BackendRegistry.from_env()
        cooldown = CooldownTracker(
            window_seconds=float(os.getenv("AI_COOLDOWN_SECONDS", DEFAULT_COOLDOWN_SECONDS) or DEFAULT_COOLDOWN_SECONDS),
        )
        request_timeout = float(os.getenv("AI_REQUEST_TIMEOUT_SECONDS", "30") or "30")
        invocation_timeout = float(os.getenv("AI_INVOCATION_TIMEOUT_SECONDS", "120") or "0")

        _orchestrator = FallbackOrchestrator(
            registry=registry,
            cooldown=cooldown,
            adapters=build_adapters(registry.list_all(), timeout_seconds=request_timeout),
            telemetry=get_telemetry_sink(),
            invocation_timeout_seconds=invocation_timeout or None,
        )
    return _orchestrator


async def get_chat_response(request: Dict[str, Any]) -> Dict[str, Any]:
    """
    Module-level entry point for `{message, provider?}` requests.
    """
    return await get_orchestrator().get_chat_response(
        request.get("message", ""),
        request.get("provider"),
    )
