"""
Outbound usage telemetry.

One `api_call` event is emitted per completion request (never per internal
model substitution step):

    {"eventType": "api_call", "provider": str, "success": bool,
     "durationMs": int, "sessionId": str | absent}

Delivery is fire-and-forget: events are posted from a background task and
any delivery failure is logged at debug level and dropped. Telemetry must
never affect the chat flow.

Environment configuration:
- TELEMETRY_ENDPOINT: URL of the event ingestion endpoint (unset = log only)
- TELEMETRY_TIMEOUT_SECONDS: delivery timeout (default: 2.0)
"""
import asyncio
import os
from typing import Any, Dict, Optional, Protocol, Set

import httpx

from chatbot.core.logging import get_logger, get_session_id

logger = get_logger(__name__)


def build_api_call_event(provider: str, success: bool, duration_ms: float) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "eventType": "api_call",
        "provider": provider,
        "success": success,
        "durationMs": int(round(duration_ms)),
    }
    session_id = get_session_id()
    if session_id:
        event["sessionId"] = session_id
    return event


class TelemetrySink(Protocol):
    def emit(self, event: Dict[str, Any]) -> None:
        ...


class LoggingTelemetrySink:
    """Sink that only writes the event to the structured log."""

    def emit(self, event: Dict[str, Any]) -> None:
        logger.info("completion_api_call", **event)


class HttpTelemetrySink(LoggingTelemetrySink):
    """Posts events to an ingestion endpoint from background tasks."""

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        # Strong references so pending deliveries are not garbage collected
        self._pending: Set[asyncio.Task] = set()

    def emit(self, event: Dict[str, Any]) -> None:
        super().emit(event)
        try:
            task = asyncio.get_running_loop().create_task(self._deliver(event))
        except RuntimeError:
            logger.debug("telemetry_no_event_loop", event_type=event.get("eventType"))
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: Dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self.endpoint, json=event)
                response.raise_for_status()
        except Exception as exc:
            logger.debug(
                "telemetry_delivery_failed",
                endpoint=self.endpoint,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def drain(self) -> None:
        """Wait for in-flight deliveries (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def get_telemetry_sink() -> TelemetrySink:
    endpoint = os.getenv("TELEMETRY_ENDPOINT")
    if not endpoint:
        return LoggingTelemetrySink()
    timeout = float(os.getenv("TELEMETRY_TIMEOUT_SECONDS", "2.0") or "2.0")
    return HttpTelemetrySink(endpoint, timeout_seconds=timeout)
