"""
Shared fixtures for completion tests.

Everything here is in-memory: fake adapters record their calls and no test
performs a real HTTP request.
"""
import asyncio
from typing import Callable, Dict, List, Optional, Sequence, Union

import pytest

from chatbot.services.ai.errors import CompletionError
from chatbot.services.ai.registry import DEFAULT_BACKENDS, BackendRegistry
from chatbot.services.ai.schema import AdapterResponse, BackendConfig, BackendId


class FakeClock:
    """Manually advanced clock for cooldown tests."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


Outcome = Union[str, AdapterResponse, BaseException]


class FakeAdapter:
    """
    Adapter stub replaying scripted outcomes.

    Each call pops the next outcome (the last one repeats): a string or
    AdapterResponse is returned, an exception is raised.
    """

    def __init__(self, backend_id: BackendId, outcomes: Sequence[Outcome] = ("ok",)):
        self.backend_id = backend_id
        self._outcomes: List[Outcome] = list(outcomes)
        self.calls: List[str] = []

    async def complete(self, text: str, credential: str) -> AdapterResponse:
        self.calls.append(text)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, AdapterResponse):
            return outcome
        return AdapterResponse(text=outcome)


class BlockingAdapter(FakeAdapter):
    """Adapter that waits forever once called; used for timeout/cancellation tests."""

    def __init__(self, backend_id: BackendId):
        super().__init__(backend_id)
        self.started = asyncio.Event()
        self.cancelled = False

    async def complete(self, text: str, credential: str) -> AdapterResponse:
        self.calls.append(text)
        self.started.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return AdapterResponse(text="never")


class RecordingSink:
    """Telemetry sink that keeps emitted events in memory."""

    def __init__(self):
        self.events: List[dict] = []

    def emit(self, event: dict) -> None:
        self.events.append(event)


def make_config(
    backend_id: BackendId,
    credential: str = "test-key",
    enabled: bool = True,
    **overrides,
) -> BackendConfig:
    params = dict(DEFAULT_BACKENDS[backend_id])
    params.update(overrides)
    return BackendConfig(id=backend_id, credential=credential, enabled=enabled, **params)


def make_registry(
    enabled: Sequence[BackendId],
    disabled: Sequence[BackendId] = (),
    priority: Optional[Sequence[BackendId]] = None,
) -> BackendRegistry:
    configs = [make_config(b) for b in enabled]
    configs += [make_config(b, credential="") for b in disabled]
    return BackendRegistry(configs, priority=priority)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def adapter_factory() -> Callable[..., Dict[BackendId, FakeAdapter]]:
    """Build a full BackendId -> FakeAdapter mapping with per-backend overrides."""

    def _build(**outcomes: Sequence[Outcome]) -> Dict[BackendId, FakeAdapter]:
        return {
            backend_id: FakeAdapter(backend_id, outcomes.get(backend_id.value, (f"{backend_id.value} says hi",)))
            for backend_id in BackendId
        }

    return _build


def error(cls: type, message: str = "boom", backend: str = "test") -> CompletionError:
    return cls(message, backend=backend)


@pytest.fixture
def installed_orchestrator(monkeypatch, adapter_factory, clock, sink):
    """
    Replace the global orchestrator with one built from fakes.

    Groq and Gemini are enabled, OpenAI is configured without a key. Tests
    adjust adapter outcomes through `orchestrator._adapters`.
    """
    from chatbot.services.ai import orchestration
    from chatbot.services.ai.cooldown import CooldownTracker

    orchestrator = orchestration.FallbackOrchestrator(
        make_registry([BackendId.GROQ, BackendId.GEMINI], disabled=[BackendId.OPENAI]),
        CooldownTracker(window_seconds=300, clock=clock),
        adapters=adapter_factory(),
        telemetry=sink,
    )
    monkeypatch.setattr(orchestration, "_orchestrator", orchestrator)
    return orchestrator
