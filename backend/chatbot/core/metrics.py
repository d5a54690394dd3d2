"""
Prometheus metrics collection module.

Metrics Categories:
- RED Metrics: Rate, Errors, Duration of the HTTP surface
- Completion Metrics: per-backend attempts, classified failures,
  cooldown suppressions and end-to-end completion latency

All metrics follow Prometheus naming conventions:
- Counters: _total suffix
- Histograms: _seconds suffix for duration
"""
from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY,
    CONTENT_TYPE_LATEST,
)

from chatbot.core.logging import get_logger

logger = get_logger(__name__)

registry = REGISTRY

# ============================================================================
# RED METRICS - Rate, Errors, Duration
# ============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status"],
    registry=registry,
)

http_errors_total = Counter(
    "http_errors_total",
    "Total number of HTTP errors",
    ["method", "endpoint", "status_code"],
    registry=registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=registry,
)

# ============================================================================
# COMPLETION METRICS
# ============================================================================

completion_requests_total = Counter(
    "completion_requests_total",
    "Total number of chat completion requests by outcome",
    ["mode", "provider", "success"],  # mode: "explicit" | "automatic"
    registry=registry,
)

completion_duration_seconds = Histogram(
    "completion_duration_seconds",
    "End-to-end completion latency in seconds (including fallbacks)",
    ["mode"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0],
    registry=registry,
)

backend_attempts_total = Counter(
    "backend_attempts_total",
    "Total number of adapter invocations per backend",
    ["backend"],
    registry=registry,
)

backend_errors_total = Counter(
    "backend_errors_total",
    "Total number of classified backend failures",
    ["backend", "error_kind"],
    registry=registry,
)

backend_suppressions_total = Counter(
    "backend_suppressions_total",
    "Total number of times a backend was put into cooldown",
    ["backend"],
    registry=registry,
)

backend_skipped_total = Counter(
    "backend_skipped_total",
    "Total number of automatic selections that skipped a suppressed backend",
    ["backend"],
    registry=registry,
)

model_substitutions_total = Counter(
    "model_substitutions_total",
    "Total number of failed models walked past by the model substitution adapter",
    ["backend", "model"],
    registry=registry,
)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def normalize_endpoint(path: str) -> str:
    """
    Normalize endpoint path for metrics.

    Strips query parameters and trailing slashes so that label cardinality
    stays bounded.

    Examples:
        /chat?x=1 -> /chat
        /health/ -> /health
    """
    if "?" in path:
        path = path.split("?")[0]
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def record_http_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """
    Record HTTP request metrics (RED metrics).

    Args:
        method: HTTP method (GET, POST, etc.)
        endpoint: Request path
        status_code: HTTP status code
        duration_seconds: Request duration in seconds
    """
    normalized_endpoint = normalize_endpoint(endpoint)

    http_requests_total.labels(
        method=method,
        endpoint=normalized_endpoint,
        status=str(status_code),
    ).inc()

    if status_code >= 400:
        http_errors_total.labels(
            method=method,
            endpoint=normalized_endpoint,
            status_code=str(status_code),
        ).inc()

    http_request_duration_seconds.labels(
        method=method,
        endpoint=normalized_endpoint,
    ).observe(duration_seconds)


def record_completion(mode: str, provider: str, success: bool, duration_seconds: float) -> None:
    """
    Record the outer outcome of one completion request.

    Args:
        mode: "explicit" when the caller pinned a backend, else "automatic"
        provider: Display name of the backend that answered (or "None")
        success: Whether a completion was obtained
        duration_seconds: Total time spent, fallbacks included
    """
    completion_requests_total.labels(
        mode=mode,
        provider=provider,
        success=str(success).lower(),
    ).inc()
    completion_duration_seconds.labels(mode=mode).observe(duration_seconds)


def record_backend_attempt(backend: str) -> None:
    backend_attempts_total.labels(backend=backend).inc()


def record_backend_error(backend: str, error_kind: str) -> None:
    """
    Record a classified backend failure.

    Args:
        backend: Backend identifier (e.g. "groq")
        error_kind: Classification name (RateLimited, AuthInvalid, ...)
    """
    backend_errors_total.labels(backend=backend, error_kind=error_kind).inc()


def record_backend_suppressed(backend: str) -> None:
    backend_suppressions_total.labels(backend=backend).inc()


def record_backend_skipped(backend: str) -> None:
    backend_skipped_total.labels(backend=backend).inc()


def record_model_substitution(backend: str, model: str) -> None:
    model_substitutions_total.labels(backend=backend, model=model).inc()


def get_metrics() -> bytes:
    """
    Get Prometheus metrics in text format.
    """
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    """
    Get content type for metrics endpoint.
    """
    return CONTENT_TYPE_LATEST
