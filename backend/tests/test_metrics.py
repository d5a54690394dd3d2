"""
Unit tests for Prometheus metrics collection.

Tests verify:
- RED metrics (Rate, Errors, Duration) are recorded correctly
- Completion metrics (attempts, classified failures, cooldowns) are recorded
- Metrics endpoint returns valid Prometheus format
"""
import pytest
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from chatbot.core.metrics import (
    get_metrics,
    get_metrics_content_type,
    http_errors_total,
    http_request_duration_seconds,
    http_requests_total,
    normalize_endpoint,
    record_backend_attempt,
    record_backend_error,
    record_backend_skipped,
    record_backend_suppressed,
    record_completion,
    record_http_request,
    record_model_substitution,
    registry,
)


def sample(name, **labels):
    return registry.get_sample_value(name, labels) or 0.0


class TestMetricsInitialization:

    def test_metrics_registry_exists(self):
        assert isinstance(registry, CollectorRegistry)

    def test_red_metrics_exist(self):
        assert http_requests_total is not None
        assert http_errors_total is not None
        assert http_request_duration_seconds is not None


class TestEndpointNormalization:

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/chat", "/chat"),
            ("/chat?debug=1", "/chat"),
            ("/health/", "/health"),
            ("/health/backends", "/health/backends"),
            ("/", "/"),
        ],
    )
    def test_normalize_endpoint(self, path, expected):
        assert normalize_endpoint(path) == expected


class TestREDMetrics:
    """Test RED metrics (Rate, Errors, Duration)."""

    def test_record_http_request_success(self):
        before = sample("http_requests_total", method="POST", endpoint="/chat", status="200")

        record_http_request(method="POST", endpoint="/chat", status_code=200, duration_seconds=0.1)

        assert sample("http_requests_total", method="POST", endpoint="/chat", status="200") == before + 1
        assert sample(
            "http_request_duration_seconds_count", method="POST", endpoint="/chat"
        ) >= 1

    def test_record_http_request_4xx_error(self):
        before = sample("http_errors_total", method="POST", endpoint="/chat", status_code="422")

        record_http_request(method="POST", endpoint="/chat", status_code=422, duration_seconds=0.05)

        assert sample("http_errors_total", method="POST", endpoint="/chat", status_code="422") == before + 1

    def test_success_is_not_an_error(self):
        before = sample("http_errors_total", method="GET", endpoint="/health", status_code="200")

        record_http_request("GET", "/health/", 200, 0.01)

        assert sample("http_errors_total", method="GET", endpoint="/health", status_code="200") == before


class TestCompletionMetrics:

    def test_record_completion(self):
        labels = dict(mode="automatic", provider="Google Gemini", success="true")
        before = sample("completion_requests_total", **labels)

        record_completion("automatic", "Google Gemini", True, 1.2)

        assert sample("completion_requests_total", **labels) == before + 1
        assert sample("completion_duration_seconds_count", mode="automatic") >= 1

    def test_record_backend_counters(self):
        before_attempts = sample("backend_attempts_total", backend="groq")
        before_errors = sample("backend_errors_total", backend="groq", error_kind="RateLimited")
        before_suppressed = sample("backend_suppressions_total", backend="groq")
        before_skipped = sample("backend_skipped_total", backend="groq")

        record_backend_attempt("groq")
        record_backend_error("groq", "RateLimited")
        record_backend_suppressed("groq")
        record_backend_skipped("groq")
        record_backend_skipped("groq")

        assert sample("backend_attempts_total", backend="groq") == before_attempts + 1
        assert sample("backend_errors_total", backend="groq", error_kind="RateLimited") == before_errors + 1
        assert sample("backend_suppressions_total", backend="groq") == before_suppressed + 1
        assert sample("backend_skipped_total", backend="groq") == before_skipped + 2

    def test_record_model_substitution(self):
        labels = dict(backend="huggingface", model="org/chat-a")
        before = sample("model_substitutions_total", **labels)

        record_model_substitution("huggingface", "org/chat-a")

        assert sample("model_substitutions_total", **labels) == before + 1


class TestMetricsEndpoint:
    """Test metrics endpoint functionality."""

    def test_get_metrics_contains_expected_metrics(self):
        record_http_request("GET", "/health", 200, 0.1)
        record_completion("explicit", "OpenAI GPT", False, 0.3)

        metrics_data = get_metrics().decode("utf-8")

        assert "http_requests_total" in metrics_data
        assert "completion_requests_total" in metrics_data
        assert "completion_duration_seconds" in metrics_data

    def test_get_metrics_content_type(self):
        assert get_metrics_content_type().startswith("text/plain")

    def test_metrics_endpoint_integration(self):
        from chatbot.main import app

        client = TestClient(app)
        client.get("/health/")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "http_requests_total" in response.text
        assert "# HELP" in response.text
        assert "# TYPE" in response.text
