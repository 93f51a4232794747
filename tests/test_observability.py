"""Tests for observability module."""

import logging

import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY

from research_engine.observability.metrics import (
    get_metrics,
    record_fallback,
    track_embedding_request,
    track_llm_request,
    track_report_synthesis,
    track_retrieval_request,
    track_vectorstore_operation,
)


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricsEndpoint:
    """Tests for /metrics endpoint."""

    async def test_metrics_endpoint_returns_prometheus_format(
        self, client: AsyncClient
    ) -> None:
        """Metrics endpoint returns Prometheus format."""
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert b"# HELP" in response.content


class TestMetricsFunctions:
    """Tests for metrics tracking functions."""

    def test_get_metrics_returns_bytes(self) -> None:
        """get_metrics returns bytes."""
        assert isinstance(get_metrics(), bytes)

    def test_track_llm_request_success(self) -> None:
        """track_llm_request records token usage."""
        labels = {"model": "test-model", "type": "prompt"}
        before = _sample("llm_tokens_total", labels)

        track_llm_request(
            model="test-model",
            duration=1.5,
            prompt_tokens=100,
            completion_tokens=50,
            success=True,
        )

        assert _sample("llm_tokens_total", labels) == before + 100

    def test_track_llm_request_failure(self) -> None:
        """Failed requests count as errors and add no tokens."""
        labels = {"model": "failing-model", "status": "error"}
        before = _sample("llm_requests_total", labels)

        track_llm_request(
            model="failing-model",
            duration=0.5,
            prompt_tokens=0,
            completion_tokens=0,
            success=False,
        )

        assert _sample("llm_requests_total", labels) == before + 1

    def test_track_embedding_request(self) -> None:
        """track_embedding_request counts by status."""
        labels = {"model": "text-embedding-3-small", "status": "fallback"}
        before = _sample("embedding_requests_total", labels)

        track_embedding_request(model="text-embedding-3-small", duration=0.1, status="fallback")

        assert _sample("embedding_requests_total", labels) == before + 1

    def test_track_retrieval_request_gate_outcomes(self) -> None:
        """Gate outcomes are counted separately."""
        passed = _sample("retrieval_gate_total", {"outcome": "passed"})
        rejected = _sample("retrieval_gate_total", {"outcome": "rejected"})
        empty = _sample("retrieval_gate_total", {"outcome": "empty"})

        track_retrieval_request(matches_included=3, top_score=0.9, gate_passed=True)
        track_retrieval_request(matches_included=0, top_score=0.2, gate_passed=False)
        track_retrieval_request(matches_included=0, top_score=None, gate_passed=False)

        assert _sample("retrieval_gate_total", {"outcome": "passed"}) == passed + 1
        assert _sample("retrieval_gate_total", {"outcome": "rejected"}) == rejected + 1
        assert _sample("retrieval_gate_total", {"outcome": "empty"}) == empty + 1

    def test_track_vectorstore_operation_sets_gauge(self) -> None:
        """Corpus size gauge follows the last reported value."""
        track_vectorstore_operation("save", duration=0.01, documents=42)
        assert _sample("vectorstore_documents") == 42

    def test_track_report_synthesis(self) -> None:
        """Structured and fallback reports are counted."""
        before = _sample("report_synthesis_total", {"outcome": "fallback"})
        track_report_synthesis(structured=False)
        assert _sample("report_synthesis_total", {"outcome": "fallback"}) == before + 1


class TestRecordFallback:
    """Tests for fallback event recording."""

    def test_increments_counter(self) -> None:
        """Each fallback increments the labelled counter."""
        labels = {"component": "embedding", "reason": "timeout"}
        before = _sample("fallback_events_total", labels)

        record_fallback("embedding", "timeout", model="text-embedding-3-small")

        assert _sample("fallback_events_total", labels) == before + 1

    def test_logs_structured_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        """Fallback is logged with component and reason fields."""
        with caplog.at_level(logging.WARNING):
            record_fallback("completion", "remote_error", code="RES-5000")

        record = next(r for r in caplog.records if r.getMessage() == "completion fallback: remote_error")
        assert record.levelno == logging.WARNING
        assert record.fallback_component == "completion"
        assert record.fallback_reason == "remote_error"
        assert record.code == "RES-5000"


class TestMetricsMiddleware:
    """Tests for MetricsMiddleware."""

    async def test_middleware_records_request_metrics(self, client: AsyncClient) -> None:
        """Middleware records HTTP request metrics."""
        labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
        before = _sample("http_requests_total", labels)

        await client.get("/health")

        assert _sample("http_requests_total", labels) == before + 1

    async def test_middleware_normalizes_endpoints(self, client: AsyncClient) -> None:
        """Health sub-paths are grouped under /health."""
        labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
        before = _sample("http_requests_total", labels)

        await client.get("/health/live")
        await client.get("/health/ready")

        assert _sample("http_requests_total", labels) == before + 2
