"""Prometheus metrics for the research engine.

Provides metrics instrumentation for:
- HTTP request latency and counts
- Completion token usage and latency
- Embedding request latency and fallbacks
- Retrieval metrics (matches, scores, relevance gate)
- Vector store load/save/search
- Report synthesis outcomes
- Fallback events from every degrade-gracefully path
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from research_engine.logging_config import get_logger

logger = get_logger(__name__)

# HTTP Request Metrics
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Completion Metrics
LLM_REQUEST_DURATION = Histogram(
    "llm_request_duration_seconds",
    "Completion request duration in seconds",
    ["model", "status"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

LLM_TOKENS_TOTAL = Counter(
    "llm_tokens_total",
    "Total completion tokens used",
    ["model", "type"],  # "type" label values: prompt, completion
)

LLM_REQUEST_TOTAL = Counter(
    "llm_requests_total",
    "Total completion requests",
    ["model", "status"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

# Retrieval Metrics
RETRIEVAL_MATCHES_INCLUDED = Histogram(
    "retrieval_matches_included",
    "Number of matches included in the context per retrieval",
    buckets=[0, 1, 2, 3, 5, 10, 20, 50],
)

RETRIEVAL_TOP_SCORE = Histogram(
    "retrieval_top_score",
    "Best similarity score per query",
    buckets=[0.1, 0.2, 0.3, 0.35, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

RETRIEVAL_GATE_TOTAL = Counter(
    "retrieval_gate_total",
    "Relevance gate outcomes",
    ["outcome"],  # passed, rejected, empty
)

# Vector Store Metrics
VECTORSTORE_OPERATION_DURATION = Histogram(
    "vectorstore_operation_duration_seconds",
    "Vector store operation duration",
    ["operation", "status"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

VECTORSTORE_DOCUMENTS = Gauge(
    "vectorstore_documents",
    "Documents currently held by the vector store",
)

# Report Metrics
REPORT_SYNTHESIS_TOTAL = Counter(
    "report_synthesis_total",
    "Report synthesis outcomes",
    ["outcome"],  # structured, fallback
)

# Fallback Events
FALLBACK_EVENTS_TOTAL = Counter(
    "fallback_events_total",
    "Degraded results returned instead of errors",
    ["component", "reason"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        """Initialize the middleware."""
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and collect metrics."""
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        endpoint = self._normalize_endpoint(request.url.path)

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).observe(duration)

        HTTP_REQUEST_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        if path.startswith("/health"):
            return "/health"
        if path.startswith("/api/v1/"):
            parts = path.split("/")
            if len(parts) >= 4:
                return f"/api/v1/{parts[3]}"
        return path


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def record_fallback(component: str, reason: str, **details: Any) -> None:
    """Record that a component returned a degraded result.

    Logs a structured warning and increments the fallback counter so
    absorbed failures stay visible.

    Args:
        component: Component that degraded (embedding, completion, vectorstore, report).
        reason: Short machine-readable cause (timeout, http_error, parse_error, ...).
        **details: Extra context for the log line.
    """
    FALLBACK_EVENTS_TOTAL.labels(component=component, reason=reason).inc()
    logger.warning(
        f"{component} fallback: {reason}",
        extra={"fallback_component": component, "fallback_reason": reason, **details},
    )


def track_llm_request(
    model: str,
    duration: float,
    prompt_tokens: int,
    completion_tokens: int,
    success: bool = True,
) -> None:
    """Track completion request metrics.

    Args:
        model: Model name.
        duration: Request duration in seconds.
        prompt_tokens: Number of prompt tokens.
        completion_tokens: Number of completion tokens.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    LLM_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    LLM_REQUEST_TOTAL.labels(model=model, status=status).inc()

    if success:
        LLM_TOKENS_TOTAL.labels(model=model, type="prompt").inc(prompt_tokens)
        LLM_TOKENS_TOTAL.labels(model=model, type="completion").inc(completion_tokens)


def track_embedding_request(
    model: str,
    duration: float,
    status: str = "success",
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        status: success, error, mock or fallback.
    """
    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()


def track_retrieval_request(
    matches_included: int,
    top_score: float | None,
    gate_passed: bool,
) -> None:
    """Track retrieval request metrics.

    Args:
        matches_included: Number of matches placed into the context.
        top_score: Best similarity score, or None for an empty result.
        gate_passed: Whether the relevance gate let the matches through.
    """
    RETRIEVAL_MATCHES_INCLUDED.observe(matches_included)
    if top_score is None:
        RETRIEVAL_GATE_TOTAL.labels(outcome="empty").inc()
        return
    RETRIEVAL_TOP_SCORE.observe(max(top_score, 0.0))
    RETRIEVAL_GATE_TOTAL.labels(outcome="passed" if gate_passed else "rejected").inc()


def track_vectorstore_operation(
    operation: str,
    duration: float,
    success: bool = True,
    documents: int | None = None,
) -> None:
    """Track a vector store operation.

    Args:
        operation: load, save or search.
        duration: Operation duration in seconds.
        success: Whether the operation succeeded.
        documents: Current corpus size, when known.
    """
    status = "success" if success else "error"
    VECTORSTORE_OPERATION_DURATION.labels(operation=operation, status=status).observe(
        duration
    )
    if documents is not None:
        VECTORSTORE_DOCUMENTS.set(documents)


def track_report_synthesis(structured: bool) -> None:
    """Track whether a report parsed into the structured schema."""
    REPORT_SYNTHESIS_TOTAL.labels(
        outcome="structured" if structured else "fallback"
    ).inc()
