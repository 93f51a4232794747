"""Observability module for metrics and monitoring."""

from research_engine.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    record_fallback,
    track_embedding_request,
    track_llm_request,
    track_report_synthesis,
    track_retrieval_request,
    track_vectorstore_operation,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "record_fallback",
    "track_embedding_request",
    "track_llm_request",
    "track_report_synthesis",
    "track_retrieval_request",
    "track_vectorstore_operation",
]
