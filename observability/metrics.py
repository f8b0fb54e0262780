"""Prometheus metrics for snapshot builds and the MCP server."""

import logging
from typing import Tuple

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Dedicated registry exposed by GET /metrics
docs_mcp_registry = CollectorRegistry()

pages_processed = Counter(
    'docs_mcp_pages_total',
    'Pages processed during snapshot builds',
    ['status'],
    registry=docs_mcp_registry
)

conversion_fallbacks = Counter(
    'docs_mcp_conversion_fallbacks_total',
    'Pages converted with the plain-text fallback',
    registry=docs_mcp_registry
)

search_requests = Counter(
    'docs_mcp_search_requests_total',
    'Total number of search requests',
    ['status'],
    registry=docs_mcp_registry
)

search_duration = Histogram(
    'docs_mcp_search_duration_seconds',
    'Search request duration in seconds',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
    registry=docs_mcp_registry
)

tool_calls = Counter(
    'docs_mcp_tool_calls_total',
    'MCP tool invocations',
    ['tool', 'status'],
    registry=docs_mcp_registry
)

documents_loaded = Gauge(
    'docs_mcp_documents_loaded',
    'Documents available to the query service',
    registry=docs_mcp_registry
)


def record_page_outcome(status: str, fallback: bool = False) -> None:
    pages_processed.labels(status=status).inc()
    if fallback:
        conversion_fallbacks.inc()


def record_search(status: str, duration: float) -> None:
    search_requests.labels(status=status).inc()
    search_duration.observe(duration)


def record_tool_call(tool: str, status: str) -> None:
    tool_calls.labels(tool=tool, status=status).inc()


def set_documents_loaded(count: int) -> None:
    documents_loaded.set(count)


def metrics_payload() -> Tuple[bytes, str]:
    """Exposition body and content type for the metrics endpoint."""
    return generate_latest(docs_mcp_registry), CONTENT_TYPE_LATEST
