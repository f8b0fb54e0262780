"""Observability package for the docs MCP server."""

from .logging import setup_logging
from .metrics import (
    docs_mcp_registry,
    record_page_outcome,
    record_search,
    record_tool_call,
    set_documents_loaded,
    metrics_payload
)

__all__ = [
    'setup_logging',
    'docs_mcp_registry',
    'record_page_outcome',
    'record_search',
    'record_tool_call',
    'set_documents_loaded',
    'metrics_payload'
]
