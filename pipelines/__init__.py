"""Page pipeline for the docs MCP server.

Provides route discovery, content extraction, Markdown conversion, heading
indexing and document assembly.
"""

from .models import Heading, ProcessedDoc
from .html_parser import ExtractionOptions, ExtractedContent, extract_content, extract_content_from_file
from .html_to_markdown import ConversionMode, ConversionResult, html_to_markdown
from .headings import extract_headings, extract_section, generate_heading_id
from .route_collector import RouteEntry, collect_routes, filter_routes, route_to_html_path
from .assembler import (
    AssemblyStats,
    PageResult,
    ProcessingOptions,
    assemble_documents,
    process_html,
    process_html_file
)

__all__ = [
    # Models
    'Heading',
    'ProcessedDoc',

    # Extraction
    'ExtractionOptions',
    'ExtractedContent',
    'extract_content',
    'extract_content_from_file',

    # Conversion
    'ConversionMode',
    'ConversionResult',
    'html_to_markdown',

    # Headings
    'extract_headings',
    'extract_section',
    'generate_heading_id',

    # Routes
    'RouteEntry',
    'collect_routes',
    'filter_routes',
    'route_to_html_path',

    # Assembly
    'AssemblyStats',
    'PageResult',
    'ProcessingOptions',
    'assemble_documents',
    'process_html',
    'process_html_file'
]
