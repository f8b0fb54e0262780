"""MCP tool schemas and text rendering of query results."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from indexer.search import SearchResult
from pipelines.models import ProcessedDoc
from .query_service import DEFAULT_LIMIT, MAX_LIMIT, MIN_LIMIT, SectionResult

PAGE_NOT_FOUND = "Page not found. Please check the route path and try again."
NO_RESULTS = "No matching documents found."
FETCH_HINT = "Use docs_fetch with the URL to retrieve the full page content."
MAX_TOC_LEVEL = 3


class DocsSearchArgs(BaseModel):
    query: str = Field(..., min_length=1, description="The search query string")
    limit: int = Field(
        DEFAULT_LIMIT,
        ge=MIN_LIMIT,
        le=MAX_LIMIT,
        description="Maximum number of results to return (1-20, default: 5)",
    )


class DocsFetchArgs(BaseModel):
    url: Optional[str] = Field(
        None,
        description='Full URL of the page (e.g., "https://docs.example.com/docs/getting-started")',
    )
    route: Optional[str] = Field(
        None,
        description="Route path of the page (e.g., /docs/getting-started)",
    )

    @model_validator(mode="after")
    def _require_target(self):
        if not (self.url or "").strip() and not (self.route or "").strip():
            raise ValueError("Either url or route is required")
        return self

    @property
    def target(self) -> str:
        return (self.url or "").strip() or (self.route or "").strip()


class DocsGetSectionArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    route: str = Field(..., min_length=1, description="Route path or full URL of the page")
    heading_id: str = Field(
        ...,
        min_length=1,
        alias="headingId",
        description="ID of the heading to retrieve (e.g., authentication)",
    )


def _input_schema(model) -> Dict[str, Any]:
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema


TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": "docs_search",
        "description": (
            "Search the documentation for relevant pages. Returns matching documents "
            "with URLs, snippets, and relevance scores. Use this to find information "
            "across all documentation."
        ),
        "inputSchema": _input_schema(DocsSearchArgs),
    },
    {
        "name": "docs_fetch",
        "description": (
            "Fetch the complete content of a documentation page. Use this after "
            "searching to get full page content."
        ),
        "inputSchema": _input_schema(DocsFetchArgs),
    },
    {
        "name": "docs_get_section",
        "description": (
            "Retrieve a specific section of a documentation page by heading ID. "
            "Use this to get focused content from a larger page."
        ),
        "inputSchema": _input_schema(DocsGetSectionArgs),
    },
]

TOOL_ALIASES = {"docs_get_page": "docs_fetch"}


def _page_url(route: str, base_url: str = "") -> Optional[str]:
    if not base_url:
        return None
    return base_url.rstrip("/") + route


def format_search_results(results: List[SearchResult], base_url: str = "") -> str:
    if not results:
        return NO_RESULTS

    lines = [f"Found {len(results)} result(s):", ""]
    for i, result in enumerate(results, 1):
        lines.append(f"{i}. **{result.title}**")
        url = result.url or _page_url(result.route, base_url)
        if url:
            lines.append(f"   URL: {url}")
        lines.append(f"   Route: {result.route}")
        if result.matching_headings:
            lines.append(f"   Matching sections: {', '.join(result.matching_headings)}")
        lines.append(f"   {result.snippet}")
        lines.append("")

    lines.append(FETCH_HINT)
    return "\n".join(lines)


def format_page_content(doc: Optional[ProcessedDoc], base_url: str = "") -> str:
    """Render a page with its contents list.

    Only headings up to level 3 are listed, indented by level.
    """
    if doc is None:
        return PAGE_NOT_FOUND

    lines = [f"# {doc.title}", ""]

    if doc.description:
        lines.extend([f"> {doc.description}", ""])

    url = _page_url(doc.route, base_url)
    if url:
        lines.append(f"**URL:** {url}")
    lines.append(f"**Route:** {doc.route}")
    lines.append("")

    if doc.headings:
        lines.extend(["## Contents", ""])
        for heading in doc.headings:
            if heading.level <= MAX_TOC_LEVEL:
                indent = "  " * (heading.level - 1)
                lines.append(f"{indent}- [{heading.text}](#{heading.id})")
        lines.extend(["", "---", ""])

    lines.append(doc.body)
    return "\n".join(lines)


def format_section_content(result: SectionResult, heading_id: str, base_url: str = "") -> str:
    if result.doc is None:
        return PAGE_NOT_FOUND

    if result.content is None:
        lines = [f'Section "{heading_id}" not found in this document.', "", "Available sections:"]
        for heading in result.available_headings:
            indent = "  " * (int(heading["level"]) - 1)
            lines.append(f"{indent}- {heading['text']} (id: {heading['id']})")
        return "\n".join(lines)

    doc = result.doc
    url = _page_url(doc.route, base_url)
    lines = [f"# {result.heading_text}"]
    if url:
        lines.append(f"> From: {doc.title} - {url}#{heading_id}")
    else:
        lines.append(f"> From: {doc.title} ({doc.route})")
    lines.extend(["", "---", "", result.content])
    return "\n".join(lines)
