import pytest
from pydantic import ValidationError

from indexer.search import SearchResult
from server.query_service import SectionResult
from server.tools import (
    FETCH_HINT,
    NO_RESULTS,
    PAGE_NOT_FOUND,
    TOOL_DEFINITIONS,
    DocsFetchArgs,
    DocsGetSectionArgs,
    DocsSearchArgs,
    format_page_content,
    format_search_results,
    format_section_content,
)
from conftest import make_doc


def test_no_results_message():
    assert format_search_results([]) == NO_RESULTS == "No matching documents found."


def test_search_results_rendering():
    results = [
        SearchResult(route="/docs/auth", title="Auth", score=4.5, snippet="Use OAuth...",
                      matching_headings=["OAuth setup", "Tokens"]),
        SearchResult(route="/docs/start", title="Start", score=1.0, snippet="Install it."),
    ]
    text = format_search_results(results, base_url="https://docs.example.com/")
    lines = text.split("\n")

    assert lines[0] == "Found 2 result(s):"
    assert "1. **Auth**" in lines
    assert "   URL: https://docs.example.com/docs/auth" in lines
    assert "   Route: /docs/auth" in lines
    assert "   Matching sections: OAuth setup, Tokens" in lines
    assert "   Use OAuth..." in lines
    assert "2. **Start**" in lines
    assert lines[-1] == FETCH_HINT
    assert text.count("Matching sections") == 1


def test_page_rendering_lists_headings_up_to_level_three():
    doc = make_doc(
        "/docs/guide", "Guide",
        "# Guide\n\nIntro.\n\n## Install\n\nSteps.\n\n### Linux\n\nApt.\n\n#### Deep\n\nHidden.\n",
        description="How to install.",
    )
    text = format_page_content(doc, base_url="https://docs.example.com")
    lines = text.split("\n")

    assert lines[0] == "# Guide"
    assert "> How to install." in lines
    assert "**URL:** https://docs.example.com/docs/guide" in lines
    assert "**Route:** /docs/guide" in lines
    assert "## Contents" in lines
    assert "- [Guide](#guide)" in lines
    assert "  - [Install](#install)" in lines
    assert "    - [Linux](#linux)" in lines
    assert "[Deep](#deep)" not in text
    assert "---" in lines
    assert text.endswith(doc.body)


def test_page_without_headings_or_base_url():
    doc = make_doc("/plain", "Plain", "Just text without any headings at all.\n")
    text = format_page_content(doc)
    assert "**URL:**" not in text
    assert "## Contents" not in text
    assert "---" not in text


def test_page_not_found():
    assert format_page_content(None) == PAGE_NOT_FOUND


def test_section_rendering():
    doc = make_doc("/docs/auth", "Auth", "# Auth\n\n## Setup\n\nDo it.\n")
    result = SectionResult(doc=doc, content="## Setup\n\nDo it.", heading_text="Setup")

    assert format_section_content(result, "setup").split("\n")[:2] == [
        "# Setup", "> From: Auth (/docs/auth)"
    ]
    with_url = format_section_content(result, "setup", base_url="https://d.example.com")
    assert "> From: Auth - https://d.example.com/docs/auth#setup" in with_url
    assert with_url.endswith("## Setup\n\nDo it.")


def test_section_miss_lists_available_sections():
    doc = make_doc("/docs/auth", "Auth", "# Auth\n\n## Setup\n\nDo it.\n")
    result = SectionResult(doc=doc, available_headings=[
        {"id": "auth", "text": "Auth", "level": 1},
        {"id": "setup", "text": "Setup", "level": 2},
    ])
    text = format_section_content(result, "missing")
    assert text.split("\n") == [
        'Section "missing" not found in this document.',
        "",
        "Available sections:",
        "- Auth (id: auth)",
        "  - Setup (id: setup)",
    ]


def test_section_unknown_page():
    assert format_section_content(SectionResult(doc=None), "x") == PAGE_NOT_FOUND


def test_argument_models():
    assert DocsSearchArgs(query="oauth").limit == 5
    with pytest.raises(ValidationError):
        DocsSearchArgs(query="")
    with pytest.raises(ValidationError):
        DocsSearchArgs(query="x", limit=21)
    with pytest.raises(ValidationError):
        DocsFetchArgs()
    assert DocsFetchArgs(route="/docs/a").target == "/docs/a"
    assert DocsGetSectionArgs.model_validate({"route": "/a", "headingId": "b"}).heading_id == "b"


def test_tool_definitions_expose_schemas():
    names = [tool["name"] for tool in TOOL_DEFINITIONS]
    assert names == ["docs_search", "docs_fetch", "docs_get_section"]

    search_schema = TOOL_DEFINITIONS[0]["inputSchema"]
    assert search_schema["required"] == ["query"]
    assert search_schema["properties"]["limit"]["maximum"] == 20
    assert "headingId" in TOOL_DEFINITIONS[2]["inputSchema"]["properties"]
