from pathlib import Path

from pipelines.html_parser import (
    ExtractionOptions,
    clean_content_element,
    extract_content,
    extract_content_from_file,
    parse_html,
)
from conftest import AUTHENTICATION_HTML, GETTING_STARTED_HTML


def test_title_prefers_first_h1():
    extracted = extract_content(GETTING_STARTED_HTML)
    assert extracted.title == "Getting Started"


def test_title_falls_back_to_title_tag_then_untitled():
    html = "<html><head><title> Plain Title </title></head><body><p>x</p></body></html>"
    assert extract_content(html).title == "Plain Title"
    assert extract_content("<html><body><p>text</p></body></html>").title == "Untitled"


def test_description_resolution_order():
    assert extract_content(GETTING_STARTED_HTML).description == (
        "Learn how to install and configure the library."
    )
    assert extract_content(AUTHENTICATION_HTML).description == "Configure OAuth for API access."
    assert extract_content("<html><body><p>none</p></body></html>").description == ""


def test_content_region_excludes_chrome_and_scripts():
    extracted = extract_content(GETTING_STARTED_HTML)
    assert "Installation" in extracted.content_html
    assert "<script" not in extracted.content_html
    assert "tracking" not in extracted.content_html
    assert "Edit this page" not in extracted.content_html
    assert "Home Docs Blog" not in extracted.content_html
    assert "Sidebar links" not in extracted.content_html


def test_short_selector_match_falls_back_to_body():
    html = (
        "<html><body><article>Too short.</article>"
        "<div>Body text that is long enough to be considered documentation content.</div>"
        "</body></html>"
    )
    extracted = extract_content(html)
    assert "Body text that is long enough" in extracted.content_html
    assert extracted.content_html.startswith("<body")


def test_missing_body_yields_empty_content():
    extracted = extract_content("")
    assert extracted.content_html == ""
    assert not extracted.has_content


def test_custom_selectors():
    html = (
        '<html><body><div class="doc-content">'
        '<div role="note">Remove this note</div>'
        "<p>Documentation paragraph long enough to pass the minimum threshold easily.</p>"
        "</div></body></html>"
    )
    options = ExtractionOptions(content_selectors=[".doc-content"],
                                exclude_selectors=['[role="note"]'])
    extracted = extract_content(html, options)
    assert "Documentation paragraph" in extracted.content_html
    assert "Remove this note" not in extracted.content_html


def test_cleaning_does_not_mutate_input_tree():
    soup = parse_html(GETTING_STARTED_HTML)
    article = soup.find("article")
    cleaned = clean_content_element(article, ["footer"])

    assert cleaned.find("footer") is None
    assert cleaned.find("script") is None
    assert article.find("footer") is not None
    assert article.find("script") is not None


def test_extract_from_file(tmp_path: Path):
    page = tmp_path / "index.html"
    page.write_text(AUTHENTICATION_HTML, encoding="utf-8")
    extracted = extract_content_from_file(page)
    assert extracted.title == "Authentication"
    assert "OAuth setup" in extracted.content_html
