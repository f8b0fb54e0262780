"""HTML fragment to Markdown conversion.

The structured path uses markdownify with ATX headings, ``-`` bullets and
fenced code blocks. When markdownify fails on a fragment, a plain-text
extraction is returned instead and the result is tagged so callers can
report the degradation.
"""

import html as html_lib
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bs4 import BeautifulSoup, Tag
from markdownify import ATX, ASTERISK, MarkdownConverter

logger = logging.getLogger(__name__)

CONVERSION_ERRORS = (RecursionError, ValueError, TypeError, AttributeError)


class ConversionMode(str, Enum):
    STRUCTURED = "structured"
    PLAIN_TEXT = "plain_text"


@dataclass
class ConversionResult:
    """Markdown text plus the path that produced it."""
    markdown: str
    mode: ConversionMode = ConversionMode.STRUCTURED
    error: Optional[str] = None

    @property
    def fallback(self) -> bool:
        return self.mode is ConversionMode.PLAIN_TEXT


_BLANK_RUN_RE = re.compile(r"\n{3,}")

# Plain-text extraction patterns
_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_PARAGRAPH_END_RE = re.compile(r"</p>", re.IGNORECASE)
_HEADING_END_RE = re.compile(r"</h[1-6]>", re.IGNORECASE)
_LIST_ITEM_END_RE = re.compile(r"</li>", re.IGNORECASE)
_DIV_END_RE = re.compile(r"</div>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_INLINE_SPACE_RE = re.compile(r"[ \t]+")


def _code_language(el: Tag) -> str:
    """Fence language from a ``language-xxx`` class on ``pre`` or its ``code``."""
    candidates = [el]
    code = el.find("code") if isinstance(el, Tag) else None
    if code is not None:
        candidates.append(code)
    for candidate in candidates:
        for css_class in candidate.get("class") or []:
            if css_class.startswith("language-"):
                return css_class[len("language-"):]
    return ""


def _new_converter() -> MarkdownConverter:
    return MarkdownConverter(
        heading_style=ATX,
        bullets="-",
        strong_em_symbol=ASTERISK,
        code_language_callback=_code_language,
        escape_asterisks=False,
        escape_underscores=False,
        escape_misc=False,
    )


def _strip_permalinks(soup: BeautifulSoup) -> None:
    """Drop in-page anchor links that carry no text, such as heading permalinks."""
    for anchor in soup.find_all("a"):
        text = anchor.get_text().replace("\u200b", "").strip()
        classes = anchor.get("class") or []
        if "hash-link" in classes or (not text and anchor.find("img") is None):
            anchor.decompose()


def clean_markdown(markdown: str) -> str:
    """Trim trailing line whitespace, collapse blank runs, end with one newline."""
    lines = [line.rstrip() for line in markdown.split("\n")]
    text = _BLANK_RUN_RE.sub("\n\n", "\n".join(lines))
    text = text.strip()
    return text + "\n" if text else ""


def html_to_plain_text(html: str) -> str:
    """Regex-based text extraction used when structured conversion fails."""
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _BR_RE.sub("\n", text)
    text = _PARAGRAPH_END_RE.sub("\n\n", text)
    text = _HEADING_END_RE.sub("\n\n", text)
    text = _LIST_ITEM_END_RE.sub("\n", text)
    text = _DIV_END_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    text = html_lib.unescape(text).replace("\xa0", " ")
    text = _INLINE_SPACE_RE.sub(" ", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def html_to_markdown(html: str) -> ConversionResult:
    """Convert an HTML fragment into normalized Markdown.

    Args:
        html: Cleaned content fragment

    Returns:
        ConversionResult; ``mode`` is ``PLAIN_TEXT`` when the structured
        converter failed and the fallback produced the text
    """
    if not html or not html.strip():
        return ConversionResult(markdown="")

    try:
        soup = BeautifulSoup(html, "html.parser")
        _strip_permalinks(soup)
        markdown = _new_converter().convert_soup(soup)
        return ConversionResult(markdown=clean_markdown(markdown))
    except CONVERSION_ERRORS as e:
        logger.debug(f"Structured conversion failed, using plain text: {e}")
        return ConversionResult(
            markdown=clean_markdown(html_to_plain_text(html)),
            mode=ConversionMode.PLAIN_TEXT,
            error=f"{type(e).__name__}: {e}",
        )
