"""Content extraction from rendered documentation pages.

Locates the main content region of a page, strips navigation chrome and
script-like elements, and returns the cleaned HTML fragment together with
the page title and description.
"""

import copy
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_SELECTORS = ["article", "main", ".main-wrapper", '[role="main"]']
DEFAULT_EXCLUDE_SELECTORS = [
    "nav",
    "header",
    "footer",
    "aside",
    '[role="navigation"]',
    '[role="banner"]',
    '[role="contentinfo"]',
]
ALWAYS_EXCLUDED = ("script", "style", "noscript")
MIN_CONTENT_TEXT_LENGTH = 50
UNTITLED = "Untitled"

_ATTR_SELECTOR_RE = re.compile(r'^\[([\w:-]+)=["\']?([^"\'\]]*)["\']?\]$')


@dataclass
class ExtractionOptions:
    """Selectors controlling content extraction."""
    content_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_CONTENT_SELECTORS))
    exclude_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_SELECTORS))
    min_text_length: int = MIN_CONTENT_TEXT_LENGTH


@dataclass
class ExtractedContent:
    """Result of extracting a single page."""
    title: str
    description: str
    content_html: str

    @property
    def has_content(self) -> bool:
        return bool(self.content_html.strip())


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return element.get_text().replace("\u200b", "").strip()


def extract_title(soup: BeautifulSoup) -> str:
    """First ``h1`` text, else the ``<title>`` text, else ``"Untitled"``."""
    title = _text(soup.find("h1"))
    if title:
        return title
    title = _text(soup.find("title"))
    return title or UNTITLED


def extract_description(soup: BeautifulSoup) -> str:
    """Meta description, else Open Graph description, else empty."""
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        meta = soup.find("meta", attrs=attrs)
        if meta is not None:
            content = (meta.get("content") or "").strip()
            if content:
                return content
    return ""


def find_content_element(soup: BeautifulSoup, selectors: Sequence[str],
                         min_text_length: int = MIN_CONTENT_TEXT_LENGTH) -> Optional[Tag]:
    """Return the first selector match with enough text, falling back to ``<body>``."""
    for selector in selectors:
        try:
            element = soup.select_one(selector)
        except ValueError as e:
            # soupsieve raises SelectorSyntaxError, a ValueError subclass
            logger.warning(f"Ignoring invalid content selector '{selector}': {e}")
            continue
        if element is not None and len(_text(element)) > min_text_length:
            return element

    return soup.body


def _matches_selector(element: Tag, selector: str) -> bool:
    """Match a simple ``tag``, ``.class`` or ``[attr="value"]`` selector."""
    if selector.startswith("."):
        return selector[1:] in (element.get("class") or [])

    attr_match = _ATTR_SELECTOR_RE.match(selector)
    if attr_match:
        name, value = attr_match.groups()
        actual = element.get(name)
        if isinstance(actual, list):
            actual = " ".join(actual)
        return actual == value

    return element.name == selector.lower()


def clean_content_element(element: Tag, exclude_selectors: Sequence[str]) -> Tag:
    """Return a copy of ``element`` without excluded descendants.

    Script-like elements are always removed. The input element is left
    untouched.
    """
    cleaned = copy.copy(element)
    selectors = list(ALWAYS_EXCLUDED) + list(exclude_selectors)

    stack = [cleaned]
    while stack:
        node = stack.pop()
        for child in list(node.children):
            if not isinstance(child, Tag):
                continue
            if any(_matches_selector(child, s) for s in selectors):
                child.decompose()
            else:
                stack.append(child)

    return cleaned


def extract_content(html: str, options: Optional[ExtractionOptions] = None) -> ExtractedContent:
    """Extract title, description and cleaned content HTML from a page.

    Args:
        html: Full page HTML
        options: Selector configuration, defaults when omitted

    Returns:
        ExtractedContent whose ``content_html`` is empty when the page has
        no content region
    """
    options = options or ExtractionOptions()
    soup = parse_html(html)

    title = extract_title(soup)
    description = extract_description(soup)

    element = find_content_element(soup, options.content_selectors, options.min_text_length)
    if element is None:
        return ExtractedContent(title=title, description=description, content_html="")

    cleaned = clean_content_element(element, options.exclude_selectors)
    return ExtractedContent(title=title, description=description, content_html=str(cleaned))


def extract_content_from_file(path: Union[str, Path],
                              options: Optional[ExtractionOptions] = None) -> ExtractedContent:
    html = Path(path).read_text(encoding="utf-8", errors="replace")
    return extract_content(html, options)
