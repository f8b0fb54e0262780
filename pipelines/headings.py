"""Heading extraction and section slicing for Markdown bodies."""

import re
from typing import Iterable, List, Optional

from .models import Heading

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)(?:\s+\{#([^}]+)\})?$")

_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_BOLD_UNDERSCORE_RE = re.compile(r"__([^_]+)__")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")
_ITALIC_UNDERSCORE_RE = re.compile(r"_([^_]+)_")
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")

_SLUG_INVALID_RE = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-+")


def generate_heading_id(text: str) -> str:
    """Slugify heading text into an anchor id.

    Lowercases, drops characters other than ASCII word characters,
    whitespace and hyphens, turns whitespace runs into single hyphens and
    trims hyphens from both ends.
    """
    slug = text.lower()
    slug = _SLUG_INVALID_RE.sub("", slug)
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = _HYPHENS_RE.sub("-", slug)
    return slug.strip("-")


def _strip_emphasis(text: str) -> str:
    text = _BOLD_RE.sub(r"\1", text)
    text = _BOLD_UNDERSCORE_RE.sub(r"\1", text)
    text = _ITALIC_RE.sub(r"\1", text)
    return _ITALIC_UNDERSCORE_RE.sub(r"\1", text)


def clean_heading_text(text: str) -> str:
    """Remove inline emphasis and code wrappers from a heading label.

    Code spans lose their backticks but keep their contents verbatim.
    """
    # split() with a capture group puts code span contents at odd indices
    parts = _INLINE_CODE_RE.split(text)
    cleaned = [part if i % 2 else _strip_emphasis(part) for i, part in enumerate(parts)]
    return "".join(cleaned).strip()


def extract_headings(markdown: str) -> List[Heading]:
    """Extract headings with character offsets from a Markdown body.

    The id is taken from an explicit ``{#custom-id}`` suffix when present,
    otherwise it is generated from the raw heading text. A heading's end
    offset is the start of the next heading at the same or a shallower
    level, or the end of the body, so each span contains its sub-headings.

    Args:
        markdown: Markdown body

    Returns:
        Headings in document order (empty when there are none)
    """
    found = []
    offset = 0

    for line in markdown.split("\n"):
        match = HEADING_RE.match(line)
        if match:
            hashes, raw_text, explicit_id = match.groups()
            text = clean_heading_text(raw_text)
            heading_id = explicit_id or generate_heading_id(raw_text)
            found.append((len(hashes), text, heading_id, offset))
        offset += len(line) + 1

    body_length = len(markdown)
    headings = []
    for i, (level, text, heading_id, start) in enumerate(found):
        end = body_length
        for next_level, _, _, next_start in found[i + 1:]:
            if next_level <= level:
                end = next_start
                break
        headings.append(Heading(
            level=level,
            text=text,
            id=heading_id,
            start_offset=start,
            end_offset=end,
        ))

    return headings


def extract_section(markdown: str, heading_id: str,
                    headings: Iterable[Heading]) -> Optional[str]:
    """Return the trimmed text owned by the first heading with ``heading_id``.

    Returns None when no heading has that id.
    """
    for heading in headings:
        if heading.id == heading_id:
            return markdown[heading.start_offset:heading.end_offset].strip()
    return None
