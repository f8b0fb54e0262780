"""Tokenization for the search index."""

import re
from typing import List

from .stemmer import stem_term

# Whitespace, ASCII punctuation, general punctuation and CJK punctuation
SPLIT_RE = re.compile(r"[\s\u2000-\u206f\u3000-\u303f!-/:-@\[-`{-~]+")


def split_terms(text: str) -> List[str]:
    """Lowercase ``text`` and split it into raw terms."""
    if not text:
        return []
    return [t for t in SPLIT_RE.split(text.lower()) if t]


def encode(text: str) -> List[str]:
    """Split and stem ``text`` into index terms, preserving order."""
    return [stem_term(t) for t in split_terms(text)]
