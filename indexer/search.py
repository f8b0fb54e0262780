"""Ranked document search on top of ``SearchIndex``.

Per-field hit lists are merged into one ranking: each hit scores by its
position in the field list, weighted by the field, and contributions from
different fields add up per document.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pipelines.models import ProcessedDoc
from .search_index import IndexableDocument, SearchIndex
from .stemmer import stem_term

logger = logging.getLogger(__name__)

FIELD_WEIGHTS = {
    "title": 3.0,
    "headings": 2.0,
    "description": 1.5,
    "content": 1.0,
}
RAW_HIT_MULTIPLIER = 3
MAX_MATCHING_HEADINGS = 3

SNIPPET_MAX_LENGTH = 200
SNIPPET_CONTEXT_BEFORE = 50
SNIPPET_CONTEXT_AFTER = 150
ELLIPSIS = "..."

_MD_HEADING_RE = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_MD_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]+\)")
_MD_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_MD_FENCE_RE = re.compile(r"```[a-z]*\n?")
_MD_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class SearchResult:
    """A ranked search hit."""
    route: str
    title: str
    score: float
    snippet: str
    matching_headings: List[str] = field(default_factory=list)
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "route": self.route,
            "title": self.title,
            "score": self.score,
            "snippet": self.snippet,
        }
        if self.matching_headings:
            data["matchingHeadings"] = list(self.matching_headings)
        if self.url:
            data["url"] = self.url
        return data


def document_key(doc: ProcessedDoc, base_url: str = "") -> str:
    """Key a document by full URL when a base URL is set, else by route."""
    if base_url:
        return base_url.rstrip("/") + doc.route
    return doc.route


def add_document_to_index(index: SearchIndex, doc: ProcessedDoc,
                          key: Optional[str] = None) -> None:
    index.add(IndexableDocument(
        id=key or doc.route,
        title=doc.title,
        content=doc.body,
        headings=doc.heading_text,
        description=doc.description,
    ))


def build_search_index(docs: Iterable[ProcessedDoc], base_url: str = "") -> SearchIndex:
    """Build an index over ``docs`` keyed by ``document_key``."""
    index = SearchIndex()
    for doc in docs:
        add_document_to_index(index, doc, document_key(doc, base_url))
    logger.debug(f"Built search index with {len(index)} documents")
    return index


def _query_terms(query: str) -> List[str]:
    """Raw whitespace-separated terms followed by their distinct stems."""
    raw = [t for t in query.lower().split() if t]
    terms = list(raw)
    for term in raw:
        stemmed = stem_term(term)
        if stemmed and stemmed not in terms:
            terms.append(stemmed)
    return terms


def _leading_text(body: str) -> str:
    if len(body) > SNIPPET_MAX_LENGTH:
        return body[:SNIPPET_MAX_LENGTH] + ELLIPSIS
    return body


def generate_snippet(body: str, query: str) -> str:
    """Cut a cleaned excerpt of ``body`` around the earliest query match.

    Args:
        body: Markdown body
        query: Raw query text

    Returns:
        Excerpt of at most 200 characters plus ellipses where the window
        does not reach the body boundaries
    """
    terms = _query_terms(query)
    if not terms:
        return _leading_text(body)

    lower_body = body.lower()
    best_index = -1
    best_term = ""
    for term in terms:
        idx = lower_body.find(term)
        if idx != -1 and (best_index == -1 or idx < best_index):
            best_index = idx
            best_term = term

    if best_index == -1:
        return _leading_text(body)

    start = max(0, best_index - SNIPPET_CONTEXT_BEFORE)
    end = min(len(body), best_index + len(best_term) + SNIPPET_CONTEXT_AFTER)

    snippet = body[start:end]
    snippet = _MD_HEADING_RE.sub("", snippet)
    snippet = _MD_IMAGE_RE.sub("", snippet)
    snippet = _MD_LINK_RE.sub(r"\1", snippet)
    snippet = _MD_FENCE_RE.sub("", snippet)
    snippet = _MD_INLINE_CODE_RE.sub(r"\1", snippet)
    snippet = _WHITESPACE_RE.sub(" ", snippet).strip()
    snippet = snippet[:SNIPPET_MAX_LENGTH].rstrip()

    prefix = ELLIPSIS if start > 0 else ""
    suffix = ELLIPSIS if end < len(body) else ""
    return prefix + snippet + suffix


def find_matching_headings(doc: ProcessedDoc, query: str) -> List[str]:
    """Texts of up to three headings containing a raw or stemmed query term."""
    terms = _query_terms(query)
    if not terms:
        return []

    matching = []
    for heading in doc.headings:
        lower = heading.text.lower()
        stemmed = " ".join(stem_term(w) for w in lower.split())
        if any(term in lower or term in stemmed for term in terms):
            matching.append(heading.text)
            if len(matching) >= MAX_MATCHING_HEADINGS:
                break
    return matching


def search_documents(index: SearchIndex, docs: Mapping[str, ProcessedDoc],
                     query: str, limit: int = 5) -> List[SearchResult]:
    """Rank documents for ``query``.

    Args:
        index: Search index whose ids are keys of ``docs``
        docs: Documents keyed like the index
        query: Free-text query
        limit: Maximum number of results

    Returns:
        Results ordered by accumulated field-weighted score
    """
    if limit < 1:
        return []

    field_results = index.search(query, limit=limit * RAW_HIT_MULTIPLIER)

    scores: Dict[str, float] = {}
    for field_result in field_results:
        weight = FIELD_WEIGHTS.get(field_result.field, 1.0)
        total = len(field_result.hits)
        for position, hit in enumerate(field_result.hits):
            score = (total - position) / total * weight
            scores[hit.id] = scores.get(hit.id, 0.0) + score

    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)

    results = []
    for key, score in ranked:
        doc = docs.get(key)
        if doc is None:
            logger.debug(f"Search hit {key} has no stored document")
            continue
        results.append(SearchResult(
            route=doc.route,
            title=doc.title,
            score=score,
            snippet=generate_snippet(doc.body, query),
            matching_headings=find_matching_headings(doc, query),
            url=key if key != doc.route else None,
        ))
        if len(results) >= limit:
            break

    return results


def export_search_index(index: SearchIndex) -> Dict[str, str]:
    return index.export()


def import_search_index(data: Mapping[str, Any]) -> SearchIndex:
    return SearchIndex.import_data(data)
