"""Query operations over a loaded snapshot."""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import urlparse

from indexer.providers import SearchProvider
from indexer.search import SearchResult
from observability.metrics import record_search
from pipelines.headings import extract_section
from pipelines.models import ProcessedDoc
from .errors import InvalidArgumentError, InvalidQueryError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
MIN_LIMIT = 1
MAX_LIMIT = 20


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(MIN_LIMIT, min(MAX_LIMIT, int(limit)))


def normalize_route(route: str) -> str:
    """Leading slash, no trailing slash (except for the root route)."""
    normalized = route.strip()
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    if len(normalized) > 1 and normalized.endswith("/"):
        normalized = normalized.rstrip("/") or "/"
    return normalized


@dataclass
class SectionResult:
    """Outcome of a section lookup.

    ``doc`` is None when the page is unknown; ``content`` is None when the
    page exists but has no heading with the requested id.
    """
    doc: Optional[ProcessedDoc]
    content: Optional[str] = None
    heading_text: Optional[str] = None
    available_headings: List[Dict[str, object]] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.content is not None


class QueryService:
    """Search, page lookup and section extraction against a search provider."""

    def __init__(self, provider: SearchProvider, base_url: str = ""):
        self.provider = provider
        self.base_url = (base_url or "").rstrip("/")

    def search(self, query: str, limit: Optional[int] = DEFAULT_LIMIT) -> List[SearchResult]:
        """Rank documents for ``query``.

        Raises:
            InvalidQueryError: If the query is empty or whitespace only
        """
        if not query or not query.strip():
            record_search("invalid", 0.0)
            raise InvalidQueryError("Query parameter is required and must be a non-empty string")

        start = time.perf_counter()
        try:
            results = self.provider.search(query.strip(), limit=clamp_limit(limit))
        except Exception:
            record_search("error", time.perf_counter() - start)
            raise

        record_search("hit" if results else "miss", time.perf_counter() - start)
        logger.debug(f"Search '{query}' returned {len(results)} results")
        return results

    def _candidate_keys(self, route_or_url: str) -> List[str]:
        raw = route_or_url.strip()
        candidates = [raw]

        parsed = urlparse(raw)
        path = parsed.path if parsed.scheme and parsed.netloc else raw
        route = normalize_route(path or "/")

        candidates.extend([route, route + "/" if route != "/" else route, route.lstrip("/")])
        if self.base_url:
            candidates.append(self.base_url + route)

        return list(dict.fromkeys(c for c in candidates if c))

    def get_document(self, route_or_url: str) -> Optional[ProcessedDoc]:
        """Find a document by route or full URL.

        Returns None when nothing matches.

        Raises:
            InvalidArgumentError: If ``route_or_url`` is empty
        """
        if not route_or_url or not route_or_url.strip():
            raise InvalidArgumentError("A route or URL is required")

        for key in self._candidate_keys(route_or_url):
            doc = self.provider.get_document(key)
            if doc is not None:
                return doc
        return None

    def get_section(self, route: str, heading_id: str) -> SectionResult:
        """Extract one section of a page.

        Raises:
            InvalidArgumentError: If the route or heading id is empty
        """
        if not heading_id or not heading_id.strip():
            raise InvalidArgumentError("headingId parameter is required and must be a string")

        doc = self.get_document(route)
        if doc is None:
            return SectionResult(doc=None)

        heading_id = heading_id.strip()
        available = [{"id": h.id, "text": h.text, "level": h.level} for h in doc.headings]
        heading = doc.find_heading(heading_id)
        if heading is None:
            return SectionResult(doc=doc, available_headings=available)

        return SectionResult(
            doc=doc,
            content=extract_section(doc.body, heading_id, doc.headings),
            heading_text=heading.text,
            available_headings=available,
        )
