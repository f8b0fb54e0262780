"""Multi-field inverted index with substring lookup and proximity scoring.

Every indexed field keeps its own postings (term -> document -> token
positions) and a sorted suffix table over its vocabulary, so a query term
matches any indexed term that contains it. Within a field a document must
match every query term; its score rewards early occurrences, exact over
partial term matches, and adjacent query terms.

The whole index exports to a flat mapping of keys to JSON strings and
imports back to an index that answers queries identically.
"""

import json
import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import IndexFormatError
from .tokenizer import encode

logger = logging.getLogger(__name__)

INDEX_FORMAT_VERSION = 1
FIELDS = ("title", "content", "headings", "description")
STORE_FIELDS = ("title", "description")

RESOLUTION = 9
CONTEXT_DEPTH = 1
CONTEXT_BONUS = 0.5

EXACT_MATCH = 1.0
PREFIX_MATCH = 0.75
INFIX_MATCH = 0.5

_SUFFIX_END = "\U0010ffff"


@dataclass
class IndexableDocument:
    """Field values for one document, keyed by ``id``."""
    id: str
    title: str = ""
    content: str = ""
    headings: str = ""
    description: str = ""

    def field_value(self, name: str) -> str:
        return getattr(self, name)


@dataclass
class FieldHit:
    id: str
    score: float
    doc: Dict[str, str] = field(default_factory=dict)


@dataclass
class FieldResult:
    field: str
    hits: List[FieldHit]


class FieldIndex:
    """Postings and suffix table for a single field."""

    def __init__(self, name: str):
        self.name = name
        self.postings: Dict[str, Dict[int, List[int]]] = {}
        self.lengths: Dict[int, int] = {}
        self._suffixes: Optional[List[str]] = None
        self._owners: List[Tuple[str, int]] = []

    def add(self, ref: int, text: str) -> None:
        terms = encode(text)
        if not terms:
            return
        self.lengths[ref] = len(terms)
        for position, term in enumerate(terms):
            self.postings.setdefault(term, {}).setdefault(ref, []).append(position)
        self._suffixes = None

    def _build_suffix_table(self) -> None:
        entries = sorted(
            (term[offset:], term, offset)
            for term in self.postings
            for offset in range(len(term))
        )
        self._suffixes = [e[0] for e in entries]
        self._owners = [(e[1], e[2]) for e in entries]

    def lookup(self, query_term: str) -> Dict[str, float]:
        """Indexed terms containing ``query_term``, with their match quality."""
        if self._suffixes is None:
            self._build_suffix_table()

        matches: Dict[str, float] = {}
        start = bisect_left(self._suffixes, query_term)
        end = bisect_left(self._suffixes, query_term + _SUFFIX_END, lo=start)
        for term, offset in self._owners[start:end]:
            if term == query_term:
                quality = EXACT_MATCH
            elif offset == 0:
                quality = PREFIX_MATCH
            else:
                quality = INFIX_MATCH
            if quality > matches.get(term, 0.0):
                matches[term] = quality
        return matches

    def _position_weight(self, ref: int, position: int) -> float:
        slot = min(RESOLUTION - 1, position * RESOLUTION // self.lengths[ref])
        return (RESOLUTION - slot) / RESOLUTION

    def search(self, query_terms: Sequence[str]) -> List[Tuple[int, float]]:
        """Score documents containing every query term.

        Returns:
            List of (ref, score) ordered by score, ties by registration order
        """
        per_term = []
        candidates = None
        for query_term in query_terms:
            matches = self.lookup(query_term)
            refs = set()
            for term in matches:
                refs.update(self.postings[term])
            candidates = refs if candidates is None else candidates & refs
            if not candidates:
                return []
            per_term.append(matches)

        scored = []
        for ref in candidates:
            score = 0.0
            positions_per_term = []
            for matches in per_term:
                best = 0.0
                positions = set()
                for term, quality in matches.items():
                    occurrences = self.postings[term].get(ref)
                    if not occurrences:
                        continue
                    positions.update(occurrences)
                    best = max(best, quality * self._position_weight(ref, occurrences[0]))
                score += best
                positions_per_term.append(positions)

            for left, right in zip(positions_per_term, positions_per_term[1:]):
                if any(0 < abs(p - q) <= CONTEXT_DEPTH for p in left for q in right):
                    score += CONTEXT_BONUS

            scored.append((ref, score))

        scored.sort(key=lambda item: (-item[1], item[0]))
        return scored

    def export_map(self) -> Dict[str, List[List[Any]]]:
        return {
            term: [[ref, positions] for ref, positions in sorted(docs.items())]
            for term, docs in self.postings.items()
        }

    def import_map(self, data: Mapping[str, Any], lengths: Sequence[int]) -> None:
        self.postings = {
            term: {int(ref): [int(p) for p in positions] for ref, positions in entries}
            for term, entries in data.items()
        }
        self.lengths = {ref: int(n) for ref, n in enumerate(lengths) if n}
        self._suffixes = None


class SearchIndex:
    """Document index over ``FIELDS`` with a title/description store."""

    def __init__(self):
        self.fields = {name: FieldIndex(name) for name in FIELDS}
        self.ids: List[str] = []
        self.refs: Dict[str, int] = {}
        self.store: List[Dict[str, str]] = []

    def __len__(self) -> int:
        return len(self.ids)

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self.refs

    def add(self, doc: IndexableDocument) -> None:
        """Register and index a document.

        Raises:
            ValueError: If a document with the same id was already added
        """
        if doc.id in self.refs:
            raise ValueError(f"Document already indexed: {doc.id}")

        ref = len(self.ids)
        self.ids.append(doc.id)
        self.refs[doc.id] = ref
        self.store.append({name: doc.field_value(name) for name in STORE_FIELDS})

        for name, field_index in self.fields.items():
            field_index.add(ref, doc.field_value(name))

    def search(self, query: str, limit: int = 10,
               fields: Optional[Sequence[str]] = None) -> List[FieldResult]:
        """Search each field independently.

        Args:
            query: Free-text query
            limit: Maximum hits per field
            fields: Fields to search, all of them by default

        Returns:
            One FieldResult per field with at least one hit
        """
        query_terms = list(dict.fromkeys(encode(query)))
        if not query_terms or limit < 1:
            return []

        results = []
        for name in fields or FIELDS:
            scored = self.fields[name].search(query_terms)[:limit]
            if scored:
                hits = [
                    FieldHit(id=self.ids[ref], score=score, doc=dict(self.store[ref]))
                    for ref, score in scored
                ]
                results.append(FieldResult(field=name, hits=hits))
        return results

    def export(self) -> Dict[str, str]:
        """Serialize to a flat mapping of keys to JSON strings."""
        data = {
            "cfg": json.dumps({
                "version": INDEX_FORMAT_VERSION,
                "fields": list(FIELDS),
                "store": list(STORE_FIELDS),
                "resolution": RESOLUTION,
                "depth": CONTEXT_DEPTH,
            }),
            "reg": json.dumps(self.ids, ensure_ascii=False),
            "store": json.dumps(self.store, ensure_ascii=False),
        }
        for name, field_index in self.fields.items():
            lengths = [field_index.lengths.get(ref, 0) for ref in range(len(self.ids))]
            data[f"{name}.map"] = json.dumps(field_index.export_map(), ensure_ascii=False)
            data[f"{name}.len"] = json.dumps(lengths)
        return data

    @classmethod
    def import_data(cls, data: Mapping[str, Any]) -> "SearchIndex":
        """Rebuild an index from ``export()`` output.

        Raises:
            IndexFormatError: If keys are missing or the format is incompatible
        """
        if not isinstance(data, Mapping):
            raise IndexFormatError("Search index data must be a mapping")

        try:
            cfg = _load_blob(data, "cfg")
            if cfg.get("version") != INDEX_FORMAT_VERSION:
                raise IndexFormatError(
                    f"Unsupported search index version {cfg.get('version')!r}, "
                    f"expected {INDEX_FORMAT_VERSION}"
                )
            if list(cfg.get("fields", [])) != list(FIELDS):
                raise IndexFormatError(f"Unexpected index fields: {cfg.get('fields')!r}")

            index = cls()
            index.ids = [str(i) for i in _load_blob(data, "reg")]
            index.refs = {doc_id: ref for ref, doc_id in enumerate(index.ids)}
            index.store = [dict(entry) for entry in _load_blob(data, "store")]
            if len(index.store) != len(index.ids):
                raise IndexFormatError("Search index store does not match registry")

            for name, field_index in index.fields.items():
                lengths = _load_blob(data, f"{name}.len")
                if len(lengths) != len(index.ids):
                    raise IndexFormatError(f"Field '{name}' lengths do not match registry")
                field_index.import_map(_load_blob(data, f"{name}.map"), lengths)
        except (TypeError, ValueError) as e:
            if isinstance(e, IndexFormatError):
                raise
            raise IndexFormatError(f"Malformed search index data: {e}") from e

        logger.debug(f"Imported search index with {len(index)} documents")
        return index


def _load_blob(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise IndexFormatError(f"Search index data is missing '{key}'")
    value = data[key]
    if isinstance(value, str):
        return json.loads(value)
    return value
