"""Indexer and search provider interfaces with the built-in full-text pair.

Built-in implementations are selected by ``BuiltinProvider`` name. Callers
that need a different backend pass an instance of ``ContentIndexer`` or
``SearchProvider`` directly wherever a provider name is accepted.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pipelines.models import ProcessedDoc
from .errors import IndexFormatError, SnapshotLoadError
from .search import (
    SearchResult,
    build_search_index,
    document_key,
    export_search_index,
    import_search_index,
    search_documents,
)
from .search_index import SearchIndex

logger = logging.getLogger(__name__)

DOCS_FILE = "docs.json"
SEARCH_INDEX_FILE = "search-index.json"
MANIFEST_FILE = "manifest.json"


@dataclass
class ProviderContext:
    """Site information shared with indexers and search providers."""
    base_url: str = ""
    server_name: str = "docs-mcp-server"
    server_version: str = "1.0.0"
    output_dir: Optional[Path] = None


@dataclass
class SearchProviderInitData:
    """Snapshot location: file paths or pre-loaded data."""
    docs_path: Optional[Path] = None
    index_path: Optional[Path] = None
    docs: Optional[Mapping[str, Any]] = None
    index_data: Optional[Mapping[str, Any]] = None

    @property
    def has_data(self) -> bool:
        return self.docs is not None and self.index_data is not None

    @property
    def has_paths(self) -> bool:
        return self.docs_path is not None and self.index_path is not None


class ContentIndexer(ABC):
    """Build-time consumer of the assembled documents."""

    name: str = ""

    def should_run(self) -> bool:
        return True

    @abstractmethod
    def initialize(self, context: ProviderContext) -> None:
        ...

    @abstractmethod
    def index_documents(self, docs: Sequence[ProcessedDoc]) -> None:
        ...

    @abstractmethod
    def finalize(self) -> Dict[str, Any]:
        """Return artifacts to write, keyed by file name."""

    def get_manifest_data(self) -> Dict[str, Any]:
        return {}


class SearchProvider(ABC):
    """Serve-time search backend."""

    name: str = ""

    @abstractmethod
    def initialize(self, context: ProviderContext,
                   init_data: Optional[SearchProviderInitData] = None) -> None:
        ...

    @abstractmethod
    def is_ready(self) -> bool:
        ...

    @abstractmethod
    def search(self, query: str, limit: int = 5) -> List[SearchResult]:
        ...

    @abstractmethod
    def get_document(self, key: str) -> Optional[ProcessedDoc]:
        ...

    @property
    def document_count(self) -> int:
        return 0

    def health_check(self) -> Dict[str, Any]:
        return {"healthy": self.is_ready()}


class BuiltinProvider(str, Enum):
    FULLTEXT = "fulltext"


class FullTextIndexer(ContentIndexer):
    """Writes ``docs.json`` and ``search-index.json``."""

    name = BuiltinProvider.FULLTEXT.value

    def __init__(self):
        self.base_url = ""
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.exported: Optional[Dict[str, str]] = None

    def initialize(self, context: ProviderContext) -> None:
        self.base_url = context.base_url.rstrip("/")
        self.docs = {}
        self.exported = None

    def index_documents(self, docs: Sequence[ProcessedDoc]) -> None:
        for doc in docs:
            self.docs[document_key(doc, self.base_url)] = doc.to_dict()

        logger.info(f"Building search index for {len(docs)} documents")
        self.exported = export_search_index(build_search_index(docs, self.base_url))

    def finalize(self) -> Dict[str, Any]:
        if self.exported is None:
            raise RuntimeError("index_documents() must run before finalize()")
        return {DOCS_FILE: self.docs, SEARCH_INDEX_FILE: self.exported}

    def get_manifest_data(self) -> Dict[str, Any]:
        return {"searchEngine": self.name}


def _read_json(path: Path, label: str) -> Any:
    if not path.exists():
        raise SnapshotLoadError(f"{label} not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise SnapshotLoadError(f"Failed to read {label} from {path}: {e}") from e


class FullTextSearchProvider(SearchProvider):
    """Search over an exported ``SearchIndex`` and its documents."""

    name = BuiltinProvider.FULLTEXT.value

    def __init__(self):
        self._docs: Optional[Mapping[str, ProcessedDoc]] = None
        self._index: Optional[SearchIndex] = None

    def initialize(self, context: ProviderContext,
                   init_data: Optional[SearchProviderInitData] = None) -> None:
        """Load the snapshot from pre-loaded data or from files.

        Raises:
            SnapshotLoadError: If init data is missing or the snapshot is unusable
        """
        if init_data is None:
            raise SnapshotLoadError("Search provider init data is required")

        if init_data.has_data:
            raw_docs, index_data = init_data.docs, init_data.index_data
        elif init_data.has_paths:
            raw_docs = _read_json(Path(init_data.docs_path), "Docs file")
            index_data = _read_json(Path(init_data.index_path), "Search index")
        else:
            raise SnapshotLoadError(
                "Invalid init data: must provide either file paths "
                "(docs_path, index_path) or pre-loaded data (docs, index_data)"
            )

        if not isinstance(raw_docs, Mapping):
            raise SnapshotLoadError("Docs snapshot must be a JSON object keyed by route or URL")

        docs = {}
        for key, value in raw_docs.items():
            if isinstance(value, ProcessedDoc):
                docs[key] = value
                continue
            try:
                docs[key] = ProcessedDoc.from_dict(value)
            except (KeyError, TypeError, ValueError) as e:
                raise SnapshotLoadError(f"Invalid document '{key}': {e}") from e

        try:
            index = import_search_index(index_data)
        except IndexFormatError as e:
            raise SnapshotLoadError(f"Invalid search index: {e}") from e

        self._docs = MappingProxyType(docs)
        self._index = index
        logger.info(f"Loaded {len(docs)} documents into {self.name} search provider")

    def is_ready(self) -> bool:
        return self._docs is not None and self._index is not None

    def _require_ready(self) -> None:
        if not self.is_ready():
            raise RuntimeError(f"Search provider '{self.name}' is not initialized")

    @property
    def docs(self) -> Mapping[str, ProcessedDoc]:
        self._require_ready()
        return self._docs

    @property
    def document_count(self) -> int:
        return len(self._docs) if self._docs is not None else 0

    def search(self, query: str, limit: int = 5) -> List[SearchResult]:
        self._require_ready()
        return search_documents(self._index, self._docs, query, limit=limit)

    def get_document(self, key: str) -> Optional[ProcessedDoc]:
        self._require_ready()
        return self._docs.get(key)

    def health_check(self) -> Dict[str, Any]:
        if not self.is_ready():
            return {"healthy": False, "message": f"{self.name} provider not initialized"}
        return {
            "healthy": True,
            "message": f"{self.name} provider ready with {self.document_count} documents",
        }


INDEXERS = {BuiltinProvider.FULLTEXT.value: FullTextIndexer}
SEARCH_PROVIDERS = {BuiltinProvider.FULLTEXT.value: FullTextSearchProvider}


def resolve_indexer(choice: Union[str, ContentIndexer]) -> ContentIndexer:
    """Return a fresh built-in indexer by name, or ``choice`` itself if it is one."""
    if isinstance(choice, ContentIndexer):
        return choice
    try:
        return INDEXERS[BuiltinProvider(choice).value]()
    except ValueError:
        raise ValueError(
            f"Unknown indexer '{choice}'. Available: {', '.join(sorted(INDEXERS))}"
        ) from None


def resolve_search_provider(choice: Union[str, SearchProvider]) -> SearchProvider:
    """Return a fresh built-in search provider by name, or ``choice`` itself."""
    if isinstance(choice, SearchProvider):
        return choice
    try:
        return SEARCH_PROVIDERS[BuiltinProvider(choice).value]()
    except ValueError:
        raise ValueError(
            f"Unknown search provider '{choice}'. Available: {', '.join(sorted(SEARCH_PROVIDERS))}"
        ) from None
