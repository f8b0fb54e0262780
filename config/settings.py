"""Build and server configuration.

Build settings come from a YAML file deep-merged over ``DEFAULT_CONFIG``.
The file is looked up from the ``DOCS_MCP_CONFIG`` environment variable,
then ``docs-mcp.yaml`` in the working directory.
"""

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from indexer.providers import (
    DOCS_FILE,
    MANIFEST_FILE,
    SEARCH_INDEX_FILE,
    ContentIndexer,
    ProviderContext,
    SearchProvider,
    SearchProviderInitData,
)
from pipelines.assembler import ProcessingOptions
from pipelines.html_parser import ExtractionOptions

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DOCS_MCP_CONFIG"
DEFAULT_CONFIG_FILE = "docs-mcp.yaml"

DEFAULT_CONFIG = {
    "output_dir": "mcp",
    "content_selectors": ["article", "main", ".main-wrapper", '[role="main"]'],
    "exclude_selectors": [
        "nav",
        "header",
        "footer",
        "aside",
        '[role="navigation"]',
        '[role="banner"]',
        '[role="contentinfo"]',
    ],
    "min_content_length": 50,
    "server": {
        "name": "docs-mcp-server",
        "version": "1.0.0",
    },
    "exclude_routes": ["/404*", "/search*"],
    "indexers": None,
    "search": "fulltext",
    "concurrency": 10,
    "base_url": "",
}


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


@dataclass
class BuildConfig:
    """Settings for building a snapshot from a site build directory."""
    output_dir: str = DEFAULT_CONFIG["output_dir"]
    content_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_CONFIG["content_selectors"]))
    exclude_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_CONFIG["exclude_selectors"]))
    min_content_length: int = DEFAULT_CONFIG["min_content_length"]
    server_name: str = DEFAULT_CONFIG["server"]["name"]
    server_version: str = DEFAULT_CONFIG["server"]["version"]
    exclude_routes: List[str] = field(default_factory=lambda: list(DEFAULT_CONFIG["exclude_routes"]))
    # None selects the default indexers, False disables indexing
    indexers: Any = None
    search: Union[str, SearchProvider] = DEFAULT_CONFIG["search"]
    concurrency: int = DEFAULT_CONFIG["concurrency"]
    base_url: str = DEFAULT_CONFIG["base_url"]

    def __post_init__(self):
        if not self.output_dir:
            raise ValueError("output_dir cannot be empty")
        if not self.content_selectors:
            raise ValueError("content_selectors must contain at least one selector")
        if self.min_content_length < 0:
            raise ValueError("min_content_length cannot be negative")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if not self.server_name:
            raise ValueError("server name cannot be empty")
        if self.indexers is True:
            self.indexers = None
        if self.indexers not in (None, False):
            if isinstance(self.indexers, (str, ContentIndexer)):
                self.indexers = [self.indexers]
            if not isinstance(self.indexers, (list, tuple)):
                raise ValueError("indexers must be a list of indexer names, or false")
            self.indexers = list(self.indexers)
        self.base_url = (self.base_url or "").rstrip("/")

    @property
    def processing_options(self) -> ProcessingOptions:
        return ProcessingOptions(
            extraction=ExtractionOptions(
                content_selectors=list(self.content_selectors),
                exclude_selectors=list(self.exclude_selectors),
            ),
            min_content_length=self.min_content_length,
        )

    def provider_context(self, output_dir: Optional[Path] = None) -> ProviderContext:
        return ProviderContext(
            base_url=self.base_url,
            server_name=self.server_name,
            server_version=self.server_version,
            output_dir=output_dir,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BuildConfig":
        """Create a config from a (possibly partial) nested mapping."""
        merged = _deep_merge(copy.deepcopy(DEFAULT_CONFIG), data or {})
        server = merged.get("server") or {}
        return cls(
            output_dir=merged["output_dir"],
            content_selectors=list(merged["content_selectors"]),
            exclude_selectors=list(merged["exclude_selectors"]),
            min_content_length=int(merged["min_content_length"]),
            server_name=server.get("name", DEFAULT_CONFIG["server"]["name"]),
            server_version=str(server.get("version", DEFAULT_CONFIG["server"]["version"])),
            exclude_routes=list(merged["exclude_routes"] or []),
            indexers=merged["indexers"],
            search=merged["search"],
            concurrency=int(merged["concurrency"]),
            base_url=merged["base_url"] or "",
        )


def _default_config_path() -> Optional[Path]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    candidate = Path.cwd() / DEFAULT_CONFIG_FILE
    if candidate.exists():
        return candidate
    return None


def load_build_config(path: Optional[Union[str, Path]] = None,
                      overrides: Optional[Mapping[str, Any]] = None) -> BuildConfig:
    """Load build settings from YAML.

    Args:
        path: Config file; looked up from the environment when omitted
        overrides: Values applied on top of the file contents

    Returns:
        BuildConfig with defaults for anything not configured

    Raises:
        ValueError: If the file is missing, unparsable or invalid
    """
    config_path = Path(path) if path else _default_config_path()
    file_config: Dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise ValueError(f"Config file not found: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        logger.debug(f"Loaded build config from {config_path}")

    merged = _deep_merge(file_config, overrides or {})
    return BuildConfig.from_dict(merged)


@dataclass
class ServerConfig:
    """Settings for serving a snapshot.

    Provide either ``docs_path`` and ``index_path`` or pre-loaded ``docs``
    and ``search_index_data``.
    """
    name: str = DEFAULT_CONFIG["server"]["name"]
    version: str = DEFAULT_CONFIG["server"]["version"]
    base_url: str = ""
    search: Union[str, SearchProvider] = DEFAULT_CONFIG["search"]
    docs_path: Optional[Path] = None
    index_path: Optional[Path] = None
    docs: Optional[Mapping[str, Any]] = None
    search_index_data: Optional[Mapping[str, Any]] = None

    def __post_init__(self):
        self.base_url = (self.base_url or "").rstrip("/")
        if self.docs_path is not None:
            self.docs_path = Path(self.docs_path)
        if self.index_path is not None:
            self.index_path = Path(self.index_path)

    @property
    def init_data(self) -> SearchProviderInitData:
        return SearchProviderInitData(
            docs_path=self.docs_path,
            index_path=self.index_path,
            docs=self.docs,
            index_data=self.search_index_data,
        )

    @property
    def provider_context(self) -> ProviderContext:
        return ProviderContext(
            base_url=self.base_url,
            server_name=self.name,
            server_version=self.version,
        )

    @classmethod
    def from_output_dir(cls, output_dir: Union[str, Path], **overrides) -> "ServerConfig":
        """Point a config at the snapshot files in ``output_dir``.

        Name, version, base URL and search provider come from
        ``manifest.json`` when present; keyword overrides win.
        """
        output_dir = Path(output_dir)
        values: Dict[str, Any] = {
            "docs_path": output_dir / DOCS_FILE,
            "index_path": output_dir / SEARCH_INDEX_FILE,
        }

        manifest_path = output_dir / MANIFEST_FILE
        if manifest_path.exists():
            try:
                with open(manifest_path, "r", encoding="utf-8") as f:
                    manifest = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable manifest {manifest_path}: {e}")
                manifest = {}
            if isinstance(manifest, dict):
                for key, manifest_key in (("name", "name"), ("version", "version"),
                                          ("base_url", "baseUrl"), ("search", "searchProvider")):
                    if manifest.get(manifest_key):
                        values[key] = manifest[manifest_key]

        values.update(overrides)
        return cls(**values)
