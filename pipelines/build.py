"""Build a documentation snapshot from a static site build directory.

Collects routes, assembles documents, runs the configured indexers and
writes their artifacts plus ``manifest.json`` into the output directory.

Usage:
    docs-mcp-build build/ --base-url https://docs.example.com
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from config.settings import BuildConfig, load_build_config
from indexer.providers import (
    DOCS_FILE,
    MANIFEST_FILE,
    SEARCH_INDEX_FILE,
    ContentIndexer,
    resolve_indexer,
    resolve_search_provider,
)
from observability.logging import setup_logging
from observability.metrics import record_page_outcome
from .assembler import AssemblyStats, assemble_documents
from .html_to_markdown import ConversionMode
from .route_collector import collect_routes

logger = logging.getLogger(__name__)

DEFAULT_INDEXERS = ["fulltext"]


@dataclass
class BuildResult:
    """Summary of a snapshot build."""
    output_dir: Path
    doc_count: int = 0
    route_count: int = 0
    artifacts: List[Path] = field(default_factory=list)
    indexers: List[str] = field(default_factory=list)
    manifest: Optional[Dict[str, Any]] = None
    stats: Optional[AssemblyStats] = None

    @property
    def written(self) -> bool:
        return bool(self.artifacts)


def _resolve_indexers(selection: Any) -> List[ContentIndexer]:
    if selection is None:
        selection = DEFAULT_INDEXERS
    return [resolve_indexer(item) for item in selection]


def _remove_stale_snapshot(output_dir: Path) -> None:
    for name in (MANIFEST_FILE, DOCS_FILE, SEARCH_INDEX_FILE):
        path = output_dir / name
        if path.exists():
            path.unlink()
            logger.warning(f"Removed stale snapshot file {path}")


def _write_json(path: Path, data: Any, indent: Optional[int] = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if indent is None:
            json.dump(data, f, ensure_ascii=False, separators=(",", ":"))
        else:
            json.dump(data, f, ensure_ascii=False, indent=indent)


async def build_snapshot(build_dir: Union[str, Path],
                         config: Optional[BuildConfig] = None,
                         indexers: Any = None) -> BuildResult:
    """Build the snapshot for a site.

    Args:
        build_dir: Static site output directory
        config: Build settings, defaults when omitted
        indexers: Overrides ``config.indexers``; names or ContentIndexer
            instances, ``False`` to skip indexing entirely

    Returns:
        BuildResult; ``doc_count`` is 0, nothing is written and any previous
        snapshot files are removed when no page produced a document

    Raises:
        FileNotFoundError: If ``build_dir`` does not exist
        ValueError: If an indexer name is unknown
    """
    config = config or BuildConfig()
    build_dir = Path(build_dir)
    output_dir = build_dir / config.output_dir
    result = BuildResult(output_dir=output_dir)

    selection = config.indexers if indexers is None else indexers
    if selection is False:
        logger.info("Indexing disabled, skipping snapshot build")
        return result

    if not build_dir.is_dir():
        raise FileNotFoundError(f"Build directory not found: {build_dir}")

    selected = _resolve_indexers(selection)
    search_provider = resolve_search_provider(config.search).name

    routes = collect_routes(build_dir, config.exclude_routes)
    result.route_count = len(routes)
    logger.info(f"Found {len(routes)} routes in {build_dir}")

    docs, page_results, stats = await assemble_documents(
        routes, config.processing_options, concurrency=config.concurrency
    )
    result.stats = stats
    for page in page_results:
        record_page_outcome(page.status, page.conversion_mode is ConversionMode.PLAIN_TEXT)

    if not docs:
        logger.warning("No valid documents found, nothing to write")
        _remove_stale_snapshot(output_dir)
        return result

    ordered = [docs[route] for route in sorted(docs)]
    result.doc_count = len(ordered)
    context = config.provider_context(output_dir)
    manifest_extra: Dict[str, Any] = {}

    for indexer in selected:
        if not indexer.should_run():
            logger.info(f"Skipping indexer '{indexer.name}'")
            continue

        logger.info(f"Running indexer '{indexer.name}'")
        indexer.initialize(context)
        indexer.index_documents(ordered)
        for filename, data in indexer.finalize().items():
            path = output_dir / filename
            _write_json(path, data)
            result.artifacts.append(path)
        manifest_extra.update(indexer.get_manifest_data())
        result.indexers.append(indexer.name)

    if result.indexers:
        manifest = {
            "name": config.server_name,
            "version": config.server_version,
            "buildTime": datetime.now(timezone.utc).isoformat(),
            "docCount": result.doc_count,
            "indexers": list(result.indexers),
            "searchProvider": search_provider,
        }
        if config.base_url:
            manifest["baseUrl"] = config.base_url
        manifest.update(manifest_extra)

        manifest_path = output_dir / MANIFEST_FILE
        _write_json(manifest_path, manifest, indent=2)
        result.artifacts.append(manifest_path)
        result.manifest = manifest

    logger.info(f"Wrote snapshot with {result.doc_count} documents to {output_dir}")
    return result


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Build an MCP documentation snapshot")
    parser.add_argument("build_dir", help="Static site build directory")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--base-url", help="Site base URL used to key documents")
    parser.add_argument("--output-dir", help="Snapshot directory relative to build_dir")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--json-logs", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, use_json=args.json_logs)

    overrides: Dict[str, Any] = {}
    if args.base_url is not None:
        overrides["base_url"] = args.base_url
    if args.output_dir:
        overrides["output_dir"] = args.output_dir

    try:
        config = load_build_config(args.config, overrides)
        result = asyncio.run(build_snapshot(args.build_dir, config))
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Build failed: {e}")
        return 1

    if result.doc_count:
        print(f"Indexed {result.doc_count} documents into {result.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
