"""Verify a built documentation snapshot.

Usage:
    docs-mcp-verify [BUILD_DIR] [--output-dir mcp]

Exits with status 1 when the snapshot is missing, malformed, empty or
cannot be loaded by the server.
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from config.settings import ServerConfig
from indexer.errors import SnapshotLoadError
from indexer.providers import DOCS_FILE, MANIFEST_FILE, SEARCH_INDEX_FILE
from observability.logging import setup_logging
from .errors import ServerConfigError
from .mcp_server import DocsMCPServer

logger = logging.getLogger(__name__)

REQUIRED_FILES = (DOCS_FILE, SEARCH_INDEX_FILE, MANIFEST_FILE)


@dataclass
class VerifyResult:
    success: bool = True
    docs_found: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def fail(self, message: str) -> None:
        self.success = False
        self.errors.append(message)


def _load_object(path: Path, result: VerifyResult) -> Optional[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        result.fail(f"Failed to parse {path.name}: {e}")
        return None
    if not isinstance(data, dict):
        result.fail(f"{path.name} is not a valid object")
        return None
    return data


def verify_build(mcp_dir: Path) -> VerifyResult:
    """Check that the snapshot files exist and are structurally valid."""
    result = VerifyResult()

    if not mcp_dir.is_dir():
        result.fail(f"MCP directory not found: {mcp_dir}")
        result.errors.append("Did you run docs-mcp-build on the site build directory?")
        return result

    for name in REQUIRED_FILES:
        if not (mcp_dir / name).exists():
            result.fail(f"Required file missing: {mcp_dir / name}")
    if not result.success:
        return result

    docs = _load_object(mcp_dir / DOCS_FILE, result)
    if docs is not None:
        result.docs_found = len(docs)
        if not docs:
            result.warnings.append(f"{DOCS_FILE} contains no documents")
        for key, doc in docs.items():
            if not isinstance(doc, dict):
                result.fail(f"Document {key} is not an object")
                continue
            if not isinstance(doc.get("title"), str) or not doc.get("title"):
                result.warnings.append(f"Document {key} is missing a title")
            if not isinstance(doc.get("body"), str) or not doc.get("body"):
                result.warnings.append(f"Document {key} is missing markdown content")

    _load_object(mcp_dir / SEARCH_INDEX_FILE, result)

    manifest = _load_object(mcp_dir / MANIFEST_FILE, result)
    if manifest is not None:
        if not isinstance(manifest.get("name"), str) or not manifest.get("name"):
            result.warnings.append(f"{MANIFEST_FILE} is missing server name")
        if not isinstance(manifest.get("version"), str) or not manifest.get("version"):
            result.warnings.append(f"{MANIFEST_FILE} is missing server version")

    return result


def check_server(mcp_dir: Path) -> Tuple[bool, str]:
    """Cold-start a server from pre-loaded snapshot data."""
    try:
        with open(mcp_dir / MANIFEST_FILE, "r", encoding="utf-8") as f:
            manifest = json.load(f)
        with open(mcp_dir / DOCS_FILE, "r", encoding="utf-8") as f:
            docs = json.load(f)
        with open(mcp_dir / SEARCH_INDEX_FILE, "r", encoding="utf-8") as f:
            index_data = json.load(f)
    except (OSError, ValueError) as e:
        return False, f"Failed to read snapshot: {e}"

    server = DocsMCPServer(ServerConfig(
        name=manifest.get("name") or "test-docs",
        version=manifest.get("version") or "1.0.0",
        base_url=manifest.get("baseUrl") or "",
        docs=docs,
        search_index_data=index_data,
    ))

    try:
        server.initialize()
    except (ServerConfigError, SnapshotLoadError) as e:
        return False, f"Server failed to initialize: {e}"

    status = server.get_status()
    if not status["initialized"]:
        return False, "Server failed to initialize"
    if status["docCount"] == 0:
        return False, "Server initialized but has no documents"
    return True, f"Server initialized with {status['docCount']} documents"


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Verify an MCP documentation snapshot")
    parser.add_argument("build_dir", nargs="?", default="build", help="Site build directory")
    parser.add_argument("--output-dir", default="mcp", help="Snapshot directory inside build_dir")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, stream=sys.stderr)

    mcp_dir = Path(args.build_dir) / args.output_dir
    print(f"Verifying MCP snapshot in {mcp_dir}")

    result = verify_build(mcp_dir)
    for warning in result.warnings:
        print(f"  warning: {warning}")
    for error in result.errors:
        print(f"  error: {error}")

    if not result.success:
        print("Verification failed")
        return 1

    print(f"  found {result.docs_found} documents")

    ok, message = check_server(mcp_dir)
    print(f"  {message}")
    if not ok:
        print("Verification failed")
        return 1

    print("Verification passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
