"""Discovery of rendered pages in a static site build directory."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence, Union

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"
SKIPPED_DIRS = {"assets", "img", "static"}


@dataclass(frozen=True)
class RouteEntry:
    """A route and the HTML file that renders it."""
    path: str
    html_path: Path


def discover_html_files(build_dir: Union[str, Path]) -> List[Path]:
    """Find every ``index.html`` under ``build_dir``, skipping asset directories."""
    root = Path(build_dir)
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
        if INDEX_FILE in filenames:
            found.append(Path(dirpath) / INDEX_FILE)
    return found


def html_path_to_route(html_path: Union[str, Path], build_dir: Union[str, Path]) -> str:
    relative = Path(html_path).relative_to(build_dir).parent
    if str(relative) in ("", "."):
        return "/"
    return "/" + relative.as_posix()


def route_to_html_path(route: str, build_dir: Union[str, Path]) -> Path:
    trimmed = route.strip("/")
    if not trimmed:
        return Path(build_dir) / INDEX_FILE
    return Path(build_dir) / trimmed / INDEX_FILE


def _glob_to_regex(pattern: str) -> "re.Pattern":
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$")


def filter_routes(routes: Iterable[str], exclude_patterns: Sequence[str]) -> List[str]:
    """Drop routes matching any glob pattern (``*`` any run, ``?`` one character)."""
    compiled = [_glob_to_regex(p) for p in exclude_patterns]
    return [r for r in routes if not any(p.match(r) for p in compiled)]


def collect_routes(build_dir: Union[str, Path],
                   exclude_patterns: Sequence[str] = ()) -> List[RouteEntry]:
    """Collect routes for every page in a build directory.

    Args:
        build_dir: Static site output directory
        exclude_patterns: Glob patterns of routes to leave out

    Returns:
        Unique route entries sorted by route
    """
    entries = {}
    for html_path in discover_html_files(build_dir):
        route = html_path_to_route(html_path, build_dir)
        entries.setdefault(route, RouteEntry(path=route, html_path=html_path))

    kept = filter_routes(sorted(entries), exclude_patterns)
    excluded = len(entries) - len(kept)
    if excluded:
        logger.debug(f"Excluded {excluded} routes by pattern")

    return [entries[route] for route in kept]
