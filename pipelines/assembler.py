"""Document assembly: page HTML to ``ProcessedDoc`` records.

Each page runs through extraction, Markdown conversion, a minimum length
gate and heading indexing. Batches are processed with bounded concurrency;
a failing page is logged and skipped without affecting the others.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .headings import extract_headings
from .html_parser import ExtractionOptions, extract_content
from .html_to_markdown import ConversionMode, html_to_markdown
from .models import ProcessedDoc
from .route_collector import RouteEntry

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONTENT_LENGTH = 50
DEFAULT_CONCURRENCY = 10

STATUS_PROCESSED = "processed"
STATUS_NO_CONTENT = "no_content"
STATUS_TOO_SHORT = "too_short"
STATUS_FAILED = "failed"


@dataclass
class ProcessingOptions:
    """Options for turning a page into a document."""
    extraction: ExtractionOptions = field(default_factory=ExtractionOptions)
    min_content_length: int = DEFAULT_MIN_CONTENT_LENGTH


@dataclass
class PageResult:
    """Outcome of processing one page."""
    route: str
    status: str
    doc: Optional[ProcessedDoc] = None
    reason: Optional[str] = None
    conversion_mode: Optional[ConversionMode] = None

    @property
    def ok(self) -> bool:
        return self.doc is not None


@dataclass
class AssemblyStats:
    """Counters for a batch of pages."""
    total: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    fallback_conversions: int = 0
    start_time: float = field(default_factory=time.monotonic)
    end_time: Optional[float] = None

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    def finish(self):
        self.end_time = time.monotonic()


def process_html(html: str, route: str,
                 options: Optional[ProcessingOptions] = None) -> PageResult:
    """Turn a page's HTML into a document.

    Args:
        html: Full page HTML
        route: Route the page is served under
        options: Extraction selectors and minimum content length

    Returns:
        PageResult carrying the document, or the reason it was skipped
    """
    options = options or ProcessingOptions()

    extracted = extract_content(html, options.extraction)
    if not extracted.has_content:
        return PageResult(route=route, status=STATUS_NO_CONTENT,
                          reason="no content region found")

    conversion = html_to_markdown(extracted.content_html)
    body = conversion.markdown
    content_length = len(body.strip())
    if content_length < options.min_content_length:
        return PageResult(
            route=route,
            status=STATUS_TOO_SHORT,
            reason=f"content too short ({content_length} < {options.min_content_length} chars)",
            conversion_mode=conversion.mode,
        )

    doc = ProcessedDoc(
        route=route,
        title=extracted.title,
        description=extracted.description,
        body=body,
        headings=tuple(extract_headings(body)),
    )
    return PageResult(
        route=route,
        status=STATUS_PROCESSED,
        doc=doc,
        reason=conversion.error,
        conversion_mode=conversion.mode,
    )


def process_html_file(path: Union[str, Path], route: str,
                      options: Optional[ProcessingOptions] = None) -> PageResult:
    html = Path(path).read_text(encoding="utf-8", errors="replace")
    return process_html(html, route, options)


async def assemble_documents(
    routes: Sequence[RouteEntry],
    options: Optional[ProcessingOptions] = None,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> Tuple[Dict[str, ProcessedDoc], List[PageResult], AssemblyStats]:
    """Process pages with at most ``concurrency`` in flight.

    Args:
        routes: Pages to process
        options: Processing options shared by every page
        concurrency: Maximum number of pages processed at once

    Returns:
        Tuple of (documents keyed by route, per-page results, stats)
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    options = options or ProcessingOptions()
    semaphore = asyncio.Semaphore(concurrency)
    stats = AssemblyStats()

    async def _process(entry: RouteEntry) -> PageResult:
        async with semaphore:
            return await asyncio.to_thread(
                process_html_file, entry.html_path, entry.path, options
            )

    logger.info(f"Processing {len(routes)} pages (concurrency={concurrency})")
    outcomes = await asyncio.gather(*(_process(e) for e in routes), return_exceptions=True)

    docs: Dict[str, ProcessedDoc] = {}
    results: List[PageResult] = []

    for entry, outcome in zip(routes, outcomes):
        stats.total += 1

        if isinstance(outcome, Exception):
            logger.error(f"Failed to process {entry.path}: {outcome}",
                         exc_info=(type(outcome), outcome, outcome.__traceback__))
            outcome = PageResult(route=entry.path, status=STATUS_FAILED,
                                 reason=f"{type(outcome).__name__}: {outcome}")
        elif isinstance(outcome, BaseException):
            raise outcome

        results.append(outcome)

        if outcome.conversion_mode is ConversionMode.PLAIN_TEXT:
            stats.fallback_conversions += 1
            logger.warning(f"Used plain-text conversion for {entry.path}: {outcome.reason}")

        if outcome.status == STATUS_FAILED:
            stats.failed += 1
        elif outcome.doc is None:
            stats.skipped += 1
            logger.warning(f"Skipping {entry.path}: {outcome.reason}")
        elif outcome.route in docs:
            stats.skipped += 1
            logger.warning(f"Skipping duplicate route {outcome.route}")
        else:
            stats.processed += 1
            docs[outcome.route] = outcome.doc

    stats.finish()
    logger.info(f"Processed {stats.processed} pages, skipped {stats.skipped}, "
                f"failed {stats.failed} out of {stats.total} total "
                f"({stats.fallback_conversions} plain-text conversions)")

    return docs, results, stats
