"""High-level orchestration for crawling a site and collecting files."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Awaitable, Dict, List, Optional, Sequence, Set, Tuple

import httpx

from .config import CrawlConfig
from .content import PageExtraction, extract_page
from .models import CrawlResult, FileEntry, ThumbnailConnection
from .probe import probe_site_candidates
from .sites import SiteProfile, resolve_profile
from .sizes import resolve_file_sizes
from .utils import normalize_url, strip_fragment

logger = logging.getLogger("filescout")

CONTENT_LINK_KEYWORDS = ("video", "media", "watch", "stream", "player", "gallery")
TEXTUAL_CONTENT_TYPES = ("html", "xml", "json", "javascript", "text/")


class Priority(IntEnum):
    """Queue order for pending pages; lower values are fetched first."""

    THUMBNAIL = 0
    CONTENT = 1
    GENERIC = 2


@dataclass(order=True)
class PageTask:
    """A page waiting in the frontier."""

    priority: int
    sequence: int
    url: str = field(compare=False)
    depth: int = field(compare=False)
    thumbnail_url: Optional[str] = field(default=None, compare=False)


@dataclass
class CrawlState:
    """Mutable state owned by a single crawl invocation."""

    max_pages: int
    visited: Set[str] = field(default_factory=set)
    found_files: List[FileEntry] = field(default_factory=list)
    thumbnail_connections: List[ThumbnailConnection] = field(default_factory=list)
    pages: List[Tuple[str, int]] = field(default_factory=list)
    _file_index: Dict[str, FileEntry] = field(default_factory=dict, repr=False)
    _connection_index: Set[ThumbnailConnection] = field(default_factory=set, repr=False)

    @property
    def at_capacity(self) -> bool:
        return len(self.visited) >= self.max_pages

    def admit(self, url: str) -> bool:
        """Mark a page as in flight; False if already seen or at the cap."""
        if url in self.visited or self.at_capacity:
            return False
        self.visited.add(url)
        return True

    def mark_visited(self, url: str) -> None:
        """Record a URL reached through a redirect so it is not fetched again."""
        if not self.at_capacity:
            self.visited.add(url)

    def add_file(self, entry: FileEntry) -> bool:
        if entry.url in self._file_index:
            return False
        self._file_index[entry.url] = entry
        self.found_files.append(entry)
        return True

    def add_connection(self, thumbnail: str, content: str) -> None:
        connection = ThumbnailConnection(thumbnail=thumbnail, content=content)
        if connection in self._connection_index:
            return
        self._connection_index.add(connection)
        self.thumbnail_connections.append(connection)

    def latest_connections(self) -> Dict[str, str]:
        """Collapse edges to one content URL per thumbnail (last one wins)."""
        return {edge.thumbnail: edge.content for edge in self.thumbnail_connections}


class Crawler:
    """Depth-bounded crawl driven by a priority queue and a worker pool."""

    def __init__(
        self,
        config: CrawlConfig,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config
        self.state = CrawlState(max_pages=config.max_pages)
        self._client = client
        self._queue: Optional[asyncio.PriorityQueue] = None
        self._sequence = itertools.count()
        self._cancelled = asyncio.Event()

    def cancel(self) -> None:
        """Stop scheduling and abandon in-flight fetches."""
        self._cancelled.set()

    def _schedule(
        self,
        url: str,
        depth: int,
        priority: Priority,
        thumbnail_url: Optional[str] = None,
    ) -> bool:
        if depth > self.config.crawl_depth or not self.state.admit(url):
            return False
        task = PageTask(priority, next(self._sequence), url, depth, thumbnail_url)
        self._queue.put_nowait(task)
        return True

    async def fetch_page(
        self, client: httpx.AsyncClient, url: str, profile: SiteProfile
    ) -> Optional[Tuple[str, str]]:
        """Return (html, final URL) or None when the page is unusable."""
        timeout = self.config.page_timeout or profile.page_timeout
        headers = profile.page_headers(url, self.config.user_agent)
        async with client.stream("GET", url, headers=headers, timeout=timeout) as response:
            response.raise_for_status()
            content_type = response.headers.get("Content-Type", "").lower()
            if content_type and not any(kind in content_type for kind in TEXTUAL_CONTENT_TYPES):
                logger.debug("Skipping %s: non-HTML content (%s)", url, content_type)
                return None
            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) >= self.config.max_page_bytes:
                    logger.warning(
                        "Truncating %s at %d bytes", url, self.config.max_page_bytes
                    )
                    break
            encoding = response.encoding or "utf-8"
            html = bytes(body).decode(encoding, errors="replace")
            return html, str(response.url)

    def _record(self, extraction: PageExtraction, task: PageTask) -> None:
        for entry in extraction.files:
            if self.state.add_file(entry):
                logger.debug("Added %s file: %s", entry.file_type, entry.file_name)
            if entry.thumbnail_url:
                self.state.add_connection(entry.thumbnail_url, entry.url)

    def _schedule_children(self, extraction: PageExtraction, task: PageTask) -> None:
        crawl_depth = self.config.crawl_depth
        if task.depth >= crawl_depth:
            return
        child_depth = task.depth + 1

        if crawl_depth == 1:
            for link in extraction.anchors:
                self._schedule(link.url, child_depth, Priority.GENERIC)
            return

        for link in extraction.thumbnail_targets:
            self._schedule(link.url, child_depth, Priority.THUMBNAIL, link.thumbnail_url)

        for link in extraction.anchors:
            if self.state.at_capacity:
                break
            if link.has_thumbnail:
                self._schedule(link.url, child_depth, Priority.THUMBNAIL, link.url)
            elif any(keyword in link.href.lower() for keyword in CONTENT_LINK_KEYWORDS):
                self._schedule(link.url, child_depth, Priority.CONTENT, task.thumbnail_url)
            else:
                self._schedule(link.url, child_depth, Priority.GENERIC)

    async def _process(self, client: httpx.AsyncClient, task: PageTask) -> None:
        if task.depth > self.config.crawl_depth:
            return
        profile = resolve_profile(task.url)
        logger.info("Crawling: %s (depth: %d)", task.url, task.depth)
        if profile.host_pattern is not None:
            logger.info("Detected %s site, using specialized headers", profile.name)
        try:
            fetched = await self.fetch_page(client, task.url, profile)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Failed to fetch page %s: %s", task.url, exc)
            return
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error loading %s", task.url)
            return
        self.state.pages.append((task.url, task.depth))
        if fetched is None:
            return
        html, final_url = fetched
        landed = strip_fragment(normalize_url(final_url, final_url) or final_url)
        if landed != task.url:
            self.state.mark_visited(landed)

        try:
            extraction = extract_page(
                html,
                task.url,
                self.config.extensions,
                thumbnail_url=task.thumbnail_url,
                profile=profile,
                base_url=final_url,
            )
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error parsing %s", task.url)
            return

        self._record(extraction, task)
        self._schedule_children(extraction, task)

    async def _worker(self, client: httpx.AsyncClient) -> None:
        while True:
            task = await self._queue.get()
            try:
                await self._process(client, task)
            finally:
                self._queue.task_done()

    async def _run_phase(
        self, phase: str, work: Awaitable[Any], deadline: Optional[float]
    ) -> bool:
        """Await ``work`` until it finishes, the deadline passes or the crawl is
        cancelled. Unfinished work is cancelled; returns True if it completed."""
        timeout = None
        if deadline is not None:
            timeout = max(deadline - asyncio.get_running_loop().time(), 0.0)
        job = asyncio.ensure_future(work)
        cancelled = asyncio.create_task(self._cancelled.wait())
        try:
            done = set()
            if not self._cancelled.is_set():
                done, _ = await asyncio.wait(
                    {job, cancelled},
                    timeout=timeout,
                    return_when=asyncio.FIRST_COMPLETED,
                )
            if job in done:
                return True
            if self._cancelled.is_set():
                logger.warning("%s cancelled; returning partial results", phase)
            else:
                logger.warning(
                    "%s stopped at the %.1fs crawl deadline; returning partial results",
                    phase,
                    self.config.crawl_deadline,
                )
            return False
        finally:
            for pending in (job, cancelled):
                pending.cancel()
            await asyncio.gather(job, cancelled, return_exceptions=True)

    async def _traverse(
        self, client: httpx.AsyncClient, seed_url: str, deadline: Optional[float]
    ) -> bool:
        self._queue = asyncio.PriorityQueue()
        self._schedule(seed_url, 0, Priority.THUMBNAIL)

        workers = [
            asyncio.create_task(self._worker(client))
            for _ in range(self.config.max_concurrency)
        ]
        try:
            return await self._run_phase("Crawl", self._queue.join(), deadline)
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

    async def run(self, seed_url: str) -> CrawlResult:
        """Crawl from ``seed_url`` and return the enriched result.

        ``crawl_deadline`` bounds the whole run: traversal, probing and size
        lookups share one deadline. Files whose size lookup did not finish
        keep size 0.
        """
        start = time.perf_counter()
        deadline = None
        if self.config.crawl_deadline is not None:
            deadline = asyncio.get_running_loop().time() + self.config.crawl_deadline
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(follow_redirects=True)
        try:
            seed = normalize_url(seed_url, seed_url) or seed_url
            if await self._traverse(client, seed, deadline):
                probe = probe_site_candidates(client, seed, self.state, self.config)
                if await self._run_phase("Probing", probe, deadline):
                    sizes = resolve_file_sizes(client, self.state.found_files, self.config)
                    await self._run_phase("Size lookup", sizes, deadline)
        finally:
            if owns_client:
                await client.aclose()

        duration = time.perf_counter() - start
        logger.info(
            "Finished in %.2fs (%d pages, %d files)",
            duration,
            len(self.state.pages),
            len(self.state.found_files),
        )
        return CrawlResult(
            files=list(self.state.found_files),
            thumbnail_connections=list(self.state.thumbnail_connections),
            base_url=seed_url,
            pages_visited=len(self.state.pages),
            duration=duration,
        )


async def crawl_website(
    website: str,
    extensions: Sequence[str],
    crawl_depth: int = 0,
    config: Optional[CrawlConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> CrawlResult:
    """Crawl ``website`` for files with the given extensions."""
    if config is None:
        config = CrawlConfig(extensions=list(extensions), crawl_depth=crawl_depth)
    crawler = Crawler(config, client=client)
    return await crawler.run(website)
