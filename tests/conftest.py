"""Pytest session bootstrap and an in-memory website for crawl tests."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from filescout.config import CrawlConfig  # noqa: E402
from filescout.crawler import Crawler  # noqa: E402


class FakeSite:
    """Serves HTML pages for GET, Content-Length for HEAD and redirects from dicts."""

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        sizes: Optional[Dict[str, int]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        redirects: Optional[Dict[str, str]] = None,
    ) -> None:
        self.pages = pages or {}
        self.sizes = sizes or {}
        self.errors = errors or {}
        self.redirects = redirects or {}
        self.requests: List[Tuple[str, str]] = []
        self.headers: Dict[Tuple[str, str], httpx.Headers] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append((request.method, url))
        self.headers[(request.method, url)] = request.headers
        if url in self.errors:
            raise self.errors[url]
        if url in self.redirects:
            return httpx.Response(301, headers={"Location": self.redirects[url]})
        if request.method == "HEAD":
            if url in self.sizes:
                return httpx.Response(200, headers={"Content-Length": str(self.sizes[url])})
            return httpx.Response(404)
        if url in self.pages:
            return httpx.Response(200, html=self.pages[url])
        return httpx.Response(404, html="<h1>Not found</h1>")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler), follow_redirects=True
        )

    def fetched(self) -> List[str]:
        return [url for method, url in self.requests if method == "GET"]

    def probed(self) -> List[str]:
        return [url for method, url in self.requests if method == "HEAD"]

    def crawl(self, seed: str, extensions, crawl_depth: int = 0, **overrides):
        """Run a full crawl against this site and return (result, crawler)."""
        config = CrawlConfig(extensions=list(extensions), crawl_depth=crawl_depth, **overrides)

        async def scenario():
            async with self.client() as client:
                crawler = Crawler(config, client=client)
                return await crawler.run(seed), crawler

        return asyncio.run(scenario())


@pytest.fixture
def fake_site():
    return FakeSite
