from __future__ import annotations

import asyncio

import pytest

from filescout import mcp_server
from filescout.models import CrawlResult, FileEntry, InvalidCrawlRequest


def test_handle_crawl_request_filters_by_size(monkeypatch):
    seen = {}

    async def fake_crawl(website, extensions, crawl_depth=0, config=None, client=None):
        seen["website"] = website
        seen["depth"] = config.crawl_depth
        return CrawlResult(
            files=[
                FileEntry("https://x.test/a.mp4", "a.mp4", "mp4", website, size=5 * 1024 * 1024),
                FileEntry("https://x.test/b.mp4", "b.mp4", "mp4", website, size=10),
            ],
            thumbnail_connections=[],
            base_url=website,
        )

    monkeypatch.setattr(mcp_server, "crawl_website", fake_crawl)
    payload = asyncio.run(
        mcp_server.handle_crawl_request(
            {
                "website": "x.test",
                "extensions": ["mp4"],
                "crawlDepth": 1,
                "sizeFilters": {"minSize": {"size": 1, "unit": "MB"}},
            }
        )
    )
    assert seen == {"website": "https://x.test", "depth": 1}
    assert [item["url"] for item in payload["files"]] == ["https://x.test/a.mp4"]
    assert payload["files"][0]["formattedSize"] == "5 MB"


def test_handle_crawl_request_rejects_bad_payload():
    with pytest.raises(InvalidCrawlRequest):
        asyncio.run(mcp_server.handle_crawl_request({"website": "x.test"}))
