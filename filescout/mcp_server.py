"""MCP server exposing the filescout crawl tool."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from .config import CrawlConfig
from .crawler import crawl_website
from .models import CrawlRequest, apply_size_filters

logger = logging.getLogger("filescout.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="filescout")


async def handle_crawl_request(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a crawl request payload, run the crawl and filter by size."""
    request = CrawlRequest.from_dict(payload)
    config = CrawlConfig(extensions=request.extensions, crawl_depth=request.crawl_depth)
    result = await crawl_website(request.website, request.extensions, config=config)
    result.files = apply_size_filters(result.files, request.size_filters)
    return result.to_dict()


@mcp.tool()
async def crawl(
    website: str,
    extensions: List[str],
    crawl_depth: int = 0,
    min_size: Optional[Dict[str, Any]] = None,
    max_size: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Crawl a web page for files with the given extensions.

    ``min_size``/``max_size`` take ``{"size": number, "unit": "KB" | "MB"}``.
    """
    payload = {
        "website": website,
        "extensions": extensions,
        "crawlDepth": crawl_depth,
        "sizeFilters": {"minSize": min_size, "maxSize": max_size},
    }
    return await handle_crawl_request(payload)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
