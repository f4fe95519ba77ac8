"""File size resolution for discovered files."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import httpx

from .config import CrawlConfig
from .models import FileEntry

logger = logging.getLogger("filescout")


def parse_content_length(value: Optional[str]) -> int:
    if not value:
        return 0
    try:
        size = int(value.strip())
    except ValueError:
        return 0
    return max(size, 0)


async def get_file_size(
    client: httpx.AsyncClient,
    url: str,
    user_agent: str,
    timeout: float,
) -> int:
    """Return the remote Content-Length, or 0 when it cannot be resolved."""
    try:
        response = await client.head(
            url,
            headers={"User-Agent": user_agent},
            timeout=timeout,
            follow_redirects=True,
        )
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("Error getting file size for %s: %s", url, exc)
        return 0
    return parse_content_length(response.headers.get("Content-Length"))


async def resolve_file_sizes(
    client: httpx.AsyncClient,
    files: List[FileEntry],
    config: CrawlConfig,
) -> None:
    """Fill in ``size`` for every file; failures leave that file at 0."""
    if not files:
        return
    semaphore = asyncio.Semaphore(config.size_concurrency)

    async def resolve(entry: FileEntry) -> None:
        async with semaphore:
            entry.size = await get_file_size(
                client, entry.url, config.user_agent, config.size_timeout
            )

    logger.debug("Resolving sizes for %d file(s)", len(files))
    await asyncio.gather(*(resolve(entry) for entry in files))
