"""Speculative existence checks against guessed CDN URLs."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Dict

import httpx

from .config import CrawlConfig
from .models import FileEntry
from .sites import resolve_profile

if TYPE_CHECKING:
    from .crawler import CrawlState

logger = logging.getLogger("filescout")


async def url_exists(
    client: httpx.AsyncClient,
    url: str,
    headers: Dict[str, str],
    timeout: float,
) -> bool:
    """HEAD the URL; any status below 400 counts as present."""
    try:
        response = await client.head(
            url, headers=headers, timeout=timeout, follow_redirects=True
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("Probe failed for %s: %s", url, exc)
        return False
    return response.status_code < 400


async def probe_site_candidates(
    client: httpx.AsyncClient,
    seed_url: str,
    state: "CrawlState",
    config: CrawlConfig,
) -> int:
    """Probe the seed's site family for direct media URLs; returns hits added."""
    profile = resolve_profile(seed_url)
    candidates = list(profile.probe_candidates(seed_url, config.extensions))
    if not candidates:
        return 0

    logger.info("Checking %d additional %s CDN URLs", len(candidates), profile.name)
    headers = profile.probe_headers(seed_url, config.user_agent)
    semaphore = asyncio.Semaphore(config.probe_concurrency)
    added = 0

    async def probe(url: str, file_name: str, ext: str) -> None:
        nonlocal added
        async with semaphore:
            if len(state.found_files) >= config.max_found_files:
                return
            if not await url_exists(client, url, headers, config.probe_timeout):
                return
        if len(state.found_files) >= config.max_found_files:
            return
        entry = FileEntry(url=url, file_name=file_name, file_type=ext, source_url=seed_url)
        if state.add_file(entry):
            added += 1
            logger.info("Found valid file at: %s", url)

    await asyncio.gather(*(probe(*candidate) for candidate in candidates))
    return added
