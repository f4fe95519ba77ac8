"""Configuration objects and constants for the crawler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
MAX_VISITED_PAGES = 100
MAX_FOUND_FILES = 100
MAX_PAGE_BYTES = 5 * 1024 * 1024


def normalize_extensions(extensions) -> List[str]:
    """Lower-case extensions, drop leading dots and duplicates, keep order."""
    normalized: List[str] = []
    for ext in extensions or ():
        value = str(ext).strip().lower().lstrip(".")
        if value and value not in normalized:
            normalized.append(value)
    return normalized


@dataclass
class CrawlConfig:
    """Top-level settings that control crawling and enrichment behaviour."""

    extensions: List[str] = field(default_factory=list)
    crawl_depth: int = 0
    max_pages: int = MAX_VISITED_PAGES
    max_found_files: int = MAX_FOUND_FILES
    max_concurrency: int = 6
    size_concurrency: int = 16
    probe_concurrency: int = 4
    page_timeout: Optional[float] = None
    size_timeout: float = 5.0
    probe_timeout: float = 3.0
    crawl_deadline: Optional[float] = 120.0
    max_page_bytes: int = MAX_PAGE_BYTES
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        self.extensions = normalize_extensions(self.extensions)
        if not self.extensions:
            raise ValueError("At least one file extension is required")
        if self.crawl_depth < 0:
            raise ValueError(f"crawl_depth must be >= 0 (got {self.crawl_depth})")
        for name in ("max_concurrency", "size_concurrency", "probe_concurrency"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be a positive integer")
