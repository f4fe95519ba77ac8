"""Data models used throughout the crawler pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .config import normalize_extensions
from .utils import ensure_scheme, format_file_size

SIZE_UNIT_BYTES = {"KB": 1024, "MB": 1024 * 1024}


class InvalidCrawlRequest(ValueError):
    """Raised when a crawl request is missing required fields or malformed."""


@dataclass
class FileEntry:
    """Candidate file discovered while crawling.

    ``size`` stays at 0 (unknown) until the enrichment pass resolves it.
    """

    url: str
    file_name: str
    file_type: str
    source_url: str
    thumbnail_url: Optional[str] = None
    is_embedded: bool = False
    size: int = 0

    @property
    def formatted_size(self) -> str:
        return format_file_size(self.size)

    @property
    def related_files(self) -> List[Dict[str, str]]:
        if not self.thumbnail_url:
            return []
        return [{"type": "thumbnail", "url": self.thumbnail_url}]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "sourceUrl": self.source_url,
            "thumbnailUrl": self.thumbnail_url,
            "isEmbedded": self.is_embedded,
            "size": self.size,
            "formattedSize": self.formatted_size,
            "relatedFiles": self.related_files,
        }


@dataclass(frozen=True)
class ThumbnailConnection:
    """Edge from a preview thumbnail to content discovered through it."""

    thumbnail: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"thumbnail": self.thumbnail, "content": self.content}


@dataclass
class SizeFilter:
    """A size bound expressed in KB or MB."""

    size: float
    unit: str = "KB"

    def __post_init__(self) -> None:
        self.unit = str(self.unit).upper()
        if self.unit not in SIZE_UNIT_BYTES:
            raise InvalidCrawlRequest(
                f"Unsupported size unit {self.unit!r} (expected KB or MB)"
            )
        if self.size < 0:
            raise InvalidCrawlRequest("Size filters must not be negative")

    def to_bytes(self) -> float:
        return self.size * SIZE_UNIT_BYTES[self.unit]

    @classmethod
    def parse(cls, text: str) -> "SizeFilter":
        """Parse a compact form such as ``100KB`` or ``2.5 mb``."""
        value = text.strip().upper()
        for unit in SIZE_UNIT_BYTES:
            if value.endswith(unit):
                number = value[: -len(unit)].strip()
                break
        else:
            unit, number = "KB", value
        try:
            return cls(size=float(number), unit=unit)
        except ValueError as exc:
            if isinstance(exc, InvalidCrawlRequest):
                raise
            raise InvalidCrawlRequest(f"Invalid size filter: {text!r}") from exc

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> Optional["SizeFilter"]:
        if not payload:
            return None
        try:
            return cls(size=float(payload["size"]), unit=payload.get("unit", "KB"))
        except (KeyError, TypeError, ValueError) as exc:
            if isinstance(exc, InvalidCrawlRequest):
                raise
            raise InvalidCrawlRequest(f"Invalid size filter: {payload!r}") from exc


@dataclass
class SizeFilters:
    """Inclusive size window applied by callers after enrichment."""

    min_size: Optional[SizeFilter] = None
    max_size: Optional[SizeFilter] = None

    @property
    def active(self) -> bool:
        return self.min_size is not None or self.max_size is not None

    def matches(self, entry: FileEntry) -> bool:
        if self.min_size is not None and entry.size < self.min_size.to_bytes():
            return False
        if self.max_size is not None and entry.size > self.max_size.to_bytes():
            return False
        return True


def apply_size_filters(
    files: List[FileEntry], filters: Optional[SizeFilters]
) -> List[FileEntry]:
    """Keep the files whose resolved size falls inside the filter window."""
    if filters is None or not filters.active:
        return list(files)
    return [entry for entry in files if filters.matches(entry)]


@dataclass
class CrawlRequest:
    """Validated input for a single crawl invocation."""

    website: str
    extensions: List[str]
    crawl_depth: int = 0
    size_filters: SizeFilters = field(default_factory=SizeFilters)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlRequest":
        website = str(payload.get("website") or "").strip()
        if not website:
            raise InvalidCrawlRequest("Website URL is required")

        raw_extensions = payload.get("extensions") or []
        if isinstance(raw_extensions, str):
            raw_extensions = [raw_extensions]
        extensions = normalize_extensions(raw_extensions)
        if not extensions:
            raise InvalidCrawlRequest("At least one file extension is required")

        raw_depth = payload.get("crawlDepth")
        try:
            crawl_depth = int(raw_depth) if raw_depth is not None else 0
        except (TypeError, ValueError) as exc:
            raise InvalidCrawlRequest(f"Invalid crawl depth: {raw_depth!r}") from exc
        if crawl_depth < 0:
            raise InvalidCrawlRequest("Crawl depth must not be negative")

        filters_payload = payload.get("sizeFilters") or {}
        size_filters = SizeFilters(
            min_size=SizeFilter.from_dict(filters_payload.get("minSize")),
            max_size=SizeFilter.from_dict(filters_payload.get("maxSize")),
        )
        return cls(
            website=ensure_scheme(website),
            extensions=extensions,
            crawl_depth=crawl_depth,
            size_filters=size_filters,
        )


@dataclass
class CrawlResult:
    """Files and thumbnail edges produced by one crawl."""

    files: List[FileEntry]
    thumbnail_connections: List[ThumbnailConnection]
    base_url: str
    pages_visited: int = 0
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [entry.to_dict() for entry in self.files],
            "thumbnailConnections": [
                connection.to_dict() for connection in self.thumbnail_connections
            ],
            "crawlInfo": {
                "pagesVisited": self.pages_visited,
                "duration": int(self.duration * 1000),
                "baseUrl": self.base_url,
            },
        }
