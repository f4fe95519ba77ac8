from __future__ import annotations

import pytest

from filescout.config import CrawlConfig, normalize_extensions
from filescout.models import (
    CrawlRequest,
    CrawlResult,
    FileEntry,
    InvalidCrawlRequest,
    SizeFilter,
    SizeFilters,
    ThumbnailConnection,
    apply_size_filters,
)


def _entry(url: str, size: int = 0, **kwargs) -> FileEntry:
    return FileEntry(
        url=url,
        file_name=url.rsplit("/", 1)[-1],
        file_type="pdf",
        source_url="https://example.com/",
        size=size,
        **kwargs,
    )


def test_crawl_request_from_payload():
    request = CrawlRequest.from_dict(
        {
            "website": "example.com/docs",
            "extensions": [".PDF", "pdf", "Mp4"],
            "crawlDepth": "2",
            "sizeFilters": {"minSize": {"size": 100, "unit": "kb"}},
        }
    )
    assert request.website == "https://example.com/docs"
    assert request.extensions == ["pdf", "mp4"]
    assert request.crawl_depth == 2
    assert request.size_filters.min_size == SizeFilter(100, "KB")
    assert request.size_filters.max_size is None


def test_crawl_request_accepts_single_extension_string():
    request = CrawlRequest.from_dict({"website": "http://x.test", "extensions": "zip"})
    assert request.extensions == ["zip"]
    assert request.crawl_depth == 0
    assert not request.size_filters.active


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"website": "   ", "extensions": ["pdf"]},
        {"website": "example.com"},
        {"website": "example.com", "extensions": ["", "."]},
        {"website": "example.com", "extensions": ["pdf"], "crawlDepth": -1},
        {"website": "example.com", "extensions": ["pdf"], "crawlDepth": "deep"},
        {
            "website": "example.com",
            "extensions": ["pdf"],
            "sizeFilters": {"maxSize": {"size": 1, "unit": "GB"}},
        },
        {
            "website": "example.com",
            "extensions": ["pdf"],
            "sizeFilters": {"minSize": {"unit": "KB"}},
        },
    ],
)
def test_crawl_request_rejects_invalid_payloads(payload):
    with pytest.raises(InvalidCrawlRequest):
        CrawlRequest.from_dict(payload)


def test_size_filter_parse():
    assert SizeFilter.parse("100KB") == SizeFilter(100.0, "KB")
    assert SizeFilter.parse(" 2.5 mb ") == SizeFilter(2.5, "MB")
    assert SizeFilter.parse("64") == SizeFilter(64.0, "KB")
    assert SizeFilter(2, "MB").to_bytes() == 2 * 1024 * 1024
    with pytest.raises(InvalidCrawlRequest):
        SizeFilter.parse("huge")
    with pytest.raises(InvalidCrawlRequest):
        SizeFilter.parse("-1MB")


def test_size_filters_are_inclusive():
    filters = SizeFilters(min_size=SizeFilter(1, "KB"), max_size=SizeFilter(1, "MB"))
    files = [
        _entry("https://x.test/unknown.pdf", 0),
        _entry("https://x.test/small.pdf", 1023),
        _entry("https://x.test/low.pdf", 1024),
        _entry("https://x.test/high.pdf", 1024 * 1024),
        _entry("https://x.test/big.pdf", 1024 * 1024 + 1),
    ]
    kept = apply_size_filters(files, filters)
    assert [entry.file_name for entry in kept] == ["low.pdf", "high.pdf"]
    assert apply_size_filters(files, SizeFilters()) == files
    assert apply_size_filters(files, None) == files


def test_max_only_filter_keeps_unknown_sizes():
    filters = SizeFilters(max_size=SizeFilter(10, "KB"))
    assert filters.matches(_entry("https://x.test/a.pdf", 0))


def test_file_entry_serialization():
    entry = _entry(
        "https://x.test/a.pdf",
        1536,
        thumbnail_url="https://x.test/a.jpg",
        is_embedded=True,
    )
    assert entry.to_dict() == {
        "url": "https://x.test/a.pdf",
        "fileName": "a.pdf",
        "fileType": "pdf",
        "sourceUrl": "https://example.com/",
        "thumbnailUrl": "https://x.test/a.jpg",
        "isEmbedded": True,
        "size": 1536,
        "formattedSize": "1.5 KB",
        "relatedFiles": [{"type": "thumbnail", "url": "https://x.test/a.jpg"}],
    }
    assert _entry("https://x.test/b.pdf").related_files == []


def test_crawl_result_serialization():
    result = CrawlResult(
        files=[_entry("https://x.test/a.pdf")],
        thumbnail_connections=[ThumbnailConnection("https://x.test/t.jpg", "https://x.test/a.pdf")],
        base_url="https://x.test/",
        pages_visited=3,
        duration=1.2345,
    )
    payload = result.to_dict()
    assert payload["crawlInfo"] == {
        "pagesVisited": 3,
        "duration": 1234,
        "baseUrl": "https://x.test/",
    }
    assert payload["thumbnailConnections"] == [
        {"thumbnail": "https://x.test/t.jpg", "content": "https://x.test/a.pdf"}
    ]
    assert len(payload["files"]) == 1


def test_crawl_config_validation():
    assert CrawlConfig(extensions=[".ZIP"]).extensions == ["zip"]
    assert normalize_extensions([" .Tar.GZ ", "tar.gz"]) == ["tar.gz"]
    with pytest.raises(ValueError):
        CrawlConfig(extensions=[])
    with pytest.raises(ValueError):
        CrawlConfig(extensions=["pdf"], crawl_depth=-1)
    with pytest.raises(ValueError):
        CrawlConfig(extensions=["pdf"], max_concurrency=0)
