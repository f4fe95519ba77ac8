from __future__ import annotations

import json

import pytest

from filescout import cli
from filescout.models import CrawlResult, FileEntry, SizeFilter


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "_configure_logging", lambda level: None)


def _fake_result(website: str) -> CrawlResult:
    return CrawlResult(
        files=[
            FileEntry("https://x.test/small.pdf", "small.pdf", "pdf", website, size=100),
            FileEntry("https://x.test/large.pdf", "large.pdf", "pdf", website, size=4096),
        ],
        thumbnail_connections=[],
        base_url=website,
        pages_visited=1,
    )


def test_crawl_is_the_default_command():
    args = cli.parse_args(["example.com", "-e", "pdf", "-e", "mp4", "--depth", "2"])
    assert args.command == "crawl"
    assert args.extensions == ["pdf", "mp4"]
    assert args.depth == 2
    assert args.deadline == 120.0
    assert args.concurrency == 6


def test_size_arguments_are_parsed():
    args = cli.parse_args(["crawl", "example.com", "-e", "pdf", "--min-size", "1KB", "--max-size", "2MB"])
    assert args.min_size == SizeFilter(1, "KB")
    assert args.max_size == SizeFilter(2, "MB")
    request = cli.build_request(args)
    assert request.website == "https://example.com"
    assert request.size_filters.active


def test_invalid_size_argument_exits():
    with pytest.raises(SystemExit) as excinfo:
        cli.parse_args(["example.com", "-e", "pdf", "--min-size", "lots"])
    assert excinfo.value.code == 2


def test_negative_depth_exits_with_usage_status():
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["example.com", "-e", "pdf", "--depth", "-1"])
    assert excinfo.value.code == 2


def test_json_output_applies_size_filters(monkeypatch, capsys):
    calls = {}

    async def fake_crawl(website, extensions, crawl_depth=0, config=None, client=None):
        calls["website"] = website
        calls["config"] = config
        return _fake_result(website)

    monkeypatch.setattr(cli, "crawl_website", fake_crawl)
    cli.main(["example.com", "-e", "PDF", "--min-size", "1KB", "--json", "--concurrency", "2"])

    payload = json.loads(capsys.readouterr().out)
    assert [item["fileName"] for item in payload["files"]] == ["large.pdf"]
    assert payload["crawlInfo"]["baseUrl"] == "https://example.com"
    assert calls["config"].extensions == ["pdf"]
    assert calls["config"].max_concurrency == 2


def test_plain_output_lists_sizes(monkeypatch, capsys):
    async def fake_crawl(website, extensions, crawl_depth=0, config=None, client=None):
        return _fake_result(website)

    monkeypatch.setattr(cli, "crawl_website", fake_crawl)
    cli.main(["crawl", "https://example.com", "-e", "pdf"])

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["100", "Bytes", "https://x.test/small.pdf"]
    assert lines[1].split() == ["4", "KB", "https://x.test/large.pdf"]


def test_fetch_command_reports_failures(monkeypatch, tmp_path):
    def fake_fetch(urls, output_dir):
        return []

    monkeypatch.setattr(cli, "fetch_files", fake_fetch)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["fetch", "https://x.test/a.pdf", "--output", str(tmp_path)])
    assert excinfo.value.code == 1
