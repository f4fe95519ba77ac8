"""Command-line entry point for filescout."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, Sequence

from .config import CrawlConfig
from .crawler import crawl_website
from .fetcher import fetch_files
from .models import (
    CrawlRequest,
    InvalidCrawlRequest,
    SizeFilter,
    SizeFilters,
    apply_size_filters,
)

logger = logging.getLogger("filescout.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("crawl", *argv)


def _size_filter(value: str) -> SizeFilter:
    try:
        return SizeFilter.parse(value)
    except InvalidCrawlRequest as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _add_crawl_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("website", help="Seed page to start crawling from")
    parser.add_argument(
        "-e",
        "--extension",
        dest="extensions",
        action="append",
        required=True,
        help="File extension to collect (repeatable, e.g. -e pdf -e mp4)",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=0,
        help="How many link hops to follow from the seed page",
    )
    parser.add_argument(
        "--min-size",
        type=_size_filter,
        default=None,
        help="Only report files at least this large (e.g. 100KB, 2MB)",
    )
    parser.add_argument(
        "--max-size",
        type=_size_filter,
        default=None,
        help="Only report files at most this large (e.g. 500KB, 10MB)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-page request timeout in seconds (defaults to the site profile)",
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=120.0,
        help="Overall crawl deadline in seconds",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=6,
        help="Maximum number of pages fetched at once",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the crawl response as JSON on STDOUT",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_fetch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("urls", nargs="+", help="One or more file URLs to download")
    parser.add_argument(
        "--output",
        default="downloads",
        type=Path,
        help="Directory where downloaded files should be written",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Discover downloadable files reachable from a web page.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    crawl_parser = subparsers.add_parser(
        "crawl", help="Crawl a site and list files with the requested extensions"
    )
    _add_crawl_arguments(crawl_parser)

    fetch_parser = subparsers.add_parser(
        "fetch", help="Download files by URL into a local directory"
    )
    _add_fetch_arguments(fetch_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def build_request(args: argparse.Namespace) -> CrawlRequest:
    """Validate CLI arguments the same way API payloads are validated."""
    request = CrawlRequest.from_dict(
        {
            "website": args.website,
            "extensions": args.extensions,
            "crawlDepth": args.depth,
        }
    )
    request.size_filters = SizeFilters(min_size=args.min_size, max_size=args.max_size)
    return request


def _run_crawl(args: argparse.Namespace) -> int:
    level = logging.DEBUG if args.verbose else logging.INFO
    if args.json and not args.verbose:
        level = logging.ERROR
    _configure_logging(level)

    try:
        request = build_request(args)
        config = CrawlConfig(
            extensions=request.extensions,
            crawl_depth=request.crawl_depth,
            page_timeout=args.timeout,
            crawl_deadline=args.deadline,
            max_concurrency=args.concurrency,
        )
    except ValueError as exc:
        logger.error("Invalid crawl request: %s", exc)
        return 2

    result = asyncio.run(crawl_website(request.website, request.extensions, config=config))
    result.files = apply_size_filters(result.files, request.size_filters)

    if args.json:
        sys.stdout.write(json.dumps(result.to_dict(), indent=2) + "\n")
        sys.stdout.flush()
        return 0

    for entry in result.files:
        marker = " [embedded]" if entry.is_embedded else ""
        sys.stdout.write(f"{entry.formatted_size:>12}  {entry.url}{marker}\n")
    for connection in result.thumbnail_connections:
        sys.stdout.write(f"thumbnail {connection.thumbnail} -> {connection.content}\n")
    logger.info(
        "Found %d file(s) on %d page(s) in %.2fs",
        len(result.files),
        result.pages_visited,
        result.duration,
    )
    return 0


def _run_fetch(args: argparse.Namespace) -> int:
    _configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    output_dir = Path(args.output).resolve()
    fetched = fetch_files(args.urls, output_dir)
    failures = len(args.urls) - len(fetched)
    logger.info(
        "Fetched %d/%d file(s) into %s (%d failed)",
        len(fetched),
        len(args.urls),
        output_dir,
        failures,
    )
    return 1 if failures else 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "crawl":
        status = _run_crawl(args)
    else:
        status = _run_fetch(args)
    if status:
        sys.exit(status)


if __name__ == "__main__":
    main()
