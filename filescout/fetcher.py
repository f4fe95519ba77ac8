"""Download discovered files to disk with browser-like request headers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

import requests
from filetype import guess

from .config import DEFAULT_USER_AGENT
from .utils import slugify, url_file_name

logger = logging.getLogger("filescout")

CHUNK_SIZE = 64 * 1024
SNIFF_BYTES = 262
FETCH_TIMEOUT = 30
FALLBACK_CONTENT_TYPE = "application/octet-stream"
MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "pdf": "application/pdf",
    "json": "application/json",
    "txt": "text/plain",
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
}
FETCH_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "*/*",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


@dataclass
class FetchedFile:
    """A remote file written to the local filesystem."""

    url: str
    path: Path
    content_type: str
    size: int


def guess_content_type(url: str) -> str:
    """Map a URL's extension onto a MIME type."""
    name = url_file_name(url)
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return MIME_TYPES.get(extension, FALLBACK_CONTENT_TYPE)


def detect_content_type(header: Optional[str], head: bytes, url: str) -> str:
    """Prefer the server's Content-Type, then the file signature, then the URL."""
    if header:
        return header.split(";")[0].strip().lower()
    kind = guess(head) if head else None
    if kind:
        return kind.mime
    return guess_content_type(url)


def _target_path(url: str, output_dir: Path, index: int) -> Path:
    name = url_file_name(url)
    stem, dot, extension = name.rpartition(".")
    if not dot:
        stem, extension = name, ""
    stem = slugify(stem, fallback=f"file-{index:02d}")[:80]
    suffix = f".{slugify(extension, fallback='bin')}" if extension else ""
    destination = output_dir / f"{stem}{suffix}"
    counter = 1
    while destination.exists():
        destination = output_dir / f"{stem}-{counter}{suffix}"
        counter += 1
    return destination


def fetch_files(
    urls: Iterable[str],
    output_dir: Path,
    session: Optional[requests.Session] = None,
) -> List[FetchedFile]:
    """Stream each URL to ``output_dir``; failures are logged and skipped."""
    output_dir.mkdir(parents=True, exist_ok=True)
    session = session or requests.Session()
    fetched: List[FetchedFile] = []

    for index, url in enumerate(urls, start=1):
        destination = _target_path(url, output_dir, index)
        try:
            with session.get(
                url, headers=FETCH_HEADERS, timeout=FETCH_TIMEOUT, stream=True
            ) as resp:
                resp.raise_for_status()
                written = 0
                head = b""
                with destination.open("wb") as handle:
                    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        if len(head) < SNIFF_BYTES:
                            head += chunk[: SNIFF_BYTES - len(head)]
                        handle.write(chunk)
                        written += len(chunk)
                content_type = detect_content_type(
                    resp.headers.get("Content-Type"), head, url
                )
        except requests.RequestException as exc:
            logger.warning("Failed to fetch %s: %s", url, exc)
            destination.unlink(missing_ok=True)
            continue
        except OSError as exc:
            logger.warning("Failed to write %s: %s", destination, exc)
            continue

        logger.info("Saved %s (%s, %d bytes) to %s", url, content_type, written, destination)
        fetched.append(
            FetchedFile(url=url, path=destination, content_type=content_type, size=written)
        )
    return fetched
