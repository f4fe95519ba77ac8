"""Utility helpers for URL normalization, naming and size formatting."""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Iterable, Optional
from urllib.parse import quote, unquote, urljoin, urlsplit, urlunsplit

logger = logging.getLogger("filescout")

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
HTTP_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}
SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")

_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"


def slugify(value: str, fallback: str = "file") -> str:
    """Generate a filesystem-friendly slug using ASCII characters only."""
    normalized = value.encode("ascii", "ignore").decode("ascii")
    normalized = normalized.lower()
    normalized = SLUG_PATTERN.sub("-", normalized).strip("-")
    return normalized or fallback


def normalize_url(base_url: str, reference: Optional[str]) -> Optional[str]:
    """Resolve ``reference`` against ``base_url`` into a canonical absolute URL.

    Returns ``None`` when the reference is empty, malformed, or resolves to a
    scheme other than http(s).
    """
    if reference is None:
        return None
    reference = reference.strip()
    if not reference:
        return None
    try:
        parts = urlsplit(urljoin(base_url, reference))
        scheme = parts.scheme.lower()
        host = parts.hostname
        port = parts.port
    except ValueError as exc:
        logger.debug(
            "URL normalization error: %s, base_url: %s, href: %s",
            exc,
            base_url,
            reference,
        )
        return None

    if scheme not in HTTP_SCHEMES or not host:
        return None

    if ":" in host:
        host = f"[{host}]"
    userinfo, _, _ = parts.netloc.rpartition("@")
    netloc = f"{userinfo}@{host}" if userinfo else host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    path = quote(parts.path or "/", safe=_PATH_SAFE)
    query = quote(parts.query, safe=_QUERY_SAFE)
    return urlunsplit((scheme, netloc, path, query, parts.fragment))


def ensure_scheme(url: str) -> str:
    """Prefix bare host names with https:// the way the web form did."""
    url = url.strip()
    if not url:
        return url
    return url if url.lower().startswith("http") else f"https://{url}"


def is_http_url(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


def same_host(url: str, other: str) -> bool:
    """Compare the host names of two URLs (ports and schemes are ignored)."""
    try:
        return (urlsplit(url).hostname or "") == (urlsplit(other).hostname or "")
    except ValueError:
        return False


def strip_fragment(url: str) -> str:
    return url.split("#", 1)[0]


def url_path(url: str) -> str:
    try:
        return urlsplit(url).path
    except ValueError:
        return ""


def url_file_name(url: str) -> str:
    """Return the decoded basename of the URL path ('' for directory paths)."""
    return unquote(posixpath.basename(url_path(url)))


def match_extension(url: str, extensions: Iterable[str]) -> Optional[str]:
    """Return the requested extension the URL path ends with, if any.

    Longer extensions win so ``tar.gz`` is preferred over ``gz``.
    """
    path = url_path(url).lower()
    matched: Optional[str] = None
    for ext in extensions:
        if path.endswith(f".{ext}") and (matched is None or len(ext) > len(matched)):
            matched = ext
    return matched


def format_file_size(size: Optional[int]) -> str:
    """Render a byte count with the largest unit that keeps the value >= 1."""
    if not size or size <= 0:
        return "Unknown"
    value = float(size)
    index = 0
    while value >= 1024 and index < len(SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[index]}"
