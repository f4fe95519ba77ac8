"""HTML extraction of file candidates, follow links and thumbnails."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

from .models import FileEntry
from .utils import (
    is_http_url,
    match_extension,
    normalize_url,
    same_host,
    strip_fragment,
    url_file_name,
)

if TYPE_CHECKING:
    from .sites import SiteProfile

THUMBNAIL_KEYWORDS = ("thumb", "thumbnail", "preview", "small", "mini")
THUMBNAIL_MAX_DIMENSION = 300
EMBED_MARKERS = ("/embed/", "/player/")
EMBEDDED_FILE_TYPE = "embedded"

_LEADING_INT = re.compile(r"^\s*[+-]?(\d+)")


@dataclass
class AnchorLink:
    """Same-host link that traversal may follow."""

    url: str
    href: str
    has_thumbnail: bool = False
    thumbnail_url: Optional[str] = None


@dataclass
class PageExtraction:
    """Everything the traversal needs from one parsed page."""

    files: List[FileEntry] = field(default_factory=list)
    anchors: List[AnchorLink] = field(default_factory=list)
    thumbnail_targets: List[AnchorLink] = field(default_factory=list)


def _attr_text(element: Tag, name: str) -> str:
    value = element.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


def _parse_dimension(value: str) -> int:
    match = _LEADING_INT.match(value or "")
    return int(match.group(1)) if match else 0


def is_thumbnail(element: Optional[Tag]) -> bool:
    """Heuristically decide whether an element is a clickable preview image."""
    if element is None or getattr(element, "name", None) != "img":
        return False

    if element.find_parent("a") is not None:
        return True

    haystack = " ".join(
        _attr_text(element, name) for name in ("class", "id", "alt")
    ).lower()
    if any(keyword in haystack for keyword in THUMBNAIL_KEYWORDS):
        return True

    width = _parse_dimension(_attr_text(element, "width"))
    height = _parse_dimension(_attr_text(element, "height"))
    return 0 < width < THUMBNAIL_MAX_DIMENSION or 0 < height < THUMBNAIL_MAX_DIMENSION


def build_entry(
    url: str,
    source_url: str,
    extensions: Sequence[str],
    thumbnail_url: Optional[str] = None,
) -> Optional[FileEntry]:
    """Create a FileEntry if the URL path ends with a requested extension."""
    ext = match_extension(url, extensions)
    if ext is None:
        return None
    return FileEntry(
        url=url,
        file_name=url_file_name(url) or f"file.{ext}",
        file_type=ext,
        source_url=source_url,
        thumbnail_url=thumbnail_url,
    )


def build_embedded_entry(
    url: str,
    source_url: str,
    extensions: Sequence[str],
    thumbnail_url: Optional[str] = None,
) -> Optional[FileEntry]:
    """Like build_entry, but players under /embed/ or /player/ also qualify."""
    ext = match_extension(url, extensions)
    if ext is None and not any(marker in url for marker in EMBED_MARKERS):
        return None
    file_name = url_file_name(url) or f"embedded_{int(time.time() * 1000)}"
    return FileEntry(
        url=url,
        file_name=file_name,
        file_type=ext or EMBEDDED_FILE_TYPE,
        source_url=source_url,
        thumbnail_url=thumbnail_url,
        is_embedded=True,
    )


def _iter_embedded_sources(soup: BeautifulSoup):
    for tag in soup.find_all(["video", "iframe"]):
        yield tag.get("src")
    for tag in soup.select("video source"):
        yield tag.get("src")


def _link_target(base_url: str, href: str) -> Optional[str]:
    """Resolve a follow link; only links on the (post-redirect) page host qualify."""
    target = normalize_url(base_url, href)
    if not target or not is_http_url(target) or not same_host(target, base_url):
        return None
    return strip_fragment(target)


def extract_page(
    html: str,
    page_url: str,
    extensions: Sequence[str],
    thumbnail_url: Optional[str] = None,
    profile: Optional["SiteProfile"] = None,
    base_url: Optional[str] = None,
) -> PageExtraction:
    """Collect file candidates and follow links from a single page.

    ``base_url`` is the URL relative references resolve against (the final
    URL after redirects); it defaults to ``page_url``.
    """
    base_url = base_url or page_url
    soup = BeautifulSoup(html, "html.parser")
    extraction = PageExtraction()

    # Site-mined candidates are unverified guesses; they never carry provenance.
    if profile is not None:
        for url in profile.mine_html(html, base_url, extensions):
            entry = build_entry(url, page_url, extensions)
            if entry:
                extraction.files.append(entry)
        extraction.files.extend(profile.extract_dom(soup, page_url, base_url, extensions))

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        target = normalize_url(base_url, href)
        if not target:
            continue
        entry = build_entry(target, page_url, extensions, thumbnail_url)
        if entry:
            extraction.files.append(entry)
        link = _link_target(base_url, href)
        if link:
            extraction.anchors.append(
                AnchorLink(
                    url=link,
                    href=href,
                    has_thumbnail=is_thumbnail(anchor.find("img")),
                )
            )

    for src in _iter_embedded_sources(soup):
        target = normalize_url(base_url, src)
        if not target:
            continue
        entry = build_embedded_entry(target, page_url, extensions, thumbnail_url)
        if entry:
            extraction.files.append(entry)

    for image in soup.find_all("img"):
        if not is_thumbnail(image):
            continue
        anchor = image.find_parent("a")
        if anchor is None or not anchor.get("href"):
            continue
        link = _link_target(base_url, anchor["href"])
        if not link:
            continue
        image_url = normalize_url(base_url, image.get("src"))
        extraction.thumbnail_targets.append(
            AnchorLink(
                url=link,
                href=anchor["href"],
                has_thumbnail=True,
                thumbnail_url=image_url or link,
            )
        )

    return extraction
