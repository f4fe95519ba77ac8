"""Site profiles: per-host request headers and extraction heuristics.

The generic profile applies to every host. Families with a known HTML/CDN
layout subclass :class:`SiteProfile` and register themselves so the crawler
picks them up by host name without any changes to the traversal logic.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterator, List, Optional, Pattern, Sequence, Tuple
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from .config import DEFAULT_USER_AGENT
from .content import build_entry
from .models import FileEntry
from .utils import match_extension, normalize_url

logger = logging.getLogger("filescout")

ProbeCandidate = Tuple[str, str, str]


class SiteProfile:
    """Default behaviour used for hosts without a dedicated profile."""

    name = "generic"
    host_pattern: Optional[Pattern[str]] = None
    page_timeout = 8.0
    cdn_domains: Tuple[str, ...] = ()
    probe_templates: Tuple[str, ...] = ()
    content_id_pattern: Optional[Pattern[str]] = None

    def matches(self, url: str) -> bool:
        if self.host_pattern is None:
            return True
        try:
            host = (urlsplit(url).hostname or "").lower()
        except ValueError:
            return False
        return bool(self.host_pattern.search(host))

    def page_headers(self, url: str, user_agent: str = DEFAULT_USER_AGENT) -> Dict[str, str]:
        return {"User-Agent": user_agent}

    def probe_headers(self, seed_url: str, user_agent: str = DEFAULT_USER_AGENT) -> Dict[str, str]:
        return {"User-Agent": user_agent, "Referer": seed_url}

    def mine_html(self, html: str, base_url: str, extensions: Sequence[str]) -> List[str]:
        """Return file URLs found in the raw page text outside the DOM."""
        return []

    def extract_dom(
        self,
        soup: BeautifulSoup,
        page_url: str,
        base_url: str,
        extensions: Sequence[str],
    ) -> List[FileEntry]:
        """Return site-specific file candidates from the parsed document."""
        return []

    def content_id(self, seed_url: str) -> Optional[str]:
        if self.content_id_pattern is None:
            return None
        match = self.content_id_pattern.search(seed_url)
        return match.group(1) if match else None

    def probe_candidates(
        self, seed_url: str, extensions: Sequence[str]
    ) -> Iterator[ProbeCandidate]:
        """Yield (url, file name, extension) guesses for speculative probing."""
        content_id = self.content_id(seed_url)
        if not content_id or not self.cdn_domains or not self.probe_templates:
            return
        for domain in self.cdn_domains:
            for ext in extensions:
                for template in self.probe_templates:
                    url = template.format(domain=domain, id=content_id, ext=ext)
                    yield url, self.probe_file_name(content_id, ext), ext

    def probe_file_name(self, content_id: str, ext: str) -> str:
        return f"{self.name}_{content_id}.{ext}"


class BunkrProfile(SiteProfile):
    """Album/stream pages on the bunkr hosting family."""

    name = "bunkr"
    host_pattern = re.compile(r"(?:^|\.)bunkr\.(?:ru|cr|is|sk|to)$")
    page_timeout = 15.0
    page_user_agent = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/99.0.4844.84 Safari/537.36"
    )
    probe_user_agent = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    media_extensions = ("mp4", "jpg", "jpeg", "png", "gif", "webm", "mp3")
    stream_cdn_template = "https://cdn.bunkr.cr/stream/{stream_id}.{ext}"
    cdn_domains = (
        "cdn.bunkr.cr",
        "cdn1.bunkr.cr",
        "cdn2.bunkr.cr",
        "media.bunkr.cr",
        "stream.bunkr.cr",
    )
    probe_templates = (
        "https://{domain}/a/{id}/content.{ext}",
        "https://{domain}/albums/{id}/media.{ext}",
        "https://{domain}/stream/{id}.{ext}",
        "https://{domain}/{id}.{ext}",
    )
    content_id_pattern = re.compile(r"/a/([a-zA-Z0-9]+)")

    container_selector = (
        ".media-container, .stream-content, .album-media, .media-wrapper, .media-viewer"
    )
    media_selector = "video source, video, img, a.download-link, a.media-link"
    download_selector = (
        "a.download-btn, a.dl-button, a[download], a[href*=download], button.download-btn"
    )

    _ext_group = "|".join(media_extensions)
    cdn_patterns = (
        re.compile(
            r"https?://cdn[0-9]*\.bunkr\.(?:ru|cr|is|sk|to)/[a-zA-Z0-9/_\-.]+?\.(?:%s)\b"
            % _ext_group,
            re.IGNORECASE,
        ),
        re.compile(
            r'"(?:url|src|file)"\s*:\s*"(https?://[^"]*?\.(?:%s))\b' % _ext_group,
            re.IGNORECASE,
        ),
        re.compile(
            r"""['"]?(https?://[^'"\s<>]*?\.(?:%s))\b['"]?""" % _ext_group,
            re.IGNORECASE,
        ),
    )
    stream_pattern = re.compile(r"stream-[a-zA-Z0-9]+", re.IGNORECASE)

    def page_headers(self, url: str, user_agent: str = DEFAULT_USER_AGENT) -> Dict[str, str]:
        host = (urlsplit(url).hostname or "").lower()
        match = self.host_pattern.search(host)
        root = match.group(0).lstrip(".") if match else "bunkr.cr"
        return {
            "User-Agent": self.page_user_agent,
            "Accept": (
                "text/html,application/xhtml+xml,application/xml;q=0.9,"
                "image/webp,image/apng,*/*;q=0.8"
            ),
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": f"https://{root}/",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }

    def probe_headers(self, seed_url: str, user_agent: str = DEFAULT_USER_AGENT) -> Dict[str, str]:
        return {"User-Agent": self.probe_user_agent, "Referer": seed_url}

    def _clean(self, raw: str) -> str:
        return raw.replace('"', "").replace("'", "").strip()

    def mine_html(self, html: str, base_url: str, extensions: Sequence[str]) -> List[str]:
        text = html.replace("\\/", "/")
        found: List[str] = []
        for pattern in self.cdn_patterns:
            for match in pattern.finditer(text):
                raw = match.group(1) if pattern.groups else match.group(0)
                url = normalize_url(base_url, self._clean(raw))
                if url and match_extension(url, extensions):
                    found.append(url)

        stream_ids = list(dict.fromkeys(self.stream_pattern.findall(text)))
        for stream_id in stream_ids:
            for ext in extensions:
                found.append(self.stream_cdn_template.format(stream_id=stream_id, ext=ext))

        logger.info("Found %d potential CDN URLs in page source", len(found))
        return found

    def extract_dom(
        self,
        soup: BeautifulSoup,
        page_url: str,
        base_url: str,
        extensions: Sequence[str],
    ) -> List[FileEntry]:
        references: List[str] = []
        for container in soup.select(self.container_selector):
            for element in container.select(self.media_selector):
                attr = "href" if element.name == "a" else "src"
                references.append(element.get(attr) or "")

        for element in soup.select(self.download_selector):
            references.append(
                element.get("href") or element.get("data-url") or element.get("data-href") or ""
            )

        literal = re.compile(
            r"""["'](https?://[^"']*\.(?:%s))["']"""
            % "|".join(re.escape(ext) for ext in extensions),
            re.IGNORECASE,
        )
        for script in soup.find_all("script"):
            references.extend(literal.findall(script.string or script.get_text() or ""))

        entries: List[FileEntry] = []
        for reference in references:
            url = normalize_url(base_url, reference)
            if not url:
                continue
            entry = build_entry(url, page_url, extensions)
            if entry:
                entries.append(entry)
        return entries


DEFAULT_PROFILE = SiteProfile()
_PROFILES: List[SiteProfile] = [BunkrProfile()]


def register_profile(profile: SiteProfile) -> None:
    """Add a site profile; later registrations take precedence."""
    _PROFILES.insert(0, profile)


def resolve_profile(url: str) -> SiteProfile:
    for profile in _PROFILES:
        if profile.matches(url):
            return profile
    return DEFAULT_PROFILE
