"""Image candidate discovery across meta tags, JSON-LD, img and video markup."""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, Iterator, List, Optional, Sequence
from urllib.parse import parse_qs, quote, urlsplit

from bs4 import BeautifulSoup

from .config import SKIP_KEYWORDS
from .markup import Markup, as_soup, iter_meta_contents, meta_content
from .models import ImageCandidate, ImageSource
from .utils import host_of, resolve_url

logger = logging.getLogger("link_preview")

YOUTUBE_THUMBNAILS = ("maxresdefault.jpg", "hqdefault.jpg", "mqdefault.jpg", "default.jpg")
YOUTUBE_PATH_MARKERS = ("embed", "shorts", "live", "v")

OG_IMAGE_KEYS = ("og:image", "og:image:url", "og:image:secure_url")
TWITTER_IMAGE_KEYS = ("twitter:image", "twitter:image:src")
JSON_LD_URL_KEYS = frozenset({"image", "url", "contentUrl"})
JSON_LD_TYPE = re.compile(r"application/ld\+json", re.IGNORECASE)


def is_youtube_host(host: str) -> bool:
    return "youtube.com" in host or "youtu.be" in host


def youtube_video_id(url: str) -> Optional[str]:
    """Extract a video id from watch, short-link, embed and shorts URLs."""
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    segments = [segment for segment in parts.path.split("/") if segment]
    if "youtu.be" in host:
        return segments[0] if segments else None
    if "youtube.com" not in host:
        return None
    video_ids = parse_qs(parts.query).get("v")
    if video_ids and video_ids[0]:
        return video_ids[0]
    for marker in YOUTUBE_PATH_MARKERS:
        if marker in segments:
            index = segments.index(marker)
            if index + 1 < len(segments):
                return segments[index + 1]
    return None


def youtube_candidates(soup: BeautifulSoup, base_url: str) -> List[ImageCandidate]:
    if not is_youtube_host(host_of(base_url)):
        return []
    video_id = youtube_video_id(base_url)
    if video_id is None:
        for key in ("og:url", "og:video:url"):
            value = meta_content(soup, key, attributes=("property",))
            if value:
                video_id = youtube_video_id(value)
                if video_id:
                    break
    if video_id is None:
        return []
    return [
        ImageCandidate(
            url=f"https://i.ytimg.com/vi/{quote(video_id, safe='')}/{name}",
            source=ImageSource.DOMAIN,
        )
        for name in YOUTUBE_THUMBNAILS
    ]


def _int_or_none(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    value = value.strip()
    return int(value) if value.isdigit() else None


def meta_image_candidates(soup: BeautifulSoup, base_url: str) -> List[ImageCandidate]:
    width = _int_or_none(meta_content(soup, "og:image:width"))
    height = _int_or_none(meta_content(soup, "og:image:height"))

    candidates: List[ImageCandidate] = []
    for key in OG_IMAGE_KEYS:
        for raw in iter_meta_contents(soup, key, attributes=("property", "name")):
            url = resolve_url(raw, base_url)
            if url:
                candidates.append(ImageCandidate(url, width, height, ImageSource.META))
    for key in TWITTER_IMAGE_KEYS:
        for raw in iter_meta_contents(soup, key, attributes=("name", "property")):
            url = resolve_url(raw, base_url)
            if url:
                candidates.append(ImageCandidate(url, source=ImageSource.META))
    for link in soup.find_all("link", href=True):
        rel = [value.lower() for value in link.get("rel") or []]
        if "image_src" in rel:
            url = resolve_url(link["href"], base_url)
            if url:
                candidates.append(ImageCandidate(url, source=ImageSource.META))
    return candidates


def _json_ld_urls(node: object, collecting: bool = False) -> Iterator[str]:
    if isinstance(node, str):
        if collecting:
            yield node
    elif isinstance(node, list):
        for item in node:
            yield from _json_ld_urls(item, collecting)
    elif isinstance(node, dict):
        for key, value in node.items():
            yield from _json_ld_urls(value, key in JSON_LD_URL_KEYS)


def json_ld_candidates(soup: BeautifulSoup, base_url: str) -> List[ImageCandidate]:
    candidates: List[ImageCandidate] = []
    for script in soup.find_all("script", attrs={"type": JSON_LD_TYPE}):
        text = script.string or script.get_text()
        if not text or not text.strip():
            continue
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug("Skipping malformed JSON-LD block on %s", base_url)
            continue
        for raw in _json_ld_urls(data):
            url = resolve_url(raw, base_url)
            if url:
                candidates.append(ImageCandidate(url, source=ImageSource.JSON_LD))
    return candidates


def largest_srcset_entry(srcset: str) -> Optional[tuple]:
    """Return ``(url, width)`` for the widest ``srcset`` entry."""
    best_url: Optional[str] = None
    best_width: Optional[int] = None
    for entry in srcset.split(","):
        parts = entry.split()
        if not parts:
            continue
        width = None
        for descriptor in parts[1:]:
            if descriptor.lower().endswith("w") and descriptor[:-1].isdigit():
                width = int(descriptor[:-1])
        if best_url is None or (width or 0) > (best_width or 0):
            best_url, best_width = parts[0], width
    if best_url is None:
        return None
    return best_url, best_width


def img_tag_candidates(soup: BeautifulSoup, base_url: str) -> List[ImageCandidate]:
    candidates: List[ImageCandidate] = []
    for img in soup.find_all("img"):
        raw: Optional[str] = None
        width: Optional[int] = None
        srcset = img.get("srcset") or img.get("data-srcset")
        if srcset:
            entry = largest_srcset_entry(srcset)
            if entry:
                raw, width = entry
        if raw is None:
            raw = img.get("data-src") or img.get("data-original") or img.get("src")
        if not raw:
            continue
        url = resolve_url(raw, base_url)
        if url:
            candidates.append(ImageCandidate(url, width, source=ImageSource.IMG_TAG))
    return candidates


def video_poster_candidates(soup: BeautifulSoup, base_url: str) -> List[ImageCandidate]:
    candidates: List[ImageCandidate] = []
    for video in soup.find_all("video", poster=True):
        url = resolve_url(video["poster"], base_url)
        if url:
            candidates.append(ImageCandidate(url, source=ImageSource.VIDEO_POSTER))
    return candidates


def is_skipped(url: str, skip_keywords: Sequence[str] = SKIP_KEYWORDS) -> bool:
    lower = url.lower()
    return any(keyword in lower for keyword in skip_keywords)


def filter_skipped(
    candidates: Iterable[ImageCandidate],
    skip_keywords: Sequence[str] = SKIP_KEYWORDS,
) -> List[ImageCandidate]:
    return [candidate for candidate in candidates if not is_skipped(candidate.url, skip_keywords)]


def collect_image_candidates(
    html: Markup,
    base_url: str,
    skip_keywords: Sequence[str] = SKIP_KEYWORDS,
) -> List[ImageCandidate]:
    """Gather every image candidate in priority order, minus skip-listed URLs."""
    soup = as_soup(html)
    candidates: List[ImageCandidate] = []
    candidates.extend(youtube_candidates(soup, base_url))
    candidates.extend(meta_image_candidates(soup, base_url))
    candidates.extend(json_ld_candidates(soup, base_url))
    candidates.extend(img_tag_candidates(soup, base_url))
    candidates.extend(video_poster_candidates(soup, base_url))
    kept = filter_skipped(candidates, skip_keywords)
    logger.debug(
        "Collected %d image candidate(s) for %s (%d skipped)",
        len(kept),
        base_url,
        len(candidates) - len(kept),
    )
    return kept


def favicon_url(page_url: str) -> str:
    """Google's favicon service URL for a page, used as a last-resort preview."""
    return "https://www.google.com/s2/favicons?sz=128&domain_url=" + quote(page_url, safe="")
