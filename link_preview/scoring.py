"""Candidate deduplication, scoring, and best-image selection."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Sequence

from .config import CDN_HINTS
from .markup import Markup, as_soup, meta_content
from .models import ImageCandidate, ImageSource, ScoredImage
from .utils import host_of, resolve_url

logger = logging.getLogger("link_preview")

SIZE_HINT_PATTERN = re.compile(r"(?<!\d)\d{3,4}(?!\d)")
CDN_BONUS = 200

AMAZON_HOST_HINTS = ("amazon.", "media-amazon.")
AMAZON_PRODUCT_PATHS = ("/images/i/", "/images/g/", "/images/p/", "/images/s/")
AMAZON_LOGO_WORDS = ("logo", "sprite", "nav", "favicon", "amazonfresh")
FIRST_IMAGE_SKIP = ("icon", "avatar", "logo", "favicon", "thumb")


def dedupe_candidates(candidates: Iterable[ImageCandidate]) -> List[ImageCandidate]:
    """Keep the first candidate for each absolute URL, preserving order."""
    seen = set()
    unique: List[ImageCandidate] = []
    for candidate in candidates:
        if candidate.url in seen:
            continue
        seen.add(candidate.url)
        unique.append(candidate)
    return unique


def score_image(candidate: ImageCandidate, cdn_hints: Sequence[str] = CDN_HINTS) -> int:
    """Approximate pixel area; falls back to size hints embedded in the URL."""
    width, height = candidate.width, candidate.height
    if width is not None and height is not None:
        return width * height
    if width is not None:
        return width * (800 if width >= 800 else 400)

    numbers = [int(value) for value in SIZE_HINT_PATTERN.findall(candidate.url)]
    score = max(numbers, default=0)
    lower = candidate.url.lower()
    if any(hint in lower for hint in cdn_hints):
        score += CDN_BONUS
    return score


def score_candidates(
    candidates: Iterable[ImageCandidate],
    cdn_hints: Sequence[str] = CDN_HINTS,
) -> List[ScoredImage]:
    return [ScoredImage(candidate, score_image(candidate, cdn_hints)) for candidate in candidates]


def is_amazon_host(host: str) -> bool:
    return any(hint in host for hint in AMAZON_HOST_HINTS)


def looks_like_amazon_logo(url: str) -> bool:
    lower = url.lower()
    return any(word in lower for word in AMAZON_LOGO_WORDS)


def is_amazon_product_image(url: str) -> bool:
    lower = url.lower()
    if looks_like_amazon_logo(lower):
        return False
    return any(path in lower for path in AMAZON_PRODUCT_PATHS) or "_ac_" in lower


def _highest(scored: Iterable[ScoredImage]) -> Optional[ScoredImage]:
    best: Optional[ScoredImage] = None
    for item in scored:
        # strict comparison keeps the earliest candidate on ties
        if best is None or item.score > best.score:
            best = item
    return best


def select_best_image(scored: Sequence[ScoredImage], base_url: str) -> Optional[ScoredImage]:
    """Pick the winning candidate, applying Amazon product-image preferences."""
    if not scored:
        return None
    if is_amazon_host(host_of(base_url)):
        product = _highest(item for item in scored if is_amazon_product_image(item.url))
        if product is not None:
            return product
        non_logo = _highest(item for item in scored if not looks_like_amazon_logo(item.url))
        if non_logo is not None:
            return non_logo
    return _highest(scored)


def rank_candidates(scored: Sequence[ScoredImage], base_url: str) -> List[ScoredImage]:
    """Order candidates for validation: domain cascade, selected best, then by score."""
    domain = [item for item in scored if item.candidate.source is ImageSource.DOMAIN]
    ranked: List[ScoredImage] = list(domain)
    best = select_best_image(scored, base_url)
    if best is not None and best not in ranked:
        ranked.append(best)
    remaining = [item for item in scored if item not in ranked]
    ranked.extend(sorted(remaining, key=lambda item: item.score, reverse=True))
    return ranked


def fallback_image_url(html: Markup, base_url: str) -> Optional[str]:
    """Simple og:image, twitter:image, then first content-looking ``<img src>``.

    When every ``<img>`` looks like an icon or logo, the first one is used.
    """
    soup = as_soup(html)
    for key, attributes in (("og:image", ("property",)), ("twitter:image", ("name",))):
        value = meta_content(soup, key, attributes=attributes)
        if value:
            url = resolve_url(value, base_url)
            if url:
                return url

    first: Optional[str] = None
    for img in soup.find_all("img", src=True):
        url = resolve_url(img["src"], base_url)
        if url is None:
            continue
        if not any(word in img["src"].lower() for word in FIRST_IMAGE_SKIP):
            return url
        first = first or url
    return first
