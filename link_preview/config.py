"""Configuration objects and constants for the link preview pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Tuple

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_6) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15"
)

RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({403, 408, 429, 500, 502, 503, 504})

SKIP_KEYWORDS: Tuple[str, ...] = (
    "logo",
    "favicon",
    "sprite",
    "avatar",
    "placeholder",
    "og-logo",
    "yt_icon",
)

CDN_HINTS: Tuple[str, ...] = ("alicdn.com", "cdn", "cloudfront", "akamai")


@dataclass
class PreviewConfig:
    """Settings that control fetching, extraction and image validation."""

    max_attempts: int = 3
    prefer_rendering: bool = True
    wait_after_load: float = 4.5
    request_timeout: float = 20.0
    navigation_timeout: float = 30.0
    image_timeout: float = 6.0
    image_sniff_bytes: int = 64 * 1024
    same_url_delay: float = 1.0
    same_host_delay: float = 0.6
    host_spacing: float = 0.4
    retryable_statuses: FrozenSet[int] = RETRYABLE_STATUS_CODES
    skip_keywords: Tuple[str, ...] = SKIP_KEYWORDS
    cdn_hints: Tuple[str, ...] = CDN_HINTS
    user_agent: str = DESKTOP_USER_AGENT
    favicon_fallback: bool = False
    max_text_chars: int = 20_000
    staleness_seconds: float = 24 * 60 * 60
    extra_headers: dict = field(default_factory=dict)
