"""Utility helpers for URL and title normalization."""

from __future__ import annotations

import re
import unicodedata
from typing import Optional
from urllib.parse import urljoin, urlsplit

WHITESPACE_PATTERN = re.compile(r"\s+")
URL_PATTERN = re.compile(r"https?://[^\s)]+", re.IGNORECASE)


def host_of(url: str) -> str:
    """Return the lower-cased host of a URL, or an empty string."""
    return (urlsplit(url).hostname or "").lower()


def upgrade_to_https(url: str) -> str:
    """Return the URL with an https scheme if it used http."""
    parts = urlsplit(url)
    if parts.scheme.lower() != "http":
        return url
    return parts._replace(scheme="https").geturl()


def resolve_url(raw: str, base_url: str) -> Optional[str]:
    """Resolve a possibly relative reference against the page URL and force https."""
    value = raw.strip()
    if not value or value.startswith("data:"):
        return None
    resolved = urljoin(base_url, value)
    if urlsplit(resolved).scheme.lower() not in ("http", "https"):
        return None
    return upgrade_to_https(resolved)


def first_url(text: str) -> Optional[str]:
    """Return the first http(s) URL appearing in free text."""
    match = URL_PATTERN.search(text)
    return match.group(0) if match else None


def normalize_title(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return WHITESPACE_PATTERN.sub(" ", stripped).strip().casefold()


def titles_match(lhs: str, rhs: str) -> bool:
    """Compare titles ignoring case, diacritics and whitespace runs."""
    return normalize_title(lhs) == normalize_title(rhs)
