"""Readable body text for downstream summarization."""

from __future__ import annotations

import logging
from typing import Iterator, Optional, Sequence

from bs4 import BeautifulSoup
from readability import Document

logger = logging.getLogger("link_preview")

NOISE_TAGS = ("script", "style", "noscript", "form", "svg")
CHROME_TAGS = ("header", "footer", "nav", "aside")
MIN_READABLE_CHARS = 200
TRUNCATION_MARKER = "\n[truncated]"


def _text_lines(fragment: str, drop: Sequence[str]) -> str:
    soup = BeautifulSoup(fragment, "html.parser")
    for tag in soup(list(drop)):
        tag.decompose()
    return "\n".join(soup.stripped_strings)


def _readability_text(html: str) -> str:
    try:
        summary = Document(html).summary(html_partial=True)
    except Exception as exc:  # noqa: BLE001 - readability raises bare Exception subclasses
        logger.debug("Readability failed: %s", exc)
        return ""
    return _text_lines(summary, NOISE_TAGS)


def _scoped_texts(soup: BeautifulSoup) -> Iterator[str]:
    """Text of ``<main>``, ``<article>``, then ``<body>``, with page chrome removed."""
    for scope in (soup.select_one("main"), soup.select_one("article"), soup.body):
        if scope is not None:
            yield _text_lines(str(scope), NOISE_TAGS + CHROME_TAGS)


def extract_body_text(
    html: str,
    max_chars: int = 20_000,
    soup: Optional[BeautifulSoup] = None,
) -> str:
    """Return the page's main readable text, truncated to ``max_chars``."""
    if not html or not html.strip():
        return ""
    text = _readability_text(html)
    if len(text) < MIN_READABLE_CHARS:
        if soup is None:
            soup = BeautifulSoup(html, "html.parser")
        for scoped in _scoped_texts(soup):
            if len(scoped) > len(text):
                text = scoped
            if len(text) >= MIN_READABLE_CHARS:
                break
    if len(text) > max_chars:
        text = text[:max_chars] + TRUNCATION_MARKER
    return text
