"""Shared BeautifulSoup helpers for reading page markup."""

from __future__ import annotations

from typing import Iterator, Optional, Sequence, Union

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

HIDDEN_TAGS = frozenset({"script", "style", "noscript", "template", "head", "title"})
META_KEY_ATTRIBUTES = ("property", "name", "itemprop")

Markup = Union[str, BeautifulSoup]


def as_soup(html: Markup) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return BeautifulSoup(html or "", "html.parser")


def collapse(text: str) -> str:
    return " ".join(text.split())


def iter_meta_contents(
    soup: BeautifulSoup,
    key: str,
    attributes: Sequence[str] = META_KEY_ATTRIBUTES,
) -> Iterator[str]:
    """Yield non-empty ``content`` values of ``<meta>`` tags keyed by ``key``."""
    key = key.lower()
    for tag in soup.find_all("meta"):
        for attribute in attributes:
            value = tag.get(attribute)
            if isinstance(value, str) and value.strip().lower() == key:
                content = tag.get("content")
                if isinstance(content, str) and content.strip():
                    yield content.strip()
                break


def meta_content(
    soup: BeautifulSoup,
    key: str,
    attributes: Sequence[str] = META_KEY_ATTRIBUTES,
) -> Optional[str]:
    return next(iter_meta_contents(soup, key, attributes), None)


def visible_text(soup: BeautifulSoup) -> str:
    """Join text nodes that a browser would render."""
    parts = []
    for node in soup.find_all(string=True):
        if isinstance(node, (Comment, Declaration, Doctype, ProcessingInstruction)):
            continue
        if any(parent.name in HIDDEN_TAGS for parent in node.parents):
            continue
        parts.append(str(node))
    return collapse(" ".join(parts))
