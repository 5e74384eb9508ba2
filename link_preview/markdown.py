"""Markdown assembly for link preview notes."""

from __future__ import annotations

import re
from typing import List, Optional

from .utils import host_of

IMAGE_LINK_PATTERN = re.compile(r"!\[[^\]]*\]\(([^)]+)\)")
REMOTE_IMAGE_PATTERN = re.compile(r"!\[[^\]]*\]\((https?://[^)]+)\)")
URL_PRESENT_PATTERN = re.compile(r"https?://")


def _host_label(url: str) -> str:
    return host_of(url) or "Link"


def format_content(
    title: str,
    url: str,
    body: str = "",
    image_url: Optional[str] = None,
) -> str:
    """Build the note body: source line, preview image, then body text.

    Sections are separated by a blank line and empty ones are left out. The
    title is carried by the note itself and is not repeated here.
    """
    sections: List[str] = [f"**Source:** [{_host_label(url)}]({url})"]
    if image_url:
        sections.append(f"![Preview Image]({image_url})")
    text = (body or "").strip()
    if text:
        sections.append(text)
    return "\n\n".join(sections)


def loading_content(url: str) -> str:
    """Placeholder shown while a link preview is being fetched."""
    return (
        f"Loading content from [{_host_label(url)}]({url})...\n\n"
        "*This note is being updated with content from the web page.*"
    )


def failure_content(url: str, error: BaseException) -> str:
    """Placeholder that keeps the link usable after a failed fetch."""
    description = str(error) or type(error).__name__
    return (
        f"Failed to load content from [{_host_label(url)}]({url})\n\n"
        f"Error: {description}\n\n"
        "You can still access the link above."
    )


def preview_image_url(content: str) -> Optional[str]:
    """Return the first Markdown image target in ``content``, ignoring data URIs."""
    match = IMAGE_LINK_PATTERN.search(content)
    if not match:
        return None
    target = match.group(1).strip()
    if target.startswith("data:"):
        return None
    return target


def has_remote_preview_image(content: str) -> bool:
    return REMOTE_IMAGE_PATTERN.search(content) is not None


def is_link_preview_content(content: str) -> bool:
    if "**Source:**" in content or "![Preview Image]" in content:
        return True
    return URL_PRESENT_PATTERN.search(content) is not None
