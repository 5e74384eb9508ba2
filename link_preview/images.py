"""Reachability checks for preview image candidates."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

import requests
from filetype import guess

logger = logging.getLogger("link_preview")

DEFAULT_SNIFF_BYTES = 64 * 1024


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def _is_ok(status: int) -> bool:
    return 200 <= status < 400


class ImageValidator:
    """Confirm candidate URLs are reachable and look like images.

    A ``HEAD`` request is tried first. If it raises, or answers with a status
    outside 2xx/3xx (many CDNs reject ``HEAD``), a single bounded ``GET`` is
    issued instead. A successful ``HEAD`` with a non-image content type is a
    rejection, not a reason to retry.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 6.0,
        sniff_bytes: int = DEFAULT_SNIFF_BYTES,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.sniff_bytes = sniff_bytes

    def _head(self, url: str) -> Optional[bool]:
        """Return the HEAD verdict, or None when a GET fallback is needed."""
        try:
            resp = self.session.head(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            logger.debug("HEAD %s failed: %s", url, exc)
            return None
        if not _is_ok(resp.status_code):
            logger.debug("HEAD %s returned HTTP %d", url, resp.status_code)
            return None
        content_type = resp.headers.get("Content-Type")
        if content_type is None:
            return True
        return "image/" in content_type.lower()

    def _get(self, url: str) -> bool:
        try:
            resp = self.session.get(url, timeout=self.timeout, stream=True)
        except requests.RequestException as exc:
            logger.warning("Failed to fetch image %s: %s", url, exc)
            return False
        try:
            if not _is_ok(resp.status_code):
                return False
            data = b""
            for chunk in resp.iter_content(chunk_size=8192):
                data += chunk
                if len(data) >= self.sniff_bytes:
                    break
        except requests.RequestException as exc:
            logger.warning("Failed to read image %s: %s", url, exc)
            return False
        finally:
            resp.close()
        if not data:
            return False
        logger.debug(
            "GET %s returned %d byte(s) (format=%s)",
            url,
            len(data),
            detect_image_format(data) or "unknown",
        )
        return True

    def check(self, url: str) -> bool:
        verdict = self._head(url)
        if verdict is None:
            verdict = self._get(url)
        return verdict

    async def validate(self, url: str) -> bool:
        return await asyncio.to_thread(self.check, url)

    async def choose_first_working_image(self, urls: Iterable[str]) -> Optional[str]:
        """Check candidates one by one and return the first that validates."""
        for url in urls:
            if await self.validate(url):
                logger.info("Selected preview image %s", url)
                return url
            logger.warning("Skipping %s: image did not validate", url)
        return None
