"""High-level orchestration for turning a URL into a link preview."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from .candidates import collect_image_candidates, favicon_url
from .config import PreviewConfig
from .content import extract_body_text
from .fetcher import WebFetcher
from .images import ImageValidator
from .markdown import format_content
from .markup import Markup, as_soup
from .metadata import extract_description, extract_link_metadata, extract_title
from .models import LinkMetadata, PreviewResult
from .scoring import (
    dedupe_candidates,
    fallback_image_url,
    rank_candidates,
    score_candidates,
)
from .utils import host_of, upgrade_to_https

logger = logging.getLogger("link_preview")


@dataclass
class ExtractedPage:
    """Markup-derived fields, before any image is validated."""

    source_url: str
    title: Optional[str]
    description: Optional[str]
    metadata: LinkMetadata
    image_candidates: List[str]
    body_text: str


def candidate_image_urls(html: Markup, base_url: str, config: PreviewConfig) -> List[str]:
    """Collect, score and rank preview image URLs in validation order."""
    collected = collect_image_candidates(html, base_url, config.skip_keywords)
    scored = score_candidates(dedupe_candidates(collected), config.cdn_hints)
    urls = [item.url for item in rank_candidates(scored, base_url)]
    if not urls:
        fallback = fallback_image_url(html, base_url)
        if fallback:
            urls.append(fallback)
    if config.favicon_fallback:
        urls.append(favicon_url(base_url))
    return list(dict.fromkeys(urls))


def extract_page(html: str, base_url: str, config: PreviewConfig) -> ExtractedPage:
    """Run the metadata extractor and image collector over one parse of the markup."""
    soup = as_soup(html)
    return ExtractedPage(
        source_url=base_url,
        title=extract_title(soup),
        description=extract_description(soup),
        metadata=extract_link_metadata(html, base_url, soup=soup),
        image_candidates=candidate_image_urls(soup, base_url, config),
        body_text=extract_body_text(html, config.max_text_chars, soup=soup),
    )


def choose_title(page: ExtractedPage, title_hint: Optional[str] = None) -> str:
    if title_hint and title_hint.strip():
        return title_hint.strip()
    product_name = (page.metadata.product_name or "").strip()
    if product_name:
        return product_name
    return page.title or host_of(page.source_url) or page.source_url


class LinkPreviewPipeline:
    """Fetch a page, extract its signals, and validate a preview image.

    One pipeline owns one :class:`WebFetcher`, and therefore one throttle; share
    the pipeline across concurrent extractions to keep request spacing.
    """

    def __init__(
        self,
        config: Optional[PreviewConfig] = None,
        fetcher: Optional[WebFetcher] = None,
        validator: Optional[ImageValidator] = None,
    ) -> None:
        self.config = config or PreviewConfig()
        self.fetcher = fetcher or WebFetcher(self.config)
        self.validator = validator or ImageValidator(
            timeout=self.config.image_timeout,
            sniff_bytes=self.config.image_sniff_bytes,
        )

    async def fetch(self, url: str) -> str:
        """Fetch the https form of ``url`` first, then the original if it differs."""
        secure_url = upgrade_to_https(url)
        urls_to_try = [secure_url] if secure_url == url else [secure_url, url]
        last_error: Optional[Exception] = None
        for candidate in urls_to_try:
            try:
                return await self.fetcher.fetch_html(candidate)
            except Exception as exc:  # noqa: BLE001 - re-raised after the last URL
                logger.warning("Failed to load %s: %s", candidate, exc)
                last_error = exc
        assert last_error is not None
        raise last_error

    async def extract(self, url: str, title_hint: Optional[str] = None) -> PreviewResult:
        """Produce a :class:`PreviewResult` for ``url``.

        Fetch failures propagate to the caller; a missing image is not an
        error and leaves ``image_url`` unset.
        """
        start = time.perf_counter()
        html = await self.fetch(url)
        base_url = upgrade_to_https(url)
        page = await asyncio.to_thread(extract_page, html, base_url, self.config)
        logger.debug(
            "Ranked %d image candidate(s) for %s", len(page.image_candidates), base_url
        )

        image_url = await self.validator.choose_first_working_image(page.image_candidates)
        if image_url is None:
            logger.info("No preview image found for %s; will retry later", base_url)

        final_title = choose_title(page, title_hint)
        content = format_content(final_title, base_url, page.description or "", image_url)
        logger.info("Extracted %s in %.2fs", base_url, time.perf_counter() - start)
        return PreviewResult(
            source_url=base_url,
            final_title=final_title,
            content=content,
            metadata=page.metadata,
            image_url=image_url,
            description=page.description,
            body_text=page.body_text,
        )
