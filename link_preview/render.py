"""JavaScript-capable page rendering behind a small capability interface."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from playwright.async_api import (
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import DESKTOP_USER_AGENT
from .errors import EmptyPayload, RenderingExecutionFailed, RenderingUnavailable

logger = logging.getLogger("link_preview")

OUTER_HTML_SCRIPT = (
    "() => document.documentElement ? document.documentElement.outerHTML"
    " : document.body ? document.body.outerHTML : ''"
)


class PageRenderer(Protocol):
    """Anything that can return post-JavaScript markup for a URL."""

    async def render(self, url: str, wait_after_load: float) -> Optional[str]:
        ...


class UnavailableRenderer:
    """Renderer used when no headless browser is available."""

    async def render(self, url: str, wait_after_load: float) -> Optional[str]:
        raise RenderingUnavailable()


class PlaywrightRenderer:
    """Render pages in headless Chromium and return the serialized DOM."""

    def __init__(
        self,
        navigation_timeout: float = 30.0,
        user_agent: str = DESKTOP_USER_AGENT,
    ) -> None:
        self.navigation_timeout = navigation_timeout
        self.user_agent = user_agent

    async def render(self, url: str, wait_after_load: float) -> Optional[str]:
        async with async_playwright() as playwright:
            try:
                browser = await playwright.chromium.launch(headless=True)
            except PlaywrightError as exc:
                # Browsers not installed or no sandbox support on this host.
                logger.debug("Chromium launch failed: %s", exc)
                raise RenderingUnavailable(str(exc)) from exc
            try:
                context = await browser.new_context(user_agent=self.user_agent)
                page = await context.new_page()
                page.set_default_navigation_timeout(self.navigation_timeout * 1000)
                logger.info("Rendering %s", url)
                await page.goto(url, wait_until="load")
                if wait_after_load:
                    await page.wait_for_timeout(int(wait_after_load * 1000))
                html = await page.evaluate(OUTER_HTML_SCRIPT)
            except PlaywrightTimeoutError:
                raise
            except PlaywrightError as exc:
                raise RenderingExecutionFailed(str(exc)) from exc
            finally:
                await browser.close()

        if not isinstance(html, str):
            raise RenderingExecutionFailed()
        if not html.strip():
            raise EmptyPayload()
        return html
