"""Page fetching with an optional rendered pass and a retrying static pass."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

import requests
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from .config import PreviewConfig
from .errors import BadStatus, EmptyPayload, InvalidResponse, RenderingUnavailable
from .models import FetchRequest
from .render import PageRenderer, PlaywrightRenderer
from .throttle import FetchThrottle
from .utils import host_of

logger = logging.getLogger("link_preview")

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(attempt: int, jitter: Optional[float] = None) -> float:
    """Exponential backoff for the given 1-based attempt, floored at 0.3s."""
    if jitter is None:
        jitter = random.uniform(-0.15, 0.15)
    return max(0.3, (2 ** (attempt - 1)) * 0.6 + jitter)


def _backoff_wait(retry_state: RetryCallState) -> float:
    return backoff_delay(retry_state.attempt_number)


def decode_body(response: requests.Response) -> str:
    """Decode a response body, sniffing the charset when the server omitted it."""
    # requests assumes ISO-8859-1 for text/* without a charset parameter
    if not response.encoding or response.encoding.lower() == "iso-8859-1":
        response.encoding = response.apparent_encoding or "utf-8"
    return response.text


class WebFetcher:
    """Fetch page markup, preferring a rendered DOM when a renderer is usable.

    The throttle state lives for as long as this object does, so one fetcher
    should be shared by every extraction that needs spacing between requests.
    """

    def __init__(
        self,
        config: Optional[PreviewConfig] = None,
        session: Optional[requests.Session] = None,
        renderer: Optional[PageRenderer] = None,
        throttle: Optional[FetchThrottle] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config or PreviewConfig()
        self.session = session or self._build_session()
        self.renderer = renderer or PlaywrightRenderer(
            navigation_timeout=self.config.navigation_timeout,
            user_agent=self.config.user_agent,
        )
        self.throttle = throttle or FetchThrottle(
            same_url_delay=self.config.same_url_delay,
            same_host_delay=self.config.same_host_delay,
            host_spacing=self.config.host_spacing,
        )
        self._sleep = sleep

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "User-Agent": self.config.user_agent,
                "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
            }
        )
        session.headers.update(self.config.extra_headers)
        return session

    async def fetch_html(
        self,
        url: str,
        max_attempts: Optional[int] = None,
        prefer_rendering: Optional[bool] = None,
        wait_after_load: Optional[float] = None,
    ) -> str:
        request = FetchRequest(
            url=url,
            max_attempts=self.config.max_attempts if max_attempts is None else max_attempts,
            prefer_rendering=(
                self.config.prefer_rendering if prefer_rendering is None else prefer_rendering
            ),
            wait_after_load=(
                self.config.wait_after_load if wait_after_load is None else wait_after_load
            ),
        )
        return await self.fetch(request)

    async def fetch(self, request: FetchRequest) -> str:
        """Return page markup or raise the most informative failure."""
        if not request.url.lower().startswith(("http://", "https://")):
            raise InvalidResponse(f"Unsupported URL: {request.url}")
        if request.max_attempts < 1:
            raise InvalidResponse(f"Attempt budget must be at least 1, got {request.max_attempts}")

        rendering_error: Optional[BaseException] = None
        if request.prefer_rendering:
            try:
                rendered = await self.renderer.render(request.url, request.wait_after_load)
            except RenderingUnavailable:
                logger.debug("Rendering unavailable; using static fetch for %s", request.url)
            except Exception as exc:  # noqa: BLE001 - surfaced if static fetch also fails
                logger.warning("Rendered load failed for %s: %s", request.url, exc)
                rendering_error = exc
            else:
                if rendered and rendered.strip():
                    logger.info(
                        "Rendered HTML loaded (length: %d) for %s",
                        len(rendered),
                        host_of(request.url) or request.url,
                    )
                    return rendered

        try:
            return await self._fetch_static(request.url, request.max_attempts)
        except Exception:
            if rendering_error is not None:
                raise rendering_error
            raise

    def _is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, BadStatus):
            return exc.status_code in self.config.retryable_statuses
        return isinstance(exc, (requests.RequestException, EmptyPayload))

    async def _fetch_static(self, url: str, max_attempts: int) -> str:
        logger.info("Fetching %s", url)

        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                "Attempt %d/%d for %s failed: %s",
                retry_state.attempt_number,
                max_attempts,
                url,
                retry_state.outcome.exception(),
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=_backoff_wait,
            retry=retry_if_exception(self._is_retryable),
            before_sleep=log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                html = await self._fetch_once(url)
        return html

    async def _fetch_once(self, url: str) -> str:
        await self.throttle.wait_if_needed(url)
        response = await asyncio.to_thread(
            self.session.get,
            url,
            timeout=self.config.request_timeout,
        )
        status = response.status_code
        if not 200 <= status < 300:
            raise BadStatus(status)
        if not response.content:
            raise EmptyPayload()
        html = decode_body(response)
        logger.info(
            "Static HTML loaded (length: %d) for %s",
            len(html),
            host_of(url) or url,
        )
        return html
