"""Per-host and per-URL spacing of outgoing page fetches."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional

from .utils import host_of

logger = logging.getLogger("link_preview")

Sleep = Callable[[float], Awaitable[None]]


class FetchThrottle:
    """Serializes fetch timing so repeated requests to a site are spaced out.

    The decide-sleep-record sequence runs under a single lock: two concurrent
    callers never observe the same "last fetch" state.
    """

    def __init__(
        self,
        same_url_delay: float = 1.0,
        same_host_delay: float = 0.6,
        host_spacing: float = 0.4,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.same_url_delay = same_url_delay
        self.same_host_delay = same_host_delay
        self.host_spacing = host_spacing
        self._sleep = sleep
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_url: Optional[str] = None
        self._last_host: Optional[str] = None
        self._last_fetch_by_host: Dict[str, float] = {}

    @property
    def last_url(self) -> Optional[str]:
        return self._last_url

    @property
    def last_host(self) -> Optional[str]:
        return self._last_host

    def last_fetch_for(self, host: str) -> Optional[float]:
        return self._last_fetch_by_host.get(host)

    def delay_for(self, url: str) -> float:
        """Return how long a fetch of ``url`` must wait right now."""
        host = host_of(url)
        if self._last_url is not None and self._last_url == url:
            return self.same_url_delay
        if self._last_host is not None and self._last_host == host:
            return self.same_host_delay
        last = self._last_fetch_by_host.get(host)
        if last is None:
            return 0.0
        elapsed = self._clock() - last
        if elapsed < self.host_spacing:
            return self.host_spacing - elapsed
        return 0.0

    async def wait_if_needed(self, url: str) -> float:
        """Suspend long enough to honour the spacing rules, then record this fetch."""
        async with self._lock:
            delay = self.delay_for(url)
            if delay > 0:
                logger.debug("Throttling %s for %.2fs", url, delay)
                await self._sleep(delay)
            host = host_of(url)
            self._last_url = url
            self._last_host = host
            self._last_fetch_by_host[host] = self._clock()
            return delay
