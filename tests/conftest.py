"""Pytest configuration and fixtures."""

from typing import Dict, List, Optional, Union

import pytest
import requests

from link_preview.config import PreviewConfig
from link_preview.fetcher import WebFetcher
from link_preview.images import ImageValidator
from link_preview.pipeline import LinkPreviewPipeline
from link_preview.render import UnavailableRenderer
from link_preview.throttle import FetchThrottle

Outcome = Union[requests.Response, BaseException]


def make_response(
    status_code: int = 200,
    body: Union[bytes, str] = b"",
    headers: Optional[Dict[str, str]] = None,
) -> requests.Response:
    """Build a real ``requests.Response`` with an in-memory body."""
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode("utf-8") if isinstance(body, str) else body
    response._content_consumed = True
    response.encoding = "utf-8"
    if headers:
        response.headers.update(headers)
    return response


class FakeSession:
    """Stand-in for ``requests.Session``.

    Routes are either a list consumed in order or a mapping of URL to outcome;
    unknown URLs in a mapping answer 404.
    """

    def __init__(
        self,
        get: Union[List[Outcome], Dict[str, Outcome], None] = None,
        head: Union[List[Outcome], Dict[str, Outcome], None] = None,
    ) -> None:
        self.routes = {"GET": get if get is not None else [], "HEAD": head if head is not None else []}
        self.calls: List[tuple] = []
        self.headers: Dict[str, str] = {}

    def _respond(self, method: str, url: str) -> requests.Response:
        self.calls.append((method, url))
        route = self.routes[method]
        if isinstance(route, dict):
            outcome = route.get(url, make_response(404))
        else:
            if not route:
                raise AssertionError(f"Unexpected {method} {url}")
            outcome = route.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def get(self, url: str, **kwargs) -> requests.Response:
        return self._respond("GET", url)

    def head(self, url: str, **kwargs) -> requests.Response:
        return self._respond("HEAD", url)

    def methods(self, method: str) -> List[str]:
        return [url for called, url in self.calls if called == method]


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeRenderer:
    def __init__(self, html: Optional[str] = None, error: Optional[BaseException] = None) -> None:
        self.html = html
        self.error = error
        self.calls: List[tuple] = []

    async def render(self, url: str, wait_after_load: float) -> Optional[str]:
        self.calls.append((url, wait_after_load))
        if self.error is not None:
            raise self.error
        return self.html


def build_fetcher(
    session: FakeSession,
    renderer=None,
    backoff_sleep: Optional[RecordingSleep] = None,
    config: Optional[PreviewConfig] = None,
) -> WebFetcher:
    return WebFetcher(
        config=config or PreviewConfig(prefer_rendering=False),
        session=session,
        renderer=renderer or UnavailableRenderer(),
        throttle=FetchThrottle(sleep=RecordingSleep()),
        sleep=backoff_sleep or RecordingSleep(),
    )


def build_pipeline(
    pages: Union[List[Outcome], Dict[str, Outcome]],
    images: Union[List[Outcome], Dict[str, Outcome], None] = None,
    config: Optional[PreviewConfig] = None,
) -> LinkPreviewPipeline:
    config = config or PreviewConfig(prefer_rendering=False)
    return LinkPreviewPipeline(
        config=config,
        fetcher=build_fetcher(FakeSession(get=pages), config=config),
        validator=ImageValidator(
            session=FakeSession(head=images if images is not None else {}, get={})
        ),
    )


PRODUCT_PAGE = """<!DOCTYPE html>
<html>
<head>
  <title>Widget | Shop Example</title>
  <meta name="description" content="Great widget">
  <meta property="og:title" content="Widget">
  <meta property="og:type" content="product">
  <meta property="og:image" content="/w.png">
  <meta property="product:price:amount" content="19.99">
  <meta property="product:price:currency" content="USD">
  <meta itemprop="availability" content="https://schema.org/InStock">
</head>
<body>
  <h1>Widget Deluxe</h1>
  <img src="/static/logo.svg" alt="Shop logo">
  <p>Short blurb.</p>
</body>
</html>
"""

ARTICLE_PAGE = """<!DOCTYPE html>
<html>
<head><title>  Tom &amp; Jerry&#39;s Guide  </title></head>
<body>
  <nav><p>Home</p></nav>
  <article>
    <p>Tiny.</p>
    <p>This paragraph is long enough to be used as the description of the article page.</p>
  </article>
</body>
</html>
"""


@pytest.fixture
def product_page() -> str:
    return PRODUCT_PAGE


@pytest.fixture
def article_page() -> str:
    return ARTICLE_PAGE


@pytest.fixture
def backoff_sleep() -> RecordingSleep:
    return RecordingSleep()
