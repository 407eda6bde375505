"""
In-memory page driver answering the forum query descriptors with canned data.
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, List, Optional

from .errors import DriverTimeout, SessionClosedError
from .forum import LOGIN_SUBMIT_SEL, LOGIN_URL, TARGET_CATEGORY, build_listing_url


def make_row(
    title: str,
    topic: int,
    author: str = "seller",
    location: Optional[str] = "Asukoht: Tartu",
    category: str = TARGET_CATEGORY,
    post_date: Optional[str] = "01.05.2025",
) -> Dict[str, Any]:
    """One listing-row query result as the browser would return it."""
    labels = [category]
    if location:
        labels.append(location)
    return {
        "title": title,
        "url": f"https://foorum.hinnavaatlus.ee/viewtopic.php?t={topic}",
        "author": author,
        "container_text": f"{title} {' '.join(labels)}",
        "labels": labels,
        "post_date": post_date,
    }


def make_post(body: str, post_date: Optional[str] = None) -> Dict[str, Any]:
    """A post-body query result whose first selector hit holds ``body``."""
    return {"texts": [body, "", "", ""], "post_date": post_date}


class FakeDriver:
    """
    Page driver over dictionaries.

    ``listing_pages`` maps listing offsets to row lists, ``posts`` maps thread
    urls to post-body results. Urls in ``failing_urls`` time out, urls in
    ``crash_urls`` behave like a dead browser.
    """

    def __init__(
        self,
        listing_pages: Optional[Dict[int, List[Dict[str, Any]]]] = None,
        posts: Optional[Dict[str, Dict[str, Any]]] = None,
        failing_urls: Iterable[str] = (),
        crash_urls: Iterable[str] = (),
        after_login_url: str = "https://foorum.hinnavaatlus.ee/index.php",
    ):
        self.listing_pages = {
            build_listing_url(offset): rows for offset, rows in (listing_pages or {}).items()
        }
        self.posts = posts or {}
        self.failing_urls = set(failing_urls)
        self.crash_urls = set(crash_urls)
        self.after_login_url = after_login_url
        self.url = "about:blank"
        self.visits: List[str] = []
        self.typed: Dict[str, str] = {}
        self.closed = False

    @property
    def current_url(self) -> str:
        return self.url

    async def navigate(self, url: str, timeout_ms: int) -> None:
        self.visits.append(url)
        if url in self.crash_urls:
            raise SessionClosedError(f"navigate {url}: page closed")
        if url in self.failing_urls:
            raise DriverTimeout(f"navigate {url}: Timeout {timeout_ms}ms exceeded")
        self.url = url

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        return None

    async def evaluate(self, query) -> Any:
        if query.kind == "listing_rows":
            return list(self.listing_pages.get(self.url, []))
        if query.kind == "post_body":
            return self.posts.get(self.url, {"texts": [], "post_date": None})
        raise ValueError(f"Unknown query: {query.kind}")

    async def click(self, selector: str, wait_for_navigation: bool = False, timeout_ms: int = 30_000) -> None:
        if selector == LOGIN_SUBMIT_SEL and self.url == LOGIN_URL:
            self.url = self.after_login_url

    async def type(self, selector: str, text: str) -> None:
        self.typed[selector] = text


def fake_driver_factory(driver: FakeDriver):
    """Driver factory yielding ``driver`` and marking it closed on exit."""

    @asynccontextmanager
    async def factory(headless: bool = True):
        try:
            yield driver
        finally:
            driver.closed = True

    return factory
