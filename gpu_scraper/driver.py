"""
Page driver: the narrow browser capability the scraper depends on.

``PlaywrightDriver`` adapts a Playwright page; tests substitute a fake
that answers the same query descriptors with canned data.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout
from playwright.async_api import async_playwright

from .errors import DriverError, DriverTimeout, SessionClosedError
from .forum import ListingRowsQuery, PostBodyQuery


logger = logging.getLogger(__name__)

Query = Union[ListingRowsQuery, PostBodyQuery]


class PageDriver(Protocol):
    """Single exclusively-owned browser page."""

    async def navigate(self, url: str, timeout_ms: int) -> None: ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None: ...

    async def evaluate(self, query: Query) -> Any: ...

    async def click(self, selector: str, wait_for_navigation: bool = False, timeout_ms: int = 30_000) -> None: ...

    async def type(self, selector: str, text: str) -> None: ...

    @property
    def current_url(self) -> str: ...


LISTING_ROWS_JS = """
(q) => {
  const rows = Array.from(document.querySelectorAll(q.row_selector)).slice(q.skip_rows);
  const out = [];
  for (const row of rows) {
    const link = row.querySelector(q.title_link_selector);
    if (!link) continue;
    const title = (link.textContent || "").trim();
    if (q.skip_title_markers.some((m) => title.includes(m))) continue;
    const container = row.querySelector(q.title_container_selector);
    const labels = [];
    if (container) {
      container.querySelectorAll(q.label_selector).forEach((el) => {
        if (el.classList.contains(q.counter_class)) return;
        labels.push((el.textContent || "").trim());
      });
    }
    const authorCell = row.cells[q.author_cell_index];
    const authorLink = authorCell ? authorCell.querySelector("a") : null;
    const dateCell = row.cells[q.date_cell_index];
    const dateSpan = dateCell ? dateCell.querySelector("span") : null;
    out.push({
      title: title,
      url: link.href,
      author: authorLink ? authorLink.textContent.trim() : "",
      container_text: container ? container.textContent || "" : "",
      labels: labels,
      post_date: dateSpan ? dateSpan.textContent.trim() : null,
    });
  }
  return out;
}
"""

POST_BODY_JS = """
(q) => {
  const texts = [];
  for (const sel of q.body_selectors) {
    const el = document.querySelector(sel);
    texts.push(el ? (el.textContent || "") : "");
  }
  let postDate = null;
  for (const sel of q.date_selectors) {
    const el = document.querySelector(sel);
    const t = el && el.textContent ? el.textContent.trim() : "";
    if (t && (t.includes(".") || t.includes("-") || t.includes("/"))) {
      postDate = t;
      break;
    }
  }
  return { texts: texts, post_date: postDate };
}
"""

_SCRIPTS = {
    "listing_rows": LISTING_ROWS_JS,
    "post_body": POST_BODY_JS,
}


class PlaywrightDriver:
    """PageDriver backed by one Playwright page."""

    def __init__(self, page):
        self.page = page

    @property
    def current_url(self) -> str:
        return self.page.url

    def _wrap(self, action: str, exc: Exception) -> DriverError:
        if self.page.is_closed():
            return SessionClosedError(f"{action}: page closed ({exc})")
        if isinstance(exc, PlaywrightTimeout):
            return DriverTimeout(f"{action}: {exc}")
        return DriverError(f"{action}: {exc}")

    async def navigate(self, url: str, timeout_ms: int) -> None:
        try:
            await self.page.goto(url, timeout=timeout_ms, wait_until="networkidle")
        except PlaywrightError as e:
            raise self._wrap(f"navigate {url}", e) from e

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightError as e:
            raise self._wrap(f"wait for {selector}", e) from e

    async def evaluate(self, query: Query) -> Any:
        script = _SCRIPTS[query.kind]
        try:
            return await self.page.evaluate(script, query.as_args())
        except PlaywrightError as e:
            raise self._wrap(f"evaluate {query.kind}", e) from e

    async def click(self, selector: str, wait_for_navigation: bool = False, timeout_ms: int = 30_000) -> None:
        try:
            if wait_for_navigation:
                async with self.page.expect_navigation(wait_until="networkidle", timeout=timeout_ms):
                    await self.page.click(selector, timeout=timeout_ms)
            else:
                await self.page.click(selector, timeout=timeout_ms)
        except PlaywrightError as e:
            raise self._wrap(f"click {selector}", e) from e

    async def type(self, selector: str, text: str) -> None:
        try:
            await self.page.type(selector, text)
        except PlaywrightError as e:
            raise self._wrap(f"type into {selector}", e) from e


@asynccontextmanager
async def launch_driver(headless: bool = True) -> AsyncIterator[PlaywrightDriver]:
    """
    Launch Chromium and yield a driver for a single page.

    The browser is closed on every exit path.
    """
    launch_args = ["--no-sandbox", "--disable-setuid-sandbox"]
    if headless:
        launch_args += ["--disable-dev-shm-usage", "--disable-gpu"]

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless, args=launch_args)
        logger.info(f">>> Browser launched (headless={headless})")
        try:
            context = await browser.new_context(
                viewport={"width": 1280, "height": 900},
                locale="et-EE",
            )
            context.set_default_timeout(30_000)
            context.set_default_navigation_timeout(30_000)
            page = await context.new_page()
            yield PlaywrightDriver(page)
        finally:
            await browser.close()
            logger.info(">>> Browser closed")
