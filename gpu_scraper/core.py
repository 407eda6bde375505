"""
Core scraping orchestration: the listing-page state machine and the run lifecycle.
"""
import asyncio
import enum
import logging
from typing import AsyncContextManager, AsyncIterator, Callable, Optional

from .driver import PageDriver, launch_driver
from .errors import DriverError, LoginError
from .forum import (
    LISTING_NAV_TIMEOUT_MS,
    LISTING_ROWS_QUERY,
    LOGIN_IDENTIFIER_SEL,
    LOGIN_PASSWORD_SEL,
    LOGIN_SUBMIT_SEL,
    LOGIN_TIMEOUT_MS,
    LOGIN_URL,
    SELECTOR_TIMEOUT_MS,
    TARGET_CATEGORY,
    THREADS_PER_PAGE,
    ListingRowsQuery,
    build_listing_url,
    parse_listing_rows,
)
from .models import RunConfig, ScrapeResult, ScrapeSession
from .progress import ProgressLog
from .thread_processor import ThreadProcessor
from .utils import shorten


logger = logging.getLogger(__name__)

DriverFactory = Callable[..., AsyncContextManager[PageDriver]]


class ScrapeState(enum.Enum):
    IDLE = "idle"
    LOADING_PAGE = "loading_page"
    ENUMERATING_THREADS = "enumerating_threads"
    PROCESSING_THREAD = "processing_thread"
    RETURNING_TO_LISTING = "returning_to_listing"
    DONE = "done"
    FAILED = "failed"


async def login_to_forum(driver: PageDriver, username: str, password: str, progress: ProgressLog) -> None:
    """Fill the forum login form; raise LoginError unless we end up off the login page."""
    progress.emit(">>> Logging in to forum...")
    try:
        await driver.navigate(LOGIN_URL, timeout_ms=LOGIN_TIMEOUT_MS)
        await driver.wait_for_selector(LOGIN_IDENTIFIER_SEL, timeout_ms=SELECTOR_TIMEOUT_MS)
        await driver.type(LOGIN_IDENTIFIER_SEL, username)
        await driver.wait_for_selector(LOGIN_PASSWORD_SEL, timeout_ms=SELECTOR_TIMEOUT_MS)
        await driver.type(LOGIN_PASSWORD_SEL, password)
        await driver.click(LOGIN_SUBMIT_SEL, wait_for_navigation=True, timeout_ms=LOGIN_TIMEOUT_MS)
    except DriverError as e:
        raise LoginError(f"Login failed: {e}") from e

    if "login" in driver.current_url:
        raise LoginError("Login failed - still on login page")
    progress.emit(">>> Login successful!")


class ForumScraper:
    """
    Walks listing pages and hands each new thread to the ThreadProcessor.

    After every thread the listing page is loaded again, since the
    processor leaves the browser wherever the thread took it.
    """

    def __init__(
        self,
        driver: PageDriver,
        config: RunConfig,
        progress: ProgressLog,
        stop_event: Optional[asyncio.Event] = None,
        category: str = TARGET_CATEGORY,
        page_size: int = THREADS_PER_PAGE,
        rows_query: ListingRowsQuery = LISTING_ROWS_QUERY,
    ):
        self.driver = driver
        self.config = config
        self.progress = progress
        self.stop_event = stop_event or asyncio.Event()
        self.category = category
        self.page_size = page_size
        self.rows_query = rows_query
        self.processor = ThreadProcessor(driver, progress)
        self.state = ScrapeState.IDLE

    def _stop_requested(self) -> bool:
        if self.stop_event.is_set():
            self.progress.emit(">>> Stop requested, finishing run")
            return True
        return False

    async def _load_listing(self, session: ScrapeSession) -> None:
        await self.driver.navigate(session.current_listing_page_url, timeout_ms=LISTING_NAV_TIMEOUT_MS)

    async def crawl(self, session: ScrapeSession) -> AsyncIterator[str]:
        """Run the state machine, yielding progress lines as they happen."""
        self.state = ScrapeState.IDLE
        page_num = 1
        offset = 0

        try:
            while page_num <= self.config.max_pages:
                if self._stop_requested():
                    break

                self.state = ScrapeState.LOADING_PAGE
                session.current_listing_page_url = build_listing_url(offset)
                self.progress.emit(f">>> Loading page {page_num} (offset: {offset})...")
                await self._load_listing(session)
                for line in self.progress.drain():
                    yield line

                self.state = ScrapeState.ENUMERATING_THREADS
                rows = await self.driver.evaluate(self.rows_query)
                listing_page = parse_listing_rows(rows, self.category)
                if listing_page.exhausted:
                    self.progress.emit(f">>> No threads found on page {page_num}. Stopping.")
                    break

                threads = listing_page.threads[: self.config.max_threads_per_page]
                self.progress.emit(
                    f">>> Found {listing_page.row_count} threads on page {page_num}, "
                    f"{len(threads)} in {self.category}"
                )
                for line in self.progress.drain():
                    yield line

                stopped = False
                for i, thread in enumerate(threads, 1):
                    if self._stop_requested():
                        stopped = True
                        break
                    if session.is_processed(thread.url):
                        self.progress.emit(f">>> Skipping already processed: {shorten(thread.title, 30)}")
                        continue

                    self.state = ScrapeState.PROCESSING_THREAD
                    self.progress.emit(f">>> [{i}/{len(threads)}] Processing: {shorten(thread.title)}")
                    for line in self.progress.drain():
                        yield line

                    drafts = await self.processor.process(thread, session)
                    session.record_thread(thread.url, drafts)
                    if drafts:
                        self.progress.emit(f">>> Extracted {len(drafts)} listing(s) from thread")
                    else:
                        self.progress.emit(">>> No GPU data extracted from thread")

                    self.state = ScrapeState.RETURNING_TO_LISTING
                    self.progress.emit(">>> Returning to listing page...")
                    await self._load_listing(session)
                    for line in self.progress.drain():
                        yield line

                if stopped:
                    break

                session.processed_pages += 1
                self.progress.emit(f">>> Completed page {page_num} with {len(threads)} GPU threads")
                for line in self.progress.drain():
                    yield line

                page_num += 1
                offset += self.page_size
        except Exception:
            self.state = ScrapeState.FAILED
            raise

        self.state = ScrapeState.DONE
        for line in self.progress.drain():
            yield line


class ScrapeRun:
    """
    One scrape run exposed as a single-use async stream of progress lines.

    Iterate it to drive the run; ``result`` is set once the stream ends.
    Fatal errors (login, browser crash, listing navigation) end the stream
    with ``result.success`` False and whatever was collected so far.
    """

    def __init__(
        self,
        config: Optional[RunConfig] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        driver_factory: DriverFactory = launch_driver,
        category: str = TARGET_CATEGORY,
        progress_logger: Optional[logging.Logger] = None,
    ):
        if bool(username) != bool(password):
            raise ValueError("username and password must be given together")
        self.config = config or RunConfig()
        self.username = username
        self.password = password
        self.driver_factory = driver_factory
        self.category = category
        self.progress = ProgressLog(progress_logger)
        self.session = ScrapeSession()
        self.result: Optional[ScrapeResult] = None
        self._stop = asyncio.Event()
        self._started = False

    def stop(self) -> None:
        """Ask the run to stop at the next thread or page boundary."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("A scrape run can only be iterated once")
        self._started = True
        return self._stream()

    async def _stream(self) -> AsyncIterator[str]:
        self.progress.emit(">>> Starting GPU forum scraper...")
        try:
            async with self.driver_factory(headless=self.config.headless) as driver:
                if self.username:
                    await login_to_forum(driver, self.username, self.password, self.progress)
                for line in self.progress.drain():
                    yield line

                scraper = ForumScraper(driver, self.config, self.progress, self._stop, self.category)
                async for line in scraper.crawl(self.session):
                    yield line

            self.result = self.session.to_result(True, cancelled=self.stopped)
            self.progress.emit(
                f">>> Scraping complete! Found {self.result.total_listings} GPU listings "
                f"across {self.result.processed_pages} pages"
            )
        except Exception as e:
            logger.exception("Fatal scraper error")
            self.progress.error(f">>> Fatal scraper error: {e}")
            self.result = self.session.to_result(False, error=str(e))

        for line in self.progress.drain():
            yield line

    async def run(self) -> ScrapeResult:
        """Drive the run to completion, discarding progress lines."""
        async for _ in self:
            pass
        return self.result


async def run_scrape(
    config: Optional[RunConfig] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    driver_factory: DriverFactory = launch_driver,
) -> ScrapeResult:
    """Run one scrape and return its result."""
    return await ScrapeRun(config, username, password, driver_factory).run()
