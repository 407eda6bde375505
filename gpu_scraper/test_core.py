"""
Tests for the listing-page state machine and the scrape run lifecycle.
"""
import pytest

from gpu_scraper.core import ForumScraper, ScrapeRun, ScrapeState, run_scrape
from gpu_scraper.errors import SessionClosedError
from gpu_scraper.fakes import FakeDriver, fake_driver_factory, make_post, make_row
from gpu_scraper.forum import LOGIN_IDENTIFIER_SEL, LOGIN_URL, build_listing_url
from gpu_scraper.models import RunConfig, ScrapeSession
from gpu_scraper.progress import ProgressLog


def topic_url(topic):
    return f"https://foorum.hinnavaatlus.ee/viewtopic.php?t={topic}"


GPU_POST = make_post("Müün RTX 3070, töötab ideaalselt ja karp on alles. Hind 350€.")
EMPTY_POST = make_post("Müün ainult karpi ja kaableid, hind kokkuleppel, küsi julgelt.")


def one_gpu_per_page(pages):
    """Listing pages at offsets 0, 25, ... each with one GPU thread."""
    listing_pages = {}
    posts = {}
    for i in range(pages):
        topic = 1000 + i
        listing_pages[i * 25] = [make_row(f"Müüa RTX 3070 #{i}", topic)]
        posts[topic_url(topic)] = GPU_POST
    return listing_pages, posts


async def collect(run):
    return [line async for line in run]


@pytest.mark.asyncio
async def test_single_page_scenario():
    driver = FakeDriver(
        listing_pages={0: [make_row("Müüa RTX 3070", 1), make_row("Müüa kast", 2)]},
        posts={topic_url(1): GPU_POST, topic_url(2): EMPTY_POST},
    )
    run = ScrapeRun(RunConfig(max_pages=1), driver_factory=fake_driver_factory(driver))

    lines = await collect(run)
    result = run.result

    assert result.success is True
    assert result.total_listings == 1
    assert result.processed_threads == 2
    assert result.processed_pages == 1
    assert result.partial_results is None
    assert result.data[0].model == "RTX 3070"
    assert result.data[0].location == "Tartu"

    listing = build_listing_url(0)
    assert driver.visits == [listing, topic_url(1), listing, topic_url(2), listing]
    assert driver.closed is True
    assert lines[0] == ">>> Starting GPU forum scraper..."
    assert "Found 1 GPU listings across 1 pages" in lines[-1]


@pytest.mark.asyncio
async def test_stops_at_max_pages():
    listing_pages, posts = one_gpu_per_page(4)
    driver = FakeDriver(listing_pages=listing_pages, posts=posts)

    result = await run_scrape(RunConfig(max_pages=3), driver_factory=fake_driver_factory(driver))

    assert result.processed_pages == 3
    assert result.total_listings == 3
    assert build_listing_url(50) in driver.visits
    assert build_listing_url(75) not in driver.visits


@pytest.mark.asyncio
async def test_stops_on_empty_page():
    listing_pages, posts = one_gpu_per_page(1)
    driver = FakeDriver(listing_pages=listing_pages, posts=posts)

    result = await run_scrape(RunConfig(max_pages=5), driver_factory=fake_driver_factory(driver))

    assert result.success is True
    assert result.processed_pages == 1
    assert build_listing_url(25) in driver.visits
    assert build_listing_url(50) not in driver.visits


@pytest.mark.asyncio
async def test_off_category_page_is_not_exhaustion():
    driver = FakeDriver(
        listing_pages={
            0: [make_row("Müüa Ryzen 5600", 5, category="Protsessorid")],
            25: [make_row("Müüa RTX 3070", 6)],
        },
        posts={topic_url(6): GPU_POST},
    )

    result = await run_scrape(RunConfig(max_pages=2), driver_factory=fake_driver_factory(driver))

    assert result.processed_pages == 2
    assert result.processed_threads == 1
    assert topic_url(5) not in driver.visits


@pytest.mark.asyncio
async def test_thread_seen_on_two_pages_processed_once():
    row = make_row("Müüa RTX 3070", 7)
    driver = FakeDriver(listing_pages={0: [row], 25: [row]}, posts={topic_url(7): GPU_POST})

    result = await run_scrape(RunConfig(max_pages=2), driver_factory=fake_driver_factory(driver))

    assert driver.visits.count(topic_url(7)) == 1
    assert result.processed_threads == 1
    assert result.total_listings == 1
    assert result.processed_pages == 2


@pytest.mark.asyncio
async def test_max_threads_per_page():
    driver = FakeDriver(
        listing_pages={0: [make_row("Müüa RTX 3070", 1), make_row("Müüa RTX 3080", 2)]},
        posts={topic_url(1): GPU_POST, topic_url(2): GPU_POST},
    )
    config = RunConfig(max_pages=1, max_threads_per_page=1)

    result = await run_scrape(config, driver_factory=fake_driver_factory(driver))

    assert result.processed_threads == 1
    assert topic_url(2) not in driver.visits


@pytest.mark.asyncio
async def test_failed_thread_does_not_end_run():
    driver = FakeDriver(
        listing_pages={0: [make_row("Müüa RTX 3070", 1), make_row("Müüa RTX 3070", 2)]},
        posts={topic_url(2): GPU_POST},
        failing_urls=[topic_url(1)],
    )

    result = await run_scrape(RunConfig(max_pages=1), driver_factory=fake_driver_factory(driver))

    assert result.success is True
    assert result.processed_threads == 2
    assert [x.url for x in result.data] == [topic_url(2)]


@pytest.mark.asyncio
async def test_fatal_error_keeps_partial_results():
    listing_pages, posts = one_gpu_per_page(2)
    driver = FakeDriver(listing_pages=listing_pages, posts=posts, crash_urls=[build_listing_url(25)])
    run = ScrapeRun(RunConfig(max_pages=2), driver_factory=fake_driver_factory(driver))

    lines = await collect(run)
    result = run.result

    assert result.success is False
    assert "page closed" in result.error
    assert result.partial_results is True
    assert result.total_listings == 1
    assert result.processed_pages == 1
    assert driver.closed is True
    assert any("Fatal scraper error" in line for line in lines)


@pytest.mark.asyncio
async def test_login_failure():
    listing_pages, posts = one_gpu_per_page(1)
    driver = FakeDriver(listing_pages=listing_pages, posts=posts, after_login_url=LOGIN_URL)
    run = ScrapeRun(
        RunConfig(max_pages=1), username="user", password="secret",
        driver_factory=fake_driver_factory(driver),
    )

    result = await run.run()

    assert result.success is False
    assert "Login failed" in result.error
    assert result.data == []
    assert result.partial_results is False
    assert driver.typed[LOGIN_IDENTIFIER_SEL] == "user"
    assert driver.closed is True
    assert build_listing_url(0) not in driver.visits


@pytest.mark.asyncio
async def test_login_success():
    listing_pages, posts = one_gpu_per_page(1)
    driver = FakeDriver(listing_pages=listing_pages, posts=posts)
    run = ScrapeRun(
        RunConfig(max_pages=1), username="user", password="secret",
        driver_factory=fake_driver_factory(driver),
    )

    lines = await collect(run)

    assert ">>> Login successful!" in lines
    assert run.result.success is True
    assert driver.visits[0] == LOGIN_URL


def test_credentials_come_in_pairs():
    with pytest.raises(ValueError):
        ScrapeRun(username="user")
    with pytest.raises(ValueError):
        ScrapeRun(password="secret")


@pytest.mark.asyncio
async def test_stop_between_threads():
    driver = FakeDriver(
        listing_pages={0: [make_row("Müüa RTX 3070", 1), make_row("Müüa RTX 3080", 2)]},
        posts={topic_url(1): GPU_POST, topic_url(2): GPU_POST},
    )
    run = ScrapeRun(RunConfig(max_pages=1), driver_factory=fake_driver_factory(driver))

    async for line in run:
        if "Processing" in line:
            run.stop()

    assert run.result.cancelled is True
    assert run.result.success is True
    assert run.result.processed_threads == 1
    assert run.result.processed_pages == 0
    assert topic_url(2) not in driver.visits
    assert driver.closed is True


@pytest.mark.asyncio
async def test_run_is_single_use():
    listing_pages, posts = one_gpu_per_page(1)
    run = ScrapeRun(
        RunConfig(max_pages=1),
        driver_factory=fake_driver_factory(FakeDriver(listing_pages=listing_pages, posts=posts)),
    )
    await run.run()

    with pytest.raises(RuntimeError):
        async for _ in run:
            pass


@pytest.mark.asyncio
async def test_scraper_state_after_crawl():
    listing_pages, posts = one_gpu_per_page(1)
    driver = FakeDriver(listing_pages=listing_pages, posts=posts)
    scraper = ForumScraper(driver, RunConfig(max_pages=1), ProgressLog())
    session = ScrapeSession()

    lines = [line async for line in scraper.crawl(session)]

    assert scraper.state is ScrapeState.DONE
    assert session.current_listing_page_url == build_listing_url(0)
    assert any("Completed page 1" in line for line in lines)


@pytest.mark.asyncio
async def test_scraper_state_on_failure():
    driver = FakeDriver(crash_urls=[build_listing_url(0)])
    scraper = ForumScraper(driver, RunConfig(max_pages=1), ProgressLog())

    with pytest.raises(SessionClosedError):
        async for _ in scraper.crawl(ScrapeSession()):
            pass

    assert scraper.state is ScrapeState.FAILED


def test_result_wire_shape():
    session = ScrapeSession(processed_pages=2)
    session.record_thread(topic_url(1), [])

    assert session.to_result(False, error="boom").to_dict() == {
        "success": False,
        "data": [],
        "totalListings": 0,
        "processedThreads": 1,
        "processedPages": 2,
        "error": "boom",
        "partialResults": False,
    }
