"""
Tests for turning one forum thread into listing drafts.
"""
import pytest

from gpu_scraper.errors import SessionClosedError
from gpu_scraper.fakes import FakeDriver, make_post
from gpu_scraper.models import ScrapeSession, ThreadDescriptor
from gpu_scraper.progress import ProgressLog
from gpu_scraper.thread_processor import ThreadProcessor


THREAD_URL = "https://foorum.hinnavaatlus.ee/viewtopic.php?t=101"


def make_thread(title="Müüa RTX 3070", location=None):
    return ThreadDescriptor(
        title=title,
        url=THREAD_URL,
        author="kasutaja",
        location=location,
        category="Videokaardid",
        post_date="01.05.2025",
    )


def make_processor(body=None, **driver_kwargs):
    posts = {THREAD_URL: make_post(body, post_date="02.05.2025 12:00")} if body is not None else {}
    driver = FakeDriver(posts=posts, **driver_kwargs)
    progress = ProgressLog()
    return ThreadProcessor(driver, progress), driver, progress


@pytest.mark.asyncio
async def test_single_offer():
    body = "Müün RTX 3070 Founders Edition, töötab laitmatult. Hind 350€, järeletulek Tallinnas."
    processor, driver, progress = make_processor(body)
    session = ScrapeSession()

    drafts = await processor.process(make_thread(), session)

    assert len(drafts) == 1
    d = drafts[0]
    assert d.id == "gpu_101_0"
    assert d.model == "RTX 3070"
    assert d.brand == "NVIDIA"
    assert d.price == 350
    assert d.currency == "€"
    assert d.url == THREAD_URL
    assert d.author == "kasutaja"
    assert d.location == "Tallinn"
    assert d.post_date == "02.05.2025 12:00"
    assert driver.visits == [THREAD_URL]
    assert any("RTX 3070 - 350€" in line for line in progress.drain())


@pytest.mark.asyncio
async def test_listing_page_location_wins():
    body = "Müün RTX 3070, hind 350€, saan saata ka Tartusse. Järeletulek Tallinnas."
    processor, _, _ = make_processor(body)

    drafts = await processor.process(make_thread(location="Pärnu"), ScrapeSession())

    assert drafts[0].location == "Pärnu"


@pytest.mark.asyncio
async def test_multiple_models_share_price():
    body = "Müün kaks kaarti: RTX 3060 ja RTX 3070, mõlemad heas korras. Hind 300€ tükk."
    processor, _, _ = make_processor(body)
    session = ScrapeSession()

    drafts = await processor.process(make_thread(title="Kaks kaarti"), session)

    assert [d.model for d in drafts] == ["RTX 3060", "RTX 3070"]
    assert [d.price for d in drafts] == [300, 300]
    assert [d.id for d in drafts] == ["gpu_101_0", "gpu_101_1"]
    assert all(d.condition == "good" for d in drafts)


@pytest.mark.asyncio
async def test_title_model_fallback():
    """A model outside the recognition table is still taken from the title."""
    body = "Vana kaart, töötab. Hind 60€, garantii puudub aga kõik korras ja testitud."
    processor, _, _ = make_processor(body)

    drafts = await processor.process(make_thread(title="Müüa GTX 970"), ScrapeSession())

    assert len(drafts) == 1
    assert drafts[0].model == "GTX 970"
    assert drafts[0].price == 60


@pytest.mark.asyncio
async def test_no_price_no_drafts():
    processor, _, _ = make_processor("Müün RTX 3070, pakkumised privasse. Vahetus ka võimalik.")

    assert await processor.process(make_thread(), ScrapeSession()) == []


@pytest.mark.asyncio
async def test_navigation_error_is_local():
    processor, _, progress = make_processor(failing_urls=[THREAD_URL])

    drafts = await processor.process(make_thread(), ScrapeSession())

    assert drafts == []
    assert any("Error processing thread" in line for line in progress.drain())


@pytest.mark.asyncio
async def test_closed_session_propagates():
    processor, _, _ = make_processor(crash_urls=[THREAD_URL])

    with pytest.raises(SessionClosedError):
        await processor.process(make_thread(), ScrapeSession())
