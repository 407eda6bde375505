"""
Turn one forum thread into GPU listing drafts.
"""
from typing import Any, Dict, List

from .driver import PageDriver
from .errors import DriverError, SessionClosedError
from .extraction import (
    detect_brand,
    detect_condition,
    detect_warranty,
    extract_all_prices,
    extract_gpu_from_title,
    extract_gpu_offers,
    extract_location,
    select_post_body,
)
from .forum import POST_BODY_QUERY, POST_BODY_WAIT_SEL, SELECTOR_TIMEOUT_MS, THREAD_NAV_TIMEOUT_MS
from .models import Listing, ScrapeSession, ThreadDescriptor
from .progress import ProgressLog
from .utils import now_iso


def _format_price(listing: Listing) -> str:
    s = f"{listing.price}{listing.currency}"
    if listing.ah_price is not None:
        s += f", AH: {listing.ah_price}"
    if listing.ok_price is not None:
        s += f", OK: {listing.ok_price}"
    return s


class ThreadProcessor:
    """
    Fetches a thread page and extracts its offers.

    Leaves the browser on the thread page; returning to the listing page
    is the caller's job.
    """

    def __init__(self, driver: PageDriver, progress: ProgressLog):
        self.driver = driver
        self.progress = progress

    async def _fetch_post(self, url: str) -> Dict[str, Any]:
        await self.driver.navigate(url, timeout_ms=THREAD_NAV_TIMEOUT_MS)
        await self.driver.wait_for_selector(POST_BODY_WAIT_SEL, timeout_ms=SELECTOR_TIMEOUT_MS)
        data = await self.driver.evaluate(POST_BODY_QUERY)
        return data if isinstance(data, dict) else {}

    async def process(self, thread: ThreadDescriptor, session: ScrapeSession) -> List[Listing]:
        """
        Extract listing drafts from one thread.

        Returns an empty list when the thread could not be read or holds no
        GPU + price pair. Only a closed browser session propagates.
        """
        try:
            post = await self._fetch_post(thread.url)
        except SessionClosedError:
            raise
        except DriverError as e:
            self.progress.warning(f"    Error processing thread: {e}")
            return []

        body = select_post_body(post.get("texts") or [])
        full_text = f"{thread.title} {body}"

        offers = extract_gpu_offers(full_text)
        if not offers:
            model = extract_gpu_from_title(thread.title)
            prices = extract_all_prices(full_text)
            if model and prices:
                offers = [(model, prices[0])]

        if not offers:
            return []

        location = thread.location or extract_location(full_text)
        post_date = post.get("post_date") or thread.post_date
        condition = detect_condition(full_text)
        warranty = detect_warranty(full_text)
        scraped_at = now_iso()

        drafts: List[Listing] = []
        for model, price in offers:
            listing = Listing(
                id=session.next_draft_id(thread.url),
                model=model,
                brand=detect_brand(model),
                price=price.price,
                currency=price.currency,
                ah_price=price.ah_price,
                ok_price=price.ok_price,
                title=thread.title,
                url=thread.url,
                author=thread.author,
                location=location,
                post_date=post_date,
                condition=condition,
                warranty=warranty,
                scraped_at=scraped_at,
            )
            drafts.append(listing)
            self.progress.emit(f"    >>> {listing.model} - {_format_price(listing)}")

        return drafts
