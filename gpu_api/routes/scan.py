"""
Scan trigger: scrape the forum, store new listings and match alerts.
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from gpu_scraper.alerts import match
from gpu_scraper.core import DriverFactory, ScrapeRun
from gpu_scraper.database import db_list_standing_alerts
from gpu_scraper.driver import launch_driver
from gpu_scraper.models import RunConfig
from gpu_scraper.store import DedupStore

from ..config import config
from ..database import get_db_connection
from ..models import ScanResponse, TriggeredAlertOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/gpu", tags=["scan"])

# One browser session at a time.
_scan_lock = asyncio.Lock()


def get_driver_factory() -> DriverFactory:
    """Dependency returning the browser driver factory."""
    return launch_driver


@router.post("/scan", response_model=ScanResponse)
async def run_scan(
    max_pages: Optional[int] = Query(None, ge=1, le=50),
    driver_factory: DriverFactory = Depends(get_driver_factory),
):
    """Run one scrape with the configured credentials and persist what it found."""
    if _scan_lock.locked():
        raise HTTPException(status_code=409, detail="A scan is already running")

    async with _scan_lock:
        run_config = RunConfig(max_pages=max_pages or config.SCAN_MAX_PAGES, headless=config.SCAN_HEADLESS)
        try:
            run = ScrapeRun(
                run_config,
                username=config.FORUM_USERNAME or None,
                password=config.FORUM_PASSWORD or None,
                driver_factory=driver_factory,
            )
            async for line in run:
                logger.debug(line)
            result = run.result

            with get_db_connection() as conn:
                saved = DedupStore(conn, logger=logger).process_and_save(result.data)
                triggered = match(saved.processed, db_list_standing_alerts(conn))
        except Exception as e:
            logger.error(f"Error running scan: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    if not result.success:
        logger.warning(f"Scan finished with error: {result.error}")

    return ScanResponse(
        success=result.success,
        total_listings=result.total_listings,
        processed_threads=result.processed_threads,
        processed_pages=result.processed_pages,
        saved=saved.saved,
        duplicates=saved.duplicates,
        errors=len(saved.errors),
        error=result.error,
        partial_results=result.partial_results,
        triggered_alerts=[
            TriggeredAlertOut(
                user_id=t.user_id,
                alert_id=t.alert.id,
                listing_id=t.listing.id,
                model=t.listing.model,
                price=t.listing.price,
                currency=t.listing.currency,
                url=t.listing.url,
            )
            for t in triggered
        ],
    )
