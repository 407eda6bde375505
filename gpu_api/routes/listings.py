"""
API route handlers for listings endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from gpu_scraper.database import db_count_listings, db_get_listing, db_query_listings
from gpu_scraper.export import listings_to_frame

from ..config import config
from ..database import get_db_connection
from ..models import ListingOut, ListingsResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/gpu", tags=["listings"])


def get_listing_filters(
    model: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    currency: Optional[str] = None,
) -> dict:
    """Dependency to extract listing filters."""
    return {
        "model": model,
        "brand": brand,
        "min_price": min_price,
        "max_price": max_price,
        "currency": currency,
    }


@router.get("/listings", response_model=ListingsResponse)
async def get_api_listings(
    filters: dict = Depends(get_listing_filters),
    sort: str = "scraped_at_desc",
    limit: int = Query(config.DEFAULT_API_LIMIT, ge=1, le=config.MAX_API_LIMIT),
    offset: int = Query(0, ge=0)
):
    """Get listings with filtering, sorting and pagination."""
    try:
        with get_db_connection() as conn:
            total = db_count_listings(conn, filters)
            listings = db_query_listings(conn, filters, sort, limit, offset)
        return ListingsResponse(total=total, items=[ListingOut(**x.to_dict()) for x in listings])
    except Exception as e:
        logger.error(f"Error fetching listings: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/listings/{listing_id}", response_model=ListingOut)
async def get_api_listing(listing_id: int):
    """Get a specific listing by its canonical id."""
    try:
        with get_db_connection() as conn:
            row = db_get_listing(conn, listing_id)
        if not row:
            raise HTTPException(status_code=404, detail="Listing not found")
        row["id"] = str(row["id"])
        return ListingOut(**row)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching listing {listing_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/export/csv")
async def export_listings_csv(
    filters: dict = Depends(get_listing_filters),
    sort: str = "scraped_at_desc"
):
    """Export filtered listings as CSV."""
    try:
        with get_db_connection() as conn:
            listings = db_query_listings(conn, filters, sort, limit=config.MAX_EXPORT_ROWS, offset=0)
        csv_content = listings_to_frame(listings).to_csv(index=False).encode("utf-8")

        return StreamingResponse(
            iter([csv_content]),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="gpu_listings.csv"'}
        )
    except Exception as e:
        logger.error(f"Error exporting CSV: {e}")
        raise HTTPException(status_code=500, detail="Error generating CSV export")
