"""
Store administration: residual duplicates and wiping listings.
"""
import logging

from fastapi import APIRouter, HTTPException

from gpu_scraper.store import DedupStore

from ..database import get_db_connection
from ..models import AdminActionResponse, DuplicateGroupOut, DuplicatesResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/gpu/admin", tags=["admin"])


@router.get("/duplicates", response_model=DuplicatesResponse)
async def get_duplicates():
    """Urls stored more than once."""
    try:
        with get_db_connection() as conn:
            groups = DedupStore(conn, logger=logger).find_duplicate_groups()
        return DuplicatesResponse(
            total_groups=len(groups),
            total_duplicates=sum(g.count - 1 for g in groups),
            groups=[
                DuplicateGroupOut(url=g.url, count=g.count, ids=g.ids, scraped_at=g.scraped_at)
                for g in groups
            ],
        )
    except Exception as e:
        logger.error(f"Error finding duplicates: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/remove-duplicates", response_model=AdminActionResponse)
async def remove_duplicates():
    """Keep the earliest row per url and delete the rest."""
    try:
        with get_db_connection() as conn:
            removed = DedupStore(conn, logger=logger).remove_duplicates()
        return AdminActionResponse(success=True, removed=removed, message=f"Removed {removed} duplicate listings")
    except Exception as e:
        logger.error(f"Error removing duplicates: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/listings", response_model=AdminActionResponse)
async def clear_listings():
    """Delete every stored listing."""
    try:
        with get_db_connection() as conn:
            removed = DedupStore(conn, logger=logger).clear_all()
        return AdminActionResponse(success=True, removed=removed, message=f"Cleared {removed} listings")
    except Exception as e:
        logger.error(f"Error clearing listings: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
