"""
Statistics and price history route handlers.
"""
import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query

from gpu_scraper.database import db_aggregate_stats_by_model, db_count_listings, db_get_price_history
from gpu_scraper.stats import market_insights

from ..database import get_db_connection
from ..models import PricePoint, StatsResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/gpu", tags=["statistics"])


@router.get("/stats", response_model=StatsResponse)
async def get_api_stats():
    """Per-model price spread plus market headline numbers."""
    try:
        with get_db_connection() as conn:
            total = db_count_listings(conn, {})
            by_model = db_aggregate_stats_by_model(conn)
        return StatsResponse(total_listings=total, by_model=by_model, **market_insights(by_model))
    except Exception as e:
        logger.error(f"Error fetching statistics: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/price-history/{model}", response_model=List[PricePoint])
async def get_api_price_history(model: str, days: int = Query(30, ge=1, le=365)):
    """Daily price summaries for one model, oldest first."""
    try:
        with get_db_connection() as conn:
            history = db_get_price_history(conn, model.upper(), days)
        return [PricePoint(**point) for point in history]
    except Exception as e:
        logger.error(f"Error fetching price history for {model}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
