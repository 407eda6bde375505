"""
Price alert route handlers.
"""
import dataclasses
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from gpu_scraper.database import db_create_price_alert, db_get_user_alerts, db_list_standing_alerts

from ..database import get_db_connection
from ..models import AlertIn, AlertOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/gpu", tags=["alerts"])


@router.post("/alerts", response_model=AlertOut, status_code=201)
async def create_alert(alert: AlertIn):
    """Register a standing price alert."""
    try:
        with get_db_connection() as conn:
            created = db_create_price_alert(
                conn,
                user_id=alert.user_id,
                gpu_model=alert.gpu_model.upper(),
                target_price=alert.target_price,
                currency=alert.currency,
                alert_type=alert.alert_type,
            )
        return AlertOut(**dataclasses.asdict(created))
    except Exception as e:
        logger.error(f"Error creating alert: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/alerts", response_model=List[AlertOut])
async def list_alerts(user_id: Optional[str] = None):
    """Active alerts, optionally for one user."""
    try:
        with get_db_connection() as conn:
            alerts = db_get_user_alerts(conn, user_id) if user_id else db_list_standing_alerts(conn)
        return [AlertOut(**dataclasses.asdict(a)) for a in alerts]
    except Exception as e:
        logger.error(f"Error listing alerts: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
