"""
Route package initialization.
"""
from .admin import router as admin_router
from .alerts import router as alerts_router
from .listings import router as listings_router
from .scan import router as scan_router
from .stats import router as stats_router

__all__ = ["admin_router", "alerts_router", "listings_router", "scan_router", "stats_router"]
