"""
Pydantic models for API request/response serialization.
"""
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ListingOut(BaseModel):
    """Output model for a stored GPU listing."""
    id: str
    model: str
    brand: str = "Unknown"
    price: Optional[float] = None
    currency: Optional[str] = None
    ah_price: Optional[float] = None
    ok_price: Optional[float] = None
    title: str = ""
    url: str
    author: str = "Unknown"
    location: Optional[str] = None
    post_date: Optional[str] = None
    condition: str = "unknown"
    warranty: str = "unknown"
    scraped_at: Optional[str] = None


class ListingsResponse(BaseModel):
    """Response model for paginated listings."""
    total: int
    items: List[ListingOut]


class ModelStatsOut(BaseModel):
    """Per-model price spread."""
    model: str
    listing_count: int
    avg_price: float
    min_price: float
    max_price: float
    currencies: List[str]
    latest_date: Optional[str] = None


class PriceRange(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class TopModel(BaseModel):
    model: str
    avg_price: float
    listings: int


class BrandShare(BaseModel):
    count: int
    total_listings: int


class StatsResponse(BaseModel):
    """Market statistics over all stored listings."""
    total_listings: int
    total_models: int
    average_price: float
    price_range: PriceRange
    top_models: List[TopModel]
    brand_distribution: Dict[str, BrandShare]
    by_model: List[ModelStatsOut]


class PricePoint(BaseModel):
    """One daily price summary for a model."""
    gpu_model: str
    date: str
    brand: Optional[str] = None
    avg_price: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    listing_count: int = 0
    currencies: str = ""


class AlertIn(BaseModel):
    """Request model for registering a price alert."""
    user_id: str = Field(..., min_length=1)
    gpu_model: str = Field(..., min_length=1)
    target_price: float = Field(..., gt=0)
    currency: str = "€"
    alert_type: Literal["below", "above", "exact"] = "below"


class AlertOut(BaseModel):
    id: int
    user_id: str
    gpu_model: str
    target_price: float
    currency: str
    alert_type: str


class DuplicateGroupOut(BaseModel):
    url: str
    count: int
    ids: List[int]
    scraped_at: List[Optional[str]]


class DuplicatesResponse(BaseModel):
    total_groups: int
    total_duplicates: int
    groups: List[DuplicateGroupOut]


class AdminActionResponse(BaseModel):
    success: bool
    removed: int
    message: str


class TriggeredAlertOut(BaseModel):
    user_id: str
    alert_id: Optional[int] = None
    listing_id: str
    model: str
    price: float
    currency: str
    url: str


class ScanResponse(BaseModel):
    """Summary of one scrape + persist run."""
    success: bool
    total_listings: int
    processed_threads: int
    processed_pages: int
    saved: int
    duplicates: int
    errors: int
    error: Optional[str] = None
    partial_results: Optional[bool] = None
    triggered_alerts: List[TriggeredAlertOut] = []
