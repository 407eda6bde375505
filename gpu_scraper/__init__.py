"""
GPU Forum Scraper Package
"""
from .alerts import match, matches_alert
from .core import ForumScraper, ScrapeRun, ScrapeState, run_scrape
from .database import (
    db_connect,
    db_init,
    db_list_standing_alerts,
    db_query_listings,
    db_aggregate_stats_by_model,
)
from .extraction import (
    detect_brand,
    extract_all_prices,
    extract_gpu_from_title,
    extract_gpu_models,
    extract_location,
    pair_models_with_prices,
)
from .models import Listing, PriceAlert, RunConfig, ScrapeResult, ScrapeSession, ThreadDescriptor
from .store import DedupStore
from .thread_processor import ThreadProcessor
from .utils import init_logger, now_iso

__version__ = "1.0.0"

__all__ = [
    "Listing",
    "PriceAlert",
    "RunConfig",
    "ScrapeResult",
    "ScrapeSession",
    "ThreadDescriptor",
    "ForumScraper",
    "ScrapeRun",
    "ScrapeState",
    "ThreadProcessor",
    "DedupStore",
    "run_scrape",
    "match",
    "matches_alert",
    "db_connect",
    "db_init",
    "db_list_standing_alerts",
    "db_query_listings",
    "db_aggregate_stats_by_model",
    "detect_brand",
    "extract_all_prices",
    "extract_gpu_from_title",
    "extract_gpu_models",
    "extract_location",
    "pair_models_with_prices",
    "init_logger",
    "now_iso"
]
