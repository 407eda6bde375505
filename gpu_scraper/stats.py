"""
Market summaries built on the per-model aggregates.
"""
from typing import Any, Dict, List

from .extraction import detect_brand


def market_insights(stats: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Headline numbers over ``db_aggregate_stats_by_model`` output."""
    if not stats:
        return {
            "total_models": 0,
            "average_price": 0,
            "price_range": {"min": None, "max": None},
            "top_models": [],
            "brand_distribution": {},
        }

    brands: Dict[str, Dict[str, int]] = {}
    for s in stats:
        entry = brands.setdefault(detect_brand(s["model"]), {"count": 0, "total_listings": 0})
        entry["count"] += 1
        entry["total_listings"] += s["listing_count"]

    return {
        "total_models": len(stats),
        "average_price": round(sum(s["avg_price"] for s in stats) / len(stats)),
        "price_range": {
            "min": min(s["min_price"] for s in stats),
            "max": max(s["max_price"] for s in stats),
        },
        "top_models": [
            {"model": s["model"], "avg_price": s["avg_price"], "listings": s["listing_count"]}
            for s in stats[:5]
        ],
        "brand_distribution": brands,
    }
