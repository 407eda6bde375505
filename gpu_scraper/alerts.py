"""
Price alert matching for newly saved listings.
"""
from typing import Iterable, List

from .models import Listing, PriceAlert, TriggeredAlert


EXACT_TOLERANCE = 0.05


def matches_alert(listing: Listing, alert: PriceAlert) -> bool:
    """Check if listing matches alert criteria."""
    if alert.gpu_model.lower() not in (listing.model or "").lower():
        return False
    if listing.currency != alert.currency:
        return False

    if alert.alert_type == "below":
        return listing.price <= alert.target_price
    if alert.alert_type == "above":
        return listing.price >= alert.target_price
    if alert.alert_type == "exact":
        return abs(listing.price - alert.target_price) <= alert.target_price * EXACT_TOLERANCE
    return False


def match(new_listings: Iterable[Listing], alerts: Iterable[PriceAlert]) -> List[TriggeredAlert]:
    """Every (listing, alert) pair that triggers; one listing may trigger many alerts."""
    alerts = list(alerts)
    triggered = []
    for listing in new_listings:
        for alert in alerts:
            if matches_alert(listing, alert):
                triggered.append(TriggeredAlert(alert=alert, listing=listing))
    return triggered
