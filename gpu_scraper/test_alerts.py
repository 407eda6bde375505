"""
Tests for price alert matching.
"""
import pytest

from gpu_scraper.alerts import match, matches_alert
from gpu_scraper.models import Listing, PriceAlert


def make_listing(model="RTX 3070", price=350, currency="€", topic=1):
    return Listing(
        id=str(topic),
        model=model,
        brand="NVIDIA",
        price=price,
        currency=currency,
        title=f"Müüa {model}",
        url=f"https://foorum.hinnavaatlus.ee/viewtopic.php?t={topic}",
        author="kasutaja",
    )


def make_alert(alert_type="below", target=400, model="RTX 3070", currency="€", user="user-1"):
    return PriceAlert(user_id=user, gpu_model=model, currency=currency, alert_type=alert_type, target_price=target)


@pytest.mark.parametrize("alert_type,target,price,expected", [
    ("below", 400, 350, True),
    ("below", 400, 400, True),
    ("below", 300, 350, False),
    ("above", 300, 350, True),
    ("above", 400, 350, False),
    ("exact", 360, 350, True),
    ("exact", 400, 350, False),
    ("whenever", 400, 350, False),
])
def test_alert_types(alert_type, target, price, expected):
    assert matches_alert(make_listing(price=price), make_alert(alert_type, target)) is expected


def test_model_is_case_insensitive_substring():
    assert matches_alert(make_listing("RTX 3070 TI"), make_alert(model="rtx 3070"))
    assert not matches_alert(make_listing("RTX 3080"), make_alert(model="rtx 3070"))


def test_currency_must_match():
    assert not matches_alert(make_listing(currency="AH"), make_alert())


def test_every_matching_pair_triggers():
    listings = [make_listing(price=350, topic=1), make_listing(price=450, topic=2)]
    alerts = [make_alert("below", 400, user="a"), make_alert("above", 300, user="b")]

    triggered = match(listings, alerts)

    assert [(t.user_id, t.listing.id) for t in triggered] == [("a", "1"), ("b", "1"), ("b", "2")]


def test_no_alerts_no_triggers():
    assert match([make_listing()], []) == []
