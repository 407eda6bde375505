"""
Tests for CSV/XLSX exports.
"""
import pandas as pd

from gpu_scraper.database import db_connect, db_init, db_insert_listing, db_refresh_price_history
from gpu_scraper.export import (
    LISTING_EXPORT_COLUMNS,
    export_new_since_run,
    export_price_history,
    save_output_rows,
)
from gpu_scraper.models import Listing
from gpu_scraper.store import DedupStore


def make_listing(topic, scraped_at, model="RTX 3070"):
    return Listing(
        id=f"gpu_{topic}_0",
        model=model,
        brand="NVIDIA",
        price=350,
        currency="€",
        title=f"Müüa {model}",
        url=f"https://foorum.hinnavaatlus.ee/viewtopic.php?t={topic}",
        author="kasutaja",
        location="Tartu",
        scraped_at=scraped_at,
    )


def test_save_output_rows_csv(tmp_path):
    out = tmp_path / "listings.csv"
    n = save_output_rows([make_listing(1, "2025-05-01T10:00:00+00:00")], str(out))

    df = pd.read_csv(out)
    assert n == 1
    assert list(df.columns) == LISTING_EXPORT_COLUMNS
    assert df.loc[0, "model"] == "RTX 3070"
    assert df.loc[0, "location"] == "Tartu"


def test_export_new_since_run(tmp_path):
    conn = db_connect(str(tmp_path / "gpu.db"))
    db_init(conn)
    db_insert_listing(conn, make_listing(1, "2025-05-01T10:00:00+00:00"))
    db_insert_listing(conn, make_listing(2, "2025-05-02T10:00:00+00:00", model="RX 6800"))

    df = export_new_since_run(conn, "2025-05-02T00:00:00+00:00")
    conn.close()

    assert list(df["model"]) == ["RX 6800"]


def test_export_price_history(tmp_path):
    conn = db_connect(str(tmp_path / "gpu.db"))
    store = DedupStore(conn)
    store.process_and_save([
        make_listing(1, "2025-05-01T10:00:00+00:00"),
        make_listing(2, "2025-05-01T11:00:00+00:00", model="RX 6800"),
    ])
    db_refresh_price_history(conn, "2025-05-01")

    all_models = export_price_history(conn)
    one_model = export_price_history(conn, model="RX 6800")
    conn.close()

    assert sorted(all_models["gpu_model"]) == ["RTX 3070", "RX 6800"]
    assert list(one_model["date"]) == ["2025-05-01"]
