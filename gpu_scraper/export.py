"""
Export utilities for GPU listings.
"""
import logging
import sqlite3
from typing import List, Optional

import pandas as pd

from .models import Listing


LISTING_EXPORT_COLUMNS = [
    "id", "model", "brand", "price", "currency", "ah_price", "ok_price",
    "title", "url", "author", "location", "post_date", "condition", "warranty", "scraped_at",
]


def listings_to_frame(listings: List[Listing]) -> pd.DataFrame:
    """Listings as a DataFrame with a fixed column order."""
    return pd.DataFrame([x.to_dict() for x in listings], columns=LISTING_EXPORT_COLUMNS)


def write_frame(df: pd.DataFrame, out_path: str) -> None:
    """Write CSV, or Excel when the path ends in .xlsx."""
    if out_path.lower().endswith(".xlsx"):
        df.to_excel(out_path, index=False)
    else:
        df.to_csv(out_path, index=False)


def export_new_since_run(conn: sqlite3.Connection, run_started_iso: str) -> pd.DataFrame:
    """Export listings that were scraped since the given timestamp."""
    q = """
    SELECT *
    FROM gpu_listings
    WHERE scraped_at >= ?
    ORDER BY scraped_at DESC
    """
    return pd.read_sql_query(q, conn, params=(run_started_iso,))


def export_price_history(conn: sqlite3.Connection, model: Optional[str] = None) -> pd.DataFrame:
    """Export daily price history for all models or one model."""
    if model:
        q = "SELECT * FROM gpu_price_history WHERE gpu_model=? ORDER BY date ASC"
        return pd.read_sql_query(q, conn, params=(model,))
    q = "SELECT * FROM gpu_price_history ORDER BY gpu_model, date ASC"
    return pd.read_sql_query(q, conn)


def save_output_rows(listings: List[Listing], out_path: str, logger: Optional[logging.Logger] = None) -> int:
    """Save listings to CSV or Excel file."""
    df = listings_to_frame(listings)
    write_frame(df, out_path)
    (logger or logging.getLogger(__name__)).info(f">>> Saved {len(df)} rows to {out_path}")
    return len(df)
