"""
Database operations for the GPU listing store.
"""
import sqlite3
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import DuplicateGroup, Listing, PriceAlert
from .utils import now_iso, today_iso


# Schema definitions
DDL_LISTINGS = """
CREATE TABLE IF NOT EXISTS gpu_listings (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  draft_id TEXT,
  model TEXT NOT NULL,
  brand TEXT,
  price REAL,
  currency TEXT,
  ah_price REAL,
  ok_price REAL,
  title TEXT,
  url TEXT NOT NULL,
  author TEXT,
  location TEXT,
  post_date TEXT,
  condition TEXT,
  warranty TEXT,
  source TEXT DEFAULT 'forum',
  scraped_at TEXT
);
"""

DDL_PRICE_HISTORY = """
CREATE TABLE IF NOT EXISTS gpu_price_history (
  gpu_model TEXT,
  date TEXT,
  brand TEXT,
  avg_price REAL,
  min_price REAL,
  max_price REAL,
  listing_count INTEGER,
  currencies TEXT,
  PRIMARY KEY (gpu_model, date)
);
"""

DDL_PRICE_ALERTS = """
CREATE TABLE IF NOT EXISTS gpu_price_alerts (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id TEXT NOT NULL,
  gpu_model TEXT NOT NULL,
  target_price REAL NOT NULL,
  currency TEXT DEFAULT '€',
  alert_type TEXT DEFAULT 'below',
  is_active INTEGER DEFAULT 1,
  created_at TEXT
);
"""

DDL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_gpu_listings_model ON gpu_listings(model);",
    "CREATE INDEX IF NOT EXISTS idx_gpu_listings_scraped_at ON gpu_listings(scraped_at);",
]

# Dedup unit is the thread url; the store enforces it.
DDL_UNIQUE_URL = "CREATE UNIQUE INDEX IF NOT EXISTS ux_gpu_listings_url ON gpu_listings(url);"

ALERT_TYPES = ("below", "above", "exact")

LISTING_COLUMNS = (
    "draft_id", "model", "brand", "price", "currency", "ah_price", "ok_price",
    "title", "url", "author", "location", "post_date", "condition", "warranty", "scraped_at",
)


def db_connect(path: str) -> sqlite3.Connection:
    """Create database connection with optimized settings."""
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


def db_init(conn: sqlite3.Connection, enforce_unique_url: bool = True) -> bool:
    """
    Initialize database schema with tables and indexes.

    Returns whether the unique url index is in place. It cannot be created
    while residual duplicate rows exist; run ``db_find_duplicate_groups`` /
    the store's ``remove_duplicates`` first in that case.
    """
    conn.execute(DDL_LISTINGS)
    conn.execute(DDL_PRICE_HISTORY)
    conn.execute(DDL_PRICE_ALERTS)
    for ddl in DDL_INDEXES:
        conn.execute(ddl)
    conn.commit()

    if not enforce_unique_url:
        return False
    try:
        conn.execute(DDL_UNIQUE_URL)
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        return False
    return True


def row_to_listing(row: sqlite3.Row) -> Listing:
    """Convert a gpu_listings row to a Listing carrying its canonical id."""
    return Listing(
        id=str(row["id"]),
        model=row["model"],
        brand=row["brand"] or "Unknown",
        price=row["price"],
        currency=row["currency"],
        ah_price=row["ah_price"],
        ok_price=row["ok_price"],
        title=row["title"] or "",
        url=row["url"],
        author=row["author"] or "Unknown",
        location=row["location"],
        post_date=row["post_date"],
        condition=row["condition"] or "unknown",
        warranty=row["warranty"] or "unknown",
        scraped_at=row["scraped_at"],
    )


def _listing_values(lst: Listing) -> Tuple[Any, ...]:
    return (
        lst.id, lst.model, lst.brand, lst.price, lst.currency, lst.ah_price, lst.ok_price,
        lst.title, lst.url, lst.author, lst.location, lst.post_date, lst.condition,
        lst.warranty, lst.scraped_at,
    )


def db_exists_by_url(conn: sqlite3.Connection, url: str) -> bool:
    """Check whether any listing from this thread url is stored."""
    cur = conn.execute("SELECT 1 FROM gpu_listings WHERE url = ? LIMIT 1", (url,))
    return cur.fetchone() is not None


def db_get_listing(conn: sqlite3.Connection, listing_id: int) -> Optional[Dict]:
    """Retrieve one listing row by canonical id."""
    cur = conn.execute("SELECT * FROM gpu_listings WHERE id = ?", (listing_id,))
    r = cur.fetchone()
    if not r:
        return None
    return dict(r)


def db_insert_listing(conn: sqlite3.Connection, lst: Listing) -> Optional[int]:
    """
    Insert a listing unless its url is already stored.

    Returns the new row id, or None when the url conflicted.
    """
    values = _listing_values(lst)
    placeholders = ",".join("?" for _ in LISTING_COLUMNS)
    cur = conn.execute(
        f"INSERT INTO gpu_listings ({','.join(LISTING_COLUMNS)}) VALUES ({placeholders}) "
        "ON CONFLICT(url) DO NOTHING",
        values,
    )
    conn.commit()
    if cur.rowcount == 0:
        return None
    return cur.lastrowid


def db_insert_listing_unchecked(conn: sqlite3.Connection, lst: Listing) -> int:
    """Plain insert, for stores without the unique url index (imports, legacy data)."""
    values = _listing_values(lst)
    placeholders = ",".join("?" for _ in LISTING_COLUMNS)
    cur = conn.execute(
        f"INSERT INTO gpu_listings ({','.join(LISTING_COLUMNS)}) VALUES ({placeholders})",
        values,
    )
    conn.commit()
    return cur.lastrowid


def db_delete_listings_by_ids(conn: sqlite3.Connection, ids: Iterable[int]) -> int:
    """Delete listings by canonical id; returns the number removed."""
    ids = list(ids)
    if not ids:
        return 0
    placeholders = ",".join("?" for _ in ids)
    cur = conn.execute(f"DELETE FROM gpu_listings WHERE id IN ({placeholders})", ids)
    conn.commit()
    return cur.rowcount


def db_clear_listings(conn: sqlite3.Connection) -> int:
    """Delete every stored listing."""
    cur = conn.execute("DELETE FROM gpu_listings")
    conn.commit()
    return cur.rowcount


def build_where_clause(filters: Dict[str, Any]) -> Tuple[str, List[Any]]:
    """Build WHERE clause and parameters from filters."""
    where_conditions = []
    parameters: List[Any] = []

    model = filters.get("model")
    if model:
        where_conditions.append("lower(model) LIKE ?")
        parameters.append(f"%{model.lower()}%")

    brand = filters.get("brand")
    if brand:
        where_conditions.append("lower(brand) LIKE ?")
        parameters.append(f"%{brand.lower()}%")

    min_price = filters.get("min_price")
    if min_price is not None:
        where_conditions.append("(price IS NOT NULL AND price >= ?)")
        parameters.append(min_price)

    max_price = filters.get("max_price")
    if max_price is not None:
        where_conditions.append("(price IS NOT NULL AND price <= ?)")
        parameters.append(max_price)

    currency = filters.get("currency")
    if currency:
        where_conditions.append("currency = ?")
        parameters.append(currency)

    where_clause = " WHERE " + " AND ".join(where_conditions) if where_conditions else ""
    return where_clause, parameters


def get_order_clause(sort: str) -> str:
    """Generate ORDER BY clause based on sort parameter."""
    sort_options = {
        "price_asc": "ORDER BY price ASC, id ASC",
        "price_desc": "ORDER BY price DESC, id ASC",
        "scraped_at_asc": "ORDER BY scraped_at ASC, id ASC",
        "scraped_at_desc": "ORDER BY scraped_at DESC, id DESC",
    }
    return sort_options.get(sort, sort_options["scraped_at_desc"])


def db_count_listings(conn: sqlite3.Connection, filters: Dict[str, Any]) -> int:
    where_clause, parameters = build_where_clause(filters)
    row = conn.execute(f"SELECT COUNT(*) FROM gpu_listings {where_clause}", parameters).fetchone()
    return row[0] if row else 0


def db_query_listings(
    conn: sqlite3.Connection,
    filters: Optional[Dict[str, Any]] = None,
    sort: str = "scraped_at_desc",
    limit: int = 100,
    offset: int = 0
) -> List[Listing]:
    """Listings matching filters {model?, brand?, min_price?, max_price?, currency?}."""
    where_clause, parameters = build_where_clause(filters or {})
    order_clause = get_order_clause(sort)
    sql = f"SELECT * FROM gpu_listings {where_clause} {order_clause} LIMIT ? OFFSET ?"
    parameters.extend([limit, offset])
    return [row_to_listing(r) for r in conn.execute(sql, parameters).fetchall()]


def db_aggregate_stats_by_model(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    """Per-model listing count and price spread, most listed first."""
    cur = conn.execute("""
    SELECT model,
           COUNT(*) AS listing_count,
           AVG(price) AS avg_price,
           MIN(price) AS min_price,
           MAX(price) AS max_price,
           GROUP_CONCAT(DISTINCT currency) AS currencies,
           MAX(scraped_at) AS latest_date
    FROM gpu_listings
    WHERE price IS NOT NULL
    GROUP BY model
    ORDER BY listing_count DESC, model ASC
    """)
    out = []
    for r in cur.fetchall():
        out.append({
            "model": r["model"],
            "listing_count": r["listing_count"],
            "avg_price": round(r["avg_price"]),
            "min_price": r["min_price"],
            "max_price": r["max_price"],
            "currencies": sorted((r["currencies"] or "").split(",")) if r["currencies"] else [],
            "latest_date": r["latest_date"],
        })
    return out


def db_refresh_price_history(conn: sqlite3.Connection, day: Optional[str] = None) -> int:
    """
    Recompute today's per-model price summary from listings scraped today.

    Returns the number of models written.
    """
    day = day or today_iso()
    rows = conn.execute("""
    SELECT model,
           MAX(brand) AS brand,
           AVG(price) AS avg_price,
           MIN(price) AS min_price,
           MAX(price) AS max_price,
           COUNT(*) AS listing_count,
           GROUP_CONCAT(DISTINCT currency) AS currencies
    FROM gpu_listings
    WHERE price IS NOT NULL AND substr(scraped_at, 1, 10) = ?
    GROUP BY model
    """, (day,)).fetchall()

    for r in rows:
        conn.execute("""
        INSERT INTO gpu_price_history
          (gpu_model, date, brand, avg_price, min_price, max_price, listing_count, currencies)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(gpu_model, date) DO UPDATE SET
          brand=excluded.brand,
          avg_price=excluded.avg_price,
          min_price=excluded.min_price,
          max_price=excluded.max_price,
          listing_count=excluded.listing_count,
          currencies=excluded.currencies
        """, (
            r["model"], day, r["brand"], round(r["avg_price"]), r["min_price"],
            r["max_price"], r["listing_count"], r["currencies"] or "",
        ))
    conn.commit()
    return len(rows)


def db_get_price_history(conn: sqlite3.Connection, model: Optional[str] = None, days: int = 30) -> List[Dict]:
    """Daily price summaries, oldest first, optionally for one model."""
    params: List[Any] = [f"-{int(days)} day"]
    sql = "SELECT * FROM gpu_price_history WHERE date >= date('now', ?)"
    if model:
        sql += " AND gpu_model = ?"
        params.append(model)
    sql += " ORDER BY gpu_model ASC, date ASC"
    return [dict(r) for r in conn.execute(sql, params).fetchall()]


def db_find_duplicate_groups(conn: sqlite3.Connection) -> List[DuplicateGroup]:
    """Urls stored more than once, each with its rows ordered earliest first."""
    urls = [r[0] for r in conn.execute(
        "SELECT url FROM gpu_listings GROUP BY url HAVING COUNT(*) > 1 ORDER BY url"
    ).fetchall()]
    groups = []
    for url in urls:
        rows = conn.execute(
            "SELECT id, scraped_at FROM gpu_listings WHERE url = ? ORDER BY scraped_at ASC, id ASC",
            (url,),
        ).fetchall()
        groups.append(DuplicateGroup(
            url=url,
            ids=[r["id"] for r in rows],
            scraped_at=[r["scraped_at"] for r in rows],
        ))
    return groups


def row_to_alert(row: sqlite3.Row) -> PriceAlert:
    return PriceAlert(
        id=row["id"],
        user_id=row["user_id"],
        gpu_model=row["gpu_model"],
        currency=row["currency"],
        alert_type=row["alert_type"],
        target_price=row["target_price"],
    )


def db_create_price_alert(
    conn: sqlite3.Connection,
    user_id: str,
    gpu_model: str,
    target_price: float,
    currency: str = "€",
    alert_type: str = "below"
) -> PriceAlert:
    """Register a standing price alert."""
    if alert_type not in ALERT_TYPES:
        raise ValueError(f"Unknown alert type: {alert_type}")
    cur = conn.execute("""
    INSERT INTO gpu_price_alerts (user_id, gpu_model, target_price, currency, alert_type, is_active, created_at)
    VALUES (?, ?, ?, ?, ?, 1, ?)
    """, (user_id, gpu_model, target_price, currency, alert_type, now_iso()))
    conn.commit()
    return PriceAlert(
        id=cur.lastrowid,
        user_id=user_id,
        gpu_model=gpu_model,
        currency=currency,
        alert_type=alert_type,
        target_price=target_price,
    )


def db_list_standing_alerts(conn: sqlite3.Connection) -> List[PriceAlert]:
    """Every active alert."""
    cur = conn.execute("SELECT * FROM gpu_price_alerts WHERE is_active = 1 ORDER BY id")
    return [row_to_alert(r) for r in cur.fetchall()]


def db_get_user_alerts(conn: sqlite3.Connection, user_id: str) -> List[PriceAlert]:
    cur = conn.execute(
        "SELECT * FROM gpu_price_alerts WHERE user_id = ? AND is_active = 1 ORDER BY id", (user_id,)
    )
    return [row_to_alert(r) for r in cur.fetchall()]
