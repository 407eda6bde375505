"""
Tests for the command line entry point.
"""
import pandas as pd

from gpu_scraper.cli import main, parse_args
from gpu_scraper.core import ScrapeRun
from gpu_scraper.database import db_connect, db_count_listings, db_create_price_alert, db_init
from gpu_scraper.fakes import FakeDriver, fake_driver_factory, make_post, make_row


def test_parse_args_defaults(monkeypatch):
    monkeypatch.delenv("FORUM_USERNAME", raising=False)
    args = parse_args([])

    assert args.max_pages == 3
    assert args.max_threads_per_page == 20
    assert args.db == "gpu_listings.db"
    assert args.headless is False


def test_scrape_store_and_export(tmp_path, monkeypatch):
    url = "https://foorum.hinnavaatlus.ee/viewtopic.php?t=42"
    driver = FakeDriver(
        listing_pages={0: [make_row("Müüa RTX 3070", 42)]},
        posts={url: make_post("Müün RTX 3070, töötab ideaalselt ja karp on alles. Hind 350€.")},
    )

    def fake_run(config, username=None, password=None):
        return ScrapeRun(config, username, password, driver_factory=fake_driver_factory(driver))

    monkeypatch.delenv("FORUM_USERNAME", raising=False)
    monkeypatch.delenv("FORUM_PASSWORD", raising=False)
    monkeypatch.setattr("gpu_scraper.cli.ScrapeRun", fake_run)
    db = str(tmp_path / "gpu.db")
    conn = db_connect(db)
    db_init(conn)
    db_create_price_alert(conn, "u1", "RTX 3070", 400)
    conn.close()
    out = str(tmp_path / "new.csv")

    code = main(["--db", db, "--max-pages", "1", "--out", out, "--export-new", "--no-file-log"])

    assert code == 0
    assert list(pd.read_csv(out)["model"]) == ["RTX 3070"]
    conn = db_connect(db)
    assert db_count_listings(conn, {}) == 1
    conn.close()


def test_clear_all(tmp_path):
    db = str(tmp_path / "gpu.db")
    conn = db_connect(db)
    db_init(conn)
    conn.execute(
        "INSERT INTO gpu_listings (model, url, scraped_at) VALUES (?, ?, ?)",
        ("RTX 3070", "https://foorum.hinnavaatlus.ee/viewtopic.php?t=1", "2025-05-01T10:00:00+00:00"),
    )
    conn.commit()
    conn.close()

    assert main(["--db", db, "--clear-all", "--no-file-log"]) == 0

    conn = db_connect(db)
    assert db_count_listings(conn, {}) == 0
    conn.close()
