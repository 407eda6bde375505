"""
Command line entry point: scrape the forum, store new listings, match alerts, export.
"""
import argparse
import asyncio
import os
import sys
from typing import List, Optional

from .alerts import match
from .core import ScrapeRun
from .database import db_connect, db_list_standing_alerts
from .export import export_new_since_run, export_price_history, save_output_rows, write_frame
from .models import RunConfig, ScrapeResult
from .store import DedupStore
from .utils import init_logger, now_iso


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="GPU for-sale forum scraper with SQLite dedup & price alerts")
    ap.add_argument("--max-pages", type=int, default=3, help="Listing pages to walk")
    ap.add_argument("--max-threads-per-page", type=int, default=20, help="Threads to open per listing page")
    ap.add_argument("--headless", action="store_true", help="Run without UI")
    ap.add_argument("--username", type=str, default=os.getenv("FORUM_USERNAME", ""),
                    help="Forum username (default from env FORUM_USERNAME)")
    ap.add_argument("--password", type=str, default=os.getenv("FORUM_PASSWORD", ""),
                    help="Forum password (default from env FORUM_PASSWORD)")
    ap.add_argument("--db", type=str, default="gpu_listings.db", help="Path to SQLite DB")
    ap.add_argument("--out", type=str, default="", help="CSV/XLSX to export scraped listings to")
    ap.add_argument("--export-new", action="store_true", help="Export only listings stored during this run (uses --out)")
    ap.add_argument("--export-prices", action="store_true", help="Export price history to CSV/XLSX (uses --out)")
    ap.add_argument("--export-prices-model", type=str, default="", help="Filter price history by model")
    ap.add_argument("--remove-duplicates", action="store_true", help="Remove residual duplicate rows and exit")
    ap.add_argument("--clear-all", action="store_true", help="Delete every stored listing and exit")
    # Logging
    lvl_choices = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    ap.add_argument("--log-level", choices=lvl_choices, default=None,
                    help="Global log level for both console and file (overrides --log-console/--log-file).")
    ap.add_argument("--log-console", choices=lvl_choices, default=os.getenv("LOG_CONSOLE", "INFO"),
                    help="Console log level (default from env LOG_CONSOLE or INFO).")
    ap.add_argument("--log-file", choices=lvl_choices, default=os.getenv("LOG_FILE", "DEBUG"),
                    help="File log level (default from env LOG_FILE or DEBUG).")
    ap.add_argument("--log-file-path", default=os.getenv("LOG_FILE_PATH", "gpu_scraper.log"),
                    help="Path to log file (default from env LOG_FILE_PATH or gpu_scraper.log).")
    ap.add_argument("--no-file-log", action="store_true",
                    help="Disable file logging (only console output).")
    return ap.parse_args(argv)


async def _drive(run: ScrapeRun) -> ScrapeResult:
    # Progress lines are already mirrored to the log by the run itself.
    async for _ in run:
        pass
    return run.result


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    eff_console = args.log_level or args.log_console
    eff_file = args.log_level or args.log_file
    logger = init_logger(
        console_level=eff_console,
        file_level=eff_file,
        log_file=None if args.no_file_log else args.log_file_path
    )
    logger.info(
        f"Logger initialized: console={eff_console}, "
        f"file={'DISABLED' if args.no_file_log else eff_file}, "
        f"path={'N/A' if args.no_file_log else args.log_file_path}"
    )

    os.makedirs(os.path.dirname(args.db) or ".", exist_ok=True)
    conn = db_connect(args.db)
    try:
        store = DedupStore(conn, logger=logger)

        if args.clear_all:
            store.clear_all()
            return 0
        if args.remove_duplicates:
            groups = store.find_duplicate_groups()
            logger.info(f">>> Found {len(groups)} duplicate url groups")
            store.remove_duplicates()
            return 0

        run_started_iso = now_iso()
        logger.info(f">>> Run started at {run_started_iso}")

        config = RunConfig(
            max_pages=args.max_pages,
            max_threads_per_page=args.max_threads_per_page,
            headless=args.headless,
        )
        run = ScrapeRun(config, username=args.username or None, password=args.password or None)
        result = asyncio.run(_drive(run))

        if not result.success:
            logger.error(f">>> Scrape failed: {result.error} (partial results: {len(result.data)})")

        saved = store.process_and_save(result.data)
        triggered = match(saved.processed, db_list_standing_alerts(conn))
        for t in triggered:
            logger.info(
                f">>> Price alert for {t.user_id}: {t.listing.model} {t.listing.price}{t.listing.currency} "
                f"({t.alert.alert_type} {t.alert.target_price}) {t.listing.url}"
            )
        logger.info(
            f">>> Scraped {result.total_listings} listings, saved {saved.saved} new, "
            f"{saved.duplicates} duplicates, {len(triggered)} alerts triggered"
        )

        # Export
        if args.out:
            if args.export_prices:
                dfp = export_price_history(conn, model=args.export_prices_model or None)
                write_frame(dfp, args.out)
                logger.info(f">>> Export price history: {len(dfp)} rows -> {args.out}")
            elif args.export_new:
                dfn = export_new_since_run(conn, run_started_iso)
                write_frame(dfn, args.out)
                logger.info(f">>> Export only new items: {len(dfn)} rows -> {args.out}")
            else:
                save_output_rows(result.data, args.out, logger=logger)

        return 0 if result.success else 1
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
