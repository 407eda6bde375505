"""
Deduplicating persistence for scraped GPU listings.
"""
import dataclasses
import logging
import sqlite3
from typing import Iterable, List, Optional

from .database import (
    db_clear_listings,
    db_delete_listings_by_ids,
    db_exists_by_url,
    db_find_duplicate_groups,
    db_init,
    db_insert_listing,
    db_insert_listing_unchecked,
    db_refresh_price_history,
)
from .errors import DuplicateListingError, PersistenceError
from .models import DuplicateGroup, Listing, SaveResult


class DedupStore:
    """
    Listing store keyed on the thread url.

    The unique url index makes the insert itself idempotent; the ``exists``
    lookup only saves a write. On a database still holding residual
    duplicates the index is missing and the lookup is all there is, until
    ``remove_duplicates`` runs.
    """

    def __init__(self, conn: sqlite3.Connection, logger: Optional[logging.Logger] = None):
        self.conn = conn
        self.logger = logger or logging.getLogger(__name__)
        self.unique_url = db_init(conn)
        if not self.unique_url:
            self.logger.warning(">>> Residual duplicate urls in store; run remove_duplicates to enforce uniqueness")

    def exists(self, url: str) -> bool:
        try:
            return db_exists_by_url(self.conn, url)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not look up {url}: {e}") from e

    def save(self, listing: Listing) -> Listing:
        """Insert one listing and return it with its canonical id."""
        try:
            if self.unique_url:
                row_id = db_insert_listing(self.conn, listing)
            elif self.exists(listing.url):
                row_id = None
            else:
                row_id = db_insert_listing_unchecked(self.conn, listing)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not save {listing.model} ({listing.url}): {e}") from e

        if row_id is None:
            raise DuplicateListingError(listing.url)
        return dataclasses.replace(listing, id=str(row_id))

    def process_and_save(self, listings: Iterable[Listing]) -> SaveResult:
        """
        Save a batch one listing at a time.

        Duplicates and failures are tallied, never raised. Price history is
        refreshed when anything new was written.
        """
        listings = list(listings)
        result = SaveResult(total=len(listings))

        for listing in listings:
            try:
                if self.exists(listing.url):
                    result.duplicates += 1
                    self.logger.debug(f"Duplicate found: {listing.model} - {listing.url}")
                    continue
                saved = self.save(listing)
            except DuplicateListingError:
                result.duplicates += 1
                continue
            except PersistenceError as e:
                self.logger.error(f"Error saving listing: {e}")
                result.errors.append({"listing": listing.model or listing.title, "error": str(e)})
                continue

            result.saved += 1
            result.processed.append(saved)
            self.logger.info(f">>> Saved: {saved.model} - {saved.price}{saved.currency}")

        if result.saved > 0:
            try:
                n = db_refresh_price_history(self.conn)
                self.logger.info(f">>> Price history updated for {n} GPU models")
            except sqlite3.Error:
                self.logger.exception("Error updating price history")

        self.logger.info(
            f">>> Stored {result.saved} new listings, {result.duplicates} duplicates, "
            f"{len(result.errors)} errors"
        )
        return result

    def clear_all(self) -> int:
        removed = db_clear_listings(self.conn)
        self.logger.info(f">>> Cleared {removed} listings")
        return removed

    def find_duplicate_groups(self) -> List[DuplicateGroup]:
        return db_find_duplicate_groups(self.conn)

    def remove_duplicates(self) -> int:
        """Keep the earliest scrape of every url, delete the rest, then enforce uniqueness."""
        doomed: List[int] = []
        for group in self.find_duplicate_groups():
            doomed.extend(group.ids[1:])
        removed = db_delete_listings_by_ids(self.conn, doomed)
        if removed:
            self.logger.info(f">>> Removed {removed} duplicate listings")
        if not self.unique_url:
            self.unique_url = db_init(self.conn)
        return removed
