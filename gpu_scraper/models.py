"""
Data models for the GPU forum scraper.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .utils import generate_id, now_iso


@dataclass
class ThreadDescriptor:
    """One thread row discovered on a forum listing page."""

    title: str
    url: str
    author: str = "Unknown"
    location: Optional[str] = None
    category: str = ""
    post_date: Optional[str] = None


@dataclass
class PriceInfo:
    """A price recognised in free text."""

    price: float
    currency: str
    ah_price: Optional[float] = None
    ok_price: Optional[float] = None


@dataclass
class Listing:
    """Represents one GPU offer extracted from a forum thread."""

    id: str
    model: str
    brand: str
    price: float
    currency: str
    title: str
    url: str
    author: str

    # Auxiliary price notations
    ah_price: Optional[float] = None
    ok_price: Optional[float] = None

    location: Optional[str] = None
    post_date: Optional[str] = None
    condition: str = "unknown"
    warranty: str = "unknown"
    scraped_at: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "model": self.model,
            "brand": self.brand,
            "price": self.price,
            "currency": self.currency,
            "ah_price": self.ah_price,
            "ok_price": self.ok_price,
            "title": self.title,
            "url": self.url,
            "author": self.author,
            "location": self.location,
            "post_date": self.post_date,
            "condition": self.condition,
            "warranty": self.warranty,
            "scraped_at": self.scraped_at,
        }


@dataclass
class RunConfig:
    """Externally recognised run options."""

    max_pages: int = 3
    max_threads_per_page: int = 20
    headless: bool = True


@dataclass
class ScrapeResult:
    """Outcome of one scrape run, handed back to the caller."""

    success: bool
    data: List[Listing]
    total_listings: int
    processed_threads: int
    processed_pages: int
    error: Optional[str] = None
    partial_results: Optional[bool] = None
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "data": [x.to_dict() for x in self.data],
            "totalListings": self.total_listings,
            "processedThreads": self.processed_threads,
            "processedPages": self.processed_pages,
        }
        if self.error is not None:
            out["error"] = self.error
        if self.partial_results is not None:
            out["partialResults"] = self.partial_results
        if self.cancelled:
            out["cancelled"] = True
        return out


@dataclass
class ScrapeSession:
    """
    Per-run scraping state.

    Owned by the pagination controller and threaded through every step;
    never persisted.
    """

    processed_thread_urls: Set[str] = field(default_factory=set)
    accumulated_listings: List[Listing] = field(default_factory=list)
    current_listing_page_url: Optional[str] = None
    processed_pages: int = 0
    draft_counter: int = 0

    def next_draft_id(self, url: str) -> str:
        draft_id = f"{generate_id(url)}_{self.draft_counter}"
        self.draft_counter += 1
        return draft_id

    def is_processed(self, url: str) -> bool:
        return url in self.processed_thread_urls

    def record_thread(self, url: str, listings: List[Listing]) -> None:
        """Mark a thread as attempted and keep whatever it produced."""
        self.accumulated_listings.extend(listings)
        self.processed_thread_urls.add(url)

    def to_result(
        self,
        success: bool,
        error: Optional[str] = None,
        cancelled: bool = False
    ) -> ScrapeResult:
        data = list(self.accumulated_listings)
        return ScrapeResult(
            success=success,
            data=data,
            total_listings=len(data),
            processed_threads=len(self.processed_thread_urls),
            processed_pages=self.processed_pages,
            error=error,
            partial_results=None if success else bool(data),
            cancelled=cancelled,
        )


@dataclass
class PriceAlert:
    """A standing user-defined price watch."""

    user_id: str
    gpu_model: str
    currency: str
    alert_type: str
    target_price: float
    id: Optional[int] = None


@dataclass
class TriggeredAlert:
    """A (listing, alert) pair that satisfied the alert criteria."""

    alert: PriceAlert
    listing: Listing

    @property
    def user_id(self) -> str:
        return self.alert.user_id


@dataclass
class SaveResult:
    """Tally of a persistence batch."""

    total: int
    saved: int = 0
    duplicates: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    processed: List[Listing] = field(default_factory=list)


@dataclass
class DuplicateGroup:
    """Stored rows sharing one source url."""

    url: str
    ids: List[int]
    scraped_at: List[str]

    @property
    def count(self) -> int:
        return len(self.ids)
