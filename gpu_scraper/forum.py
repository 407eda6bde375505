"""
Forum constants and the in-page query descriptors.

Queries are plain data: the page driver knows how to run each kind in the
browser, and tests can answer them with canned rows.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .extraction import clean_location_hint
from .models import ThreadDescriptor
from .utils import clean_text


FORUM_BASE_URL = "https://foorum.hinnavaatlus.ee"
LISTING_URL_TEMPLATE = FORUM_BASE_URL + "/viewforum.php?f=3&topicdays=0&start={offset}"
LOGIN_URL = "https://auth.hinnavaatlus.ee/ui/login"

TARGET_CATEGORY = "Videokaardid"
ANNOUNCEMENT_MARKER = "Teadeanne"

# Fixed stride between listing pages; not derived from the rendered row count.
THREADS_PER_PAGE = 25
HEADER_ROWS = 3

# Timeouts (ms)
LISTING_NAV_TIMEOUT_MS = 30_000
THREAD_NAV_TIMEOUT_MS = 20_000
SELECTOR_TIMEOUT_MS = 10_000
LOGIN_TIMEOUT_MS = 30_000

# Login form
LOGIN_IDENTIFIER_SEL = "input[name='identifier']"
LOGIN_PASSWORD_SEL = "input[name='password']"
LOGIN_SUBMIT_SEL = "form button[type='submit']"

POST_BODY_WAIT_SEL = ".postbody"


@dataclass(frozen=True)
class ListingRowsQuery:
    """Select thread rows on a listing page."""
    kind: str = "listing_rows"
    row_selector: str = "table.forumline tbody tr"
    title_link_selector: str = "span.topictitle a.topictitle"
    title_container_selector: str = "span.topictitle"
    label_selector: str = "span, i"
    counter_class: str = "hv_fcounter"
    skip_rows: int = HEADER_ROWS
    skip_title_markers: Tuple[str, ...] = (ANNOUNCEMENT_MARKER,)
    author_cell_index: int = 3
    date_cell_index: int = 4

    def as_args(self) -> Dict[str, Any]:
        return {
            "row_selector": self.row_selector,
            "title_link_selector": self.title_link_selector,
            "title_container_selector": self.title_container_selector,
            "label_selector": self.label_selector,
            "counter_class": self.counter_class,
            "skip_rows": self.skip_rows,
            "skip_title_markers": list(self.skip_title_markers),
            "author_cell_index": self.author_cell_index,
            "date_cell_index": self.date_cell_index,
        }


@dataclass(frozen=True)
class PostBodyQuery:
    """Collect candidate post body texts and the post date from a thread page."""
    kind: str = "post_body"
    body_selectors: Tuple[str, ...] = (
        ".postbody",
        "td.row1[valign='top'] span.postbody",
        "td[valign='top'] span.postbody",
        "table.forumline td span.postbody",
    )
    date_selectors: Tuple[str, ...] = (
        "table.forumline tbody tr:nth-child(4) td:nth-child(4) span",
        "td.row1[valign='top'] span.postdetails",
        "span.postdetails",
    )

    def as_args(self) -> Dict[str, Any]:
        return {
            "body_selectors": list(self.body_selectors),
            "date_selectors": list(self.date_selectors),
        }


LISTING_ROWS_QUERY = ListingRowsQuery()
POST_BODY_QUERY = PostBodyQuery()


def build_listing_url(offset: int) -> str:
    return LISTING_URL_TEMPLATE.format(offset=offset)


@dataclass
class ListingPage:
    """Rows of one listing page, split into all rows and qualifying threads."""
    row_count: int
    threads: List[ThreadDescriptor] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return self.row_count == 0


def descriptor_from_row(row: Dict[str, Any], category: str = TARGET_CATEGORY) -> Optional[ThreadDescriptor]:
    """Turn one listing-row query result into a descriptor, or None if off-category."""
    url = (row.get("url") or "").strip()
    title = clean_text(row.get("title"))
    if not url or not title:
        return None

    labels = [clean_text(x) for x in row.get("labels") or []]
    container_text = row.get("container_text") or ""
    if category not in container_text and not any(category in x for x in labels):
        return None

    return ThreadDescriptor(
        title=title,
        url=url,
        author=clean_text(row.get("author")) or "Unknown",
        location=clean_location_hint(labels, category),
        category=category,
        post_date=clean_text(row.get("post_date")) or None,
    )


def parse_listing_rows(rows: Optional[List[Dict[str, Any]]], category: str = TARGET_CATEGORY) -> ListingPage:
    """Build the listing page view from raw query rows (announcements already skipped)."""
    rows = rows or []
    threads: List[ThreadDescriptor] = []
    seen = set()
    for row in rows:
        desc = descriptor_from_row(row, category)
        if desc is None or desc.url in seen:
            continue
        seen.add(desc.url)
        threads.append(desc)
    return ListingPage(row_count=len(rows), threads=threads)
