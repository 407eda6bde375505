"""
Utility functions for text processing, identifiers, and logging.
"""
import hashlib
import logging
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import parse_qs, urlparse


def init_logger(
    name: str = "gpu_scraper",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = "gpu_scraper.log"
) -> logging.Logger:
    """Initialize logger with console and optional file handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_level_num = getattr(logging, console_level.upper(), logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level_num)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:  # Create file handler only if log_file is provided
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def today_iso() -> str:
    """Return the current UTC date as YYYY-MM-DD."""
    return datetime.now(timezone.utc).date().isoformat()


def clean_text(s: Optional[str]) -> str:
    """Clean and normalize text by removing extra whitespace."""
    if not s:
        return ""
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def generate_id(url: str) -> str:
    """
    Build a stable draft identifier for a thread url.

    Forum thread urls carry the topic number in the ``t`` query parameter;
    anything else falls back to a short hash of the url.
    """
    topic = parse_qs(urlparse(url).query).get("t")
    if topic and topic[0]:
        return f"gpu_{topic[0]}"
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:12]
    return f"gpu_{digest}"


def shorten(text: str, limit: int = 40) -> str:
    """Trim text for progress lines."""
    text = clean_text(text)
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
