"""
Human-readable progress lines for a scrape run.
"""
import logging
from collections import deque
from typing import Deque, Iterator, Optional


class ProgressLog:
    """Buffers progress lines until the run drains them, mirroring each to the logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("gpu_scraper.progress")
        self._pending: Deque[str] = deque()

    def emit(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, message)
        self._pending.append(message)

    def warning(self, message: str) -> None:
        self.emit(message, logging.WARNING)

    def error(self, message: str) -> None:
        self.emit(message, logging.ERROR)

    def drain(self) -> Iterator[str]:
        while self._pending:
            yield self._pending.popleft()
