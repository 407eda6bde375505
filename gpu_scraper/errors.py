"""
Exception hierarchy for the GPU forum scraper.
"""


class ScraperError(Exception):
    """Base class for scraper failures."""


class DriverError(ScraperError):
    """A page driver operation (navigate, wait, evaluate, click, type) failed."""


class DriverTimeout(DriverError):
    """A page driver operation exceeded its timeout."""


class SessionClosedError(DriverError):
    """The browser page or session is gone; nothing more can be driven."""


class LoginError(ScraperError):
    """Forum login did not succeed."""


class PersistenceError(ScraperError):
    """A listing could not be written to the store."""


class DuplicateListingError(PersistenceError):
    """A listing with the same source url is already stored."""
