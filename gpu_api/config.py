"""
API configuration and settings management.
"""
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    # Database
    DB_PATH: str = os.getenv("GPU_DB", "./gpu_listings.db")

    # API settings
    API_TITLE: str = "GPU Forum Tracker API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "REST API over scraped GPU for-sale listings, price history and alerts"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Pagination defaults
    DEFAULT_API_LIMIT: int = 50
    MAX_API_LIMIT: int = 500
    MAX_EXPORT_ROWS: int = 10000

    # Scan trigger
    FORUM_USERNAME: str = os.getenv("FORUM_USERNAME", "")
    FORUM_PASSWORD: str = os.getenv("FORUM_PASSWORD", "")
    SCAN_MAX_PAGES: int = int(os.getenv("SCAN_MAX_PAGES", "3"))
    SCAN_HEADLESS: bool = _env_bool("SCAN_HEADLESS", True)

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration on startup."""
        if not cls.DB_PATH:
            raise ValueError("Database path not configured")
        if bool(cls.FORUM_USERNAME) != bool(cls.FORUM_PASSWORD):
            raise ValueError("FORUM_USERNAME and FORUM_PASSWORD must be set together")
        if cls.SCAN_MAX_PAGES < 1:
            raise ValueError(f"SCAN_MAX_PAGES must be positive, got {cls.SCAN_MAX_PAGES}")


# Global config instance
config = Config()
