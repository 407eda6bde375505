"""
Database connection management for the API.
"""
import logging
import os
import sqlite3
from contextlib import contextmanager

from gpu_scraper.database import db_connect, db_init

from .config import config

logger = logging.getLogger(__name__)


def init_database() -> bool:
    """Create the schema if needed; returns whether url uniqueness is enforced."""
    os.makedirs(os.path.dirname(config.DB_PATH) or ".", exist_ok=True)
    conn = db_connect(config.DB_PATH)
    try:
        return db_init(conn)
    finally:
        conn.close()


@contextmanager
def get_db_connection():
    """Get a database connection with proper error handling."""
    conn = None
    try:
        if not config.DB_PATH:
            raise ValueError("Database path not configured")

        conn = db_connect(config.DB_PATH)
        yield conn
    except sqlite3.Error as e:
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn is not None:
            conn.close()
