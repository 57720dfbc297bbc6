"""SQLite key-value store for settings, throttle state and daily stats."""

import sqlite3
from typing import List, Optional

from .models import DailyStats


def init_db(db_path: str) -> sqlite3.Connection:
    """
    Initialize the database and create tables if they don't exist.
    
    Args:
        db_path: Path to the SQLite database file (":memory:" for tests).
        
    Returns:
        A connection to the database.
    """
    conn = sqlite3.connect(db_path)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS daily_stats (
            day TEXT PRIMARY KEY,
            items_seen INTEGER NOT NULL DEFAULT 0,
            items_claimed INTEGER NOT NULL DEFAULT 0
        )
    """)
    conn.commit()
    return conn


def get_meta(conn: sqlite3.Connection, key: str) -> Optional[str]:
    """
    Get a metadata value from the database.
    
    Args:
        conn: Database connection.
        key: Metadata key.
        
    Returns:
        The metadata value, or None if not found.
    """
    cursor = conn.execute("SELECT value FROM meta WHERE key = ?", (key,))
    row = cursor.fetchone()
    return row[0] if row else None


def set_meta(conn: sqlite3.Connection, key: str, value: str) -> None:
    """
    Set a metadata value in the database.
    
    Args:
        conn: Database connection.
        key: Metadata key.
        value: Metadata value.
    """
    conn.execute(
        "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
        (key, value)
    )
    conn.commit()


def set_meta_default(conn: sqlite3.Connection, key: str, value: str) -> bool:
    """
    Store a metadata value only if the key is not present yet.
    
    Returns:
        True if the default was written, False if a value already existed.
    """
    cursor = conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) VALUES (?, ?)",
        (key, value)
    )
    conn.commit()
    return cursor.rowcount > 0


def get_daily_stats(conn: sqlite3.Connection, day: str) -> DailyStats:
    """Return the counters for a day, zeroed if the day has no record yet."""
    cursor = conn.execute(
        "SELECT items_seen, items_claimed FROM daily_stats WHERE day = ?",
        (day,)
    )
    row = cursor.fetchone()
    if not row:
        return DailyStats(day=day)
    return DailyStats(day=day, items_seen=row[0], items_claimed=row[1])


def increment_daily_stats(
    conn: sqlite3.Connection,
    day: str,
    seen: int = 0,
    claimed: int = 0
) -> None:
    """
    Add to a day's counters, creating the day's record on first use.
    
    Args:
        conn: Database connection.
        day: Local calendar date as YYYY-MM-DD.
        seen: Amount to add to items_seen.
        claimed: Amount to add to items_claimed.
    """
    conn.execute(
        "INSERT OR IGNORE INTO daily_stats (day, items_seen, items_claimed) VALUES (?, 0, 0)",
        (day,)
    )
    conn.execute(
        "UPDATE daily_stats SET items_seen = items_seen + ?, items_claimed = items_claimed + ? "
        "WHERE day = ?",
        (seen, claimed, day)
    )
    conn.commit()


def list_daily_stats(conn: sqlite3.Connection, limit: int = 7) -> List[DailyStats]:
    """Return the most recent daily records, newest first."""
    cursor = conn.execute(
        "SELECT day, items_seen, items_claimed FROM daily_stats ORDER BY day DESC LIMIT ?",
        (limit,)
    )
    return [DailyStats(day=row[0], items_seen=row[1], items_claimed=row[2]) for row in cursor.fetchall()]
