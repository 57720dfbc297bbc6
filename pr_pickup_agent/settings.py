"""Persisted user settings: ding sound, pickup interval and auto-pickup flag."""

import logging
import sqlite3
import time
from typing import Callable

from .db import get_meta, set_meta, set_meta_default

logger = logging.getLogger(__name__)

DING_URL_KEY = "ding-url"
PR_INTERVAL_KEY = "pr-interval"
AUTO_PICKUP_KEY = "auto-pickup"
LAST_PR_TIME_KEY = "last-pr-time"


class ConfigStore:
    """Reads and writes settings through the meta table.

    Values are read from the database on every access so that changes made
    by the settings commands are picked up by a running scheduler.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        default_ding_url: str,
        default_pickup_interval: int
    ):
        self.conn = conn
        self.default_ding_url = default_ding_url
        self.default_pickup_interval = default_pickup_interval

    def apply_defaults(self, clock: Callable[[], float] = time.time) -> None:
        """
        Seed missing keys on first run.

        The last claim time starts at "now", so a fresh install waits one
        full interval before its first pickup.
        """
        seeded = [
            key for key, value in (
                (PR_INTERVAL_KEY, str(self.default_pickup_interval)),
                (DING_URL_KEY, self.default_ding_url),
                (AUTO_PICKUP_KEY, "1"),
                (LAST_PR_TIME_KEY, repr(float(clock()))),
            )
            if set_meta_default(self.conn, key, value)
        ]
        if seeded:
            logger.info(f"Applied default settings for: {', '.join(seeded)}")

    @property
    def ding_url(self) -> str:
        return get_meta(self.conn, DING_URL_KEY) or self.default_ding_url

    @ding_url.setter
    def ding_url(self, url: str) -> None:
        url = (url or "").strip()
        if not url:
            url = self.default_ding_url
        set_meta(self.conn, DING_URL_KEY, url)
        logger.info(f"Ding sound set to {url}")

    @property
    def pickup_interval(self) -> int:
        raw = get_meta(self.conn, PR_INTERVAL_KEY)
        if raw is None:
            return self.default_pickup_interval
        try:
            return int(float(raw))
        except ValueError:
            logger.warning(f"Stored pickup interval {raw!r} is not a number, using default")
            return self.default_pickup_interval

    @pickup_interval.setter
    def pickup_interval(self, seconds: int) -> None:
        seconds = int(seconds)
        if seconds < 0:
            raise ValueError(f"Pickup interval must not be negative, got {seconds}")
        set_meta(self.conn, PR_INTERVAL_KEY, str(seconds))
        logger.info(f"Pickup interval set to {seconds}s")

    @property
    def auto_pickup_enabled(self) -> bool:
        return get_meta(self.conn, AUTO_PICKUP_KEY) != "0"

    @auto_pickup_enabled.setter
    def auto_pickup_enabled(self, enabled: bool) -> None:
        set_meta(self.conn, AUTO_PICKUP_KEY, "1" if enabled else "0")
        logger.info(f"Auto-pickup {'enabled' if enabled else 'disabled'}")

    @property
    def last_claim_timestamp(self) -> float:
        raw = get_meta(self.conn, LAST_PR_TIME_KEY)
        if raw is None:
            return 0.0
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Stored last claim time {raw!r} is not a number, treating as never")
            return 0.0

    @last_claim_timestamp.setter
    def last_claim_timestamp(self, timestamp: float) -> None:
        set_meta(self.conn, LAST_PR_TIME_KEY, repr(float(timestamp)))
