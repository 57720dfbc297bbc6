"""Per-day throughput statistics and their live summary."""

import logging
import math
import sqlite3
import sys
import time
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Set

from .db import get_daily_stats, increment_daily_stats, list_daily_stats
from .models import DailyStats
from .settings import ConfigStore

logger = logging.getLogger(__name__)


def format_ratio(ratio: float) -> str:
    """Format a seen/claimed ratio, tolerating inf and nan."""
    if math.isnan(ratio):
        return "-"
    if math.isinf(ratio):
        return "∞"
    return f"{ratio:.2f}"


def format_countdown(seconds: float) -> str:
    """Format a wait as mm:ss, or "ready" when nothing is left."""
    if seconds <= 0:
        return "ready"
    total = int(math.ceil(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


class StatsTracker:
    """Counts new and claimed work items per local calendar day.

    The seen-id set lives in memory only. The first non-empty batch of a
    session is adopted as the baseline without being counted, so the
    initial render of a full queue is not reported as new work.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        settings: ConfigStore,
        clock: Callable[[], float] = time.time
    ):
        self.conn = conn
        self.settings = settings
        self.clock = clock
        self.seen_ids: Set[str] = set()
        self.seeded = False

    def today(self) -> str:
        return datetime.fromtimestamp(self.clock()).strftime("%Y-%m-%d")

    def observe(self, ids: Iterable[str]) -> int:
        """
        Record the identifiers visible in one notification batch.

        Args:
            ids: All identifiers extracted from the batch.

        Returns:
            The number of identifiers counted as newly seen.
        """
        batch = set(ids)
        if not batch:
            return 0

        if not self.seeded:
            self.seen_ids = batch
            self.seeded = True
            logger.info(f"Seeded seen set with {len(batch)} existing item(s)")
            return 0

        new_ids = batch - self.seen_ids
        if not new_ids:
            return 0

        self.seen_ids |= new_ids
        increment_daily_stats(self.conn, self.today(), seen=len(new_ids))
        logger.info(f"Counted {len(new_ids)} new item(s)")
        return len(new_ids)

    def record_claim(self) -> None:
        increment_daily_stats(self.conn, self.today(), claimed=1)

    def today_stats(self) -> DailyStats:
        return get_daily_stats(self.conn, self.today())

    def ratio(self, stats: Optional[DailyStats] = None) -> float:
        """Items seen per item claimed today; inf with no claims, nan with nothing at all."""
        stats = stats or self.today_stats()
        if stats.items_claimed == 0:
            return math.inf if stats.items_seen > 0 else math.nan
        return stats.items_seen / stats.items_claimed

    def time_until_next_eligible(self) -> float:
        """Remaining throttle wait, for display only."""
        elapsed = self.clock() - self.settings.last_claim_timestamp
        return max(0.0, self.settings.pickup_interval - elapsed)

    def history(self, days: int = 7) -> List[DailyStats]:
        return list_daily_stats(self.conn, limit=days)

    def summary(self) -> str:
        stats = self.today_stats()
        parts = [
            f"Today: {stats.items_seen} seen",
            f"{stats.items_claimed} claimed",
            f"ratio {format_ratio(self.ratio(stats))}",
        ]
        if self.settings.auto_pickup_enabled:
            parts.append(f"next pickup {format_countdown(self.time_until_next_eligible())}")
        else:
            parts.append("auto-pickup off")
        return " | ".join(parts)


def _write_status_line(text: str) -> None:
    sys.stdout.write("\r\033[K" + text)
    sys.stdout.flush()


class StatsDisplay:
    """Re-renders the live summary at most once per refresh interval."""

    def __init__(
        self,
        tracker: StatsTracker,
        refresh_interval: float = 1.0,
        writer: Callable[[str], None] = _write_status_line,
        clock: Callable[[], float] = time.monotonic
    ):
        self.tracker = tracker
        self.refresh_interval = refresh_interval
        self.writer = writer
        self.clock = clock
        self._last_refresh: Optional[float] = None

    def refresh(self, force: bool = False) -> bool:
        """Render the summary if it is due. Returns True if it was rendered."""
        now = self.clock()
        if (
            not force
            and self._last_refresh is not None
            and now - self._last_refresh < self.refresh_interval
        ):
            return False
        self._last_refresh = now
        try:
            self.writer(self.tracker.summary())
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Could not refresh stats display: {e}")
        return True
