"""Watches work-list notifications and claims new work when allowed."""

import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from .claim import ClaimAttempter, ClaimProtocol, ClaimState, ConflictVerifier
from .collaborators import ConflictIndicator, EventSource, ResourceOpener, WorkItemRow
from .config import AppConfig, TimingConfig
from .models import ChangeKind, ChangeNotification, WorkItem, WorkItemStatus
from .notifier import AlertSink, Notifier
from .settings import ConfigStore
from .stats import StatsDisplay, StatsTracker
from .throttle import ThrottleController

logger = logging.getLogger(__name__)


@dataclass
class SchedulerContext:
    """Everything the scheduler reads and mutates, owned in one place."""
    settings: ConfigStore
    throttle: ThrottleController
    stats: StatsTracker
    notifier: Notifier
    attempter: ClaimAttempter
    verifier: ConflictVerifier
    opener: ResourceOpener
    timing: TimingConfig
    clock: Callable[[], float] = time.time
    sleep: Callable[[float], None] = time.sleep


@dataclass
class BatchResult:
    """What one notification batch led to."""
    items: List[WorkItem]
    new_count: int = 0
    alerted: bool = False
    claimed_item: Optional[str] = None
    outcome: Optional[ClaimState] = None


def build_context(
    conn: sqlite3.Connection,
    config: AppConfig,
    indicator: ConflictIndicator,
    opener: ResourceOpener,
    sinks: Sequence[AlertSink] = (),
    clock: Callable[[], float] = time.time,
    monotonic: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep
) -> SchedulerContext:
    """
    Wire the settings, throttle, stats and claim machinery together.

    Args:
        conn: Open database connection.
        config: Application configuration.
        indicator: The conflict dialog of the watched page.
        opener: Where claimed items get opened.
        sinks: Alert sinks for the notifier.
        clock: Wall clock, used for persisted timestamps and calendar days.
        monotonic: Clock for the debounce and verification windows.
        sleep: Blocking sleep used while verifying and settling.
    """
    settings = ConfigStore(conn, config.default_ding_url, config.default_pickup_interval)
    settings.apply_defaults(clock)
    timing = config.timing
    return SchedulerContext(
        settings=settings,
        throttle=ThrottleController(settings, clock),
        stats=StatsTracker(conn, settings, clock),
        notifier=Notifier(sinks, window=timing.debounce_window, clock=monotonic),
        attempter=ClaimAttempter(),
        verifier=ConflictVerifier(
            indicator,
            window=timing.verify_window,
            tick=timing.verify_tick,
            clock=monotonic,
            sleep=sleep,
        ),
        opener=opener,
        timing=timing,
        clock=clock,
        sleep=sleep,
    )


def filter_new_rows(notifications: Iterable[ChangeNotification]) -> Iterator[WorkItemRow]:
    """Keep only notifications that insert exactly one work-item row."""
    for notification in notifications:
        if notification.kind is ChangeKind.INSERTED and len(notification.rows) == 1:
            yield notification.rows[0]


def extract_items(rows: Iterable[WorkItemRow]) -> List[WorkItem]:
    """
    Read identifier and status from each row, in source order.

    Rows without a usable identifier are dropped silently. Rows that are
    not fully rendered yet (LookupError) are skipped; they will show up
    again in a later batch.
    """
    items = []
    for row in rows:
        try:
            item_id = row.item_id()
            status_text = row.status_text()
        except LookupError as e:
            logger.warning(f"Skipping row that is not ready yet: {e}")
            continue

        if not item_id or not item_id.strip():
            logger.debug("Dropping row without a parseable identifier")
            continue

        items.append(WorkItem(
            item_id=item_id.strip(),
            status=WorkItemStatus.from_text(status_text),
            row=row,
        ))
    return items


class Scheduler:
    """Filters batches, records stats, alerts and runs the claim protocol."""

    def __init__(self, context: SchedulerContext, display: Optional[StatsDisplay] = None):
        self.context = context
        self.display = display

    def _still_not_started(self, item: WorkItem) -> bool:
        try:
            status = WorkItemStatus.from_text(item.row.status_text())
        except LookupError as e:
            logger.warning(f"Could not re-read status of {item.item_id}: {e}")
            return False
        return status is WorkItemStatus.NOT_STARTED

    def process_batch(self, notifications: Sequence[ChangeNotification]) -> BatchResult:
        ctx = self.context
        items = extract_items(filter_new_rows(notifications))
        result = BatchResult(items=items)
        result.new_count = ctx.stats.observe(item.item_id for item in items)

        not_started = [item for item in items if item.status is WorkItemStatus.NOT_STARTED]
        if not not_started:
            return result

        result.alerted = ctx.notifier.trigger()

        if not ctx.settings.auto_pickup_enabled:
            logger.debug("Auto-pickup disabled, leaving PRs for someone else")
            return result

        if not ctx.throttle.is_eligible():
            logger.info(
                f"NOT picking up PR, next pickup in {ctx.throttle.seconds_until_eligible():.0f}s"
            )
            return result

        candidate = not_started[0]
        if not self._still_not_started(candidate):
            logger.info(f"{candidate.item_id} was started before we could claim it")
            return result

        logger.info(f"Picking up PR {candidate.item_id}")
        protocol = ClaimProtocol(
            candidate,
            attempter=ctx.attempter,
            verifier=ctx.verifier,
            throttle=ctx.throttle,
            stats=ctx.stats,
            opener=ctx.opener,
            settle_delay=ctx.timing.settle_delay,
            clock=ctx.clock,
            sleep=ctx.sleep,
        )
        result.claimed_item = candidate.item_id
        result.outcome = protocol.run()
        return result

    def refresh_display(self, force: bool = False) -> None:
        if self.display is not None:
            self.display.refresh(force=force)

    def run(self, source: EventSource) -> None:
        """
        Process batches until the source is exhausted or the user interrupts.

        A failing batch is logged and skipped; the loop keeps going.
        """
        logger.info("PR pickup running")
        self.refresh_display(force=True)
        try:
            while True:
                try:
                    batch = source.poll(self.context.timing.poll_timeout)
                except EOFError:
                    logger.info("Event source exhausted")
                    break
                except Exception as e:
                    logger.error(f"Error reading notifications: {e}", exc_info=True)
                    self.context.sleep(self.context.timing.poll_timeout)
                    self.refresh_display()
                    continue

                if batch:
                    try:
                        self.process_batch(batch)
                    except Exception as e:
                        logger.error(f"Error processing notification batch: {e}", exc_info=True)

                self.refresh_display()
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping")
        finally:
            source.close()
            self.refresh_display(force=True)
