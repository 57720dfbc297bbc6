"""Optimistic claim of a work item, verified by polling for a conflict dialog.

The queue has no compare-and-swap: the first click wins and the only
evidence of losing is a "someone else already started this" dialog that
shows up afterwards. A claim is therefore considered successful when no
such dialog appears within a short observation window.
"""

import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from .collaborators import ConflictIndicator, ResourceOpener
from .models import WorkItem
from .stats import StatsTracker
from .throttle import ThrottleController

logger = logging.getLogger(__name__)


class ClaimActionError(Exception):
    """Raised when the claim control could not be invoked."""


class InvalidTransitionError(Exception):
    """Raised on a claim state change the protocol doesn't allow."""


class ClaimState(Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    VERIFYING = "verifying"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


TRANSITIONS = {
    ClaimState.IDLE: {ClaimState.ATTEMPTING},
    ClaimState.ATTEMPTING: {ClaimState.VERIFYING, ClaimState.FAILED},
    ClaimState.VERIFYING: {ClaimState.COMMITTED, ClaimState.ROLLED_BACK},
}

TERMINAL_STATES = {ClaimState.COMMITTED, ClaimState.ROLLED_BACK, ClaimState.FAILED}


class ClaimAttempter:
    """Fires the external claim action for one item."""

    def attempt(self, item: WorkItem) -> None:
        """
        Click the item's claim control.

        Raises:
            ClaimActionError: If the control is missing or the click fails.
        """
        try:
            item.row.claim()
        except Exception as e:
            raise ClaimActionError(f"Could not claim {item.item_id}: {e}") from e


class ConflictVerifier:
    """Polls the conflict indicator for a bounded window."""

    def __init__(
        self,
        indicator: ConflictIndicator,
        window: float = 4.0,
        tick: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.indicator = indicator
        self.window = window
        self.tick = tick
        self.clock = clock
        self.sleep = sleep

    def _conflict_visible(self) -> bool:
        try:
            return self.indicator.is_visible()
        except LookupError as e:
            logger.debug(f"Conflict indicator lookup failed, treating as absent: {e}")
            return False

    def conflict_detected(self) -> bool:
        """
        Block until a conflict shows up or the window elapses.

        Returns:
            True as soon as the indicator is seen, False after a clean window.
        """
        deadline = self.clock() + self.window
        while True:
            if self._conflict_visible():
                return True
            now = self.clock()
            if now >= deadline:
                return False
            self.sleep(min(self.tick, deadline - now))

    def dismiss(self) -> None:
        try:
            self.indicator.dismiss()
        except LookupError as e:
            logger.warning(f"Could not dismiss conflict dialog: {e}")


class ClaimProtocol:
    """One claim of one item: Idle -> Attempting -> Verifying -> Committed | RolledBack.

    A claim action that can't be invoked ends in Failed. Only Committed
    touches the opener, and the throttle and stats are written only once
    the opener succeeded.
    """

    def __init__(
        self,
        item: WorkItem,
        attempter: ClaimAttempter,
        verifier: ConflictVerifier,
        throttle: ThrottleController,
        stats: StatsTracker,
        opener: ResourceOpener,
        settle_delay: float = 1.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.item = item
        self.attempter = attempter
        self.verifier = verifier
        self.throttle = throttle
        self.stats = stats
        self.opener = opener
        self.settle_delay = settle_delay
        self.clock = clock
        self.sleep = sleep
        self.state = ClaimState.IDLE
        self.history: List[ClaimState] = [ClaimState.IDLE]
        self.error: Optional[Exception] = None

    def _transition(self, new_state: ClaimState) -> None:
        if new_state not in TRANSITIONS.get(self.state, set()):
            raise InvalidTransitionError(
                f"Cannot go from {self.state.value} to {new_state.value}"
            )
        logger.debug(f"Claim {self.item.item_id}: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def attempt(self) -> None:
        self._transition(ClaimState.ATTEMPTING)
        try:
            self.attempter.attempt(self.item)
        except ClaimActionError as e:
            self.error = e
            logger.error(str(e))
            self._transition(ClaimState.FAILED)
            return
        self._transition(ClaimState.VERIFYING)

    def verify(self) -> None:
        if self.state is not ClaimState.VERIFYING:
            raise InvalidTransitionError(f"Cannot verify from {self.state.value}")
        if self.verifier.conflict_detected():
            self.roll_back()
        else:
            self.commit()

    def commit(self) -> None:
        self._transition(ClaimState.COMMITTED)
        logger.info(f"Picked up {self.item.item_id}")
        claimed_at = self.clock()

        self.sleep(self.settle_delay)
        try:
            self.opener.open(self.item)
        except Exception as e:
            self.error = e
            logger.error(f"Claimed {self.item.item_id} but could not open it, not recording the claim: {e}")
            return

        self.throttle.record_claim(claimed_at)
        self.stats.record_claim()

    def roll_back(self) -> None:
        self._transition(ClaimState.ROLLED_BACK)
        logger.info(f"Lost the race for {self.item.item_id}, rolling back")
        self.verifier.dismiss()

    def run(self) -> ClaimState:
        """Drive the protocol to a terminal state and return it."""
        self.attempt()
        if self.state is ClaimState.VERIFYING:
            self.verify()
        return self.state
