"""Debounced new-work alerts."""

import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class AlertSink(ABC):
    """Something that can tell the user new work has arrived."""

    @abstractmethod
    def alert(self) -> None:
        pass


class DebounceState(Enum):
    IDLE = "idle"
    ARMED = "armed"            # fired, window open
    SUPPRESSED = "suppressed"  # calls arrived inside the window


class Notifier:
    """Leading-edge debounce with a refractory window.

    The first trigger after an idle period alerts immediately. Every
    trigger inside the following window is swallowed and pushes the
    window's end out again. Once the window passes quietly, the next
    trigger alerts again.
    """

    def __init__(
        self,
        sinks: Sequence[AlertSink],
        window: float = 2.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.sinks: List[AlertSink] = list(sinks)
        self.window = window
        self.clock = clock
        self.state = DebounceState.IDLE
        self._window_ends: Optional[float] = None
        self.fired = 0

    def _expire(self, now: float) -> None:
        if self.state is not DebounceState.IDLE and now >= self._window_ends:
            self.state = DebounceState.IDLE
            self._window_ends = None

    def trigger(self) -> bool:
        """
        Signal that new work arrived.

        Returns:
            True if an alert was fired, False if it was suppressed.
        """
        now = self.clock()
        self._expire(now)

        self._window_ends = now + self.window
        if self.state is DebounceState.IDLE:
            self.state = DebounceState.ARMED
            self._fire()
            return True

        self.state = DebounceState.SUPPRESSED
        logger.debug("Alert suppressed inside debounce window")
        return False

    def _fire(self) -> None:
        self.fired += 1
        for sink in self.sinks:
            try:
                sink.alert()
            except Exception as e:
                logger.error(f"Alert via {type(sink).__name__} failed: {e}")
