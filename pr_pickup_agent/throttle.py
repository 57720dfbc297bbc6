"""Throttling of how often a new work item may be claimed."""

import time
from typing import Callable

from .settings import ConfigStore


class ThrottleController:
    """Gates claim attempts on the time since the last confirmed claim."""

    def __init__(self, settings: ConfigStore, clock: Callable[[], float] = time.time):
        self.settings = settings
        self.clock = clock

    def is_eligible(self) -> bool:
        """
        Determine whether a new claim attempt is allowed now.

        The boundary is inclusive: exactly one interval after the last
        claim is already eligible.
        """
        elapsed = self.clock() - self.settings.last_claim_timestamp
        return elapsed >= self.settings.pickup_interval

    def seconds_until_eligible(self) -> float:
        elapsed = self.clock() - self.settings.last_claim_timestamp
        return max(0.0, self.settings.pickup_interval - elapsed)

    def record_claim(self, timestamp: float) -> None:
        """Store the time of a confirmed claim. Never call for a mere attempt."""
        self.settings.last_claim_timestamp = timestamp
