"""Audible alert: fetch the configured ding sound and play it."""

import logging
import sys
from typing import Callable

import requests

from .notifier import AlertSink
from .settings import ConfigStore

logger = logging.getLogger(__name__)


def bell_player(audio: bytes) -> None:
    """Fallback player: ring the terminal bell. The audio is ignored."""
    sys.stdout.write("\a")
    sys.stdout.flush()


class DingAlertSink(AlertSink):
    """Downloads the ding sound on every alert and hands it to a player.

    The URL is read from the settings on each alert so a changed ding
    sound takes effect without a restart. Playing the actual sound needs
    a player that can decode it; with the default bell_player nothing is
    downloaded and the terminal bell rings instead.
    """

    def __init__(
        self,
        settings: ConfigStore,
        player: Callable[[bytes], None] = bell_player,
        timeout: float = 10.0
    ):
        self.settings = settings
        self.player = player
        self.timeout = timeout
        self.requests = requests

    def alert(self) -> None:
        if self.player is bell_player:
            bell_player(b"")
            return

        url = self.settings.ding_url
        try:
            response = self.requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error fetching the audio file {url}: {e}")
            return

        if not 200 <= response.status_code < 300:
            logger.error(f"Failed to load audio from {url}: HTTP {response.status_code}")
            return

        self.player(response.content)
