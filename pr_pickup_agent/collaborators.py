"""Abstract interfaces for the page-facing collaborators."""

import logging
import webbrowser
from abc import ABC, abstractmethod
from typing import List, Optional

from .models import ChangeNotification, WorkItem

logger = logging.getLogger(__name__)


class ResourceOpenError(Exception):
    """Raised when a work item's destination could not be opened."""


class WorkItemRow(ABC):
    """A rendered work-item row in the queue."""

    @abstractmethod
    def item_id(self) -> Optional[str]:
        """
        Return the row's external identifier.

        Returns None (or an empty string) when the identifier can't be
        parsed. Raises LookupError when the row isn't fully rendered yet.
        """
        pass

    @abstractmethod
    def status_text(self) -> str:
        """Return the row's status text as displayed, e.g. "Not started"."""
        pass

    @abstractmethod
    def claim(self) -> None:
        """Invoke the row's claim control (the "start" button)."""
        pass

    @abstractmethod
    def destination(self) -> str:
        """Return the URL the item opens once claimed."""
        pass


class EventSource(ABC):
    """Delivers batches of change notifications for the work list."""

    @abstractmethod
    def poll(self, timeout: float) -> Optional[List[ChangeNotification]]:
        """
        Wait up to timeout seconds for the next batch.

        Returns:
            The batch, None if nothing arrived in time.

        Raises:
            EOFError: When the source is exhausted and will never deliver again.
        """
        pass

    def close(self) -> None:
        pass


class ConflictIndicator(ABC):
    """The "already claimed by someone else" dialog."""

    @abstractmethod
    def is_visible(self) -> bool:
        pass

    @abstractmethod
    def dismiss(self) -> None:
        pass


class ResourceOpener(ABC):
    """Opens a claimed item's destination outside the watched page."""

    @abstractmethod
    def open(self, item: WorkItem) -> None:
        pass


class BrowserResourceOpener(ResourceOpener):
    """Opens destinations in a new browser tab."""

    def open(self, item: WorkItem) -> None:
        url = item.row.destination()
        logger.info(f"Opening {item.item_id} at {url}")
        if not webbrowser.open_new_tab(url):
            raise ResourceOpenError(f"No browser could open {url}")
