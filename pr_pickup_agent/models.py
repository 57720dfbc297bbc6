"""Data models for work items and change notifications."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List


class WorkItemStatus(Enum):
    """Review status of a work item as shown in the queue."""
    NOT_STARTED = "not started"
    STARTED = "started"
    OTHER = "other"

    @classmethod
    def from_text(cls, text: str) -> "WorkItemStatus":
        normalized = " ".join((text or "").split()).lower()
        if normalized == "not started":
            return cls.NOT_STARTED
        if normalized in ("started", "in progress"):
            return cls.STARTED
        return cls.OTHER


class ChangeKind(Enum):
    """What a single change notification did to the work list."""
    INSERTED = "inserted"
    REMOVED = "removed"
    REORDERED = "reordered"


@dataclass
class ChangeNotification:
    """One raw change notification delivered by the event source."""
    kind: ChangeKind
    rows: List[Any] = field(default_factory=list)  # WorkItemRow handles


@dataclass
class WorkItem:
    """A work item extracted from a newly inserted row."""
    item_id: str
    status: WorkItemStatus
    row: Any  # WorkItemRow: claim action + destination


@dataclass
class DailyStats:
    """Counters for one local calendar day."""
    day: str  # YYYY-MM-DD
    items_seen: int = 0
    items_claimed: int = 0
