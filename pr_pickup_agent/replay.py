"""Replay recorded notification batches from a JSON Lines stream.

Each line is one batch: a JSON array of entries such as

    {"kind": "inserted", "id": "PR-1", "status": "Not started",
     "url": "https://dev.azure.com/...", "conflict": false}

An entry with "pending": true behaves like a row that hasn't finished
rendering. "conflict": true makes the conflict dialog appear after the
row is claimed, as if someone else got there first.
"""

import json
import logging
import os
import select
import sys
import time
from typing import IO, Any, Dict, List, Optional, Union

from .collaborators import ConflictIndicator, EventSource, ResourceOpener, WorkItemRow
from .models import ChangeKind, ChangeNotification, WorkItem

logger = logging.getLogger(__name__)


class ReplayConflictIndicator(ConflictIndicator):
    def __init__(self):
        self.visible = False

    def is_visible(self) -> bool:
        return self.visible

    def dismiss(self) -> None:
        self.visible = False


class ReplayRow(WorkItemRow):
    """A row backed by one recorded entry."""

    def __init__(self, entry: Dict[str, Any], indicator: ReplayConflictIndicator):
        self.entry = entry
        self.indicator = indicator

    def item_id(self) -> Optional[str]:
        if self.entry.get("pending"):
            raise LookupError("row is still rendering")
        value = self.entry.get("id")
        return str(value) if value is not None else None

    def status_text(self) -> str:
        if self.entry.get("pending"):
            raise LookupError("row is still rendering")
        return str(self.entry.get("status", ""))

    def claim(self) -> None:
        if self.entry.get("no_button"):
            raise LookupError("start button not found")
        logger.info(f"Clicking start on {self.entry.get('id')}")
        self.entry["status"] = "Started"
        if self.entry.get("conflict"):
            self.indicator.visible = True

    def destination(self) -> str:
        return str(self.entry.get("url", ""))


class LoggingResourceOpener(ResourceOpener):
    """Logs the destination instead of opening a browser."""

    def open(self, item: WorkItem) -> None:
        logger.info(f"Would open {item.item_id} at {item.row.destination()}")


class JsonLinesEventSource(EventSource):
    """
    Delivers one batch per line of a JSON Lines stream.

    Streams backed by a selectable file descriptor (pipes, stdin, files)
    are read without blocking past the poll timeout. Other streams, such
    as in-memory buffers, are read line by line with readline().
    """

    def __init__(self, stream: IO, indicator: Optional[ReplayConflictIndicator] = None):
        self.stream = stream
        self.indicator = indicator or ReplayConflictIndicator()
        self.line_number = 0
        self.fd = self._selectable_fd(stream)
        self._pending = b""
        self._eof = False

    @staticmethod
    def _selectable_fd(stream: IO) -> Optional[int]:
        try:
            fd = stream.fileno()
            select.select([fd], [], [], 0)
        except (OSError, ValueError):
            # No descriptor, or one select() can't wait on (e.g. Windows pipes).
            return None
        return fd

    def _read_line(self, timeout: float) -> Optional[Union[bytes, str]]:
        """
        Return the next raw line, or None if nothing complete arrived in time.

        Raises:
            EOFError: When the stream is exhausted.
        """
        if self.fd is None:
            line = self.stream.readline()
            if not line:
                raise EOFError("no more recorded batches")
            return line

        deadline = time.monotonic() + timeout
        while True:
            newline = self._pending.find(b"\n")
            if newline >= 0:
                line = self._pending[:newline + 1]
                self._pending = self._pending[newline + 1:]
                return line
            if self._eof:
                if self._pending:
                    line, self._pending = self._pending, b""
                    return line
                raise EOFError("no more recorded batches")

            remaining = max(0.0, deadline - time.monotonic())
            ready, _, _ = select.select([self.fd], [], [], remaining)
            if not ready:
                return None
            chunk = os.read(self.fd, 65536)
            if chunk:
                self._pending += chunk
            else:
                self._eof = True

    def _parse_entry(self, entry: Dict[str, Any]) -> Optional[ChangeNotification]:
        try:
            kind = ChangeKind(str(entry.get("kind", "inserted")).lower())
        except ValueError:
            logger.warning(f"Line {self.line_number}: unknown change kind {entry.get('kind')!r}")
            return None
        return ChangeNotification(kind=kind, rows=[ReplayRow(entry, self.indicator)])

    def poll(self, timeout: float) -> Optional[List[ChangeNotification]]:
        try:
            line = self._read_line(timeout)
        except UnicodeDecodeError as e:
            self.line_number += 1
            logger.warning(f"Line {self.line_number}: not valid UTF-8: {e}")
            return None
        if line is None:
            return None
        self.line_number += 1

        if isinstance(line, bytes):
            try:
                line = line.decode("utf-8")
            except UnicodeDecodeError as e:
                logger.warning(f"Line {self.line_number}: not valid UTF-8: {e}")
                return None

        line = line.strip()
        if not line:
            return None

        try:
            entries = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Line {self.line_number}: invalid JSON: {e}")
            return None
        if not isinstance(entries, list):
            entries = [entries]

        batch = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning(f"Line {self.line_number}: skipping non-object entry")
                continue
            notification = self._parse_entry(entry)
            if notification is not None:
                batch.append(notification)
        return batch

    def close(self) -> None:
        if self.stream not in (sys.stdin, getattr(sys.stdin, "buffer", None)):
            self.stream.close()
