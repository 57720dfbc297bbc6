"""Shared fakes: a controllable clock and in-memory page collaborators."""

from datetime import datetime

import pytest

from pr_pickup_agent.collaborators import ConflictIndicator, ResourceOpener, WorkItemRow
from pr_pickup_agent.config import AppConfig, TimingConfig
from pr_pickup_agent.db import init_db
from pr_pickup_agent.models import ChangeKind, ChangeNotification
from pr_pickup_agent.notifier import AlertSink
from pr_pickup_agent.scheduler import build_context
from pr_pickup_agent.settings import ConfigStore

START = datetime(2026, 3, 10, 12, 0, 0).timestamp()


class FakeClock:
    """Callable clock whose sleep just moves time forward."""

    def __init__(self, start=START):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRow(WorkItemRow):
    def __init__(self, item_id, status="Not started", url=None, fail_claim=False, pending=False):
        self._id = item_id
        self.status = status
        self.url = url or f"https://dev.azure.com/org/project/_git/repo/pullrequest/{item_id}"
        self.fail_claim = fail_claim
        self.pending = pending
        self.claims = 0

    def item_id(self):
        if self.pending:
            raise LookupError("row not rendered")
        return self._id

    def status_text(self):
        if self.pending:
            raise LookupError("row not rendered")
        return self.status

    def claim(self):
        if self.fail_claim:
            raise LookupError("start button not found")
        self.claims += 1
        self.status = "Started"

    def destination(self):
        return self.url


class FakeIndicator(ConflictIndicator):
    """Becomes visible on the n-th check when visible_on_check is set."""

    def __init__(self, visible_on_check=None):
        self.visible_on_check = visible_on_check
        self.checks = 0
        self.dismissed = 0

    def is_visible(self):
        self.checks += 1
        return self.visible_on_check is not None and self.checks >= self.visible_on_check

    def dismiss(self):
        self.dismissed += 1
        self.visible_on_check = None


class FakeOpener(ResourceOpener):
    def __init__(self, fail=False):
        self.opened = []
        self.fail = fail

    def open(self, item):
        if self.fail:
            raise OSError("no browser")
        self.opened.append(item.item_id)


class RecordingSink(AlertSink):
    def __init__(self):
        self.alerts = 0

    def alert(self):
        self.alerts += 1


def inserted(*rows):
    """One batch: an INSERTED notification per row."""
    return [ChangeNotification(kind=ChangeKind.INSERTED, rows=[row]) for row in rows]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def conn():
    connection = init_db(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def app_config():
    return AppConfig(
        db_path=":memory:",
        default_ding_url="http://example.com/ding.wav",
        default_pickup_interval=180,
        timing=TimingConfig(),
    )


@pytest.fixture
def settings(conn, app_config, clock):
    store = ConfigStore(conn, app_config.default_ding_url, app_config.default_pickup_interval)
    store.apply_defaults(clock)
    return store


@pytest.fixture
def indicator():
    return FakeIndicator()


@pytest.fixture
def opener():
    return FakeOpener()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def context(conn, app_config, indicator, opener, sink, clock):
    ctx = build_context(
        conn,
        app_config,
        indicator=indicator,
        opener=opener,
        sinks=[sink],
        clock=clock,
        monotonic=clock,
        sleep=clock.sleep,
    )
    # Last claim long ago, so the throttle is open.
    ctx.settings.last_claim_timestamp = clock() - 10_000
    return ctx
