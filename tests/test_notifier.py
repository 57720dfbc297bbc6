from pr_pickup_agent.notifier import AlertSink, DebounceState, Notifier

from conftest import RecordingSink


class BrokenSink(AlertSink):
    def alert(self):
        raise RuntimeError("speaker unplugged")


def test_burst_within_window_alerts_once(clock):
    sink = RecordingSink()
    notifier = Notifier([sink], window=2.0, clock=clock)

    assert notifier.trigger() is True
    for _ in range(10):
        clock.advance(0.1)
        assert notifier.trigger() is False

    assert sink.alerts == 1
    assert notifier.state is DebounceState.SUPPRESSED


def test_alerts_again_after_quiet_window(clock):
    sink = RecordingSink()
    notifier = Notifier([sink], window=2.0, clock=clock)

    notifier.trigger()
    clock.advance(2.0)
    assert notifier.trigger() is True
    assert sink.alerts == 2


def test_suppressed_calls_extend_the_window(clock):
    sink = RecordingSink()
    notifier = Notifier([sink], window=2.0, clock=clock)

    notifier.trigger()
    clock.advance(1.5)
    notifier.trigger()
    clock.advance(1.5)
    # 3s after the first alert, but only 1.5s after the last call
    assert notifier.trigger() is False
    clock.advance(2.0)
    assert notifier.trigger() is True
    assert sink.alerts == 2


def test_state_returns_to_idle_lazily(clock):
    notifier = Notifier([], window=2.0, clock=clock)
    assert notifier.state is DebounceState.IDLE
    notifier.trigger()
    assert notifier.state is DebounceState.ARMED
    clock.advance(5)
    notifier.trigger()
    assert notifier.state is DebounceState.ARMED
    assert notifier.fired == 2


def test_failing_sink_does_not_stop_others(clock):
    sink = RecordingSink()
    notifier = Notifier([BrokenSink(), sink], window=2.0, clock=clock)
    assert notifier.trigger() is True
    assert sink.alerts == 1
