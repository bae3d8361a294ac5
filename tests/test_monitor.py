"""Tests for the power monitor loop."""

import logging
import time
from unittest.mock import MagicMock

from battstatus.broadcast import PowerBroadcast, PowerEvent
from battstatus.engine import EngineSettings, StatusEngine
from battstatus.monitor import PowerMonitor
from battstatus.reporter import DecisionAction, LineKind, SignalKind


def test_poll_feeds_engine_and_logs_status(config, make_snapshot, fake_source, caplog):
    source = fake_source([
        make_snapshot(percent=100, charging=True, plugged_in=True),
        make_snapshot(percent=99, charging=True, plugged_in=True),
    ])
    monitor = PowerMonitor(config, source)

    with caplog.at_level(logging.INFO, logger="BattStatus"):
        first = monitor.poll()
        second = monitor.poll()

    assert first.decision.action == DecisionAction.NOTHING
    assert second.decision.kind == LineKind.PLUGGED_IN_STATUS
    assert "Initial power status" in caplog.text
    assert "Status: plugged_in_status percent=99" in caplog.text


def test_failed_fetch_reuses_previous_snapshot(config, make_snapshot, fake_source):
    snapshot = make_snapshot(percent=40)
    source = fake_source([snapshot])
    monitor = PowerMonitor(config, source)

    monitor.poll()
    assert monitor.poll() is None
    assert monitor.last_result.decision.action == DecisionAction.NOTHING
    assert monitor.last_snapshot is snapshot


def test_failed_first_fetch_does_nothing(config, fake_source):
    monitor = PowerMonitor(config, fake_source([]))
    assert monitor.poll() is None
    assert monitor.engine.previous is None


def test_signals_are_sent_to_notifier(config, make_snapshot, fake_source):
    snapshots = [make_snapshot(charging=(i % 2 == 1)) for i in range(5)]
    notifier = MagicMock()
    engine = StatusEngine(EngineSettings(max_revival_changes=4))
    monitor = PowerMonitor(config, fake_source(snapshots), notifier, engine=engine)

    for _ in snapshots:
        monitor.poll()

    notifier.notify_signal.assert_called_once()
    signal, decision = notifier.notify_signal.call_args[0]
    assert signal.kind == SignalKind.REVIVAL_WARNING
    assert decision.kind == LineKind.SUPPRESSED_PERCENT


def test_notifications_disabled_only_logs(config, make_snapshot, fake_source):
    config.update({"enable_notifications": False})
    snapshots = [make_snapshot(battery_saver=False), make_snapshot(battery_saver=True)]
    notifier = MagicMock()
    monitor = PowerMonitor(config, fake_source(snapshots), notifier)

    monitor.poll()
    monitor.poll()

    notifier.notify_signal.assert_not_called()


def test_verbose_logs_full_dump(config, make_snapshot, fake_source, caplog):
    config.update({"verbose": 1})
    source = fake_source([
        make_snapshot(percent=50, life_time=3600),
        make_snapshot(percent=50, life_time=3540),
    ])
    monitor = PowerMonitor(config, source)

    with caplog.at_level(logging.INFO, logger="BattStatus"):
        monitor.poll()
        result = monitor.poll()

    assert result.decision.action == DecisionAction.FULL_DUMP
    assert "Power status changed" in caplog.text
    assert "life_time=3540" in caplog.text


def test_posted_events_are_logged(config, fake_source, caplog):
    monitor = PowerMonitor(config, fake_source([]))
    monitor.post_event(PowerEvent(PowerBroadcast.RESUME_AUTOMATIC, 0x1))
    monitor.post_event(PowerEvent(0x77))

    with caplog.at_level(logging.INFO, logger="BattStatus"):
        drained = monitor._drain_events()

    assert len(drained) == 2
    assert "RESUME_AUTOMATIC (resumed from failure)" in caplog.text
    assert "undocumented event 0x77" in caplog.text


def test_thread_polls_and_stops(config, make_snapshot, fake_source):
    config.update({"poll_interval_ms": 10, "prevent_sleep": True})
    source = fake_source([make_snapshot(percent=p) for p in range(100, 80, -1)])
    monitor = PowerMonitor(config, source)

    monitor.start()
    deadline = time.time() + 5
    while source.snapshots and time.time() < deadline:
        time.sleep(0.01)
    monitor.stop()

    assert not source.snapshots
    assert source.prevent_sleep_calls == 1
    assert not monitor.monitor_thread.is_alive()


def test_posted_event_wakes_loop(config, make_snapshot, fake_source):
    # Long interval: only the posted event can trigger the second fetch in time
    config.update({"poll_interval_ms": 60000})
    source = fake_source([make_snapshot(percent=60), make_snapshot(percent=59)])
    monitor = PowerMonitor(config, source)

    monitor.start()
    deadline = time.time() + 5
    while len(source.snapshots) > 1 and time.time() < deadline:
        time.sleep(0.01)

    monitor.post_event(PowerEvent(PowerBroadcast.POWER_STATUS_CHANGE))
    while source.snapshots and time.time() < deadline:
        time.sleep(0.01)
    monitor.stop()

    assert not source.snapshots


class ScriptedWindow:
    """Broadcast window delivering scripted events on its first pumps."""

    def __init__(self, events, quit_after=None):
        self.events = list(events)
        self.quit_after = quit_after
        self.on_event = None
        self.pumps = 0
        self.closed = False

    def pump(self):
        self.pumps += 1
        if self.quit_after is not None and self.pumps > self.quit_after:
            return False
        if self.events:
            self.on_event(self.events.pop(0))
        return True

    def close(self):
        self.closed = True


def test_broadcast_window_feeds_event_channel(config, make_snapshot, fake_source, caplog):
    config.update({"poll_interval_ms": 10})
    source = fake_source([make_snapshot(percent=p) for p in range(100, 90, -1)])
    source.event_window = ScriptedWindow([
        PowerEvent(PowerBroadcast.SUSPEND),
        PowerEvent(PowerBroadcast.RESUME_SUSPEND, 0x1),
    ])
    monitor = PowerMonitor(config, source)

    with caplog.at_level(logging.INFO, logger="BattStatus"):
        monitor.start()
        deadline = time.time() + 5
        while source.snapshots and time.time() < deadline:
            time.sleep(0.01)
        monitor.stop()

    window = source.event_window
    assert window.pumps > 0
    assert window.closed
    assert monitor.event_window is None
    assert "Power broadcast: SUSPEND (system suspending)" in caplog.text
    assert "Power broadcast: RESUME_SUSPEND (resumed from failure)" in caplog.text


def test_window_quit_stops_monitor(config, make_snapshot, fake_source):
    config.update({"poll_interval_ms": 10})
    source = fake_source([make_snapshot(percent=50)] * 5)
    source.event_window = ScriptedWindow([], quit_after=2)
    monitor = PowerMonitor(config, source)

    monitor.start()
    monitor.monitor_thread.join(timeout=5)

    assert not monitor.monitor_thread.is_alive()
    assert monitor.stop_event.is_set()
    assert source.event_window.closed
    assert len(source.snapshots) == 3


def test_verbose_tick_lines_are_debug_only(config, make_snapshot, fake_source, caplog):
    config.update({"verbose": 3})
    source = fake_source([make_snapshot(percent=50), make_snapshot(percent=50)])
    monitor = PowerMonitor(config, source)

    with caplog.at_level(logging.INFO, logger="BattStatus"):
        monitor.poll()
    assert "Tick:" not in caplog.text

    with caplog.at_level(logging.DEBUG, logger="BattStatus"):
        monitor.poll()
    assert "Tick:" in caplog.text
