"""
Power status monitor.

Runs the polling loop in a background thread: fetches a snapshot from the
power source every poll interval, or immediately when a power broadcast
event is posted, feeds it to the status engine and delivers the resulting
decision and signals.
"""

import logging
import queue
import threading
from typing import List, Optional

from battstatus.broadcast import PowerEvent
from battstatus.engine import EngineSettings, StatusEngine, TickResult
from battstatus.reporter import Decision, DecisionAction, Signal, SignalKind
from battstatus.snapshot import PowerSnapshot


# Wait after a failed status read before trying again
FETCH_RETRY_SECONDS = 1.0


class PowerMonitor:
    """
    Drives a StatusEngine from a power source.

    The engine is only ever touched from the monitor thread. Other threads
    hand power broadcast events over through post_event.
    """

    def __init__(self, config, source, notifier=None, engine: Optional[StatusEngine] = None):
        """
        Initialize power monitor.

        Args:
            config: ConfigManager instance
            source: PowerSource instance
            notifier: PowerNotifier instance, or None to only log signals
            engine: StatusEngine to drive, built from config if None
        """
        self.config = config
        self.source = source
        self.notifier = notifier
        self.engine = engine or StatusEngine(EngineSettings.from_config(config))
        self.logger = logging.getLogger("BattStatus.Monitor")

        # Threading control
        self.stop_event = threading.Event()  # Set when stopping to wake thread immediately
        self.wake_event = threading.Event()  # Set when a power event needs a fetch now
        self.monitor_thread = None
        self.event_window = None
        self.events: "queue.Queue[PowerEvent]" = queue.Queue()

        self.last_snapshot: Optional[PowerSnapshot] = None
        self.last_result: Optional[TickResult] = None

    def start(self):
        """Start monitoring in background thread."""
        if self.monitor_thread and self.monitor_thread.is_alive():
            self.logger.warning("Monitor already running")
            return

        self.logger.debug("Starting power monitor...")
        self.stop_event.clear()
        self.monitor_thread = threading.Thread(
            target=self._monitor_loop, daemon=True, name="BattStatusMonitor"
        )
        self.monitor_thread.start()

    def stop(self):
        """Stop monitoring gracefully."""
        if self.stop_event.is_set():
            self.logger.warning("Monitor not running")
            return

        self.logger.debug("Stopping power monitor...")
        self.stop_event.set()
        self.wake_event.set()

        if self.monitor_thread:
            self.monitor_thread.join(timeout=2.0)

        self.logger.debug("Power monitor stopped")

    def post_event(self, event: PowerEvent):
        """
        Hand a power broadcast event to the monitor thread.

        Safe to call from any thread. The monitor fetches a fresh snapshot as
        soon as it picks the event up.

        Args:
            event: Received power event
        """
        self.events.put(event)
        self.wake_event.set()

    def _monitor_loop(self):
        """Main monitoring loop."""
        self.logger.debug("Monitor loop started")

        # Execution state requests apply to the calling thread
        if self.config.get("prevent_sleep", False):
            self.source.prevent_sleep()

        # The window and its message pump are bound to this thread
        self.event_window = self.source.create_event_window(
            self.post_event, self.config.get("verbose", 0)
        )

        while not self.stop_event.is_set():
            interval = self.config.get("poll_interval_ms", 100) / 1000.0

            if self.event_window is not None and not self.event_window.pump():
                self.logger.info("Power broadcast window closed, stopping monitor")
                self.stop_event.set()
                break

            # Cleared before draining so an event posted during the poll still wakes the wait
            self.wake_event.clear()

            try:
                self._drain_events()
                if self.poll() is None:
                    interval = max(interval, FETCH_RETRY_SECONDS)
            except Exception as e:
                self.logger.error(f"Error in monitor loop: {e}", exc_info=True)

            # Wakes immediately on stop or on a posted power event
            if not self.stop_event.is_set():
                self.wake_event.wait(timeout=interval)

        if self.event_window is not None:
            self.event_window.close()
            self.event_window = None

        self.logger.debug("Monitor loop exited")

    def _drain_events(self) -> List[PowerEvent]:
        drained = []
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                break
            drained.append(event)
            self._log_event(event)
        return drained

    def _log_event(self, event: PowerEvent):
        name = event.event.name
        if name == "UNDOCUMENTED":
            name = f"undocumented event {event.code:#x}"

        details = []
        if event.is_suspend:
            details.append("system suspending")
        if event.resumed_from_failure:
            details.append("resumed from failure")
        if event.interaction_allowed:
            details.append("user interaction allowed")
        if event.undocumented_data:
            details.append(f"undocumented data {event.undocumented_data:#x}")

        suffix = f" ({', '.join(details)})" if details else ""
        self.logger.info(f"Power broadcast: {name}{suffix}")

    def poll(self) -> Optional[TickResult]:
        """
        Fetch one snapshot and run it through the engine.

        A failed fetch reuses the previous snapshot, which the engine reports
        as no change.

        Returns:
            TickResult, or None if the status could not be read
        """
        snapshot = self.source.fetch()
        failed = snapshot is None
        if failed:
            snapshot = self.last_snapshot
            if snapshot is None:
                return None

        first = self.engine.previous is None
        result = self.engine.on_tick(
            snapshot,
            self.source.tick(),
            last_wake=self.source.last_wake(),
            max_timer_interval=self.source.max_timer_interval(),
            power_rate=self.source.battery_rate(),
        )
        self.last_snapshot = snapshot
        self.last_result = result

        if first:
            self._log_snapshot("Initial power status", snapshot, result.power_rate)
        if self.config.get("verbose", 0) >= 3:
            self.logger.debug(
                f"Tick: changed={sorted(result.verdict.changed)} "
                f"charge_suppressed={result.charge_suppressed} "
                f"lifetime_suppressed={result.lifetime_suppressed}"
            )

        self._deliver(result)
        return None if failed else result

    def _deliver(self, result: TickResult):
        decision = result.decision
        if decision.action == DecisionAction.FULL_DUMP:
            self._log_snapshot("Power status changed", decision.snapshot, decision.power_rate)
        if decision.emits:
            self._log_decision(decision)

        for signal in result.signals:
            self._log_signal(signal)
            if self.notifier is not None and self.config.get("enable_notifications", True):
                self.notifier.notify_signal(signal, decision)

    def _log_snapshot(self, title: str, snapshot: PowerSnapshot, power_rate: int):
        self.logger.info(
            f"{title}: ac_line_status={snapshot.ac_line_status.name} "
            f"battery_flag={snapshot.battery_flag:#04x} "
            f"life_percent={_field(snapshot.percent, snapshot.life_percent)} "
            f"battery_saver={snapshot.battery_saver} "
            f"life_time={_field(snapshot.lifetime, snapshot.life_time)} "
            f"full_life_time={_field(snapshot.full_lifetime, snapshot.full_life_time)} "
            f"rate_mw={power_rate:+d}"
        )

    def _log_decision(self, decision: Decision):
        self.logger.info(
            f"Status: {decision.kind.value} percent={decision.percent} "
            f"lifetime={decision.lifetime} plugged_in={decision.plugged_in} "
            f"charging={decision.charging} rate_mw={decision.power_rate:+d}"
        )

    def _log_signal(self, signal: Signal):
        if signal.kind == SignalKind.REVIVAL_WARNING:
            self.logger.warning(
                "Battery revival detected: charge state changes are suppressed "
                "until the charging state settles"
            )
        elif signal.kind == SignalKind.RESUME_WARNING:
            self.logger.info("Recently resumed: battery lifetime is suppressed until re-measured")
        elif signal.kind == SignalKind.BATTERY_SAVER_CHANGED:
            self.logger.info(f"Battery saver is {'on' if signal.battery_saver else 'off'}")


def _field(value: Optional[int], raw: int) -> str:
    return str(value) if value is not None else f"unknown({raw:#x})"
